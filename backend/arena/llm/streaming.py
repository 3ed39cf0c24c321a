"""Tee a streamed completion into a forwarding sink and a persistence sink."""

from collections.abc import AsyncIterator, Awaitable, Callable


async def tee_stream(
    source: AsyncIterator[str],
    on_complete: Callable[[str], Awaitable[None]],
) -> AsyncIterator[str]:
    """Yield every chunk of ``source`` while buffering it.

    ``on_complete`` receives the full text exactly once, and only after the
    source is fully drained. If the source raises mid-stream, or the consumer
    stops iterating early, nothing is handed to ``on_complete``.
    """
    buffer: list[str] = []
    async for chunk in source:
        buffer.append(chunk)
        yield chunk
    await on_complete("".join(buffer))

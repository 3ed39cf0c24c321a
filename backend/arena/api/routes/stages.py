"""Stage routes: start/resume, lookup, history, streamed replies, and finish."""

import json
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from arena.api.deps import get_stage_machine
from arena.core.auth import ClerkUser, require_auth
from arena.db.models.message import Message
from arena.schemas.stages import (
    FinishStageResponse,
    MessageResponse,
    SendMessageRequest,
    StageLookupResponse,
    StartStageRequest,
    StartStageResponse,
)
from arena.services.stage_machine import StageStateMachine

router = APIRouter()


def _message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=str(message.id),
        role=message.role,
        content=message.content,
        sequence=message.sequence,
        created_at=message.created_at,
    )


@router.post("/start", response_model=StartStageResponse)
async def start_stage(
    body: StartStageRequest,
    user: ClerkUser = Depends(require_auth),
    machine: StageStateMachine = Depends(get_stage_machine),
):
    """Start the stage for (idea, persona), or resume it if it already exists.

    Raises:
        404: Idea not found or not owned by the caller
        409: An earlier persona's stage is not completed
    """
    snapshot = await machine.start_stage(user.user_id, body.idea_id, body.persona)
    return StartStageResponse(
        stage_id=str(snapshot.stage.id),
        persona=snapshot.stage.persona,
        resumed=snapshot.resumed,
        completed=snapshot.stage.is_completed,
        messages=[_message_response(m) for m in snapshot.messages],
    )


@router.get("", response_model=StageLookupResponse)
async def get_stage(
    idea_id: UUID = Query(...),
    persona: str = Query(...),
    user: ClerkUser = Depends(require_auth),
    machine: StageStateMachine = Depends(get_stage_machine),
):
    snapshot = await machine.get_stage(user.user_id, idea_id, persona)
    if snapshot is None:
        return StageLookupResponse(exists=False)
    return StageLookupResponse(
        exists=True,
        stage_id=str(snapshot.stage.id),
        completed=snapshot.stage.is_completed,
        messages=[_message_response(m) for m in snapshot.messages],
    )


@router.get("/{stage_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    stage_id: UUID,
    user: ClerkUser = Depends(require_auth),
    machine: StageStateMachine = Depends(get_stage_machine),
):
    messages = await machine.list_messages(user.user_id, stage_id)
    return [_message_response(m) for m in messages]


@router.post("/{stage_id}/messages")
async def send_message(
    stage_id: UUID,
    body: SendMessageRequest,
    user: ClerkUser = Depends(require_auth),
    machine: StageStateMachine = Depends(get_stage_machine),
):
    """Send a user message and stream the evaluator's reply as SSE.

    Events: ``delta`` per text chunk, then ``done`` (with ``stage_complete``
    and, when the stage finished, ``next_stage``/``summary``/``score``),
    or ``error`` if the model failed mid-stream.
    """
    events = await machine.stream_reply(user.user_id, stage_id, body.content)

    async def event_generator():
        async for event, data in events:
            yield f"event: {event}\ndata: {json.dumps(data)}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/{stage_id}/finish", response_model=FinishStageResponse)
async def finish_stage(
    stage_id: UUID,
    user: ClerkUser = Depends(require_auth),
    machine: StageStateMachine = Depends(get_stage_machine),
):
    """Summarize and complete the stage.

    Raises:
        409: Stage already completed
        400: Stage has no messages
        502: Model call failed (stage stays active)
    """
    result = await machine.finish_stage(user.user_id, stage_id)
    return FinishStageResponse(
        next_stage=result.next_stage.value if result.next_stage else None,
        summary=result.summary,
        score=result.score,
    )

"""Stage persona order for the sequential conversational pipeline.

Pure functions, no DB access.
"""

from enum import StrEnum


class StagePersona(StrEnum):
    CUSTOMER = "customer"
    DESIGNER = "designer"
    MARKETER = "marketer"
    INVESTOR = "investor"


# Fixed evaluation order; each persona appears exactly once per idea
STAGE_ORDER: tuple[StagePersona, ...] = (
    StagePersona.CUSTOMER,
    StagePersona.DESIGNER,
    StagePersona.MARKETER,
    StagePersona.INVESTOR,
)

TOTAL_STAGES = len(STAGE_ORDER)


def parse_persona(value: str) -> StagePersona:
    """Convert a raw persona key to StagePersona.

    Raises:
        ValueError: If the key is not a stage persona
    """
    try:
        return StagePersona(value)
    except ValueError:
        valid = ", ".join(p.value for p in STAGE_ORDER)
        raise ValueError(f"Unknown persona '{value}'. Valid personas: {valid}") from None


def next_persona_after(persona: StagePersona) -> StagePersona | None:
    """Return the persona that follows ``persona``, or None after the last one."""
    index = STAGE_ORDER.index(persona)
    if index + 1 < len(STAGE_ORDER):
        return STAGE_ORDER[index + 1]
    return None


def first_incomplete(completed: set[StagePersona]) -> StagePersona | None:
    """Return the first persona in order without a completed stage, or None."""
    for persona in STAGE_ORDER:
        if persona not in completed:
            return persona
    return None


def blocking_persona(requested: StagePersona, completed: set[StagePersona]) -> StagePersona | None:
    """Return the earliest persona before ``requested`` that is not completed.

    None means ``requested`` may start.
    """
    for persona in STAGE_ORDER[: STAGE_ORDER.index(requested)]:
        if persona not in completed:
            return persona
    return None

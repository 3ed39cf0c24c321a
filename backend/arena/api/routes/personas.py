"""Persona listing: stage personas plus the caller's batch roster."""

from fastapi import APIRouter, Depends

from arena.api.deps import get_entitlement_gate, get_persona_catalog
from arena.core.auth import ClerkUser, require_auth
from arena.domain.personas import STAGE_ORDER
from arena.personas.registry import PersonaCatalog, stage_persona
from arena.schemas.account import PersonaInfo, PersonasResponse
from arena.services.entitlements import EntitlementGate

router = APIRouter()


@router.get("/personas", response_model=PersonasResponse)
async def list_personas(
    user: ClerkUser = Depends(require_auth),
    gate: EntitlementGate = Depends(get_entitlement_gate),
    catalog: PersonaCatalog = Depends(get_persona_catalog),
):
    entitlement = await gate.get_account(user.user_id, user.claims)
    roster = catalog.for_tier(entitlement.persona_set)

    stage_personas = []
    for key in STAGE_ORDER:
        persona = stage_persona(key)
        stage_personas.append(PersonaInfo(key=key.value, name=persona.name, goal=persona.goal))

    return PersonasResponse(
        stage_personas=stage_personas,
        batch_tier=roster.tier,
        batch_personas=[PersonaInfo(key=p.key, name=p.name) for p in roster.personas],
    )

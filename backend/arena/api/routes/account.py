"""Account route: entitlement view for the caller."""

from fastapi import APIRouter, Depends

from arena.api.deps import get_entitlement_gate
from arena.core.auth import ClerkUser, require_auth
from arena.schemas.account import AccountResponse
from arena.services.entitlements import EntitlementGate

router = APIRouter()


@router.get("/account", response_model=AccountResponse)
async def get_account(
    user: ClerkUser = Depends(require_auth),
    gate: EntitlementGate = Depends(get_entitlement_gate),
):
    """Entitlement view for the caller. Provisions the account on first call."""
    entitlement = await gate.get_account(user.user_id, user.claims)
    return AccountResponse(
        user_id=entitlement.user_id,
        is_verified=entitlement.is_verified,
        remaining_runs=entitlement.remaining_runs,
        tier=entitlement.tier,
        is_premium=entitlement.is_premium,
    )

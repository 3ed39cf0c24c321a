"""EntitlementGate: verification, run credits, and plan tier per user.

Accounts are provisioned on first use with the free tier. Credits are only
ever decremented through a single conditional UPDATE, so concurrent runs can
never drive ``remaining_runs`` below zero.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.core.config import get_settings
from arena.core.exceptions import NoCreditsRemaining, Unverified
from arena.db.models.plan_tier import PlanTier
from arena.db.models.user_account import UserAccount

logger = structlog.get_logger(__name__)

DEFAULT_TIER_SLUG = "free"


@dataclass(frozen=True)
class Entitlement:
    """Snapshot of what a user may do right now."""

    user_id: str
    is_verified: bool
    remaining_runs: int
    tier: str
    persona_set: str
    competitor_analysis: bool

    @property
    def is_premium(self) -> bool:
        return self.tier == "premium"

    @classmethod
    def from_account(cls, account: UserAccount) -> "Entitlement":
        tier = account.plan_tier
        return cls(
            user_id=account.clerk_user_id,
            is_verified=account.is_verified,
            remaining_runs=account.remaining_runs,
            tier=tier.slug,
            persona_set=tier.persona_set,
            competitor_analysis=tier.competitor_analysis,
        )


async def decrement_run(session: AsyncSession, user_id: str) -> int | None:
    """Atomically consume one credit inside ``session``'s transaction.

    Returns the new balance, or None when the user had no credits left.
    The caller owns the commit.
    """
    result = await session.execute(
        update(UserAccount)
        .where(UserAccount.clerk_user_id == user_id, UserAccount.remaining_runs > 0)
        .values(remaining_runs=UserAccount.remaining_runs - 1)
        .returning(UserAccount.remaining_runs)
    )
    return result.scalar_one_or_none()


class EntitlementGate:
    """Checks and consumes per-user run credits."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], default_free_runs: int | None = None):
        self.session_factory = session_factory
        self.default_free_runs = (
            default_free_runs if default_free_runs is not None else get_settings().default_free_runs
        )

    async def get_account(self, user_id: str, claims: dict | None = None) -> Entitlement:
        """Return the user's entitlement, provisioning the account on first use.

        A token whose ``email_verified`` claim is true marks an unverified
        account as verified; the flag is never cleared here.
        """
        claims = claims or {}
        async with self.session_factory() as session:
            account = await self._load(session, user_id)

            if account is None:
                account = await self._provision(session, user_id, claims)
            elif not account.is_verified and claims.get("email_verified") is True:
                account.is_verified = True
                await session.commit()
                await session.refresh(account, ["plan_tier"])

            return Entitlement.from_account(account)

    async def check(self, user_id: str, claims: dict | None = None) -> Entitlement:
        """Fail fast unless the user is verified and has at least one credit.

        Raises:
            Unverified: Email not verified
            NoCreditsRemaining: remaining_runs <= 0
        """
        entitlement = await self.get_account(user_id, claims)
        if not entitlement.is_verified:
            raise Unverified()
        if entitlement.remaining_runs <= 0:
            raise NoCreditsRemaining()
        return entitlement

    async def consume(self, user_id: str) -> int:
        """Consume one credit in its own transaction and return the new balance.

        Raises:
            NoCreditsRemaining: The conditional decrement matched no row
        """
        async with self.session_factory() as session:
            remaining = await decrement_run(session, user_id)
            if remaining is None:
                await session.rollback()
                logger.warning("credit_decrement_lost_race", user_id=user_id)
                raise NoCreditsRemaining()
            await session.commit()

        logger.info("credit_consumed", user_id=user_id, remaining_runs=remaining)
        return remaining

    async def _load(self, session: AsyncSession, user_id: str) -> UserAccount | None:
        result = await session.execute(select(UserAccount).where(UserAccount.clerk_user_id == user_id))
        return result.scalar_one_or_none()

    async def _provision(self, session: AsyncSession, user_id: str, claims: dict) -> UserAccount:
        tier_result = await session.execute(select(PlanTier).where(PlanTier.slug == DEFAULT_TIER_SLUG))
        tier = tier_result.scalar_one()

        account = UserAccount(
            clerk_user_id=user_id,
            plan_tier_id=tier.id,
            is_verified=claims.get("email_verified") is True,
            remaining_runs=self.default_free_runs,
        )
        session.add(account)
        try:
            await session.commit()
        except IntegrityError:
            # Concurrent first request provisioned the same user
            await session.rollback()
            existing = await self._load(session, user_id)
            if existing is None:
                raise
            return existing

        await session.refresh(account, ["plan_tier"])
        logger.info("account_provisioned", user_id=user_id, tier=tier.slug, remaining_runs=account.remaining_runs)
        return account

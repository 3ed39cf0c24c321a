"""Re-export all models so Base.metadata sees them."""

from arena.db.models.idea import Idea
from arena.db.models.message import Message
from arena.db.models.plan_tier import PlanTier
from arena.db.models.stage import Stage
from arena.db.models.user_account import UserAccount

__all__ = [
    "Idea",
    "Message",
    "PlanTier",
    "Stage",
    "UserAccount",
]

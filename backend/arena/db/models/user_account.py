"""UserAccount model — per-user verification flag and run credits."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from arena.db.base import Base


class UserAccount(Base):
    __tablename__ = "user_accounts"
    __table_args__ = (
        CheckConstraint("remaining_runs >= 0", name="ck_user_accounts_remaining_runs_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    clerk_user_id = Column(String(255), unique=True, nullable=False, index=True)

    plan_tier_id = Column(Integer, ForeignKey("plan_tiers.id"), nullable=False)
    plan_tier = relationship("PlanTier", back_populates="accounts", lazy="selectin")

    is_verified = Column(Boolean, nullable=False, default=False)
    remaining_runs = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

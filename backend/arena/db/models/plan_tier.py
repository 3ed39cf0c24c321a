"""PlanTier model — entitlement tier definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from arena.db.base import Base


class PlanTier(Base):
    __tablename__ = "plan_tiers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Pricing (cents)
    price_monthly_cents = Column(Integer, nullable=False, default=0)

    # Credits granted per billing period
    runs_included = Column(Integer, nullable=False, default=1)

    # Key into the persona catalog for batch analysis ("free" | "premium")
    persona_set = Column(String(50), nullable=False, default="free")

    # Premium enrichment: web-search competitor analysis
    competitor_analysis = Column(Boolean, nullable=False, default=False)

    accounts = relationship("UserAccount", back_populates="plan_tier")

    @property
    def is_premium(self) -> bool:
        return self.slug == "premium"

"""Stage model — one persona's conversational evaluation of one Idea."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from arena.db.base import Base


class Stage(Base):
    __tablename__ = "stages"
    __table_args__ = (UniqueConstraint("idea_id", "persona", name="uq_stages_idea_persona"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    idea_id = Column(Uuid, ForeignKey("ideas.id"), nullable=False, index=True)
    persona = Column(String(20), nullable=False)  # customer, designer, marketer, investor

    # Written once by the finish step: {"key_points": [...], "score": n, "blocking_risks": [...]}
    summary = Column(JSON, nullable=True)
    score = Column(Integer, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    idea = relationship("Idea", back_populates="stages", lazy="raise")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

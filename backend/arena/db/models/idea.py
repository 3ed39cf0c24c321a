"""Idea model — a user-submitted business concept."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from arena.db.base import Base


class Idea(Base):
    """Immutable after creation; removed only through IdeaPipeline.delete_idea."""

    __tablename__ = "ideas"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    clerk_user_id = Column(String(255), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    # Optional structured fields fed into evaluator prompts
    target_customer = Column(Text, nullable=True)
    problem = Column(Text, nullable=True)
    current_alternatives = Column(Text, nullable=True)
    value_proposition = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    stages = relationship("Stage", back_populates="idea", lazy="raise")

    def prompt_fields(self) -> dict:
        """Fields serialized into the evaluator system instruction."""
        return {
            "title": self.title,
            "description": self.description,
            "customer": self.target_customer,
            "problem": self.problem,
            "current_solutions": self.current_alternatives,
            "value_prop": self.value_proposition,
        }

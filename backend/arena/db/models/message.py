"""Message model — one append-only turn within a Stage conversation."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from arena.db.base import Base


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("stage_id", "sequence", name="uq_messages_stage_sequence"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stage_id = Column(Uuid, ForeignKey("stages.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user, evaluator
    content = Column(Text, nullable=False)

    # Strictly increasing per stage; the unique constraint rejects racing appends
    sequence = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

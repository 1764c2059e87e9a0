from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Identity, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from answer_engine.core.database import Base


class StarAnswer(Base):
  __tablename__ = "star_answers"
  __table_args__ = (Index("ix_star_answers_user_order", "user_id", "created_at", "seq"),)

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  # Identity column keeps insertion order when rows share a transaction timestamp.
  seq: Mapped[int] = mapped_column(BigInteger, Identity(always=True), nullable=False, unique=True)
  category: Mapped[str] = mapped_column(Text, nullable=False)
  prompt: Mapped[str] = mapped_column(Text, nullable=False)
  situation: Mapped[str] = mapped_column(Text, nullable=False)
  task: Mapped[str] = mapped_column(Text, nullable=False)
  action: Mapped[str] = mapped_column(Text, nullable=False)
  result: Mapped[str] = mapped_column(Text, nullable=False)
  full_text: Mapped[str] = mapped_column(Text, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

"""Postgres-backed repository for STAR answers using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from answer_engine.core.database import get_session_factory
from answer_engine.schema.answers import StarAnswer
from answer_engine.storage.answers_repo import AnswerDraft, AnswerItem, AnswersRepository, StoreUnavailableError

logger = logging.getLogger(__name__)


def _row_to_item(row: StarAnswer, position: int) -> AnswerItem:
  return AnswerItem(id=position, category=row.category, prompt=row.prompt, situation=row.situation, task=row.task, action=row.action, result=row.result, full_text=row.full_text)


class PostgresAnswersRepository(AnswersRepository):
  """Persist answers to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise StoreUnavailableError("Database not initialized")

  async def purge(self, user_id: str) -> int:
    try:
      async with self._session_factory() as session, session.begin():
        result = await session.execute(delete(StarAnswer).where(StarAnswer.user_id == user_id))
        removed = int(result.rowcount or 0)
    except SQLAlchemyError as exc:
      logger.error("Answer purge failed user_id=%s", user_id, exc_info=True)
      raise StoreUnavailableError("Answer store unavailable") from exc

    logger.debug("Purged %s answers for user_id=%s", removed, user_id)
    return removed

  async def append(self, user_id: str, drafts: Sequence[AnswerDraft]) -> int:
    if not drafts:
      return 0

    rows = [
      StarAnswer(
        user_id=user_id,
        category=draft.category,
        prompt=draft.prompt,
        situation=draft.situation,
        task=draft.task,
        action=draft.action,
        result=draft.result,
        full_text=draft.resolved_full_text(),
      )
      for draft in drafts
    ]
    try:
      # One transaction per batch; a failure leaves none of its rows behind.
      async with self._session_factory() as session, session.begin():
        for row in rows:
          session.add(row)
          # Flush row by row so identity values follow submission order.
          await session.flush()
    except SQLAlchemyError as exc:
      logger.error("Answer append failed user_id=%s batch_size=%s", user_id, len(rows), exc_info=True)
      raise StoreUnavailableError("Answer store unavailable") from exc

    return len(rows)

  async def list_answers(self, user_id: str) -> list[AnswerItem]:
    stmt = select(StarAnswer).where(StarAnswer.user_id == user_id).order_by(StarAnswer.created_at.asc(), StarAnswer.seq.asc())
    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        rows = list(result.scalars().all())
    except SQLAlchemyError as exc:
      logger.error("Answer listing failed user_id=%s", user_id, exc_info=True)
      raise StoreUnavailableError("Answer store unavailable") from exc

    return [_row_to_item(row, position) for position, row in enumerate(rows, start=1)]

  async def count(self, user_id: str) -> int:
    stmt = select(func.count()).select_from(StarAnswer).where(StarAnswer.user_id == user_id)
    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        return int(result.scalar_one())
    except SQLAlchemyError as exc:
      logger.error("Answer count failed user_id=%s", user_id, exc_info=True)
      raise StoreUnavailableError("Answer store unavailable") from exc

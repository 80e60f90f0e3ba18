"""Shared plumbing for the SQLAlchemy repositories."""

from __future__ import annotations

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authcore.models.base import SoftDeleteMixin


def select_active(model: type[SoftDeleteMixin], *criteria) -> Select:
    """``SELECT model WHERE deleted_at IS NULL AND <criteria>``.

    Every lookup of a soft-deletable entity goes through here so a deleted
    row can never leak into a read or a uniqueness check.
    """
    return select(model).where(model.active(), *criteria)


def count_active(model: type[SoftDeleteMixin], *criteria) -> Select:
    return select(func.count()).select_from(model).where(model.active(), *criteria)


def contains(column, term: str):
    """Case-insensitive substring match used by the paginated searches."""
    return func.lower(column).contains(term.lower())


class SqlRepository:
    """Base for repositories that open one session per logical operation.

    Reads use a plain session; writes use ``session_factory.begin()`` so the
    whole read-then-write decision commits or rolls back together.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

"""
results.py — Explicit success / failure values returned by components.

Every component entry point (parser, reconciler, upserter, onboarding, sender)
returns Ok(value) or Err(error) instead of raising, so each caller must decide
what a failure means for its own transaction.

    result = parse_csv(text)
    if isinstance(result, Err):
        ...
    rows = result.value
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk.errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: DomainError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


async def unwrap(result: "Result[T]", db: AsyncSession | None = None) -> T:
    """
    Route-side helper: return the Ok value or raise the error as an ApiError.

    Raising lets the get_db dependency roll the request transaction back. Errors
    flagged keeps_changes (e.g. an invoice marked 'error' after a failed send)
    are committed first so that state survives.
    """
    if isinstance(result, Ok):
        return result.value
    if result.error.keeps_changes and db is not None:
        await db.commit()
    raise result.error.as_http()

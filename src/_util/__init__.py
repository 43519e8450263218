from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

NEON_API_URL = "https://console.neon.tech/api/v2"
DEFAULT_BRANCH_NAME = "trifectajs"

CACHE_TABLE = "trifecta_cache_entries"
MIGRATIONS_TABLE = "trifecta_migrations"
REQUIRED_TABLES: tuple[str, ...] = (CACHE_TABLE, MIGRATIONS_TABLE)
SCHEMA_VERSION = "0.1.0"


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of an internal step.

    A successful result may or may not carry a value; a failed one always carries
    the exception describing the failure. Steps return results instead of raising
    so that callers can short-circuit on `not result.success`.
    """

    success: bool
    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def ok(cls, value: Any = None) -> Result[Any]:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: BaseException) -> Result[Any]:
        return cls(success=False, error=error)

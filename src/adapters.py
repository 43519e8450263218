from typing import Any, Literal, Protocol, get_args

from .neon import NeonAdapter, create_neon_adapter
from .schema import DatabaseCheckResult

AdapterType = Literal["neon"]

SUPPORTED_ADAPTERS: tuple[str, ...] = get_args(AdapterType)


class DatabaseAdapter(Protocol):
    async def create_branch(self, branch_name: str) -> str:
        """Create or reuse a branch and return its connection string"""
        ...

    async def run_migrations(self, connection_string: str) -> None: ...

    async def run_check(self, connection_string: str) -> DatabaseCheckResult: ...


def create_adapter(type_: str, **options: Any) -> DatabaseAdapter:
    if type_ == "neon":
        return create_neon_adapter(**options)
    raise ValueError(f"Unsupported adapter type: {type_}. Supported adapters: {', '.join(SUPPORTED_ADAPTERS)}")


__all__ = [
    "SUPPORTED_ADAPTERS",
    "AdapterType",
    "DatabaseAdapter",
    "NeonAdapter",
    "create_adapter",
]

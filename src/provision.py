import logging
from typing import Any

from ._util import NEON_API_URL
from .adapters import create_adapter
from .exceptions import TrifectaConfigurationError
from .schema import DatabaseCheckResult
from .schema import check_schema as _check_schema
from .schema import run_migrations

logger = logging.getLogger(__name__)


async def provision(
    branch_name: str,
    force: bool = False,
    *,
    api_key: str,
    project_id: str,
    api_url: str = NEON_API_URL,
    adapter: str = "neon",
    **options: Any,
) -> str:
    """Return a connection string for `branch_name`, creating the branch if needed.

    With `force`, an existing branch of that name is deleted and created afresh.
    """

    if not api_key:
        raise TrifectaConfigurationError("API key is required")
    if not project_id:
        raise TrifectaConfigurationError("Project ID is required")

    logger.info("Creating branch '%s' using %s adapter...", branch_name, adapter)
    database_adapter = create_adapter(
        adapter,
        api_key=api_key,
        project_id=project_id,
        force=force,
        api_url=api_url,
        **options,
    )
    return await database_adapter.create_branch(branch_name)


async def apply_migrations(connection_string: str, **options: Any) -> None:
    if not connection_string:
        raise TrifectaConfigurationError("Connection string not provided")
    await run_migrations(connection_string, **options)


async def check_schema(connection_string: str, **options: Any) -> DatabaseCheckResult:
    if not connection_string:
        raise TrifectaConfigurationError("Connection string not provided")
    return await _check_schema(connection_string, **options)

import logging
from typing import Any

import httpx

from .._util import NEON_API_URL, Result
from ..exceptions import TrifectaProvisioningError
from ..schema import DatabaseCheckResult, check_schema, run_migrations
from ._wait import wait_for_operation
from .branches import create_with_endpoint, destroy_or_reuse, resolve_branch
from .client import NeonApi
from .connection import get_connection_string

logger = logging.getLogger(__name__)

__all__ = ["NeonAdapter", "NeonApi", "create_neon_adapter"]


def _unwrap_stage(stage: str, result: Result[Any]) -> Any:
    if not result.success:
        assert result.error is not None
        logger.error("Provisioning failed during %s: %s", stage, result.error)
        raise TrifectaProvisioningError(stage, result.error) from result.error
    return result.value


class NeonAdapter:
    """Provision a Neon branch and prepare its database for trifecta."""

    def __init__(
        self,
        api_key: str,
        project_id: str,
        force: bool = False,
        *,
        api_url: str = NEON_API_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        poll_options: dict[str, Any] | None = None,
    ) -> None:
        self._api_key = api_key
        self._project_id = project_id
        self._force = force
        self._api_url = api_url
        self._client = client
        self._timeout = timeout
        self._poll_options = poll_options or {}

    def _api(self) -> NeonApi:
        return NeonApi(self._api_key, endpoint=self._api_url, client=self._client, timeout=self._timeout)

    async def create_branch(self, branch_name: str) -> str:
        """Resolve, reuse or (re)create `branch_name` and return its connection string."""

        async with self._api() as api:
            check = _unwrap_stage("resolve", await resolve_branch(api, self._project_id, branch_name))

            branch_id: str | None = None
            if check.existing_branch is not None:
                branch_id = _unwrap_stage(
                    "destroy",
                    await destroy_or_reuse(api, self._project_id, check.existing_branch, force=self._force),
                )

            if branch_id is None:
                branch_id = _unwrap_stage(
                    "create",
                    await create_with_endpoint(
                        api,
                        self._project_id,
                        branch_name,
                        check.primary_branch_id,
                        wait=self._waiter(api),
                    ),
                )

            connection_string = _unwrap_stage(
                "connection", await get_connection_string(api, self._project_id, branch_id)
            )

        logger.info("Connection string generated successfully.")
        return connection_string

    def _waiter(self, api: NeonApi):
        async def wait(operation_id: str) -> Result[None]:
            return await wait_for_operation(api, self._project_id, operation_id, **self._poll_options)

        return wait

    async def run_migrations(self, connection_string: str) -> None:
        await run_migrations(connection_string)

    async def run_check(self, connection_string: str) -> DatabaseCheckResult:
        return await check_schema(connection_string)


def create_neon_adapter(
    api_key: str = "",
    project_id: str = "",
    force: bool = False,
    **options: Any,
) -> NeonAdapter:
    return NeonAdapter(api_key, project_id, force, **options)

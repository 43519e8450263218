import logging

from .._util import Result
from ..exceptions import TrifectaPreconditionError
from .client import NeonApi
from .models import DatabaseListResponse, NeonConnection, RoleListResponse

logger = logging.getLogger(__name__)


async def get_connection_string(api: NeonApi, project_id: str, branch_id: str) -> Result[str]:
    """Request the connection URI for the branch's default database and role.

    The first database and the first role in listing order are taken as defaults.
    """

    logger.info("Getting database and role information")

    databases = await api.request_model(DatabaseListResponse, f"/projects/{project_id}/branches/{branch_id}/databases")
    if not databases.success:
        return databases
    if not databases.value.databases:
        return Result.fail(TrifectaPreconditionError("No databases found in the branch"))
    database_name = databases.value.databases[0].name

    roles = await api.request_model(RoleListResponse, f"/projects/{project_id}/branches/{branch_id}/roles")
    if not roles.success:
        return roles
    if not roles.value.roles:
        return Result.fail(TrifectaPreconditionError("No roles found for the branch"))
    role_name = roles.value.roles[0].name

    logger.info("Generating connection string for database '%s' as role '%s'...", database_name, role_name)
    connection = await api.request_model(
        NeonConnection,
        f"/projects/{project_id}/connection_uri",
        params={
            "branch_id": branch_id,
            "database_name": database_name,
            "role_name": role_name,
        },
    )
    if not connection.success:
        return connection
    if not connection.value.uri:
        return Result.fail(TrifectaPreconditionError("No connection URI found in response"))

    return Result.ok(connection.value.uri)

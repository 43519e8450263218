import logging
from collections.abc import Awaitable, Callable
from functools import partial

from .._util import Result
from ..exceptions import TrifectaPreconditionError
from ._wait import wait_for_operation
from .client import NeonApi
from .models import BranchCheckResult, BranchCreateResponse, BranchListResponse, NeonBranch

logger = logging.getLogger(__name__)

OperationWaiter = Callable[[str], Awaitable[Result[None]]]


async def resolve_branch(api: NeonApi, project_id: str, branch_name: str) -> Result[BranchCheckResult]:
    """Find the branch named `branch_name` and the project's primary branch in one listing."""

    logger.info("Checking for existing branches...")
    result = await api.request_model(BranchListResponse, f"/projects/{project_id}/branches")
    if not result.success:
        return result

    branches = result.value.branches
    primary_branch = next((branch for branch in branches if branch.primary), None)
    if primary_branch is None:
        return Result.fail(TrifectaPreconditionError("Could not find primary branch"))

    existing_branch = next((branch for branch in branches if branch.name == branch_name), None)
    return Result.ok(BranchCheckResult(existing_branch=existing_branch, primary_branch_id=primary_branch.id))


async def destroy_or_reuse(api: NeonApi, project_id: str, branch: NeonBranch, *, force: bool) -> Result[str | None]:
    """Delete `branch` when forced, yielding no id; otherwise hand back its id for reuse."""

    logger.info("Branch '%s' already exists.", branch.name)
    if not force:
        return Result.ok(branch.id)

    logger.warning("Force flag enabled. Deleting existing branch '%s' (%s)...", branch.name, branch.id)
    result = await api.request(f"/projects/{project_id}/branches/{branch.id}", "DELETE")
    if not result.success:
        return result

    logger.info("Existing branch deleted successfully")
    return Result.ok(None)


async def create_with_endpoint(
    api: NeonApi,
    project_id: str,
    branch_name: str,
    parent_id: str,
    *,
    wait: OperationWaiter | None = None,
) -> Result[str]:
    """Create `branch_name` below `parent_id` with one read-write compute endpoint.

    The new id is only returned once every operation of the creation has finished,
    awaited in the order the control plane listed them.
    """

    if wait is None:
        wait = partial(wait_for_operation, api, project_id)

    logger.info("Creating new branch with endpoint...")
    result = await api.request_model(
        BranchCreateResponse,
        f"/projects/{project_id}/branches",
        "POST",
        {
            "branch": {
                "name": branch_name,
                "parent_id": parent_id,
            },
            "endpoints": [
                {
                    "type": "read_write",
                },
            ],
        },
    )
    if not result.success:
        return result

    created = result.value
    logger.info("Branch '%s' created successfully with endpoint.", created.branch.name)

    if operations := created.pending_operations:
        logger.info("Waiting for %d operation(s) to complete...", len(operations))
        for operation in operations:
            operation_result = await wait(operation.id)
            if not operation_result.success:
                return operation_result

    return Result.ok(created.branch.id)

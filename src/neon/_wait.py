import asyncio
import logging
from collections.abc import Awaitable, Callable

from .._util import Result
from ..exceptions import TrifectaOperationFailedError, TrifectaOperationTimeoutError
from .client import NeonApi
from .models import OperationResponse, OperationStatus

logger = logging.getLogger(__name__)

OPERATION_MAX_ATTEMPTS = 30
OPERATION_BASE_DELAY_SECONDS = 1.0
OPERATION_MAX_DELAY_SECONDS = 16.0


async def wait_for_operation(
    api: NeonApi,
    project_id: str,
    operation_id: str,
    *,
    max_attempts: int = OPERATION_MAX_ATTEMPTS,
    base_delay: float = OPERATION_BASE_DELAY_SECONDS,
    max_delay: float = OPERATION_MAX_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> Result[None]:
    """
    Poll the operation until it is finished, failed, or `max_attempts` polls elapsed.

    The delay doubles with every pending observation and is capped at `max_delay`,
    so the total wait is bounded by both the attempt budget and the cap. A failure
    to fetch the operation is returned immediately.
    """
    delay = base_delay

    for attempt in range(1, max_attempts + 1):
        result = await api.request_model(OperationResponse, f"/projects/{project_id}/operations/{operation_id}")
        if not result.success:
            return result

        operation = result.value.operation
        if operation.status == OperationStatus.FINISHED:
            logger.info("Operation completed: %s", operation.action)
            return Result.ok()
        if operation.status == OperationStatus.FAILED:
            logger.error("Operation %s failed: %s", operation_id, operation.action)
            return Result.fail(TrifectaOperationFailedError(operation.action))

        if attempt == max_attempts:
            break

        delay = min(delay * 2, max_delay)
        logger.debug(
            "Operation %s is %s (attempt %d/%d), retrying in %.1fs",
            operation_id,
            operation.status,
            attempt,
            max_attempts,
            delay,
        )
        await sleep(delay)

    logger.error("Timed out waiting for operation %s", operation_id)
    return Result.fail(TrifectaOperationTimeoutError(operation_id, max_attempts))

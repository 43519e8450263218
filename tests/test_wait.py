import httpx

from conftest import PROJECT_ID, FakeNeon
from trifecta.exceptions import TrifectaOperationFailedError, TrifectaOperationTimeoutError, TrifectaRemoteError
from trifecta.neon._wait import OPERATION_MAX_ATTEMPTS, wait_for_operation
from trifecta.neon.client import NeonApi


def _polls(neon: FakeNeon, operation_id: str) -> int:
    return neon.paths("GET").count(f"/projects/{PROJECT_ID}/operations/{operation_id}")


async def test_finished_operation_succeeds_without_sleeping(neon, http_client, no_sleep):
    neon.operation_statuses["op"] = ["finished"]

    result = await wait_for_operation(NeonApi("k", client=http_client), PROJECT_ID, "op", sleep=no_sleep)

    assert result.success
    assert _polls(neon, "op") == 1
    no_sleep.assert_not_awaited()


async def test_pending_then_finished(neon, http_client, no_sleep):
    neon.operation_statuses["op"] = ["scheduling", "running", "finished"]

    result = await wait_for_operation(NeonApi("k", client=http_client), PROJECT_ID, "op", sleep=no_sleep)

    assert result.success
    assert _polls(neon, "op") == 3
    assert no_sleep.await_count == 2


async def test_failed_status_stops_immediately(neon, http_client, no_sleep):
    neon.operation_statuses["op"] = ["running", "failed", "finished"]

    result = await wait_for_operation(NeonApi("k", client=http_client), PROJECT_ID, "op", sleep=no_sleep)

    assert not result.success
    assert isinstance(result.error, TrifectaOperationFailedError)
    assert result.error.action == "action-op"
    assert _polls(neon, "op") == 2


async def test_timeout_after_exactly_the_attempt_budget(neon, http_client, no_sleep):
    neon.operation_statuses["op"] = ["running"]

    result = await wait_for_operation(NeonApi("k", client=http_client), PROJECT_ID, "op", sleep=no_sleep)

    assert not result.success
    assert isinstance(result.error, TrifectaOperationTimeoutError)
    assert not isinstance(result.error, TrifectaOperationFailedError)
    assert result.error.attempts == OPERATION_MAX_ATTEMPTS
    assert _polls(neon, "op") == OPERATION_MAX_ATTEMPTS
    assert no_sleep.await_count == OPERATION_MAX_ATTEMPTS - 1


async def test_backoff_doubles_and_is_capped(neon, http_client, no_sleep):
    neon.operation_statuses["op"] = ["running"]

    await wait_for_operation(
        NeonApi("k", client=http_client),
        PROJECT_ID,
        "op",
        max_attempts=8,
        base_delay=1.0,
        max_delay=16.0,
        sleep=no_sleep,
    )

    delays = [call.args[0] for call in no_sleep.await_args_list]
    assert delays == [2.0, 4.0, 8.0, 16.0, 16.0, 16.0, 16.0]


async def test_fetch_failure_is_not_retried(no_sleep):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="internal error")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await wait_for_operation(NeonApi("k", client=client), PROJECT_ID, "op", sleep=no_sleep)

    assert isinstance(result.error, TrifectaRemoteError)
    assert len(calls) == 1
    no_sleep.assert_not_awaited()

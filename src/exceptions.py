class TrifectaError(Exception):
    """Base exception for trifecta provisioning errors."""


class TrifectaTransportError(TrifectaError):
    """Network-level failure talking to the control plane (DNS, timeout, reset)"""


class TrifectaRemoteError(TrifectaError):
    """The control plane rejected a request with a non-2xx status"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class TrifectaRedirectError(TrifectaError):
    """The control plane answered with a redirect; the request was aborted"""

    def __init__(self, location: str | None):
        super().__init__(f"Redirect detected to {location}. Aborted for security.")
        self.location = location


class TrifectaPreconditionError(TrifectaError):
    """Remote state does not allow the requested flow (no primary branch, no roles, ...)"""


class TrifectaOperationFailedError(TrifectaError):
    """A remote asynchronous operation reported failure"""

    def __init__(self, action: str):
        super().__init__(f"Operation failed: {action}")
        self.action = action


class TrifectaOperationTimeoutError(TrifectaError):
    """A remote asynchronous operation was still pending when the poll budget ran out"""

    def __init__(self, operation_id: str, attempts: int):
        super().__init__(f"Timed out waiting for operation {operation_id} to complete after {attempts} attempts")
        self.operation_id = operation_id
        self.attempts = attempts


class TrifectaResourceExhaustedError(TrifectaError):
    """No database connection could be obtained from the pool"""


class TrifectaProvisioningError(TrifectaError):
    """Branch provisioning failed; `stage` names the step that produced the cause"""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Branch provisioning failed during {stage}: {cause}")
        self.stage = stage


class TrifectaQueryError(TrifectaError):
    """Error executing a query through the connection gateway"""


class TrifectaTransactionUnavailableError(TrifectaError):
    """Transactions are only available with the connection pool"""


class TrifectaConnectionClosedError(TrifectaError):
    """The connection gateway is not open"""


class TrifectaConfigurationError(TrifectaError):
    """Required configuration is missing or invalid"""

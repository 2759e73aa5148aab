"""
Solana Blinks Error Taxonomy

Every failure surfaced by the resolution and execution pipeline is a
BlinkError subclass carrying:
- kind: stable discriminant string
- code: numeric code (HTTP status when one exists, else a protocol code)
- details: optional structured context (status code, body snippet, host)

Errors propagate unmodified to the command and HTTP surfaces, which are the
only places that turn them into structured results.
"""

from typing import Any, Dict, Optional


BODY_SNIPPET_LIMIT = 500


def body_snippet(body: Optional[str], limit: int = BODY_SNIPPET_LIMIT) -> str:
    """Truncate a response body for inclusion in error details."""
    if not body:
        return ""
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


class BlinkError(Exception):
    """Base class for all pipeline errors."""

    kind: str = "BlinkError"
    default_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "kind": self.kind,
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class InvalidUrlKind(BlinkError):
    """The input is not one of the accepted Action URL encodings."""
    kind = "InvalidUrlKind"
    default_code = 400

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid action URL: {reason}", details={"url": url, "reason": reason})
        self.url = url
        self.reason = reason


class InvalidRequest(BlinkError):
    """An ExecutionRequest failed validation before any network call."""
    kind = "InvalidRequest"
    default_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class ActionFetchError(BlinkError):
    """Non-2xx response (or no response at all) from an action endpoint."""
    kind = "ActionFetchError"
    default_code = 502

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        message: Optional[str] = None
    ):
        snippet = body_snippet(body)
        if message is None:
            if status_code is not None:
                message = f"Action endpoint returned HTTP {status_code}"
            else:
                message = "Action endpoint request failed"
        super().__init__(
            message,
            code=status_code,
            details={"url": url, "status_code": status_code, "body": snippet}
        )
        self.url = url
        self.status_code = status_code
        self.body = snippet


class ActionTimeoutError(BlinkError):
    """A network call exceeded its bounded timeout."""
    kind = "ActionTimeoutError"
    default_code = 504

    def __init__(self, url: str, timeout: float):
        super().__init__(
            f"Request to {url} timed out after {timeout}s",
            details={"url": url, "timeout": timeout}
        )
        self.url = url
        self.timeout = timeout


class ActionSchemaError(BlinkError):
    """The response body does not match the expected action shape."""
    kind = "ActionSchemaError"
    default_code = 502

    def __init__(self, message: str, url: Optional[str] = None, path: Optional[str] = None):
        details = {}
        if url:
            details["url"] = url
        if path:
            details["path"] = path
        super().__init__(message, details=details)
        self.url = url
        self.path = path


class ActionTransactionError(BlinkError):
    """POST succeeded but carried no usable transaction payload."""
    kind = "ActionTransactionError"
    default_code = 422

    def __init__(self, url: str, message: str = "Action response contains no transaction"):
        super().__init__(message, details={"url": url})
        self.url = url


class UntrustedHostBlocked(BlinkError):
    """Execution refused because the host is on the malicious list."""
    kind = "UntrustedHostBlocked"
    default_code = 403

    def __init__(self, host: str):
        super().__init__(
            f"Host {host} is flagged as malicious by the action registry",
            details={"host": host}
        )
        self.host = host


class MissingTemplateParameter(BlinkError):
    """A catalog endpoint template was rendered without a required parameter."""
    kind = "MissingTemplateParameter"
    default_code = 400

    def __init__(self, service_id: str, action: str, missing: list):
        super().__init__(
            f"{service_id}/{action} requires parameter(s): {', '.join(missing)}",
            details={"service": service_id, "action": action, "missing": list(missing)}
        )
        self.service_id = service_id
        self.action = action
        self.missing = list(missing)


class RpcError(BlinkError):
    """The ledger RPC returned an error or an unusable response."""
    kind = "RpcError"
    default_code = 502

    def __init__(self, method: str, message: str, rpc_code: Optional[int] = None, data: Any = None):
        details: Dict[str, Any] = {"method": method}
        if rpc_code is not None:
            details["rpc_code"] = rpc_code
        if data is not None:
            details["data"] = data
        super().__init__(message, details=details)
        self.method = method
        self.rpc_code = rpc_code


class RpcTimeoutError(RpcError):
    """A ledger RPC call or confirmation wait exceeded its timeout."""
    kind = "RpcTimeoutError"
    default_code = 504

    def __init__(self, method: str, timeout: float):
        super().__init__(method, f"RPC {method} timed out after {timeout}s")
        self.details["timeout"] = timeout
        self.timeout = timeout


class LedgerUnavailable(RpcError):
    """Execution was requested on a pipeline that has no ledger client."""
    kind = "LedgerUnavailable"
    default_code = 503

    def __init__(self, operation: str):
        super().__init__(operation, f"{operation} requires a ledger client")


class WalletError(BlinkError):
    """No usable signing key could be loaded."""
    kind = "WalletError"
    default_code = 500


class SigningError(BlinkError):
    """The transaction could not be signed by the configured wallet."""
    kind = "SigningError"
    default_code = 500

import json
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"


class DseOperatorError(Exception):
    """Base class of errors raised while reconciling a DseDatacenter."""


class DseConfigurationError(DseOperatorError):
    """The DseDatacenter spec can never be reconciled as written."""


class ConfigSlotNotFoundError(DseOperatorError):
    """The StatefulSet does not carry the config environment variable."""


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return err.get("reason", "").lower() if isinstance(err, dict) else ""


def already_exists_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) in ("", _ALREADY_EXISTS)


def not_found_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _reason(ex) == _NOT_FOUND


def describe_api_exception(ex: Exception) -> str:
    """Short, serializable description of a store error for logs and status."""
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return str(ex)
    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, TypeError, AttributeError):
        pass
    return error_msg

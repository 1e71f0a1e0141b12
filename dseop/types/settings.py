import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Consult the node management API for cluster health before adding a node
HEALTH_CHECK_ENABLED = bool(_getenv("HEALTH_CHECK_ENABLED", True))

#: Timeout in seconds for each node management health probe
HEALTH_CHECK_TIMEOUT_SECONDS = float(_getenv("HEALTH_CHECK_TIMEOUT_SECONDS", 10.0))

#: Port the node management API listens on in every DSE pod
NODE_MGMT_PORT = int(_getenv("NODE_MGMT_PORT", 8080))

#: Seconds to wait before re-entering reconciliation after a requeue
REQUEUE_DELAY_SECONDS = int(_getenv("REQUEUE_DELAY_SECONDS", 10))

#: Seconds to wait before re-entering reconciliation after a failed pass
REQUEUE_ERROR_DELAY_SECONDS = int(_getenv("REQUEUE_ERROR_DELAY_SECONDS", 30))

#: Interval in seconds of the periodic (level-triggered) reconciliation timer
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 60.0))


class Settings:
    """Operator settings"""

    health_check_enabled: bool = HEALTH_CHECK_ENABLED
    health_check_timeout_seconds: float = HEALTH_CHECK_TIMEOUT_SECONDS
    node_mgmt_port: int = NODE_MGMT_PORT
    requeue_delay_seconds: int = REQUEUE_DELAY_SECONDS
    requeue_error_delay_seconds: int = REQUEUE_ERROR_DELAY_SECONDS
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS

    def __init__(
        self,
        *args,
        health_check_enabled: bool = None,
        health_check_timeout_seconds: float = None,
        node_mgmt_port: int = None,
        requeue_delay_seconds: int = None,
        requeue_error_delay_seconds: int = None,
        reconcile_interval_seconds: float = None,
        **kwargs,
    ):
        if health_check_enabled is not None:
            self.health_check_enabled = health_check_enabled

        if health_check_timeout_seconds is not None:
            self.health_check_timeout_seconds = health_check_timeout_seconds

        if node_mgmt_port is not None:
            self.node_mgmt_port = node_mgmt_port

        if requeue_delay_seconds is not None:
            self.requeue_delay_seconds = requeue_delay_seconds

        if requeue_error_delay_seconds is not None:
            self.requeue_error_delay_seconds = requeue_error_delay_seconds

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

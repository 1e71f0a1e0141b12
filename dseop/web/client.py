"""DSE node management API client."""
from typing import Any, Optional
from yarl import URL
from .session import SessionManager

CLUSTER_PROBE_PATH = "/api/v0/probes/cluster"
CONSISTENCY_LEVEL = "LOCAL_QUORUM"


class NodeMgmtClient(SessionManager):
    """Client for the management API exposed by every DSE node."""

    def __init__(self, port: int = 8080, **kwargs: Any) -> None:
        self.port = port
        super().__init__(**kwargs)

    def cluster_probe_url(self, host: str, rf_per_dc: int) -> URL:
        """URL of the cluster health probe of a single node."""
        return URL.build(
            scheme="http",
            host=host,
            port=self.port,
            path=CLUSTER_PROBE_PATH,
            query={"consistency_level": CONSISTENCY_LEVEL, "rf_per_dc": rf_per_dc},
        )

    async def probe_cluster_health(
        self, host: str, rf_per_dc: int, timeout: Optional[float] = None
    ) -> None:
        """Ask a node whether the cluster can serve LOCAL_QUORUM for the
        given replication factor per datacenter. Raises on any failure."""
        await self.get(self.cluster_probe_url(host, rf_per_dc), timeout=timeout)

"""Unit tests for the node management API client."""

import pytest
from unittest.mock import AsyncMock, patch
from dseop.web import NodeMgmtClient


class TestNodeMgmtClient:
    def test_cluster_probe_url(self):
        client = NodeMgmtClient()
        url = client.cluster_probe_url("pod-0.c1-dc1-service.ns1", 3)
        assert str(url) == (
            "http://pod-0.c1-dc1-service.ns1:8080/api/v0/probes/cluster"
            "?consistency_level=LOCAL_QUORUM&rf_per_dc=3"
        )

    def test_custom_port(self):
        client = NodeMgmtClient(port=9090)
        assert client.cluster_probe_url("host", 1).port == 9090

    @pytest.mark.asyncio
    async def test_probe_cluster_health(self):
        client = NodeMgmtClient()
        with patch.object(client, "get", AsyncMock(return_value="OK")) as get:
            await client.probe_cluster_health("host", 2, timeout=5.0)
        url = get.await_args.args[0]
        assert url.query["rf_per_dc"] == "2"
        assert get.await_args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        client = NodeMgmtClient()
        await client.close()

import asyncio
import aiohttp
from kubernetes_asyncio.client import ApiException
from dseop.common.models.labels import Labels
from dseop.web.error import AuthenticationError, NotFoundError

PROBE_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    ValueError,
    AuthenticationError,
    NotFoundError,
)

LIST_ERRORS = (ApiException, aiohttp.ClientError, asyncio.TimeoutError)


async def is_cluster_healthy(datacenter) -> bool:
    """Ask every DSE pod of the cluster whether LOCAL_QUORUM can be served.

    Pods are probed one after the other and the first failure short-circuits
    to unhealthy. Nothing is retried here, the next reconciliation pass asks
    again.
    """
    logger = datacenter.logger
    if not datacenter.conf.health_check_enabled:
        logger.debug("Cluster health check disabled, assuming healthy.")
        return True

    selector = {Labels.CLUSTER_LABEL: datacenter.cluster_name}
    try:
        pod_list = await datacenter.list_pods(
            datacenter.core_v1_api, datacenter.namespace, label_selector=selector
        )
    except LIST_ERRORS as ex:
        logger.error(f"No pods found for DseDatacenter {datacenter.name}: {ex}")
        return False

    rf_per_dc = len(datacenter.racks)
    for pod in pod_list.items or []:
        pod_name = pod.metadata.name
        logger.info(
            f"Requesting cluster health status from DSE node management API for pod {pod_name}"
        )
        try:
            await datacenter.web_client.probe_cluster_health(
                datacenter.pod_host(pod_name),
                rf_per_dc,
                timeout=datacenter.conf.health_check_timeout_seconds,
            )
        except PROBE_ERRORS as ex:
            logger.info(f"Cluster health probe via pod {pod_name} failed: {ex!r}")
            datacenter.sensor.on_health_check_complete(
                datacenter.name, datacenter.namespace, pod_name, False
            )
            return False
        datacenter.sensor.on_health_check_complete(
            datacenter.name, datacenter.namespace, pod_name, True
        )

    return True

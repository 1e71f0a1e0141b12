import kopf
import logging
import dseop.handlers.dsedatacenter as dsedatacenter
from dseop.types.settings import Settings
from dseop.resources.dsedatacenter import DseDatacenter
from dseop.web import NodeMgmtClient
from dseop.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()
    DseDatacenter.conf = memo.conf
    DseDatacenter.web_client = NodeMgmtClient(port=memo.conf.node_mgmt_port)

    # Create a shared ApiClient for all resources to prevent connection leaks
    DseDatacenter.shared_api_client = ApiClient()
    logger.info("Shared Kubernetes API client initialized")

    # Initialize sensor infrastructure
    sensor_delegate = SensorDelegate()
    prometheus_monitor = PrometheusMonitor()
    sensor_delegate.add(prometheus_monitor)
    memo.sensor = sensor_delegate
    DseDatacenter.sensor = sensor_delegate
    logger.info("Sensor infrastructure initialized with PrometheusMonitor")

    # Initialize Prometheus metrics server
    try:
        init_metrics_server()
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logger.warning("Continuing without metrics server")

    if not DseDatacenter.conf.health_check_enabled:
        logger.warning(
            "Cluster health checks are disabled as per configuration. "
            "Racks will be scaled up without consulting the node management API."
        )

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = 2

    # Post events to the Kubernetes API for logging >= Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    # Close the shared API client
    if getattr(DseDatacenter, "shared_api_client", None):
        await DseDatacenter.shared_api_client.close()
        logger.info("Shared API client closed")

    # Close the web client
    if getattr(DseDatacenter, "web_client", None):
        await DseDatacenter.web_client.close()
        logger.info("Web client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "dsedatacenter",
]

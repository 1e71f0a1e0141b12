"""Prometheus monitoring backend for the DSE operator.

PrometheusMonitor turns sensor events into Prometheus metrics:

1. Reconciliation health - pass duration and outcome (converged/requeue/error)
2. Kubernetes resource writes - operation counts, latency, config drift
3. Datacenter health - node management probe results and scale steps
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import Counter, Histogram, Gauge

from dseop.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the DSE operator.

    Metric families:
    - dseop_reconcile_* - Reconciliation pass metrics
    - dseop_resource_* - Kubernetes resource write metrics
    - dseop_health_probe_* / dseop_rack_* - Datacenter health and scaling
    """

    def __init__(self, registry=None):
        super().__init__()
        kwargs = {} if registry is None else {"registry": registry}

        # =============================================================================
        # Reconciliation Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            "dseop_reconcile_duration_seconds",
            "Time spent in a reconciliation pass",
            labelnames=["datacenter", "namespace", "trigger_source", "outcome"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            **kwargs,
        )

        self.reconcile_total = Counter(
            "dseop_reconcile_total",
            "Total number of reconciliation passes",
            labelnames=["datacenter", "namespace", "trigger_source", "outcome"],
            **kwargs,
        )

        self.reconcile_errors = Counter(
            "dseop_reconcile_errors_total",
            "Total number of reconciliation passes that surfaced an error",
            labelnames=["datacenter", "namespace", "error_type"],
            **kwargs,
        )

        # =============================================================================
        # Kubernetes Resource Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            "dseop_resource_sync_duration_seconds",
            "Time spent writing Kubernetes resources",
            labelnames=["datacenter", "namespace", "resource_type", "operation", "result"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            **kwargs,
        )

        self.resource_sync_total = Counter(
            "dseop_resource_sync_total",
            "Total number of Kubernetes resource writes",
            labelnames=["datacenter", "namespace", "resource_type", "operation", "result"],
            **kwargs,
        )

        self.resource_drift_detected = Counter(
            "dseop_resource_drift_detected_total",
            "Total number of drift detections",
            labelnames=["datacenter", "namespace", "resource_name", "resource_type", "drift_field"],
            **kwargs,
        )

        # =============================================================================
        # Health and Scaling Metrics
        # =============================================================================

        self.health_probe_total = Counter(
            "dseop_health_probe_total",
            "Total number of node management cluster health probes",
            labelnames=["datacenter", "namespace", "result"],
            **kwargs,
        )

        self.rack_replicas = Gauge(
            "dseop_rack_replicas",
            "Replica count last written for a rack",
            labelnames=["datacenter", "namespace", "rack"],
            **kwargs,
        )

        logger.info("PrometheusMonitor initialized")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        datacenter: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        return {
            "start_time": time.time(),
            "trigger_source": trigger_source,
        }

    def on_reconcile_complete(
        self,
        datacenter: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        outcome: str,
        error: Optional[Exception] = None,
    ) -> None:
        if state:
            duration = time.time() - state["start_time"]
            labels = dict(
                datacenter=datacenter,
                namespace=namespace,
                trigger_source=state["trigger_source"],
                outcome=outcome,
            )
            self.reconcile_duration.labels(**labels).observe(duration)
            self.reconcile_total.labels(**labels).inc()

        if error:
            self.reconcile_errors.labels(
                datacenter=datacenter,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        return {"start_time": time.time()}

    def on_resource_sync_complete(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        labels = dict(
            datacenter=datacenter,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result="success" if success else "failure",
        )
        if state:
            self.resource_sync_duration.labels(**labels).observe(
                time.time() - state["start_time"]
            )
        self.resource_sync_total.labels(**labels).inc()

    def on_resource_drift_detected(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: list,
    ) -> None:
        for field in drift_fields:
            self.resource_drift_detected.labels(
                datacenter=datacenter,
                namespace=namespace,
                resource_name=resource_name,
                resource_type=resource_type,
                drift_field=field,
            ).inc()

    # =============================================================================
    # Health and Scaling Hooks
    # =============================================================================

    def on_health_check_complete(
        self,
        datacenter: str,
        namespace: str,
        pod_name: str,
        healthy: bool,
    ) -> None:
        self.health_probe_total.labels(
            datacenter=datacenter,
            namespace=namespace,
            result="healthy" if healthy else "unhealthy",
        ).inc()

    def on_rack_scaled(
        self,
        datacenter: str,
        namespace: str,
        rack: str,
        from_replicas: int,
        to_replicas: int,
    ) -> None:
        self.rack_replicas.labels(
            datacenter=datacenter, namespace=namespace, rack=rack
        ).set(to_replicas)

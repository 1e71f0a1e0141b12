"""Sensor delegation for fan-out pattern.

SensorDelegate routes every sensor event to each registered backend. Each
backend keeps its own state for start/complete hook pairs, and a failing
backend never breaks reconciliation.
"""

from typing import Set, Dict, Optional, Any
import logging

from dseop.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("dc1", "default", 5, "timer")
        delegate.on_reconcile_complete("dc1", "default", state, "converged")
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def _start(self, hook: str, *args) -> Optional[Dict[OperatorSensor, Any]]:
        if not self._sensors:
            return None
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    def _notify(self, hook: str, *args, **kwargs) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    def _complete(self, hook: str, leading: tuple, state, *trailing) -> None:
        for sensor in self._sensors:
            sensor_state = state.get(sensor) if state else None
            try:
                getattr(sensor, hook)(*leading, sensor_state, *trailing)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        datacenter: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._start(
            "on_reconcile_start", datacenter, namespace, generation, trigger_source
        )

    def on_reconcile_complete(
        self,
        datacenter: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        outcome: str,
        error: Optional[Exception] = None,
    ) -> None:
        self._complete(
            "on_reconcile_complete", (datacenter, namespace), state, outcome, error
        )

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._start(
            "on_resource_sync_start", datacenter, resource_name, namespace, resource_type
        )

    def on_resource_sync_complete(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._complete(
            "on_resource_sync_complete",
            (datacenter, resource_name, namespace, resource_type),
            state,
            operation,
            success,
            error,
        )

    def on_resource_drift_detected(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: list,
    ) -> None:
        self._notify(
            "on_resource_drift_detected",
            datacenter,
            resource_name,
            namespace,
            resource_type,
            drift_fields,
        )

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
        self._notify(
            "on_health_check_complete", datacenter, namespace, pod_name, healthy
        )

    def on_rack_scaled(
        self,
        datacenter: str,
        namespace: str,
        rack: str,
        from_replicas: int,
        to_replicas: int,
    ) -> None:
        self._notify(
            "on_rack_scaled", datacenter, namespace, rack, from_replicas, to_replicas
        )

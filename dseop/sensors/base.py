"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

Hooks come in pairs where an operation has a duration: on_X_start() returns an
optional state dict which is handed back to the matching on_X_complete().
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for DSE operator monitoring.

    Hooks cover three categories:
    1. Reconciliation lifecycle (one pass of the rack pipeline)
    2. Resource operations (StatefulSet, PodDisruptionBudget, label writes)
    3. Datacenter health and scaling (node management probes, replica steps)
    """

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
        """Called when a reconciliation pass begins.

        Args:
            datacenter: DseDatacenter resource name
            namespace: Kubernetes namespace
            generation: Resource generation number
            trigger_source: What triggered reconciliation (create, update, timer, ...)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        datacenter: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        outcome: str,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconciliation pass ends.

        Args:
            datacenter: DseDatacenter resource name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            outcome: One of ``converged``, ``requeue`` or ``error``
            error: Exception surfaced by the pass, if any
        """
        pass

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
        """Called before a managed resource is created or updated."""
        pass

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
        """Called after a managed resource write.

        Args:
            operation: ``create`` or ``update``
            success: Whether the write was accepted by the API server
        """
        pass

    def on_resource_drift_detected(
        self,
        datacenter: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: list,
    ) -> None:
        """Called when deployed state differs from desired state."""
        pass

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
        """Called after each node management health probe."""
        pass

    def on_rack_scaled(
        self,
        datacenter: str,
        namespace: str,
        rack: str,
        from_replicas: int,
        to_replicas: int,
    ) -> None:
        """Called after a rack's replica count was written."""
        pass

"""Rack reconciliation pipeline.

Every pass re-reads the rack StatefulSets and runs the checks below in order.
The first check that has something to do (or something to wait for) ends the
pass with a :class:`ReconcileResult`; a pass in which no check fires marks the
datacenter ``Ready``.

1. rack creation
2. rack labels
3. parked state
4. seeds ready
5. scale ready
6. configuration
7. pod and volume claim labels
"""
import asyncio
import aiohttp
from typing import List, NamedTuple, Optional
from kubernetes_asyncio.client import ApiException, V1ObjectMeta, V1StatefulSet
from dseop.common.models.labels import Labels
from dseop.utils.errors import (
    ConfigSlotNotFoundError,
    DseConfigurationError,
    already_exists_error,
)
from dseop.reconciliation.racks import RackInformation
from dseop.reconciliation.labels import should_update_labels_for_rack_resource
from dseop.reconciliation.config import (
    CONFIG_ENV_NAME,
    get_configs_for_rack_resource,
    set_config_file_data,
)
from dseop.reconciliation.health import is_cluster_healthy

STORE_ERRORS = (ApiException, aiohttp.ClientError, asyncio.TimeoutError)

STATEFUL_SET = "StatefulSet"
POD_DISRUPTION_BUDGET = "PodDisruptionBudget"


class ReconcileResult(NamedTuple):
    """Outcome of a reconciliation pass."""

    requeue: bool
    error: Optional[Exception] = None


REQUEUE = ReconcileResult(requeue=True)
DONE = ReconcileResult(requeue=False)


def _replicas(stateful_set: V1StatefulSet) -> int:
    return (stateful_set.spec.replicas if stateful_set.spec else None) or 0


def _ready_replicas(stateful_set: V1StatefulSet) -> int:
    return (stateful_set.status.ready_replicas if stateful_set.status else None) or 0


def _status_replicas(stateful_set: V1StatefulSet) -> int:
    return (stateful_set.status.replicas if stateful_set.status else None) or 0


class ReconcileRacks:
    """Drive the racks of a DseDatacenter one step closer to the desired state."""

    desired_rack_information: List[RackInformation]
    stateful_sets: List[V1StatefulSet]

    def __init__(self, datacenter):
        self.datacenter = datacenter
        self.logger = datacenter.logger
        self.desired_rack_information = []
        self.stateful_sets = []

    def calculate_rack_information(self) -> List[RackInformation]:
        """Plan the node and seed count of every rack.

        Raises:
            DseConfigurationError: When the datacenter declares no rack.
        """
        self.desired_rack_information = self.datacenter.rack_information()
        for rack_info in self.desired_rack_information:
            self.logger.debug(
                f"Rack {rack_info.rack_name}: {rack_info.node_count} nodes, "
                f"{rack_info.seed_count} seeds"
            )
        return self.desired_rack_information

    def _racks(self):
        return zip(self.desired_rack_information, self.stateful_sets)

    async def check_rack_creation(self) -> Optional[ReconcileResult]:
        datacenter = self.datacenter
        self.stateful_sets = []
        for rack_info in self.desired_rack_information:
            name = datacenter.stateful_set_name(rack_info.rack_name)
            try:
                stateful_set = await datacenter.fetch_stateful_set(
                    datacenter.apps_v1_api, name, datacenter.namespace
                )
            except STORE_ERRORS as ex:
                self.logger.error(
                    f"Could not locate StatefulSet for rack {rack_info.rack_name}: {ex}"
                )
                return ReconcileResult(requeue=True, error=ex)

            if stateful_set is None:
                self.logger.info(
                    f"Need to create new StatefulSet for rack {rack_info.rack_name}"
                )
                return await self.reconcile_next_rack(rack_info)

            self.stateful_sets.append(stateful_set)
        return None

    async def reconcile_next_rack(self, rack_info: RackInformation) -> ReconcileResult:
        """Create the StatefulSet of a rack with zero replicas, plus the
        datacenter PodDisruptionBudget when there is none yet."""
        datacenter = self.datacenter
        try:
            stateful_set = datacenter.prepare_statefulset(rack_info.rack_name, 0)
            datacenter.unite(stateful_set)
        except (TypeError, ValueError) as ex:
            self.logger.error(
                f"Unable to build StatefulSet for rack {rack_info.rack_name}: {ex}"
            )
            return ReconcileResult(requeue=True, error=ex)

        try:
            await datacenter.set_progress(Labels.PROGRESS_UPDATING)
            self.logger.info(
                f"Creating StatefulSet {stateful_set.metadata.name} in "
                f"namespace {datacenter.namespace}"
            )
            await self.create(
                STATEFUL_SET,
                stateful_set.metadata.name,
                datacenter.create_stateful_set(
                    datacenter.apps_v1_api, datacenter.namespace, stateful_set
                ),
            )

            budget = await datacenter.fetch_pod_disruption_budget(
                datacenter.policy_v1_api,
                datacenter.pod_disruption_budget_name,
                datacenter.namespace,
            )
            if budget is None:
                desired_budget = datacenter.prepare_pod_disruption_budget()
                datacenter.unite(desired_budget)
                self.logger.info(
                    f"Creating PodDisruptionBudget {desired_budget.metadata.name} "
                    f"in namespace {datacenter.namespace}"
                )
                try:
                    await self.create(
                        POD_DISRUPTION_BUDGET,
                        desired_budget.metadata.name,
                        datacenter.create_pod_disruption_budget(
                            datacenter.policy_v1_api,
                            datacenter.namespace,
                            desired_budget,
                        ),
                    )
                except ApiException as ex:
                    if not already_exists_error(ex):
                        raise
                    self.logger.info(
                        f"PodDisruptionBudget {desired_budget.metadata.name} "
                        "already exists"
                    )
        except STORE_ERRORS as ex:
            self.logger.error(
                f"Unable to create resources for rack {rack_info.rack_name}: {ex}"
            )
            return ReconcileResult(requeue=True, error=ex)

        return REQUEUE

    async def check_rack_labels(self) -> Optional[ReconcileResult]:
        """Bring the labels of every rack StatefulSet up to date.

        Never ends the pass, a failed update is retried on the next one.
        """
        for index, (rack_info, stateful_set) in enumerate(self._racks()):
            current_labels = stateful_set.metadata.labels
            should_update, updated_labels = should_update_labels_for_rack_resource(
                current_labels, self.datacenter, rack_info.rack_name
            )
            if not should_update:
                continue

            self.logger.info(
                f"Updating labels of StatefulSet {stateful_set.metadata.name} "
                f"from {current_labels} to {updated_labels}"
            )
            stateful_set.metadata.labels = updated_labels
            try:
                await self.replace_stateful_set(index, "update")
            except STORE_ERRORS as ex:
                self.logger.warning(
                    f"Unable to update StatefulSet {stateful_set.metadata.name} "
                    f"with labels: {ex}"
                )
        return None

    async def check_rack_parked_state(self) -> Optional[ReconcileResult]:
        if not self.datacenter.parked:
            return None
        for index, (rack_info, stateful_set) in enumerate(self._racks()):
            current_replicas = _replicas(stateful_set)
            if current_replicas > 0:
                self.logger.info(
                    f"DseDatacenter is parked, setting rack {rack_info.rack_name} "
                    f"from {current_replicas} to {rack_info.node_count} replicas"
                )
                return await self.update_rack_node_count(index, rack_info.node_count)
        return None

    async def check_rack_seeds_ready(self) -> Optional[ReconcileResult]:
        """Bring the seeds of every rack up, one node at a time."""
        for index, (rack_info, stateful_set) in enumerate(self._racks()):
            await self.label_seed_pods(rack_info, stateful_set)

            desired_seed_count = rack_info.seed_count
            max_replicas = _replicas(stateful_set)
            ready_replicas = _ready_replicas(stateful_set)

            # Once the seeds are up the non-seed nodes are scaled by
            # check_rack_scale_ready
            if ready_replicas >= desired_seed_count:
                continue

            if ready_replicas < max_replicas:
                self.logger.info(
                    f"Not all seeds of StatefulSet {stateful_set.metadata.name} are "
                    f"ready ({ready_replicas}/{max_replicas})"
                )
                return REQUEUE

            return await self.update_rack_node_count(index, ready_replicas + 1)
        return None

    async def label_seed_pods(
        self, rack_info: RackInformation, stateful_set: V1StatefulSet
    ):
        """Add the seed node label to the seed pods of a rack.

        Best effort: stops at the first seed pod that cannot be read, and a
        failed label update is only logged.
        """
        datacenter = self.datacenter
        for ordinal in range(rack_info.seed_count):
            pod_name = f"{stateful_set.metadata.name}-{ordinal}"
            try:
                pod = await datacenter.fetch_pod(
                    datacenter.core_v1_api, pod_name, datacenter.namespace
                )
            except STORE_ERRORS as ex:
                self.logger.info(f"Unable to get seed pod {pod_name}: {ex}")
                return
            if pod is None:
                self.logger.info(f"Seed pod {pod_name} does not exist yet")
                return

            if Labels.SEED_NODE_LABEL in (pod.metadata.labels or {}):
                continue
            try:
                await datacenter.patch_pod_labels(
                    datacenter.core_v1_api,
                    pod_name,
                    datacenter.namespace,
                    {Labels.SEED_NODE_LABEL: "true"},
                )
            except STORE_ERRORS as ex:
                self.logger.warning(
                    f"Unable to update pod {pod_name} with seed label: {ex}"
                )

    async def check_rack_scale_ready(self) -> Optional[ReconcileResult]:
        """Grow every rack to its desired node count, one node at a time, while
        the cluster stays healthy."""
        datacenter = self.datacenter
        for index, (rack_info, stateful_set) in enumerate(self._racks()):
            ready_replicas = _ready_replicas(stateful_set)
            max_replicas = _replicas(stateful_set)
            desired_node_count = rack_info.node_count

            if ready_replicas < max_replicas:
                self.logger.info(
                    f"Not all replicas of StatefulSet {stateful_set.metadata.name} "
                    f"are ready ({ready_replicas}/{max_replicas})"
                )
                return REQUEUE

            if max_replicas < desired_node_count:
                if not await is_cluster_healthy(datacenter):
                    self.logger.info(
                        f"Cluster {datacenter.cluster_name} is not healthy, "
                        f"holding scale up of rack {rack_info.rack_name}"
                    )
                    return REQUEUE
                self.logger.info(
                    f"Adding a node to rack {rack_info.rack_name} "
                    f"({max_replicas} -> {desired_node_count})"
                )
                return await self.update_rack_node_count(index, max_replicas + 1)

            if ready_replicas > desired_node_count:
                self.logger.warning(
                    f"Too many ready replicas in StatefulSet "
                    f"{stateful_set.metadata.name}: {ready_replicas} ready, "
                    f"{desired_node_count} desired"
                )
                return REQUEUE

            self.logger.debug(f"All replicas of rack {rack_info.rack_name} are ready")
        return None

    async def check_rack_configuration(self) -> Optional[ReconcileResult]:
        datacenter = self.datacenter
        for index, stateful_set in enumerate(list(self.stateful_sets)):
            name = stateful_set.metadata.name
            try:
                current_config, desired_config = get_configs_for_rack_resource(
                    datacenter, stateful_set
                )
            except (ConfigSlotNotFoundError, TypeError, ValueError) as ex:
                self.logger.error(f"Error examining config of StatefulSet {name}: {ex}")
                return ReconcileResult(requeue=True, error=ex)

            if current_config == desired_config:
                continue

            self.logger.info(
                f"Updating config of StatefulSet {name} "
                f"from {current_config!r} to {desired_config!r}"
            )
            datacenter.sensor.on_resource_drift_detected(
                datacenter.name, name, datacenter.namespace, STATEFUL_SET, [CONFIG_ENV_NAME]
            )
            set_config_file_data(stateful_set, desired_config)
            template = stateful_set.spec.template
            if template.metadata is None:
                template.metadata = V1ObjectMeta()
            template.metadata.annotations = {
                **(template.metadata.annotations or {}),
                **datacenter.prepare_hash_annotation(
                    datacenter.compute_hash(desired_config)
                ),
            }
            try:
                await datacenter.set_progress(Labels.PROGRESS_UPDATING)
                await self.replace_stateful_set(index, "update")
            except STORE_ERRORS as ex:
                self.logger.error(
                    f"Unable to perform update on StatefulSet {name} for config: {ex}"
                )
                return ReconcileResult(requeue=True, error=ex)

            # Pods restart with the new config, come back through the pipeline
            return REQUEUE
        return None

    async def check_rack_pod_labels(self) -> Optional[ReconcileResult]:
        for rack_info, stateful_set in self._racks():
            if not await self.reconcile_pods(rack_info.rack_name, stateful_set):
                return REQUEUE
        return None

    async def reconcile_pods(self, rack_name: str, stateful_set: V1StatefulSet) -> bool:
        """Merge rack labels into the pods of a StatefulSet and their volume
        claims.

        Returns:
            False when a pod or claim could not be read.
        """
        datacenter = self.datacenter
        for ordinal in range(_status_replicas(stateful_set)):
            pod_name = f"{stateful_set.metadata.name}-{ordinal}"
            try:
                pod = await datacenter.fetch_pod(
                    datacenter.core_v1_api, pod_name, datacenter.namespace
                )
            except STORE_ERRORS as ex:
                self.logger.info(f"Unable to get pod {pod_name}: {ex}")
                return False
            if pod is None:
                self.logger.info(f"Unable to get pod {pod_name}: not found")
                return False

            should_update, updated_labels = should_update_labels_for_rack_resource(
                pod.metadata.labels, datacenter, rack_name
            )
            if should_update:
                self.logger.info(
                    f"Updating labels of pod {pod_name} "
                    f"from {pod.metadata.labels} to {updated_labels}"
                )
                try:
                    await datacenter.patch_pod_labels(
                        datacenter.core_v1_api,
                        pod_name,
                        datacenter.namespace,
                        updated_labels,
                    )
                except STORE_ERRORS as ex:
                    self.logger.warning(
                        f"Unable to update pod {pod_name} with labels: {ex}"
                    )

            claim_name = next(
                (
                    volume.persistent_volume_claim.claim_name
                    for volume in (pod.spec.volumes if pod.spec else None) or []
                    if volume.persistent_volume_claim is not None
                ),
                None,
            )
            if claim_name is None:
                continue

            try:
                claim = await datacenter.fetch_persistent_volume_claim(
                    datacenter.core_v1_api, claim_name, datacenter.namespace
                )
            except STORE_ERRORS as ex:
                self.logger.info(f"Unable to get pvc {claim_name}: {ex}")
                return False
            if claim is None:
                self.logger.info(f"Unable to get pvc {claim_name}: not found")
                return False

            should_update, updated_labels = should_update_labels_for_rack_resource(
                claim.metadata.labels, datacenter, rack_name
            )
            if should_update:
                self.logger.info(
                    f"Updating labels of pvc {claim_name} "
                    f"from {claim.metadata.labels} to {updated_labels}"
                )
                try:
                    await datacenter.patch_persistent_volume_claim_labels(
                        datacenter.core_v1_api,
                        claim_name,
                        datacenter.namespace,
                        updated_labels,
                    )
                except STORE_ERRORS as ex:
                    self.logger.warning(
                        f"Unable to update pvc {claim_name} with labels: {ex}"
                    )
        return True

    async def update_rack_node_count(
        self, index: int, node_count: int
    ) -> ReconcileResult:
        """Set the replica count of a rack StatefulSet and requeue."""
        datacenter = self.datacenter
        rack_info = self.desired_rack_information[index]
        stateful_set = self.stateful_sets[index]
        current_count = _replicas(stateful_set)
        self.logger.info(
            f"Updating node count of StatefulSet {stateful_set.metadata.name} "
            f"to {node_count}"
        )
        try:
            await datacenter.set_progress(Labels.PROGRESS_UPDATING)
            stateful_set.spec.replicas = node_count
            await self.replace_stateful_set(index, "scale")
        except STORE_ERRORS as ex:
            self.logger.error(
                f"Unable to update node count of StatefulSet "
                f"{stateful_set.metadata.name}: {ex}"
            )
            return ReconcileResult(requeue=True, error=ex)

        datacenter.sensor.on_rack_scaled(
            datacenter.name,
            datacenter.namespace,
            rack_info.rack_name,
            current_count,
            node_count,
        )
        return REQUEUE

    async def create(self, resource_type: str, resource_name: str, request):
        """Await a create request, reporting it to the sensors."""
        datacenter = self.datacenter
        sensor_state = datacenter.sensor.on_resource_sync_start(
            datacenter.name, resource_name, datacenter.namespace, resource_type
        )
        try:
            await request
        except STORE_ERRORS as ex:
            datacenter.sensor.on_resource_sync_complete(
                datacenter.name,
                resource_name,
                datacenter.namespace,
                resource_type,
                sensor_state,
                "create",
                False,
                ex,
            )
            raise
        datacenter.sensor.on_resource_sync_complete(
            datacenter.name,
            resource_name,
            datacenter.namespace,
            resource_type,
            sensor_state,
            "create",
            True,
        )

    async def replace_stateful_set(self, index: int, operation: str):
        """Write back a rack StatefulSet, keeping the stored copy for the rest
        of the pass."""
        datacenter = self.datacenter
        stateful_set = self.stateful_sets[index]
        name = stateful_set.metadata.name
        sensor_state = datacenter.sensor.on_resource_sync_start(
            datacenter.name, name, datacenter.namespace, STATEFUL_SET
        )
        try:
            updated = await datacenter.replace_stateful_set(
                datacenter.apps_v1_api, name, datacenter.namespace, stateful_set
            )
        except STORE_ERRORS as ex:
            datacenter.sensor.on_resource_sync_complete(
                datacenter.name,
                name,
                datacenter.namespace,
                STATEFUL_SET,
                sensor_state,
                operation,
                False,
                ex,
            )
            raise
        datacenter.sensor.on_resource_sync_complete(
            datacenter.name,
            name,
            datacenter.namespace,
            STATEFUL_SET,
            sensor_state,
            operation,
            True,
        )
        if updated is not None:
            self.stateful_sets[index] = updated

    async def apply(self) -> ReconcileResult:
        """Run one reconciliation pass over all racks."""
        self.logger.debug(f"Reconciling racks of DseDatacenter {self.datacenter.name}")
        try:
            self.calculate_rack_information()
        except DseConfigurationError as ex:
            self.logger.error(str(ex))
            return ReconcileResult(requeue=False, error=ex)

        for check in (
            self.check_rack_creation,
            self.check_rack_labels,
            self.check_rack_parked_state,
            self.check_rack_seeds_ready,
            self.check_rack_scale_ready,
            self.check_rack_configuration,
            self.check_rack_pod_labels,
        ):
            result = await check()
            if result is not None:
                return result

        try:
            await self.datacenter.set_progress(Labels.PROGRESS_READY)
        except STORE_ERRORS as ex:
            self.logger.error(f"Unable to mark DseDatacenter as ready: {ex}")
            return ReconcileResult(requeue=True, error=ex)

        self.logger.info("All StatefulSets are reconciled")
        return DONE

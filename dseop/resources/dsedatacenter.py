import logging
from logging import Logger
from typing import Dict, List, Optional
from dseop.utils.objects import cached_property
from dseop.utils.helpers import canonicalize_dict
from dseop.types.settings import Settings
from dseop.types.models.dsedatacenter_spec import (
    DseDatacenterSpec,
    DseRack,
    DseStorageClaim,
)
from dseop.types.models.dsedatacenter_resources import DseDatacenterResources
from dseop.reconciliation.config import CONFIG_ENV_NAME
from dseop.reconciliation.racks import RackInformation, calculate_rack_information
from kubernetes_asyncio.client import (
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    PolicyV1Api,
    V1Affinity,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1LabelSelector,
    V1NodeAffinity,
    V1NodeSelector,
    V1NodeSelectorRequirement,
    V1NodeSelectorTerm,
    V1ObjectMeta,
    V1OwnerReference,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PodDisruptionBudget,
    V1PodDisruptionBudgetSpec,
    V1PodSpec,
    V1PodTemplateSpec,
    V1ResourceRequirements,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1StatefulSetUpdateStrategy,
    V1EmptyDirVolumeSource,
    V1Volume,
    V1VolumeMount,
)
from kubernetes_asyncio.client.api_client import ApiClient

from dseop.resources.base import BaseResource
from dseop.common.models.labels import Labels
from dseop.web import NodeMgmtClient
from dseop.sensors import SensorDelegate


class DseDatacenter(BaseResource):
    """DseDatacenter kubernetes resource."""

    logger: Logger
    conf: Settings = Settings()
    web_client: NodeMgmtClient = None
    sensor: SensorDelegate = SensorDelegate()
    shared_api_client: ApiClient = None  # Shared across all DseDatacenter instances

    KIND = "DseDatacenter"
    GROUP_NAME = "datastax.com"
    GROUP_VERSION = "v1alpha1"
    PLURAL_NAME = "dsedatacenters"
    DSE_CONTAINER_NAME = "dse"
    CONFIG_INIT_CONTAINER_NAME = "dse-config-init"
    ZONE_LABEL = "topology.kubernetes.io/zone"

    DEFAULT_CONFIG_MOUNT_PATH = "/config"
    DEFAULT_DATA_MOUNT_PATH = "/var/lib/cassandra"
    CONTAINER_PORTS = {
        "native": 9042,
        "inter-node": 8609,
        "intra-node": 7000,
        "tls-intra-node": 7001,
        "mgmt-api": 8080,
    }

    name: str
    uid: Optional[str]
    spec: DseDatacenterSpec

    _progress: Optional[str] = None

    # k8s resources
    _api_client: ApiClient = None
    _apps_v1_api: AppsV1Api = None
    _core_v1_api: CoreV1Api = None
    _policy_v1_api: PolicyV1Api = None
    _custom_objects_api: CustomObjectsApi = None

    def __init__(
        self,
        name: str,
        namespace: str,
        cluster_name: str,
        labels: Optional[Dict[str, str]] = None,
    ):
        super().__init__(cluster=cluster_name, namespace=namespace)
        self.name = name
        self._progress = (labels or {}).get(Labels.OPERATOR_PROGRESS_LABEL)

    @classmethod
    def from_spec(
        self,
        name: str,
        namespace: str,
        spec: DseDatacenterSpec,
        uid: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
        logger: Logger = None,
    ) -> "DseDatacenter":
        datacenter = DseDatacenter(name, namespace, spec.cluster_name, labels=labels)
        datacenter.logger = logger or logging.getLogger(__name__)
        datacenter.uid = uid
        datacenter.spec = spec
        return datacenter

    @property
    def cluster_name(self) -> str:
        return self.cluster

    @property
    def size(self) -> int:
        return self.spec.size

    @property
    def parked(self) -> bool:
        return bool(self.spec.parked)

    @property
    def racks(self) -> List[str]:
        """Rack names in declaration order."""
        return [rack.name for rack in self.spec.racks or []]

    @property
    def progress(self) -> Optional[str]:
        return self._progress

    @property
    def cluster_labels(self) -> Labels:
        return Labels.cluster_labels(self.cluster_name, self.DSE_OPERATOR_NAME)

    @property
    def datacenter_labels(self) -> Labels:
        return Labels.datacenter_labels(
            self.cluster_name, self.name, self.DSE_OPERATOR_NAME
        )

    def rack_labels(self, rack_name: str) -> Labels:
        return Labels.rack_labels(
            self.cluster_name, self.name, rack_name, self.DSE_OPERATOR_NAME
        )

    def rack(self, rack_name: str) -> Optional[DseRack]:
        for rack in self.spec.racks or []:
            if rack.name == rack_name:
                return rack
        return None

    def rack_information(self) -> List[RackInformation]:
        return calculate_rack_information(self.size, self.racks, parked=self.parked)

    def stateful_set_name(self, rack_name: str) -> str:
        return DseDatacenterResources.stateful_set_name(
            self.cluster_name, self.name, rack_name
        )

    def pod_name(self, rack_name: str, ordinal: int) -> str:
        return DseDatacenterResources.pod_name(
            self.cluster_name, self.name, rack_name, ordinal
        )

    def pod_host(self, pod_name: str) -> str:
        return DseDatacenterResources.pod_host(
            pod_name, self.cluster_name, self.name, self.namespace
        )

    @property
    def pod_disruption_budget_name(self) -> str:
        return DseDatacenterResources.pod_disruption_budget_name(self.name)

    @property
    def all_pods_service_name(self) -> str:
        return DseDatacenterResources.all_pods_service_name(
            self.cluster_name, self.name
        )

    @property
    def seed_list(self) -> List[str]:
        """Fully qualified host names of the seed nodes.

        Seeds are the lowest ordinals of every rack StatefulSet, as many as the
        rack plan assigns to the rack. The list ignores `parked` so that the
        config written while parked still lets the first seed start on unpark.
        """
        seeds = []
        for rack_info in calculate_rack_information(self.size, self.racks):
            for ordinal in range(rack_info.seed_count):
                seeds.append(
                    DseDatacenterResources.seed_host(
                        self.pod_name(rack_info.rack_name, ordinal),
                        self.cluster_name,
                        self.name,
                        self.namespace,
                    )
                )
        return seeds

    def config_as_json(self) -> str:
        """Canonical JSON of the desired DSE configuration."""
        config = dict(self.spec.config or {})
        config["cluster-info"] = {
            "name": self.cluster_name,
            "seeds": ",".join(self.seed_list),
        }
        config["datacenter-info"] = {"name": self.name}
        return canonicalize_dict(config)

    def owner_reference(self) -> V1OwnerReference:
        return V1OwnerReference(
            api_version=f"{self.GROUP_NAME}/{self.GROUP_VERSION}",
            kind=self.KIND,
            name=self.name,
            uid=self.uid,
            controller=True,
            block_owner_deletion=True,
        )

    def unite(self, *children):
        """Make the DseDatacenter the controlling owner of `children`."""
        owner_reference = self.owner_reference()
        for child in children:
            references = [
                reference
                for reference in child.metadata.owner_references or []
                if reference.uid != owner_reference.uid
            ]
            child.metadata.owner_references = references + [owner_reference]

    def prepare_config_init_container(self, config: str) -> V1Container:
        return V1Container(
            name=self.CONFIG_INIT_CONTAINER_NAME,
            image=self.spec.config_builder_image,
            env=[
                V1EnvVar(name=CONFIG_ENV_NAME, value=config),
                V1EnvVar(name="CONFIG_OUTPUT_DIRECTORY", value="/config"),
            ],
            volume_mounts=[
                V1VolumeMount(
                    name="server-config", mount_path=self.DEFAULT_CONFIG_MOUNT_PATH
                )
            ],
        )

    def prepare_dse_container(self) -> V1Container:
        resources = self.spec.resources or {}
        return V1Container(
            name=self.DSE_CONTAINER_NAME,
            image=self.spec.image,
            env=[V1EnvVar(name="DS_LICENSE", value="accept")],
            ports=[
                V1ContainerPort(name=name, container_port=port)
                for name, port in self.CONTAINER_PORTS.items()
            ],
            resources=V1ResourceRequirements(
                requests=resources.get("requests"), limits=resources.get("limits")
            )
            if resources
            else None,
            volume_mounts=[
                V1VolumeMount(
                    name=DseDatacenterResources.server_data_claim_name(),
                    mount_path=self.DEFAULT_DATA_MOUNT_PATH,
                ),
                V1VolumeMount(
                    name="server-config", mount_path=self.DEFAULT_CONFIG_MOUNT_PATH
                ),
            ],
        )

    def prepare_affinity(self, rack_name: str) -> Optional[V1Affinity]:
        rack = self.rack(rack_name)
        if rack is None or not rack.zone:
            return None
        return V1Affinity(
            node_affinity=V1NodeAffinity(
                required_during_scheduling_ignored_during_execution=V1NodeSelector(
                    node_selector_terms=[
                        V1NodeSelectorTerm(
                            match_expressions=[
                                V1NodeSelectorRequirement(
                                    key=self.ZONE_LABEL,
                                    operator="In",
                                    values=[rack.zone],
                                )
                            ]
                        )
                    ]
                )
            )
        )

    def prepare_volume_claim_template(self) -> V1PersistentVolumeClaim:
        storage_claim = self.spec.storage_claim or DseStorageClaim(
            storage_class_name=None, size="5Gi"
        )
        return V1PersistentVolumeClaim(
            metadata=V1ObjectMeta(
                name=DseDatacenterResources.server_data_claim_name()
            ),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                storage_class_name=storage_claim.storage_class_name,
                resources={"requests": {"storage": storage_claim.size}},
            ),
        )

    def prepare_statefulset(self, rack_name: str, replicas: int) -> V1StatefulSet:
        """Build the StatefulSet of a rack.

        Pods come up one at a time (OrderedReady) behind the all pods service.
        The config init container carries the serialized configuration.
        """
        labels = self.rack_labels(rack_name).as_dict()
        config = self.config_as_json()
        pod_template = V1PodTemplateSpec(
            metadata=V1ObjectMeta(
                labels=labels,
                annotations=self.prepare_hash_annotation(self.compute_hash(config)),
            ),
            spec=V1PodSpec(
                affinity=self.prepare_affinity(rack_name),
                init_containers=[self.prepare_config_init_container(config)],
                containers=[self.prepare_dse_container()],
                volumes=[
                    V1Volume(
                        name="server-config", empty_dir=V1EmptyDirVolumeSource()
                    )
                ],
            ),
        )
        return V1StatefulSet(
            api_version="apps/v1",
            kind="StatefulSet",
            metadata=V1ObjectMeta(
                name=self.stateful_set_name(rack_name),
                namespace=self.namespace,
                labels=labels,
            ),
            spec=V1StatefulSetSpec(
                replicas=replicas,
                service_name=self.all_pods_service_name,
                pod_management_policy="OrderedReady",
                update_strategy=V1StatefulSetUpdateStrategy(type="RollingUpdate"),
                selector=V1LabelSelector(match_labels=labels),
                template=pod_template,
                volume_claim_templates=[self.prepare_volume_claim_template()],
            ),
        )

    def prepare_pod_disruption_budget(self) -> V1PodDisruptionBudget:
        labels = self.datacenter_labels.as_dict()
        return V1PodDisruptionBudget(
            api_version="policy/v1",
            kind="PodDisruptionBudget",
            metadata=V1ObjectMeta(
                name=self.pod_disruption_budget_name,
                namespace=self.namespace,
                labels=labels,
            ),
            spec=V1PodDisruptionBudgetSpec(
                min_available=max(self.size - 1, 0),
                selector=V1LabelSelector(
                    match_labels={Labels.DATACENTER_LABEL: self.name}
                ),
            ),
        )

    async def set_progress(self, value: str):
        """Set the operator progress label on the DseDatacenter.

        Nothing is written when the label already holds `value`.
        """
        if self.progress == value:
            return
        self.logger.info(f"Setting operator progress of {self.name} to {value}")
        await self.patch_custom_object_labels(
            self.custom_objects_api,
            self.namespace,
            self.GROUP_NAME,
            self.GROUP_VERSION,
            self.PLURAL_NAME,
            self.name,
            {Labels.OPERATOR_PROGRESS_LABEL: value},
        )
        self._progress = value

    @cached_property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            # Use the shared API client if available, otherwise create a new one
            if self.shared_api_client is not None:
                self._api_client = self.shared_api_client
            else:
                self._api_client = ApiClient()
        return self._api_client

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        if self._apps_v1_api is None:
            self._apps_v1_api = AppsV1Api(self.api_client)
        return self._apps_v1_api

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        if self._core_v1_api is None:
            self._core_v1_api = CoreV1Api(self.api_client)
        return self._core_v1_api

    @cached_property
    def policy_v1_api(self) -> PolicyV1Api:
        if self._policy_v1_api is None:
            self._policy_v1_api = PolicyV1Api(self.api_client)
        return self._policy_v1_api

    @cached_property
    def custom_objects_api(self) -> CustomObjectsApi:
        if self._custom_objects_api is None:
            self._custom_objects_api = CustomObjectsApi(self.api_client)
        return self._custom_objects_api

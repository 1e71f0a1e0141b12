import logging
import pytest
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, Mock
from kubernetes_asyncio.client import (
    ApiException,
    V1Container,
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimVolumeSource,
    V1Pod,
    V1PodList,
    V1PodSpec,
    V1StatefulSetStatus,
    V1Volume,
)
from dseop.common.models.labels import Labels
from dseop.resources.dsedatacenter import DseDatacenter
from dseop.sensors import SensorDelegate
from dseop.types.schemas import DseDatacenterSpecSchema
from dseop.types.settings import Settings


def not_found():
    return ApiException(status=404, reason="Not Found")


class FakeKube:
    """In-memory stand-in for the AppsV1, CoreV1, PolicyV1 and CustomObjects
    APIs, keyed by object name.

    Reads hand out the stored objects. Every call is recorded in ``calls``
    and ``failures`` maps a method name to the exception it raises.
    """

    def __init__(self):
        self.stateful_sets = {}
        self.pod_disruption_budgets = {}
        self.pods = {}
        self.claims = {}
        self.custom_object_labels = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}

    def _call(self, method: str, name: Optional[str] = None):
        self.calls.append((method, name))
        if method in self.failures:
            raise self.failures[method]

    def writes(self) -> List[tuple]:
        return [
            call
            for call in self.calls
            if call[0].startswith(("create_", "replace_", "patch_"))
        ]

    # AppsV1Api

    async def read_namespaced_stateful_set(self, name, namespace):
        self._call("read_namespaced_stateful_set", name)
        if name not in self.stateful_sets:
            raise not_found()
        return self.stateful_sets[name]

    async def create_namespaced_stateful_set(self, namespace, body):
        self._call("create_namespaced_stateful_set", body.metadata.name)
        self.stateful_sets[body.metadata.name] = body
        return body

    async def replace_namespaced_stateful_set(self, name, namespace, body):
        self._call("replace_namespaced_stateful_set", name)
        self.stateful_sets[name] = body
        return body

    # PolicyV1Api

    async def read_namespaced_pod_disruption_budget(self, name, namespace):
        self._call("read_namespaced_pod_disruption_budget", name)
        if name not in self.pod_disruption_budgets:
            raise not_found()
        return self.pod_disruption_budgets[name]

    async def create_namespaced_pod_disruption_budget(self, namespace, body):
        self._call("create_namespaced_pod_disruption_budget", body.metadata.name)
        self.pod_disruption_budgets[body.metadata.name] = body
        return body

    # CoreV1Api

    async def read_namespaced_pod(self, name, namespace):
        self._call("read_namespaced_pod", name)
        if name not in self.pods:
            raise not_found()
        return self.pods[name]

    async def patch_namespaced_pod(self, name, namespace, body):
        self._call("patch_namespaced_pod", name)
        pod = self.pods[name]
        pod.metadata.labels = {
            **(pod.metadata.labels or {}),
            **body["metadata"]["labels"],
        }
        return pod

    async def list_namespaced_pod(self, namespace, label_selector=None):
        self._call("list_namespaced_pod")
        return V1PodList(items=list(self.pods.values()))

    async def read_namespaced_persistent_volume_claim(self, name, namespace):
        self._call("read_namespaced_persistent_volume_claim", name)
        if name not in self.claims:
            raise not_found()
        return self.claims[name]

    async def patch_namespaced_persistent_volume_claim(self, name, namespace, body):
        self._call("patch_namespaced_persistent_volume_claim", name)
        claim = self.claims[name]
        claim.metadata.labels = {
            **(claim.metadata.labels or {}),
            **body["metadata"]["labels"],
        }
        return claim

    # CustomObjectsApi

    async def patch_namespaced_custom_object(
        self, group, version, namespace, plural, name, body
    ):
        self._call("patch_namespaced_custom_object", name)
        self.custom_object_labels.update(body["metadata"]["labels"])
        return body


def load_spec(**overrides):
    spec = {
        "clusterName": "cluster1",
        "size": 6,
        "racks": [{"name": "r1"}, {"name": "r2"}, {"name": "r3"}],
        "config": {"cassandra-yaml": {"num_tokens": 8}},
    }
    spec.update(overrides)
    return DseDatacenterSpecSchema().load(spec)


def make_datacenter(kube: FakeKube, labels=None, **overrides) -> DseDatacenter:
    datacenter = DseDatacenter.from_spec(
        "dc1",
        "ns1",
        load_spec(**overrides),
        uid="0a1b2c3d",
        labels=labels,
        logger=logging.getLogger("tests"),
    )
    datacenter._apps_v1_api = kube
    datacenter._core_v1_api = kube
    datacenter._policy_v1_api = kube
    datacenter._custom_objects_api = kube
    datacenter.conf = Settings(health_check_enabled=True)
    datacenter.sensor = SensorDelegate()
    datacenter.web_client = Mock()
    datacenter.web_client.probe_cluster_health = AsyncMock(return_value=None)
    return datacenter


def add_rack(
    kube: FakeKube,
    datacenter: DseDatacenter,
    rack_name: str,
    replicas: int,
    ready: Optional[int] = None,
    with_pods: bool = True,
):
    """Store a rack StatefulSet as the operator would have created it, with
    `replicas` nodes of which `ready` are ready."""
    ready = replicas if ready is None else ready
    stateful_set = datacenter.prepare_statefulset(rack_name, replicas)
    datacenter.unite(stateful_set)
    stateful_set.status = V1StatefulSetStatus(replicas=replicas, ready_replicas=ready)
    kube.stateful_sets[stateful_set.metadata.name] = stateful_set

    if not with_pods:
        return stateful_set
    rack_info = next(
        info for info in datacenter.rack_information() if info.rack_name == rack_name
    )
    for ordinal in range(replicas):
        pod_name = f"{stateful_set.metadata.name}-{ordinal}"
        claim_name = f"server-data-{pod_name}"
        labels = datacenter.rack_labels(rack_name).as_dict()
        if ordinal < rack_info.seed_count:
            labels[Labels.SEED_NODE_LABEL] = "true"
        kube.pods[pod_name] = V1Pod(
            metadata=V1ObjectMeta(name=pod_name, labels=labels),
            spec=V1PodSpec(
                containers=[V1Container(name="dse")],
                volumes=[
                    V1Volume(
                        name="server-data",
                        persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(
                            claim_name=claim_name
                        ),
                    )
                ],
            ),
        )
        kube.claims[claim_name] = V1PersistentVolumeClaim(
            metadata=V1ObjectMeta(
                name=claim_name, labels=datacenter.rack_labels(rack_name).as_dict()
            )
        )
    return stateful_set


@pytest.fixture
def kube():
    return FakeKube()


@pytest.fixture
def datacenter(kube):
    return make_datacenter(kube)


@pytest.fixture
def converged(kube, datacenter):
    """Every rack of `datacenter` at its desired size and fully labeled."""
    for rack_info in datacenter.rack_information():
        add_rack(kube, datacenter, rack_info.rack_name, rack_info.node_count)
    return datacenter

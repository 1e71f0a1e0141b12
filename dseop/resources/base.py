import hashlib
import mmh3
from typing import Any, Dict, Optional, Union
from kubernetes_asyncio.client import (
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    PolicyV1Api,
    V1Pod,
    V1PodList,
    V1PersistentVolumeClaim,
    V1PodDisruptionBudget,
    V1StatefulSet,
)
from dseop.common.models.labels import Labels
from dseop.utils.errors import not_found_error
from dseop.utils.helpers import canonicalize_dict


class BaseResource:
    """Base resource model.

    Wraps the Kubernetes API calls the operator issues. Reads return ``None``
    when the object does not exist; every other API error propagates.
    """

    DSE_OPERATOR_NAME = "dse-operator"
    CONFIG_HASH_ANNOTATION = "dseop.datastax.com/config-hash"

    _cluster: str
    _namespace: str

    def __init__(self, cluster: str, namespace: str):
        self._cluster = cluster
        self._namespace = namespace

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def namespace(self) -> str:
        return self._namespace

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
        full_hash = hash_obj.hexdigest()

        # First 16 characters keep annotations readable
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        return {self.CONFIG_HASH_ANNOTATION: str(hash)}

    async def fetch_stateful_set(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1StatefulSet]:
        """Retrieve the latest state of a stateful set"""
        try:
            return await apps_v1_api.read_namespaced_stateful_set(
                name=name, namespace=namespace
            )
        except Exception as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_stateful_set(
        self, apps_v1_api: AppsV1Api, namespace: str, stateful_set: V1StatefulSet
    ):
        await apps_v1_api.create_namespaced_stateful_set(
            namespace=namespace, body=stateful_set
        )

    async def replace_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        stateful_set: V1StatefulSet,
    ) -> V1StatefulSet:
        """Write the full object back; its resourceVersion makes the write
        fail on concurrent modification."""
        return await apps_v1_api.replace_namespaced_stateful_set(
            name=name, namespace=namespace, body=stateful_set
        )

    async def fetch_pod_disruption_budget(
        self, policy_v1_api: PolicyV1Api, name: str, namespace: str
    ) -> Optional[V1PodDisruptionBudget]:
        try:
            return await policy_v1_api.read_namespaced_pod_disruption_budget(
                name=name, namespace=namespace
            )
        except Exception as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_pod_disruption_budget(
        self,
        policy_v1_api: PolicyV1Api,
        namespace: str,
        pod_disruption_budget: V1PodDisruptionBudget,
    ):
        await policy_v1_api.create_namespaced_pod_disruption_budget(
            namespace=namespace, body=pod_disruption_budget
        )

    async def fetch_pod(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1Pod]:
        try:
            return await core_v1_api.read_namespaced_pod(name=name, namespace=namespace)
        except Exception as ex:
            if not_found_error(ex):
                return None
            raise

    async def patch_pod_labels(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, labels: Dict[str, str]
    ):
        await core_v1_api.patch_namespaced_pod(
            name=name, namespace=namespace, body={"metadata": {"labels": labels}}
        )

    async def fetch_persistent_volume_claim(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1PersistentVolumeClaim]:
        try:
            return await core_v1_api.read_namespaced_persistent_volume_claim(
                name=name, namespace=namespace
            )
        except Exception as ex:
            if not_found_error(ex):
                return None
            raise

    async def patch_persistent_volume_claim_labels(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, labels: Dict[str, str]
    ):
        await core_v1_api.patch_namespaced_persistent_volume_claim(
            name=name, namespace=namespace, body={"metadata": {"labels": labels}}
        )

    async def list_pods(
        self, core_v1_api: CoreV1Api, namespace: str, label_selector: dict = None
    ) -> V1PodList:
        """List pods in namespace, optionally filtered by label selector.

        Args:
            core_v1_api: CoreV1Api instance
            namespace: Namespace to list pods in
            label_selector: Dictionary of label key-value pairs to filter pods

        Returns:
            V1PodList object containing matching pods
        """
        label_selector_str = None
        if label_selector:
            label_selector_str = Labels(label_selector).as_str()

        return await core_v1_api.list_namespaced_pod(
            namespace=namespace, label_selector=label_selector_str
        )

    async def patch_custom_object_labels(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        labels: Dict[str, str],
    ):
        await custom_objects_api.patch_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body={"metadata": {"labels": labels}},
        )

from typing import Dict


class ResourceLabels:
    DSE_DOMAIN: str = "com.datastax.dse."

    CLUSTER_LABEL = DSE_DOMAIN + "cluster"

    DATACENTER_LABEL = DSE_DOMAIN + "datacenter"

    RACK_LABEL = DSE_DOMAIN + "rack"

    SEED_NODE_LABEL = DSE_DOMAIN + "seednode"

    OPERATOR_PROGRESS_LABEL = DSE_DOMAIN + "operator.progress"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    PROGRESS_UPDATING = "Updating"

    PROGRESS_READY = "Ready"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = dict(labels) if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def as_str(self):
        """Return labels as comma separated string."""
        return ",".join([f"{k}={v}" for k, v in self._labels.items()])

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_cluster(self, cluster_name: str) -> "Labels":
        return self.include(self.CLUSTER_LABEL, cluster_name)

    def include_datacenter(self, datacenter_name: str) -> "Labels":
        return self.include(self.DATACENTER_LABEL, datacenter_name)

    def include_rack(self, rack_name: str) -> "Labels":
        return self.include(self.RACK_LABEL, rack_name)

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def cluster_labels(cls, cluster_name: str, managed_by: str) -> "Labels":
        """Labels every resource of the DSE cluster carries."""
        return (
            Labels()
            .include_cluster(cluster_name)
            .include_kubernetes_managed_by(managed_by)
        )

    @classmethod
    def datacenter_labels(
        cls, cluster_name: str, datacenter_name: str, managed_by: str
    ) -> "Labels":
        return cls.cluster_labels(cluster_name, managed_by).include_datacenter(
            datacenter_name
        )

    @classmethod
    def rack_labels(
        cls, cluster_name: str, datacenter_name: str, rack_name: str, managed_by: str
    ) -> "Labels":
        return cls.datacenter_labels(
            cluster_name, datacenter_name, managed_by
        ).include_rack(rack_name)

class DseDatacenterResources:
    """Encapsulates the naming scheme used for the resources which the DSE Operator manages
    for a DseDatacenter."""

    @classmethod
    def stateful_set_name(self, cluster_name: str, datacenter_name: str, rack_name: str):
        """Returns the name of the StatefulSet running the nodes of a single rack."""
        return f"{cluster_name}-{datacenter_name}-{rack_name}-sts"

    @classmethod
    def pod_name(
        self, cluster_name: str, datacenter_name: str, rack_name: str, ordinal: int
    ):
        return f"{self.stateful_set_name(cluster_name, datacenter_name, rack_name)}-{ordinal}"

    @classmethod
    def pod_disruption_budget_name(self, datacenter_name: str):
        return f"{datacenter_name}-pdb"

    @classmethod
    def all_pods_service_name(self, cluster_name: str, datacenter_name: str):
        """Returns the name of the headless service covering every pod of the datacenter."""
        return f"{cluster_name}-{datacenter_name}-service"

    @classmethod
    def pod_host(
        self, pod_name: str, cluster_name: str, datacenter_name: str, namespace: str
    ):
        """Returns the DNS name under which a pod answers inside the cluster."""
        return f"{pod_name}.{self.all_pods_service_name(cluster_name, datacenter_name)}.{namespace}"

    @classmethod
    def seed_host(
        self, pod_name: str, cluster_name: str, datacenter_name: str, namespace: str
    ):
        return f"{self.pod_host(pod_name, cluster_name, datacenter_name, namespace)}.svc.cluster.local"

    @classmethod
    def server_data_claim_name(self):
        return "server-data"

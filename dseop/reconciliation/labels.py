"""Hierarchical label convergence for datacenter resources.

Resources carry labels at three nested scopes: cluster, datacenter and rack.
A scope is out of date when its identity label is missing or holds another
value. Once a scope is out of date, that scope and every scope inside it merge
their full label set into the resource labels, so a rack level mismatch always
re-applies cluster, datacenter and rack labels in a single update. Labels not
governed by the hierarchy are never removed.
"""
from typing import Dict, List, Mapping, Optional, Tuple
from dseop.common.models.labels import Labels
from dseop.utils.helpers import merge_labels

#: (identity label, expected value, full label set of the scope)
LabelScope = Tuple[str, str, Mapping[str, str]]


def reconcile_label_scopes(
    resource_labels: Optional[Mapping[str, str]], scopes: List[LabelScope]
) -> Tuple[bool, Dict[str, str]]:
    """Evaluate scopes outer to inner and merge every out of date scope.

    Returns:
        Whether the resource must be updated, and the merged labels. The input
        mapping is left untouched.
    """
    should_update = False
    labels = dict(resource_labels or {})
    for identity_label, expected, scope_labels in scopes:
        if labels.get(identity_label) != expected:
            should_update = True
        if should_update:
            labels = merge_labels(labels, scope_labels)
    return should_update, labels


def cluster_scope(datacenter) -> List[LabelScope]:
    return [
        (
            Labels.CLUSTER_LABEL,
            datacenter.cluster_name,
            datacenter.cluster_labels.as_dict(),
        )
    ]


def datacenter_scope(datacenter) -> List[LabelScope]:
    return cluster_scope(datacenter) + [
        (
            Labels.DATACENTER_LABEL,
            datacenter.name,
            datacenter.datacenter_labels.as_dict(),
        )
    ]


def rack_scope(datacenter, rack_name: str) -> List[LabelScope]:
    return datacenter_scope(datacenter) + [
        (
            Labels.RACK_LABEL,
            rack_name,
            datacenter.rack_labels(rack_name).as_dict(),
        )
    ]


def should_update_labels_for_cluster_resource(
    resource_labels: Optional[Mapping[str, str]], datacenter
) -> Tuple[bool, Dict[str, str]]:
    return reconcile_label_scopes(resource_labels, cluster_scope(datacenter))


def should_update_labels_for_datacenter_resource(
    resource_labels: Optional[Mapping[str, str]], datacenter
) -> Tuple[bool, Dict[str, str]]:
    return reconcile_label_scopes(resource_labels, datacenter_scope(datacenter))


def should_update_labels_for_rack_resource(
    resource_labels: Optional[Mapping[str, str]], datacenter, rack_name: str
) -> Tuple[bool, Dict[str, str]]:
    return reconcile_label_scopes(resource_labels, rack_scope(datacenter, rack_name))

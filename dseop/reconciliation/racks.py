from typing import List, NamedTuple, Sequence
from dseop.utils.errors import DseConfigurationError

#: Seeds per datacenter when it has three racks or fewer. Two would do for a
#: single datacenter but three keeps a multi datacenter cluster at three seeds.
DEFAULT_SEED_COUNT = 3


class RackInformation(NamedTuple):
    """Desired size of one rack for the current reconciliation pass."""

    rack_name: str
    node_count: int
    seed_count: int


def calculate_seed_count(node_count: int, rack_count: int) -> int:
    """Every node when there are fewer than three, one seed per rack when
    there are more than three racks, three otherwise."""
    if node_count < DEFAULT_SEED_COUNT:
        return node_count
    if rack_count > DEFAULT_SEED_COUNT:
        return rack_count
    return DEFAULT_SEED_COUNT


def calculate_rack_information(
    size: int, rack_names: Sequence[str], parked: bool = False
) -> List[RackInformation]:
    """Distribute nodes and seeds of a datacenter over its racks.

    Racks get ``total // rack_count`` nodes each and the first
    ``total % rack_count`` racks, in declaration order, one more. Seeds are
    spread the same way, so both per-rack lists sum up exactly to their totals.

    Args:
        size: Desired number of nodes in the datacenter.
        rack_names: Rack names in declaration order.
        parked: A parked datacenter is planned with zero nodes.

    Raises:
        DseConfigurationError: When no rack is declared.
    """
    rack_count = len(rack_names)
    if rack_count < 1:
        raise DseConfigurationError(
            "DseDatacenter must declare at least one rack, found none"
        )

    node_count = 0 if parked else int(size)
    seed_count = calculate_seed_count(node_count, rack_count)

    nodes_per_rack, extra_nodes = divmod(node_count, rack_count)
    seeds_per_rack, extra_seeds = divmod(seed_count, rack_count)

    return [
        RackInformation(
            rack_name=rack_name,
            node_count=nodes_per_rack + (1 if index < extra_nodes else 0),
            seed_count=seeds_per_rack + (1 if index < extra_seeds else 0),
        )
        for index, rack_name in enumerate(rack_names)
    ]

"""Unit tests for the distribution of nodes and seeds over racks."""

import pytest
from dseop.reconciliation.racks import (
    RackInformation,
    calculate_rack_information,
    calculate_seed_count,
)
from dseop.utils.errors import DseConfigurationError


def node_counts(rack_information):
    return [rack_info.node_count for rack_info in rack_information]


def seed_counts(rack_information):
    return [rack_info.seed_count for rack_info in rack_information]


class TestCalculateSeedCount:
    """Tests for calculate_seed_count."""

    def test_every_node_is_a_seed_below_three_nodes(self):
        assert calculate_seed_count(0, 3) == 0
        assert calculate_seed_count(1, 3) == 1
        assert calculate_seed_count(2, 4) == 2

    def test_three_seeds_for_three_racks_or_fewer(self):
        assert calculate_seed_count(3, 1) == 3
        assert calculate_seed_count(6, 3) == 3
        assert calculate_seed_count(100, 2) == 3

    def test_one_seed_per_rack_above_three_racks(self):
        assert calculate_seed_count(10, 5) == 5
        assert calculate_seed_count(4, 4) == 4


class TestCalculateRackInformation:
    """Tests for calculate_rack_information."""

    def test_even_distribution(self):
        racks = calculate_rack_information(6, ["r1", "r2", "r3"])
        assert racks == [
            RackInformation("r1", 2, 1),
            RackInformation("r2", 2, 1),
            RackInformation("r3", 2, 1),
        ]

    def test_fewer_nodes_than_racks(self):
        racks = calculate_rack_information(2, ["r1", "r2", "r3", "r4"])
        assert node_counts(racks) == [1, 1, 0, 0]
        assert seed_counts(racks) == [1, 1, 0, 0]

    def test_one_seed_per_rack_with_many_racks(self):
        racks = calculate_rack_information(10, ["r1", "r2", "r3", "r4", "r5"])
        assert node_counts(racks) == [2, 2, 2, 2, 2]
        assert seed_counts(racks) == [1, 1, 1, 1, 1]

    def test_remainder_goes_to_first_racks(self):
        racks = calculate_rack_information(7, ["r1", "r2", "r3"])
        assert node_counts(racks) == [3, 2, 2]

        racks = calculate_rack_information(5, ["r1", "r2"])
        assert node_counts(racks) == [3, 2]
        assert seed_counts(racks) == [2, 1]

    def test_single_rack(self):
        racks = calculate_rack_information(5, ["default"])
        assert racks == [RackInformation("default", 5, 3)]

    def test_keeps_declaration_order(self):
        racks = calculate_rack_information(3, ["zeta", "alpha", "mu"])
        assert [rack_info.rack_name for rack_info in racks] == ["zeta", "alpha", "mu"]

    @pytest.mark.parametrize("size", [0, 1, 2, 3, 4, 7, 11, 12, 31])
    @pytest.mark.parametrize("rack_count", [1, 2, 3, 4, 5, 7])
    def test_counts_add_up(self, size, rack_count):
        rack_names = [f"r{i}" for i in range(rack_count)]
        racks = calculate_rack_information(size, rack_names)
        assert sum(node_counts(racks)) == size
        assert sum(seed_counts(racks)) == calculate_seed_count(size, rack_count)
        assert max(node_counts(racks)) - min(node_counts(racks)) <= 1
        assert all(rack_info.node_count >= 0 for rack_info in racks)
        assert all(rack_info.seed_count >= 0 for rack_info in racks)

    def test_parked_datacenter_plans_zero_nodes(self):
        racks = calculate_rack_information(6, ["r1", "r2", "r3"], parked=True)
        assert node_counts(racks) == [0, 0, 0]
        assert seed_counts(racks) == [0, 0, 0]

    def test_no_racks_is_a_configuration_error(self):
        with pytest.raises(DseConfigurationError):
            calculate_rack_information(3, [])

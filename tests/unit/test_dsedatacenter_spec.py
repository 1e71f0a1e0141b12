"""Unit tests for loading the DseDatacenter spec."""

import pytest
from marshmallow import ValidationError
from dseop.types.models import DseDatacenterSpec, DseRack, DseStorageClaim
from dseop.types.schemas import DseDatacenterSpecSchema


class TestDseDatacenterSpecSchema:
    def test_minimal_spec_defaults(self):
        spec = DseDatacenterSpecSchema().load({"clusterName": "c1", "size": 3})
        assert isinstance(spec, DseDatacenterSpec)
        assert spec.cluster_name == "c1"
        assert spec.size == 3
        assert spec.parked is False
        assert [rack.name for rack in spec.racks] == ["default"]
        assert spec.config == {}
        assert spec.image == "datastax/dse-server:6.7.7"
        assert isinstance(spec.storage_claim, DseStorageClaim)
        assert spec.storage_claim.size == "5Gi"

    def test_full_spec(self):
        spec = DseDatacenterSpecSchema().load(
            {
                "clusterName": "c1",
                "size": 6,
                "parked": True,
                "racks": [{"name": "r1", "zone": "us-east-1a"}, {"name": "r2"}],
                "config": {"cassandra-yaml": {"num_tokens": 8}},
                "storageClaim": {"storageClassName": "fast", "size": "100Gi"},
                "resources": {"requests": {"cpu": "2"}},
            }
        )
        assert spec.parked is True
        assert spec.racks[0] == DseRack(name="r1", zone="us-east-1a")
        assert spec.racks[1].zone is None
        assert spec.config == {"cassandra-yaml": {"num_tokens": 8}}
        assert spec.storage_claim.storage_class_name == "fast"
        assert spec.storage_claim.size == "100Gi"
        assert spec.resources == {"requests": {"cpu": "2"}}

    def test_explicit_empty_racks_are_kept(self):
        spec = DseDatacenterSpecSchema().load(
            {"clusterName": "c1", "size": 3, "racks": []}
        )
        assert spec.racks == []

    def test_cluster_name_is_required(self):
        with pytest.raises(ValidationError):
            DseDatacenterSpecSchema().load({"size": 3})

    def test_size_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            DseDatacenterSpecSchema().load({"clusterName": "c1", "size": -1})

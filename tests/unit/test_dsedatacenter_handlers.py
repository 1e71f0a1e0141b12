"""Unit tests for the DseDatacenter kopf handlers."""

import logging
import kopf
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch
from kubernetes_asyncio.client import ApiException
from dseop.handlers.dsedatacenter import (
    on_error,
    outcome_of,
    raise_for_result,
    reconcile,
    update_status,
)
from dseop.reconciliation import RackInformation, ReconcileResult
from dseop.types.settings import Settings
from dseop.utils.errors import DseConfigurationError

SPEC = {"clusterName": "cluster1", "size": 3, "racks": [{"name": "r1"}]}


def conditions_by_type(patch_obj):
    return {cond["type"]: cond for cond in patch_obj.status["conditions"]}


@pytest.fixture
def patch_obj():
    return SimpleNamespace(status={})


@pytest.fixture
def conf():
    return Settings(requeue_delay_seconds=7, requeue_error_delay_seconds=42)


class TestRaiseForResult:
    def test_converged(self, conf):
        raise_for_result(ReconcileResult(requeue=False), conf)

    def test_requeue(self, conf):
        with pytest.raises(kopf.TemporaryError) as exc_info:
            raise_for_result(ReconcileResult(requeue=True), conf)
        assert exc_info.value.delay == 7

    def test_requeue_with_error(self, conf):
        error = ApiException(status=500)
        with pytest.raises(kopf.TemporaryError) as exc_info:
            raise_for_result(ReconcileResult(requeue=True, error=error), conf)
        assert exc_info.value.delay == 42

    def test_permanent_error(self, conf):
        error = DseConfigurationError("no racks")
        with pytest.raises(kopf.PermanentError):
            raise_for_result(ReconcileResult(requeue=False, error=error), conf)

    def test_outcomes(self):
        assert outcome_of(ReconcileResult(requeue=False)) == "converged"
        assert outcome_of(ReconcileResult(requeue=True)) == "requeue"
        assert outcome_of(ReconcileResult(True, ValueError("x"))) == "error"


class TestUpdateStatus:
    def test_converged(self, patch_obj):
        racks = [RackInformation("r1", 2, 2), RackInformation("r2", 1, 1)]
        update_status(
            ReconcileResult(requeue=False), racks, {"generation": 4}, {}, patch_obj
        )
        conds = conditions_by_type(patch_obj)
        assert conds["Ready"]["status"] == "True"
        assert conds["Progressing"]["status"] == "False"
        assert patch_obj.status["observedGeneration"] == 4
        assert patch_obj.status["rackInformation"] == [
            {"rackName": "r1", "nodeCount": 2, "seedCount": 2},
            {"rackName": "r2", "nodeCount": 1, "seedCount": 1},
        ]

    def test_requeue(self, patch_obj):
        update_status(ReconcileResult(requeue=True), [], {}, {}, patch_obj)
        conds = conditions_by_type(patch_obj)
        assert conds["Ready"]["status"] == "False"
        assert conds["Progressing"]["status"] == "True"
        assert "observedGeneration" not in patch_obj.status

    def test_error(self, patch_obj):
        error = ApiException(status=409, reason="Conflict")
        update_status(ReconcileResult(True, error), [], {}, {}, patch_obj)
        conds = conditions_by_type(patch_obj)
        assert conds["Ready"]["reason"] == "Error"
        assert "409" in conds["Progressing"]["message"]

    def test_existing_condition_is_updated_in_place(self, patch_obj):
        status = {
            "conditions": [
                {"type": "Ready", "status": "False", "lastTransitionTime": "t0"}
            ]
        }
        on_error(ValueError("boom"), {"generation": 1}, status, patch_obj)
        ready = [c for c in patch_obj.status["conditions"] if c["type"] == "Ready"]
        assert len(ready) == 1
        assert ready[0]["lastTransitionTime"] == "t0"


class TestReconcile:
    def kwargs(self, patch_obj, spec=None):
        return dict(
            name="dc1",
            namespace="ns1",
            spec=spec or SPEC,
            meta={"generation": 3},
            status={},
            patch=patch_obj,
            labels={},
            uid="0a1b2c3d",
            logger=logging.getLogger("tests"),
        )

    @pytest.mark.asyncio
    async def test_converged_pass(self, patch_obj):
        with patch("dseop.handlers.dsedatacenter.ReconcileRacks") as reconciler_cls:
            reconciler = reconciler_cls.return_value
            reconciler.apply = AsyncMock(return_value=ReconcileResult(requeue=False))
            reconciler.desired_rack_information = [RackInformation("r1", 3, 3)]
            await reconcile(**self.kwargs(patch_obj))

        datacenter = reconciler_cls.call_args.args[0]
        assert datacenter.name == "dc1"
        assert datacenter.uid == "0a1b2c3d"
        assert conditions_by_type(patch_obj)["Ready"]["status"] == "True"

    @pytest.mark.asyncio
    async def test_requeue_raises_temporary_error(self, patch_obj):
        with patch("dseop.handlers.dsedatacenter.ReconcileRacks") as reconciler_cls:
            reconciler = reconciler_cls.return_value
            reconciler.apply = AsyncMock(return_value=ReconcileResult(requeue=True))
            reconciler.desired_rack_information = []
            with pytest.raises(kopf.TemporaryError):
                await reconcile(**self.kwargs(patch_obj))

    @pytest.mark.asyncio
    async def test_reports_to_sensor(self, patch_obj):
        sensor = Mock()
        with patch("dseop.handlers.dsedatacenter.get_sensor", return_value=sensor):
            with patch("dseop.handlers.dsedatacenter.ReconcileRacks") as reconciler_cls:
                reconciler = reconciler_cls.return_value
                reconciler.apply = AsyncMock(
                    return_value=ReconcileResult(requeue=False)
                )
                reconciler.desired_rack_information = []
                await reconcile(trigger_source="timer", **self.kwargs(patch_obj))

        sensor.on_reconcile_start.assert_called_once_with("dc1", "ns1", 3, "timer")
        args = sensor.on_reconcile_complete.call_args.args
        assert args[3] == "converged"

    @pytest.mark.asyncio
    async def test_invalid_spec_is_permanent(self, patch_obj):
        with pytest.raises(kopf.PermanentError):
            await reconcile(**self.kwargs(patch_obj, spec={"size": -1}))
        assert conditions_by_type(patch_obj)["Ready"]["reason"] == "Error"

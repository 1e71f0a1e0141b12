import asyncio
import kopf
from logging import Logger
from collections import defaultdict
from typing import Dict, List
from marshmallow import ValidationError
from dseop.types.settings import Settings
from dseop.types.schemas import DseDatacenterSpecSchema
from dseop.types.models import DseDatacenterSpec
from dseop.resources import DseDatacenter
from dseop.reconciliation import RackInformation, ReconcileRacks, ReconcileResult
from dseop.utils.helpers import upsert_condition
from dseop.utils.errors import describe_api_exception

DC_KIND = "DseDatacenter"

# Reconciliation passes of one datacenter never overlap
reconciliation_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

OUTCOME_CONVERGED = "converged"
OUTCOME_REQUEUE = "requeue"
OUTCOME_ERROR = "error"


def get_sensor():
    """Get sensor from DseDatacenter class.

    Returns:
        Sensor instance or None
    """
    return getattr(DseDatacenter, "sensor", None)


def get_conf() -> Settings:
    return DseDatacenter.conf


def on_error(error, meta, status, patch, **_):
    """Handle errors during reconciliation."""
    gen = meta.get("generation", 0)
    conds = (status or {}).get("conditions", [])
    conds = upsert_condition(
        conds,
        {
            "type": "Progressing",
            "status": "False",
            "reason": "Error",
            "message": describe_api_exception(error)
            if error
            else "Reconcile failed; see events/logs",
            "observedGeneration": gen,
        },
    )
    conds = upsert_condition(
        conds,
        {
            "type": "Ready",
            "status": "False",
            "reason": "Error",
            "message": "DSE datacenter not ready",
            "observedGeneration": gen,
        },
    )
    patch.status["conditions"] = conds


def rack_information_status(rack_information: List[RackInformation]) -> List[Dict]:
    return [
        {
            "rackName": rack_info.rack_name,
            "nodeCount": rack_info.node_count,
            "seedCount": rack_info.seed_count,
        }
        for rack_info in rack_information
    ]


def update_status(
    result: ReconcileResult,
    rack_information: List[RackInformation],
    meta,
    status,
    patch,
):
    """Reflect the outcome of a pass in the DseDatacenter status."""
    gen = meta.get("generation", 0)
    patch.status["rackInformation"] = rack_information_status(rack_information)
    if result.error is not None:
        on_error(result.error, meta, status, patch)
        return

    conds = (status or {}).get("conditions", [])
    if result.requeue:
        conds = upsert_condition(
            conds,
            {
                "type": "Progressing",
                "status": "True",
                "reason": "Reconciling",
                "message": "Racks are being reconciled",
                "observedGeneration": gen,
            },
        )
        conds = upsert_condition(
            conds,
            {
                "type": "Ready",
                "status": "False",
                "reason": "Reconciling",
                "message": "DSE datacenter not ready",
                "observedGeneration": gen,
            },
        )
    else:
        conds = upsert_condition(
            conds,
            {
                "type": "Progressing",
                "status": "False",
                "reason": "Converged",
                "message": "All racks are reconciled",
                "observedGeneration": gen,
            },
        )
        conds = upsert_condition(
            conds,
            {
                "type": "Ready",
                "status": "True",
                "reason": "Reconciled",
                "message": "DSE datacenter ready",
                "observedGeneration": gen,
            },
        )
        patch.status["observedGeneration"] = gen
    patch.status["conditions"] = conds


def outcome_of(result: ReconcileResult) -> str:
    if result.error is not None:
        return OUTCOME_ERROR
    if result.requeue:
        return OUTCOME_REQUEUE
    return OUTCOME_CONVERGED


def raise_for_result(result: ReconcileResult, conf: Settings):
    """Translate a pass result into kopf's retry semantics.

    Raises:
        kopf.PermanentError: The pass failed and retrying cannot help.
        kopf.TemporaryError: The pass asks to be invoked again.
    """
    if result.error is not None and not result.requeue:
        raise kopf.PermanentError(str(result.error)) from result.error
    if result.error is not None:
        raise kopf.TemporaryError(
            f"Reconciliation failed: {result.error}",
            delay=conf.requeue_error_delay_seconds,
        ) from result.error
    if result.requeue:
        raise kopf.TemporaryError(
            "Racks are not reconciled yet", delay=conf.requeue_delay_seconds
        )


async def reconcile(
    name,
    namespace,
    spec,
    meta,
    status,
    patch,
    labels,
    uid,
    logger: Logger,
    trigger_source: str = "manual",
    **kwargs,
):
    """Reconcile the DseDatacenter."""
    # Instrument reconciliation start
    sensor = get_sensor()
    generation = meta.get("generation", 0)
    sensor_state = None
    if sensor:
        sensor_state = sensor.on_reconcile_start(
            name, namespace, generation, trigger_source
        )

    try:
        spec_model: DseDatacenterSpec = DseDatacenterSpecSchema().load(spec)
    except ValidationError as e:
        logger.error(f"Invalid {DC_KIND} spec: {e.messages}")
        on_error(e, meta, status, patch)
        if sensor:
            sensor.on_reconcile_complete(
                name, namespace, sensor_state, OUTCOME_ERROR, e
            )
        raise kopf.PermanentError(f"Invalid {DC_KIND} spec: {e.messages}")

    datacenter = DseDatacenter.from_spec(
        name, namespace, spec_model, uid=uid, labels=dict(labels or {}), logger=logger
    )
    reconciler = ReconcileRacks(datacenter)
    async with reconciliation_locks[f"{namespace}/{name}"]:
        try:
            logger.debug(f"Reconciling {DC_KIND}/{name} in {namespace} namespace.")
            result = await reconciler.apply()
        except Exception as e:
            logger.error(f"Unexpected error during reconcilation: {e}")
            logger.exception(e)
            on_error(e, meta, status, patch)
            if sensor:
                sensor.on_reconcile_complete(
                    name, namespace, sensor_state, OUTCOME_ERROR, e
                )
            raise

    update_status(result, reconciler.desired_rack_information, meta, status, patch)
    if sensor:
        sensor.on_reconcile_complete(
            name, namespace, sensor_state, outcome_of(result), result.error
        )
    raise_for_result(result, get_conf())


@kopf.on.resume(kind=DC_KIND)
@kopf.on.create(kind=DC_KIND)
async def on_create(**kwargs):
    """Brings up the racks of a new DseDatacenter."""
    await reconcile(trigger_source="create", **kwargs)


@kopf.on.update(kind=DC_KIND, field="spec")
async def on_spec_update(**kwargs):
    await reconcile(trigger_source="update", **kwargs)


@kopf.timer(DC_KIND, initial_delay=5.0, interval=Settings.reconcile_interval_seconds)
async def reconcile_periodically(**kwargs):
    """Level-triggered reconciliation, independent of spec changes."""
    await reconcile(trigger_source="timer", **kwargs)


@kopf.on.delete(kind=DC_KIND)
async def on_delete(name, namespace, logger: Logger, **kwargs):
    # Children are garbage collected through their owner references
    logger.info(f"{DC_KIND} {namespace}/{name} deleted.")
    reconciliation_locks.pop(f"{namespace}/{name}", None)

"""DSE Operator Sensor Framework.

Non-invasive instrumentation of operator lifecycle events through hooks:

- OperatorSensor: Base class defining lifecycle hooks
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from dseop.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from dseop.sensors.base import OperatorSensor
from dseop.sensors.delegate import SensorDelegate
from dseop.sensors.prometheus import PrometheusMonitor
from dseop.sensors.server import init_metrics_server

__all__ = [
    "OperatorSensor",
    "SensorDelegate",
    "PrometheusMonitor",
    "init_metrics_server",
]

"""Configuration drift detection for rack StatefulSets.

The desired DSE configuration travels to the nodes as the ``CONFIG_FILE_DATA``
environment variable of the config init container. Drift is a plain string
comparison between that value and the canonical serialization of the desired
configuration.
"""
from typing import Tuple
from kubernetes_asyncio.client import V1EnvVar, V1StatefulSet
from dseop.utils.errors import ConfigSlotNotFoundError

CONFIG_ENV_NAME = "CONFIG_FILE_DATA"


def find_config_env_var(stateful_set: V1StatefulSet) -> V1EnvVar:
    """Locate the config environment variable among the init containers.

    Raises:
        ConfigSlotNotFoundError: When no init container declares it.
    """
    pod_spec = stateful_set.spec.template.spec if stateful_set.spec else None
    for container in (pod_spec.init_containers if pod_spec else None) or []:
        for env_var in container.env or []:
            if env_var.name == CONFIG_ENV_NAME:
                return env_var
    raise ConfigSlotNotFoundError(
        f"{CONFIG_ENV_NAME} environment variable not available in StatefulSet "
        f"{stateful_set.metadata.name}"
    )


def get_config_file_data(stateful_set: V1StatefulSet) -> str:
    """Returns the currently deployed config."""
    return find_config_env_var(stateful_set).value or ""


def set_config_file_data(stateful_set: V1StatefulSet, desired_config: str) -> None:
    """Write `desired_config` into the StatefulSet in place."""
    find_config_env_var(stateful_set).value = desired_config


def get_configs_for_rack_resource(
    datacenter, stateful_set: V1StatefulSet
) -> Tuple[str, str]:
    """Return the (current, desired) config of a rack StatefulSet.

    Raises:
        ConfigSlotNotFoundError: When the StatefulSet carries no config slot.
        TypeError, ValueError: When the desired config cannot be serialized.
    """
    current_config = get_config_file_data(stateful_set)
    desired_config = datacenter.config_as_json()
    return current_config, desired_config


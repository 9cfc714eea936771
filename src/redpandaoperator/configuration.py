"""Utilities for creating the bootstrap configuration of a Redpanda cluster.

Every pod of a cluster starts from the same base ``redpanda.yaml``. The
``configurator.sh`` script, run by an init container, copies it into the
pod's writable config directory and patches the fields that depend on the
pod's ordinal index: the node ID, the seed servers and the advertised
addresses.
"""

from __future__ import annotations

from typing import Any

import yaml

from redpandaoperator.cluster import get_config_map_name, get_service_address

__all__ = (
    "CONFIGURATOR_PATH",
    "CONFIGURATOR_SCRIPT",
    "CONFIG_DIR",
    "CONFIG_FILE",
    "CONFIG_PATH",
    "CONFIGURATOR_DIR",
    "DATA_DIRECTORY",
    "DEFAULT_ADMIN_PORT",
    "DEFAULT_KAFKA_PORT",
    "DEFAULT_RPC_PORT",
    "create_base_config",
    "create_config_map",
    "create_configurator_script",
    "resolve_ports",
)

DEFAULT_KAFKA_PORT = 9092
"""Redpanda's built-in Kafka API port."""

DEFAULT_ADMIN_PORT = 9644
"""Redpanda's built-in admin API port."""

DEFAULT_RPC_PORT = 33145
"""Redpanda's built-in internal RPC port."""

DATA_DIRECTORY = "/var/lib/redpanda/data"
CONFIG_DIR = "/etc/redpanda"
CONFIG_FILE = "redpanda.yaml"
CONFIG_PATH = f"{CONFIG_DIR}/{CONFIG_FILE}"
CONFIGURATOR_DIR = "/mnt/operator"
CONFIGURATOR_SCRIPT = "configurator.sh"
CONFIGURATOR_PATH = f"{CONFIGURATOR_DIR}/{CONFIGURATOR_SCRIPT}"


def resolve_ports(config: dict[str, Any]) -> dict[str, int]:
    """Resolve the listener ports of a cluster, falling back to Redpanda's
    built-in defaults for any port the Cluster leaves unset.

    Parameters
    ----------
    config : `dict`
        The cluster configuration (see
        `redpandaoperator.cluster.parse_cluster_spec`).

    Returns
    -------
    ports : `dict`
        The ``kafka``, ``admin`` and ``rpc`` ports.
    """
    return {
        "kafka": config.get("kafka_port") or DEFAULT_KAFKA_PORT,
        "admin": config.get("admin_port") or DEFAULT_ADMIN_PORT,
        "rpc": config.get("rpc_port") or DEFAULT_RPC_PORT,
    }


def create_base_config(
    *, name: str, namespace: str, config: dict[str, Any]
) -> dict[str, Any]:
    """Create the ``redpanda.yaml`` document shared by every pod.

    Parameters
    ----------
    name : `str`
        Name of the Cluster.
    namespace : `str`
        Namespace of the Cluster.
    config : `dict`
        The cluster configuration (see
        `redpandaoperator.cluster.parse_cluster_spec`).

    Returns
    -------
    redpanda_config : `dict`
        The configuration document. The advertised addresses are left empty
        and the node ID is ``0``; ``configurator.sh`` fills them in per pod.
    """
    ports = resolve_ports(config)
    service_address = get_service_address(name, namespace)

    return {
        "redpanda": {
            "data_directory": DATA_DIRECTORY,
            "node_id": 0,
            "rpc_server": {"address": "0.0.0.0", "port": ports["rpc"]},
            "advertised_rpc_api": {"address": "", "port": ports["rpc"]},
            "kafka_api": {"address": "0.0.0.0", "port": ports["kafka"]},
            "advertised_kafka_api": {"address": "", "port": ports["kafka"]},
            "admin_api": {"address": "0.0.0.0", "port": ports["admin"]},
            "seed_servers": [
                {
                    "host": {
                        # e.g. cluster-sample-0.cluster-sample.default.svc.cluster.local
                        "address": f"{name}-0.{service_address}",
                        "port": ports["rpc"],
                    }
                }
            ],
            "developer_mode": config.get("developer_mode", False),
        }
    }


def create_configurator_script(
    *,
    name: str,
    namespace: str,
    rpc_port: int,
    kafka_port: int,
    config_path: str = CONFIG_PATH,
    base_config_path: str = f"{CONFIGURATOR_DIR}/{CONFIG_FILE}",
) -> str:
    """Create the shell script that patches ``redpanda.yaml`` for one pod.

    The pod's ordinal index is the trailing integer of its hostname. Ordinal
    ``0`` bootstraps the cluster, so its seed server list is cleared; every
    other pod joins through ordinal ``0``. The script exits non-zero on the
    first failing command.

    Parameters
    ----------
    name : `str`
        Name of the Cluster.
    namespace : `str`
        Namespace of the Cluster.
    rpc_port : `int`
        The resolved RPC port, advertised to the other nodes.
    kafka_port : `int`
        The resolved Kafka API port, advertised to clients.
    config_path : `str`
        Where the patched configuration is written.
    base_config_path : `str`
        Where the shared base configuration is mounted.

    Returns
    -------
    script : `str`
        The content of ``configurator.sh``.
    """
    service_address = get_service_address(name, namespace)
    return "\n".join(
        [
            "set -xe;",
            f"CONFIG={config_path};",
            "ORDINAL_INDEX=${HOSTNAME##*-};",
            f"SERVICE_NAME=${{HOSTNAME}}.{service_address};",
            f"cp {base_config_path} $CONFIG;",
            "rpk --config $CONFIG config set redpanda.node_id "
            "$ORDINAL_INDEX;",
            'if [ "$ORDINAL_INDEX" = "0" ]; then',
            "  rpk --config $CONFIG config set redpanda.seed_servers '[]' "
            "--format yaml;",
            "fi;",
            "rpk --config $CONFIG config set "
            "redpanda.advertised_rpc_api.address $SERVICE_NAME;",
            "rpk --config $CONFIG config set "
            f"redpanda.advertised_rpc_api.port {rpc_port};",
            "rpk --config $CONFIG config set "
            "redpanda.advertised_kafka_api.address $SERVICE_NAME;",
            "rpk --config $CONFIG config set "
            f"redpanda.advertised_kafka_api.port {kafka_port};",
            "cat $CONFIG",
            "",
        ]
    )


def create_config_map(
    *,
    name: str,
    namespace: str,
    labels: dict[str, str],
    config: dict[str, Any],
) -> dict[str, Any]:
    """Create the bootstrap ConfigMap resource of a Redpanda cluster.

    Parameters
    ----------
    name : `str`
        Name of the Cluster. The ConfigMap is named ``<name>-base``.
    namespace : `str`
        Namespace of the Cluster.
    labels : `dict`
        The Cluster's label set.
    config : `dict`
        The cluster configuration (see
        `redpandaoperator.cluster.parse_cluster_spec`).

    Returns
    -------
    config_map : `dict`
        The ConfigMap resource with the ``redpanda.yaml`` and
        ``configurator.sh`` keys.
    """
    ports = resolve_ports(config)
    base_config = create_base_config(
        name=name, namespace=namespace, config=config
    )
    script = create_configurator_script(
        name=name,
        namespace=namespace,
        rpc_port=ports["rpc"],
        kafka_port=ports["kafka"],
    )
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": get_config_map_name(name),
            "namespace": namespace,
            "labels": dict(labels),
        },
        "data": {
            CONFIG_FILE: yaml.safe_dump(base_config, sort_keys=False),
            CONFIGURATOR_SCRIPT: script,
        },
    }

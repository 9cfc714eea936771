"""Utilities for creating the StatefulSet that runs Redpanda."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any

from kubernetes.utils import parse_quantity

from redpandaoperator import state
from redpandaoperator.configuration import (
    CONFIG_DIR,
    CONFIGURATOR_DIR,
    CONFIGURATOR_PATH,
    DATA_DIRECTORY,
    resolve_ports,
)

__all__ = (
    "create_container_spec",
    "create_stateful_set",
    "get_core_count",
    "get_engine_memory",
)

fs_group = 101
"""Group of the (non-root) redpanda user in the image."""

# ConfigMap files default to 0644; the configurator script must be executable.
config_map_default_mode = 0o754

initial_replicas = 1

hostname_topology_key = "kubernetes.io/hostname"
zone_topology_key = "topology.kubernetes.io/zone"

_binary_suffixes = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei")


def get_core_count(cpu_limit: str | None) -> int:
    """Get the number of cores Redpanda should use from a CPU limit.

    Fractional limits are rounded down, but Redpanda always gets at least one
    core.

    Examples
    --------
    >>> get_core_count("2")
    2
    >>> get_core_count("1500m")
    1
    >>> get_core_count(None)
    1
    """
    if cpu_limit is None:
        return 1
    return max(1, math.floor(parse_quantity(cpu_limit)))


def get_engine_memory(memory_limit: str | None) -> str:
    """Express a Kubernetes memory quantity the way Redpanda's ``--memory``
    flag expects it.

    Redpanda reads ``K``, ``M`` and ``G`` as binary units, so ``2Gi`` becomes
    ``2G``. Quantities in other units are converted to whole mebibytes.

    Examples
    --------
    >>> get_engine_memory("2Gi")
    '2G'
    >>> get_engine_memory("1G")
    '953M'
    """
    if memory_limit is None:
        memory_limit = state.default_memory
    memory_limit = str(memory_limit)

    for suffix in _binary_suffixes:
        if memory_limit.endswith(suffix) and memory_limit[:-2].isdigit():
            return memory_limit[:-1]

    mebibytes = parse_quantity(memory_limit) / Decimal(1024 * 1024)
    return f"{math.floor(mebibytes)}M"


def create_stateful_set(
    *,
    name: str,
    namespace: str,
    labels: dict[str, str],
    config: dict[str, Any],
    config_map_name: str,
) -> dict[str, Any]:
    """Create the JSON resource for the StatefulSet of a Redpanda cluster.

    The StatefulSet always starts with a single replica; the reconcile loop
    scales it to the Cluster's replica count afterwards.

    Parameters
    ----------
    name : `str`
        Name of the Cluster, which is also used as the name of the
        StatefulSet and of its headless Service.
    namespace : `str`
        Namespace of the Cluster.
    labels : `dict`
        The Cluster's label set, used as the pod selector.
    config : `dict`
        The cluster configuration (see
        `redpandaoperator.cluster.parse_cluster_spec`).
    config_map_name : `str`
        Name of the bootstrap ConfigMap holding ``configurator.sh``.

    Returns
    -------
    stateful_set : `dict`
        The StatefulSet resource.
    """
    image = f"{config['image']}:{config['version']}"

    configurator_container = {
        "name": "redpanda-configurator",
        "image": image,
        "command": ["/bin/sh", "-c"],
        "args": [CONFIGURATOR_PATH],
        "volumeMounts": [
            {"name": "config-dir", "mountPath": CONFIG_DIR},
            {"name": "configmap-dir", "mountPath": CONFIGURATOR_DIR},
        ],
    }

    template = {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": dict(labels),
        },
        "spec": {
            "securityContext": {"fsGroup": fs_group},
            "volumes": [
                {
                    "name": "datadir",
                    "persistentVolumeClaim": {"claimName": "datadir"},
                },
                {
                    "name": "configmap-dir",
                    "configMap": {
                        "name": config_map_name,
                        "defaultMode": config_map_default_mode,
                    },
                },
                {"name": "config-dir", "emptyDir": {}},
            ],
            "initContainers": [configurator_container],
            "containers": [
                create_container_spec(image=image, config=config)
            ],
            "affinity": create_affinity(namespace=namespace, labels=labels),
            "topologySpreadConstraints": [
                {
                    "maxSkew": 1,
                    "topologyKey": zone_topology_key,
                    "whenUnsatisfiable": "ScheduleAnyway",
                    "labelSelector": {"matchLabels": dict(labels)},
                }
            ],
        },
    }

    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": dict(labels),
        },
        "spec": {
            "replicas": initial_replicas,
            "podManagementPolicy": "Parallel",
            "selector": {"matchLabels": dict(labels)},
            "updateStrategy": {"type": "RollingUpdate"},
            "serviceName": name,
            "template": template,
            "volumeClaimTemplates": [
                create_volume_claim_template(
                    namespace=namespace,
                    labels=labels,
                    storage_request=config.get("storage_request"),
                )
            ],
        },
    }


def create_container_spec(
    *, image: str, config: dict[str, Any]
) -> dict[str, Any]:
    """Create the spec of the main Redpanda container.

    Parameters
    ----------
    image : `str`
        The Redpanda image, including its tag.
    config : `dict`
        The cluster configuration (see
        `redpandaoperator.cluster.parse_cluster_spec`).
    """
    ports = resolve_ports(config)

    container: dict[str, Any] = {
        "name": "redpanda",
        "image": image,
        "args": [
            "--check=false",
            f"--smp={get_core_count(config.get('cpu_limit'))}",
            f"--memory={get_engine_memory(config.get('memory_limit'))}",
            "start",
            "--",
            "--default-log-level=debug",
            "--reserve-memory=0M",
        ],
        "ports": [
            {"name": "admin", "containerPort": ports["admin"]},
            {"name": "kafka", "containerPort": ports["kafka"]},
            {"name": "rpc", "containerPort": ports["rpc"]},
        ],
        "volumeMounts": [
            {"name": "datadir", "mountPath": DATA_DIRECTORY},
            {"name": "config-dir", "mountPath": CONFIG_DIR},
        ],
    }

    resource_spec: dict[str, Any] = {}
    limit_spec: dict[str, str] = {}
    if config.get("cpu_limit"):
        limit_spec["cpu"] = config["cpu_limit"]
    if config.get("memory_limit"):
        limit_spec["memory"] = config["memory_limit"]
    if limit_spec:
        resource_spec["limits"] = limit_spec
    request_spec: dict[str, str] = {}
    if config.get("cpu_request"):
        request_spec["cpu"] = config["cpu_request"]
    if config.get("memory_request"):
        request_spec["memory"] = config["memory_request"]
    if request_spec:
        resource_spec["requests"] = request_spec
    if resource_spec:
        container["resources"] = resource_spec

    return container


def create_affinity(
    *, namespace: str, labels: dict[str, str]
) -> dict[str, Any]:
    """Create the pod anti-affinity that keeps two Redpanda pods of the same
    cluster off a single node.
    """
    term = {
        "labelSelector": {"matchLabels": dict(labels)},
        "namespaces": [namespace],
        "topologyKey": hostname_topology_key,
    }
    return {
        "podAntiAffinity": {
            "requiredDuringSchedulingIgnoredDuringExecution": [term],
            "preferredDuringSchedulingIgnoredDuringExecution": [
                {"weight": 100, "podAffinityTerm": dict(term)}
            ],
        }
    }


def create_volume_claim_template(
    *,
    namespace: str,
    labels: dict[str, str],
    storage_request: str | None,
) -> dict[str, Any]:
    """Create the claim template for each pod's data volume."""
    return {
        "metadata": {
            "name": "datadir",
            "namespace": namespace,
            "labels": dict(labels),
        },
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {
                "requests": {
                    "storage": storage_request or state.default_storage
                }
            },
        },
    }

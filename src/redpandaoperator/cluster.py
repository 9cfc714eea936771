"""Utilities for reading the Cluster custom resource."""

from __future__ import annotations

from typing import Any

import kopf

from redpandaoperator import state

__all__ = (
    "MANAGED_BY",
    "format_label_selector",
    "get_cluster_labels",
    "get_config_map_name",
    "get_nullable",
    "get_service_address",
    "parse_cluster_spec",
)

MANAGED_BY = "redpanda-operator"
"""Value of the ``app.kubernetes.io/managed-by`` label on child resources."""

config_map_suffix = "-base"


def parse_cluster_spec(
    spec: dict[str, Any], name: str, logger: Any
) -> dict[str, Any]:
    """Parse the spec of a Cluster and return the configuration.

    Parameters
    ----------
    spec : dict
        The ``spec`` field of the ``Cluster`` custom Kubernetes resource.
    name : str
        The name of the ``Cluster`` custom Kubernetes resource.
    logger : Any
        The kopf logger.

    Returns
    -------
    dict
        A flat dictionary with the cluster configuration. Ports that are not
        set are `None`; see
        `redpandaoperator.configuration.resolve_ports` for their defaults.

    Raises
    ------
    kopf.PermanentError
        Raised if the replica count is not a non-negative integer.
    """
    image = get_nullable(spec, "image")
    if image is None:
        image = "vectorized/redpanda"
        logger.warning(f"Cluster {name} is missing an image, using {image}.")

    version = get_nullable(spec, "version")
    if version is None:
        version = "latest"
        logger.warning(
            f"Cluster {name} is missing a version, using {version}."
        )

    replicas = spec.get("replicas", 1)
    if "replicas" not in spec:
        logger.warning(
            f"Cluster {name} is missing a replica count, using {replicas}."
        )
    if (
        not isinstance(replicas, int)
        or isinstance(replicas, bool)
        or replicas < 0
    ):
        raise kopf.PermanentError(
            f"Cluster {name} has an invalid replica count: {replicas!r}"
        )

    configuration = spec.get("configuration") or {}
    resources = spec.get("resources") or {}
    limits = resources.get("limits") or {}
    requests = resources.get("requests") or {}

    return {
        "image": image,
        "version": version,
        "replicas": replicas,
        "kafka_port": _get_port(configuration, "kafkaApi"),
        "admin_port": _get_port(configuration, "adminApi"),
        "rpc_port": _get_port(configuration, "rpcServer"),
        "developer_mode": bool(configuration.get("developerMode", False)),
        "cpu_limit": get_nullable(limits, "cpu"),
        "cpu_request": get_nullable(requests, "cpu"),
        "memory_limit": get_nullable(limits, "memory"),
        "memory_request": get_nullable(requests, "memory"),
        "storage_request": get_nullable(requests, "storage"),
    }


def _get_port(configuration: dict[str, Any], key: str) -> int | None:
    port = (configuration.get(key) or {}).get("port")
    return port or None


def get_nullable(spec: dict[str, Any], key: str) -> Any | None:
    """Get a value from the spec, returning None if it is not set or empty.

    Parameters
    ----------
    spec : dict
        A mapping from the Cluster resource.
    key : str
        The key to look for in the mapping.

    Returns
    -------
    Any | None
        The value associated with the key, or None if it is not set or empty.
    """
    value = spec.get(key)
    return None if value in (None, "") else value


def get_cluster_labels(body: dict[str, Any]) -> dict[str, str]:
    """Get the label set that identifies a Cluster's child resources.

    The Cluster's own labels take precedence over the standard
    ``app.kubernetes.io`` labels, so the set is never empty and a Cluster
    without labels does not select every pod in its namespace. The
    ``app.kubernetes.io/managed-by`` label is always `MANAGED_BY`, since the
    child watchers filter their events on it.

    Parameters
    ----------
    body : dict
        The full body of the Cluster resource.

    Returns
    -------
    dict
        Labels applied to, and used as the selector of, every child resource.
    """
    name = body["metadata"]["name"]
    labels = {
        "app.kubernetes.io/name": "redpanda",
        "app.kubernetes.io/instance": name,
        "app.kubernetes.io/managed-by": MANAGED_BY,
    }
    labels.update(body["metadata"].get("labels") or {})
    labels["app.kubernetes.io/managed-by"] = MANAGED_BY
    return labels


def format_label_selector(labels: dict[str, str]) -> str:
    """Format a label set as a selector string for list calls."""
    return ",".join(f"{key}={value}" for key, value in labels.items())


def get_config_map_name(name: str) -> str:
    """Get the name of the bootstrap ConfigMap of a Cluster."""
    return f"{name}{config_map_suffix}"


def get_service_address(name: str, namespace: str) -> str:
    """Get the DNS domain served by a Cluster's headless Service.

    A pod with ordinal ``n`` resolves as ``<name>-<n>.<service address>``.
    """
    return f"{name}.{namespace}.svc.{state.cluster_domain}"

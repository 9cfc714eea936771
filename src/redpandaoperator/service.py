"""Utilities for creating the headless Service of a Redpanda cluster."""

from __future__ import annotations

from typing import Any

__all__ = ("create_headless_service",)


def create_headless_service(
    *, name: str, labels: dict[str, str], kafka_port: int
) -> dict[str, Any]:
    """Create the Service resource that gives each Redpanda pod a stable DNS
    name.

    The Service has no cluster IP, so a lookup of
    ``<name>-<ordinal>.<name>.<namespace>.svc`` resolves to a single pod
    rather than being load-balanced.

    Parameters
    ----------
    name : `str`
        Name of the Cluster, which is also used as the name of the Service.
    labels : `dict`
        The Cluster's label set (see
        `redpandaoperator.cluster.get_cluster_labels`).
    kafka_port : `int`
        The resolved Kafka API port.

    Returns
    -------
    service : `dict`
        The Service resource.
    """
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": name,
            "labels": dict(labels),
        },
        "spec": {
            "clusterIP": "None",
            "ports": [
                {
                    "name": "kafka-tcp",
                    "protocol": "TCP",
                    "port": kafka_port,
                    "targetPort": kafka_port,
                }
            ],
            "selector": dict(labels),
        },
    }

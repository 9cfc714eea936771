"""Constructed (cached) state as module-level attributes."""

import os
import threading

cluster_domain = os.environ.get("RPO_CLUSTER_DOMAIN", "cluster.local")
"""The DNS domain of the Kubernetes cluster, used for per-pod FQDNs."""

default_storage = os.environ.get("RPO_DEFAULT_STORAGE", "100Gi")
"""Capacity requested for each data volume when a Cluster omits one."""

default_memory = os.environ.get("RPO_DEFAULT_MEMORY", "2Gi")
"""Memory given to the engine when a Cluster has no memory limit."""

log_level = os.environ.get("RPO_LOG_LEVEL", "INFO")
"""Minimum level of the operator's own log messages."""

annotation_prefix = "redpanda.vectorized.io"
"""Prefix of the annotations where kopf keeps its handler progress."""


cluster_locks: dict[tuple[str, str], threading.Lock] = {}
"""One lock per ``(namespace, name)`` Cluster key.

Reconciles for the same Cluster are serialized through these locks, while
reconciles for different Clusters run concurrently.
"""

_registry_lock = threading.Lock()


def get_cluster_lock(namespace: str, name: str) -> threading.Lock:
    """Get (creating if needed) the lock that serializes reconciles of a
    Cluster.
    """
    with _registry_lock:
        return cluster_locks.setdefault((namespace, name), threading.Lock())

def discard_cluster_lock(namespace: str, name: str) -> None:
    """Forget the lock of a Cluster that no longer exists."""
    with _registry_lock:
        cluster_locks.pop((namespace, name), None)

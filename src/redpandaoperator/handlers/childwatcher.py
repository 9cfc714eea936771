"""Kopf handlers that react to changes of a Cluster's child resources
(its Service, ConfigMap, StatefulSet and pods).
"""

__all__ = (
    "get_owner_cluster_name",
    "handle_child_event",
    "handle_pod_event",
)

from typing import Any

import kopf

from redpandaoperator.cluster import MANAGED_BY
from redpandaoperator.handlers.reconcilecluster import run_reconcile
from redpandaoperator.k8s import CLUSTER_GROUP

managed_labels = {"app.kubernetes.io/managed-by": MANAGED_BY}


def get_owner_cluster_name(
    meta: dict[str, Any], *, kind: str = "Cluster", group: str = CLUSTER_GROUP
) -> str | None:
    """Get the name of the owner of a resource, if it is of the given kind.

    Parameters
    ----------
    meta : dict
        The ``metadata`` of the owned resource.
    kind : str
        The kind of owner to look for.
    group : str
        The API group of the owner; empty for the core group.

    Returns
    -------
    str | None
        The owner's name, or None if no owner of that kind is referenced.
    """
    for ref in meta.get("ownerReferences") or []:
        ref_group = ref.get("apiVersion", "").rpartition("/")[0]
        if ref.get("kind") == kind and ref_group == group:
            return ref.get("name")
    return None


@kopf.on.event("", "v1", "services", labels=managed_labels)  # type: ignore[arg-type]
@kopf.on.event("", "v1", "configmaps", labels=managed_labels)  # type: ignore[arg-type]
@kopf.on.event("apps", "v1", "statefulsets", labels=managed_labels)  # type: ignore[arg-type]
def handle_child_event(
    *,
    meta: dict[str, Any],
    namespace: str,
    event: dict[str, Any],
    logger: Any,
    **kwargs: Any,
) -> None:
    """Reconcile the owning Cluster when one of its Service, ConfigMap or
    StatefulSet changes or is deleted.

    Parameters
    ----------
    meta : `dict`
        The metadata of the child resource.
    namespace : `str`
        The Kubernetes namespace of the child resource.
    event : `dict`
        The watch event, with a ``type`` such as "ADDED", "MODIFIED" or
        "DELETED".
    logger : `Any`
        The kopf logger.
    kwargs : `Any`
        Additional keyword arguments provided by kopf.
    """
    cluster_name = get_owner_cluster_name(meta)
    if cluster_name is None:
        return

    logger.debug(f"{event['type']} event for child of Cluster {cluster_name}")
    run_reconcile(name=cluster_name, namespace=namespace, logger=logger)


@kopf.on.event("", "v1", "pods", labels=managed_labels)  # type: ignore[arg-type]
def handle_pod_event(
    *,
    meta: dict[str, Any],
    namespace: str,
    event: dict[str, Any],
    logger: Any,
    **kwargs: Any,
) -> None:
    """Reconcile the Cluster of a Redpanda pod when the pod changes, so the
    Cluster's status follows the pods.

    Pods are owned by the StatefulSet, which has the same name as its
    Cluster.
    """
    cluster_name = get_owner_cluster_name(
        meta, kind="StatefulSet", group="apps"
    )
    if cluster_name is None:
        return

    logger.debug(f"{event['type']} event for pod of Cluster {cluster_name}")
    run_reconcile(name=cluster_name, namespace=namespace, logger=logger)

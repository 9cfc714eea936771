"""Kopf handlers for changes to a Cluster."""

__all__ = (
    "reconcile_cluster_handler",
    "run_reconcile",
)

from typing import Any

import kopf

from redpandaoperator.k8s import (
    CLUSTER_GROUP,
    CLUSTER_PLURAL,
    CLUSTER_VERSION,
    create_k8sclient,
)
from redpandaoperator.reconcile import ReconcileOutcome, reconcile_cluster
from redpandaoperator.state import discard_cluster_lock, get_cluster_lock


@kopf.on.resume(CLUSTER_GROUP, CLUSTER_VERSION, CLUSTER_PLURAL)  # type: ignore[arg-type]
@kopf.on.create(CLUSTER_GROUP, CLUSTER_VERSION, CLUSTER_PLURAL)  # type: ignore[arg-type]
@kopf.on.update(CLUSTER_GROUP, CLUSTER_VERSION, CLUSTER_PLURAL)  # type: ignore[arg-type]
def reconcile_cluster_handler(
    *,
    namespace: str,
    name: str,
    logger: Any,
    **kwargs: Any,
) -> None:
    """Handle the creation, update or discovery of a Cluster resource by
    reconciling its child resources and status.

    Errors are raised to kopf, which retries the handler with backoff.

    Parameters
    ----------
    namespace : str
        The Kubernetes namespace of the ``Cluster`` custom resource.
    name : str
        The name of the ``Cluster`` custom resource.
    logger : Any
        The kopf logger.
    **kwargs : Any
        Additional keyword arguments provided by kopf.
    """
    run_reconcile(name=name, namespace=namespace, logger=logger)


def run_reconcile(
    *,
    name: str,
    namespace: str,
    logger: Any,
    k8s_client: Any | None = None,
) -> ReconcileOutcome:
    """Reconcile a Cluster while holding its lock.

    Parameters
    ----------
    name : str
        The name of the Cluster.
    namespace : str
        The namespace of the Cluster.
    logger : Any
        Logger to use.
    k8s_client : Any, optional
        A Kubernetes client. Defaults to `create_k8sclient`.

    Returns
    -------
    ReconcileOutcome
        What the reconcile changed.
    """
    if k8s_client is None:
        k8s_client = create_k8sclient()

    logger.info(f"Starting reconcile of Cluster {namespace}/{name}")
    with get_cluster_lock(namespace, name):
        outcome = reconcile_cluster(
            name=name,
            namespace=namespace,
            k8s_client=k8s_client,
            logger=logger,
        )
    if not outcome.found:
        discard_cluster_lock(namespace, name)
    elif outcome.converged:
        logger.info(f"Cluster {namespace}/{name} is up to date")
    else:
        actions = ", ".join(action.value for action in outcome.actions)
        logger.info(f"Finished reconcile of {namespace}/{name}: {actions}")
    return outcome

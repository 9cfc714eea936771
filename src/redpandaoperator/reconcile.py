"""Reconciliation of a Cluster resource with its child resources.

A reconcile reads the current state of the Kubernetes API and takes the next
steps toward the Cluster's spec:

1. Fetch the Cluster. If it is gone, there is nothing to do; its children
   are removed by garbage collection through their owner references.
2. Create the headless Service if it does not exist.
3. Create the bootstrap ConfigMap if it does not exist.
4. Create the StatefulSet, with a single replica, if it does not exist.
5. Scale an existing StatefulSet whose replica count differs from the
   Cluster's.
6. List the Cluster's pods.
7. Write the observed pod names and ready replica count to the Cluster's
   status, each with its own update.

Every step checks before it writes, so a reconcile can be re-run at any
time. The first error aborts the reconcile and is raised to the caller; the
next reconcile picks up where this one stopped.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

import kopf
import structlog
from kubernetes.client.exceptions import ApiException

from redpandaoperator.cluster import (
    format_label_selector,
    get_cluster_labels,
    get_config_map_name,
    parse_cluster_spec,
)
from redpandaoperator.configuration import create_config_map, resolve_ports
from redpandaoperator.k8s import (
    CLUSTER_GROUP,
    CLUSTER_PLURAL,
    CLUSTER_VERSION,
    get_cluster,
    get_config_map,
    get_service,
    get_stateful_set,
    list_pods,
)
from redpandaoperator.service import create_headless_service
from redpandaoperator.statefulset import create_stateful_set

__all__ = (
    "ReconcileAction",
    "ReconcileOutcome",
    "reconcile_cluster",
)


class ReconcileAction(enum.Enum):
    """A change made to the Kubernetes API by a reconcile."""

    CREATE_SERVICE = "create-service"
    CREATE_CONFIG_MAP = "create-config-map"
    CREATE_STATEFUL_SET = "create-stateful-set"
    SCALE_STATEFUL_SET = "scale-stateful-set"
    UPDATE_STATUS_NODES = "update-status-nodes"
    UPDATE_STATUS_REPLICAS = "update-status-replicas"


@dataclass
class ReconcileOutcome:
    """The result of a successful reconcile."""

    found: bool = True
    """`False` if the Cluster no longer exists (or is being deleted)."""

    actions: list[ReconcileAction] = field(default_factory=list)
    """The changes made, in the order they were made."""

    @property
    def converged(self) -> bool:
        """`True` if the reconcile did not need to change anything."""
        return not self.actions


def reconcile_cluster(
    *,
    name: str,
    namespace: str,
    k8s_client: Any,
    logger: Any | None = None,
) -> ReconcileOutcome:
    """Reconcile a Cluster with its Service, ConfigMap, StatefulSet and
    status.

    Parameters
    ----------
    name : `str`
        Name of the Cluster.
    namespace : `str`
        Namespace of the Cluster.
    k8s_client
        A Kubernetes client (see `redpandaoperator.k8s.create_k8sclient`).
    logger : optional
        Logger to use. Defaults to a structlog logger.

    Returns
    -------
    outcome : `ReconcileOutcome`
        What the reconcile changed.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised for any API error other than a missing child resource.
    kopf.PermanentError
        Raised if the Cluster's spec is malformed.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)

    outcome = ReconcileOutcome()

    try:
        cluster = get_cluster(
            name=name, namespace=namespace, k8s_client=k8s_client
        )
    except ApiException as e:
        if e.status == 404:
            logger.info(f"Cluster {namespace}/{name} not found, skipping.")
            outcome.found = False
            return outcome
        raise

    if cluster["metadata"].get("deletionTimestamp"):
        logger.info(f"Cluster {namespace}/{name} is being deleted, skipping.")
        outcome.found = False
        return outcome

    config = parse_cluster_spec(cluster.get("spec") or {}, name, logger)
    labels = get_cluster_labels(cluster)

    if ensure_service(
        cluster=cluster,
        config=config,
        labels=labels,
        k8s_client=k8s_client,
        logger=logger,
    ):
        outcome.actions.append(ReconcileAction.CREATE_SERVICE)

    if ensure_config_map(
        cluster=cluster,
        config=config,
        labels=labels,
        k8s_client=k8s_client,
        logger=logger,
    ):
        outcome.actions.append(ReconcileAction.CREATE_CONFIG_MAP)

    stateful_set, created = ensure_stateful_set(
        cluster=cluster,
        config=config,
        labels=labels,
        k8s_client=k8s_client,
        logger=logger,
    )
    # A StatefulSet created in this reconcile is scaled by the next one,
    # once it is observed with a different replica count.
    if created:
        outcome.actions.append(ReconcileAction.CREATE_STATEFUL_SET)
    elif scale_stateful_set(
        stateful_set=stateful_set,
        replicas=config["replicas"],
        k8s_client=k8s_client,
        logger=logger,
    ):
        outcome.actions.append(ReconcileAction.SCALE_STATEFUL_SET)

    pods = list_pods(
        namespace=namespace,
        label_selector=format_label_selector(labels),
        k8s_client=k8s_client,
    )
    observed_nodes = [pod["metadata"]["name"] for pod in pods]
    ready_replicas = (stateful_set.get("status") or {}).get(
        "readyReplicas", 0
    )

    outcome.actions.extend(
        update_status(
            cluster=cluster,
            observed_nodes=observed_nodes,
            ready_replicas=ready_replicas,
            k8s_client=k8s_client,
            logger=logger,
        )
    )

    return outcome


def ensure_service(
    *,
    cluster: dict[str, Any],
    config: dict[str, Any],
    labels: dict[str, str],
    k8s_client: Any,
    logger: Any,
) -> bool:
    """Create the headless Service of a Cluster unless it already exists.

    Returns
    -------
    created : `bool`
        `True` if the Service was created.
    """
    name = cluster["metadata"]["name"]
    namespace = cluster["metadata"]["namespace"]

    try:
        get_service(name=name, namespace=namespace, k8s_client=k8s_client)
        logger.debug("Service already exists")
        return False
    except ApiException as e:
        if e.status != 404:
            logger.error(f"Unable to fetch Service {namespace}/{name}")
            raise

    logger.info(f"Creating headless Service {namespace}/{name}")
    svc_body = create_headless_service(
        name=name, labels=labels, kafka_port=resolve_ports(config)["kafka"]
    )
    kopf.adopt(svc_body, owner=cluster)
    k8s_client.CoreV1Api().create_namespaced_service(
        namespace=namespace, body=svc_body
    )
    return True


def ensure_config_map(
    *,
    cluster: dict[str, Any],
    config: dict[str, Any],
    labels: dict[str, str],
    k8s_client: Any,
    logger: Any,
) -> bool:
    """Create the bootstrap ConfigMap of a Cluster unless it already exists.

    Returns
    -------
    created : `bool`
        `True` if the ConfigMap was created.
    """
    name = cluster["metadata"]["name"]
    namespace = cluster["metadata"]["namespace"]
    config_map_name = get_config_map_name(name)

    try:
        get_config_map(
            name=config_map_name, namespace=namespace, k8s_client=k8s_client
        )
        logger.debug("ConfigMap already exists")
        return False
    except ApiException as e:
        if e.status != 404:
            logger.error(
                f"Unable to fetch ConfigMap {namespace}/{config_map_name}"
            )
            raise

    logger.info(f"Creating base ConfigMap {namespace}/{config_map_name}")
    cm_body = create_config_map(
        name=name, namespace=namespace, labels=labels, config=config
    )
    kopf.adopt(cm_body, owner=cluster)
    k8s_client.CoreV1Api().create_namespaced_config_map(
        namespace=namespace, body=cm_body
    )
    return True


def ensure_stateful_set(
    *,
    cluster: dict[str, Any],
    config: dict[str, Any],
    labels: dict[str, str],
    k8s_client: Any,
    logger: Any,
) -> tuple[dict[str, Any], bool]:
    """Get the StatefulSet of a Cluster, creating it if it does not exist.

    Returns
    -------
    stateful_set : `dict`
        The existing StatefulSet, or the body that was created.
    created : `bool`
        `True` if the StatefulSet was created.
    """
    name = cluster["metadata"]["name"]
    namespace = cluster["metadata"]["namespace"]

    try:
        stateful_set = get_stateful_set(
            name=name, namespace=namespace, k8s_client=k8s_client
        )
        return stateful_set, False
    except ApiException as e:
        if e.status != 404:
            logger.error(f"Unable to fetch StatefulSet {namespace}/{name}")
            raise

    logger.info(f"Creating bootstrap StatefulSet {namespace}/{name}")
    sts_body = create_stateful_set(
        name=name,
        namespace=namespace,
        labels=labels,
        config=config,
        config_map_name=get_config_map_name(name),
    )
    kopf.adopt(sts_body, owner=cluster)
    k8s_client.AppsV1Api().create_namespaced_stateful_set(
        namespace=namespace, body=sts_body
    )
    return sts_body, True


def scale_stateful_set(
    *,
    stateful_set: dict[str, Any],
    replicas: int,
    k8s_client: Any,
    logger: Any,
) -> bool:
    """Patch the replica count of a StatefulSet if it differs from
    ``replicas``.

    The patch carries the StatefulSet's ``resourceVersion``, so it fails
    with a conflict if the StatefulSet changed since it was read.

    Returns
    -------
    scaled : `bool`
        `True` if the StatefulSet was patched.
    """
    current = stateful_set["spec"].get("replicas")
    if current == replicas:
        return False

    name = stateful_set["metadata"]["name"]
    namespace = stateful_set["metadata"]["namespace"]
    resource_version = stateful_set["metadata"]["resourceVersion"]
    logger.info(
        f"Scaling StatefulSet {namespace}/{name} from {current} to "
        f"{replicas} replicas"
    )
    k8s_client.AppsV1Api().patch_namespaced_stateful_set(
        name=name,
        namespace=namespace,
        body={
            "metadata": {"resourceVersion": resource_version},
            "spec": {"replicas": replicas},
        },
    )
    return True


def update_status(
    *,
    cluster: dict[str, Any],
    observed_nodes: list[str],
    ready_replicas: int,
    k8s_client: Any,
    logger: Any,
) -> list[ReconcileAction]:
    """Write the observed nodes and ready replica count to a Cluster's
    status.

    Each field that changed is written with its own update of the status
    subresource. The updates carry the Cluster's ``resourceVersion``, so a
    write based on a stale Cluster fails with a conflict instead of
    overwriting a newer status.

    Returns
    -------
    actions : `list`
        The status updates that were made.
    """
    name = cluster["metadata"]["name"]
    namespace = cluster["metadata"]["namespace"]
    api = k8s_client.CustomObjectsApi()
    actions = []

    status = cluster.get("status") or {}
    if observed_nodes != (status.get("nodes") or []):
        logger.info(f"Updating Cluster {namespace}/{name} status nodes")
        cluster["status"] = {**status, "nodes": observed_nodes}
        cluster = api.replace_namespaced_custom_object_status(
            group=CLUSTER_GROUP,
            version=CLUSTER_VERSION,
            namespace=namespace,
            plural=CLUSTER_PLURAL,
            name=name,
            body=cluster,
        )
        actions.append(ReconcileAction.UPDATE_STATUS_NODES)

    status = cluster.get("status") or {}
    if ready_replicas != (status.get("replicas") or 0):
        logger.info(f"Updating Cluster {namespace}/{name} status replicas")
        cluster["status"] = {**status, "replicas": ready_replicas}
        api.replace_namespaced_custom_object_status(
            group=CLUSTER_GROUP,
            version=CLUSTER_VERSION,
            namespace=namespace,
            plural=CLUSTER_PLURAL,
            name=name,
            body=cluster,
        )
        actions.append(ReconcileAction.UPDATE_STATUS_REPLICAS)

    return actions

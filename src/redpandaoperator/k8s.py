"""Helpers for interacting with Kubernetes APIs."""

__all__ = (
    "CLUSTER_GROUP",
    "CLUSTER_PLURAL",
    "CLUSTER_VERSION",
    "create_k8sclient",
    "get_cluster",
    "get_config_map",
    "get_service",
    "get_stateful_set",
    "list_pods",
)

import json
from typing import Any

import kubernetes

CLUSTER_GROUP = "redpanda.vectorized.io"
"""API group of the Cluster custom resource."""

CLUSTER_VERSION = "v1alpha1"
"""API version of the Cluster custom resource."""

CLUSTER_PLURAL = "clusters"
"""Plural name of the Cluster custom resource."""


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.
    """
    try:
        kubernetes.config.load_incluster_config()
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
    return kubernetes.client


def get_service(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    raw: bool = True,
) -> dict[str, Any] | Any:
    """Get a Service resource.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the Redpanda cluster.
    name : `str`
        The name of the Service.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    raw : `bool`
        If `True`, the raw Kubernetes manifest is returned as a `dict`.
        Otherwise the Python object representation of the resource is returned.

    Returns
    -------
    service
        The Kubernetes Service resource either as a `dict` or an object.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised with status 404 if the Service does not exist.
    """
    preload_content = not raw

    api = k8s_client.CoreV1Api()
    result = api.read_namespaced_service(
        name=name, namespace=namespace, _preload_content=preload_content
    )
    if raw:
        return json.loads(result.data)
    else:
        return result


def get_config_map(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    raw: bool = True,
) -> dict[str, Any] | Any:
    """Get a ConfigMap resource.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the Redpanda cluster.
    name : `str`
        The name of the ConfigMap.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    raw : `bool`
        If `True`, the raw Kubernetes manifest is returned as a `dict`.
        Otherwise the Python object representation of the resource is returned.

    Returns
    -------
    config_map
        The Kubernetes ConfigMap resource either as a `dict` or an object.
    """
    preload_content = not raw

    api = k8s_client.CoreV1Api()
    result = api.read_namespaced_config_map(
        name=name, namespace=namespace, _preload_content=preload_content
    )
    if raw:
        return json.loads(result.data)
    else:
        return result


def get_stateful_set(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    raw: bool = True,
) -> dict[str, Any] | Any:
    """Get a StatefulSet resource.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the Redpanda cluster.
    name : `str`
        The name of the StatefulSet.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    raw : `bool`
        If `True`, the raw Kubernetes manifest is returned as a `dict`.
        Otherwise the Python object representation of the resource is returned.

    Returns
    -------
    stateful_set
        The Kubernetes StatefulSet resource either as a `dict` or an object.
    """
    preload_content = not raw

    api = k8s_client.AppsV1Api()
    result = api.read_namespaced_stateful_set(
        name=name, namespace=namespace, _preload_content=preload_content
    )
    if raw:
        return json.loads(result.data)
    else:
        return result


def get_cluster(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    raw: bool = True,
) -> dict[str, Any] | Any:
    """Get a Cluster resource.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the Cluster.
    name : `str`
        The name of the Cluster.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    raw : `bool`
        If `True`, the raw Kubernetes manifest is returned as a `dict`.
        Otherwise the Python object representation of the resource is returned.

    Returns
    -------
    cluster
        The Cluster resource either as a `dict` or an object.
    """
    preload_content = not raw

    api = k8s_client.CustomObjectsApi()
    result = api.get_namespaced_custom_object(
        group=CLUSTER_GROUP,
        version=CLUSTER_VERSION,
        namespace=namespace,
        plural=CLUSTER_PLURAL,
        name=name,
        _preload_content=preload_content,
    )
    if raw:
        return json.loads(result.data)
    else:
        return result


def list_pods(
    *,
    namespace: str,
    label_selector: str,
    k8s_client: Any,
) -> list[dict[str, Any]]:
    """List the raw Pod resources matching a label selector.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace to search.
    label_selector : `str`
        A label selector such as ``app=example,tier=data``.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).

    Returns
    -------
    pods : `list`
        The Pod resources, in the order returned by the API server.
    """
    api = k8s_client.CoreV1Api()
    result = api.list_namespaced_pod(
        namespace=namespace,
        label_selector=label_selector,
        _preload_content=False,
    )
    return json.loads(result.data).get("items") or []

"""Shared fixtures: an in-memory stand-in for the ``kubernetes.client``
module.
"""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest
import yaml
from kubernetes.client.exceptions import ApiException

CLUSTER_MANIFEST = """
apiVersion: redpanda.vectorized.io/v1alpha1
kind: Cluster
metadata:
  name: cluster-a
  namespace: default
  uid: 6b1f4a0e-0b8e-4d4c-9a57-3f0e1c3b9d10
  resourceVersion: "1"
  labels:
    app: cluster-a
spec:
  image: vectorized/redpanda
  version: v21.4.13
  replicas: 3
  configuration:
    kafkaApi:
      port: 9092
    adminApi:
      port: 9644
    rpcServer:
      port: 33145
    developerMode: true
  resources:
    limits:
      cpu: "1"
      memory: 2Gi
    requests:
      cpu: "1"
      memory: 2Gi
"""

WRITE_VERBS = ("create", "patch", "replace_status")


class FakeResponse:
    """A response read with ``_preload_content=False``."""

    def __init__(self, body: dict[str, Any]) -> None:
        self.data = json.dumps(body).encode("utf-8")


class FakeKubernetes:
    """Records calls and stores resources in memory, keyed by
    ``(namespace, name)``.
    """

    def __init__(self) -> None:
        self.resources: dict[str, dict[tuple[str, str], dict[str, Any]]] = {
            "Cluster": {},
            "Service": {},
            "ConfigMap": {},
            "StatefulSet": {},
            "Pod": {},
        }
        self.calls: list[tuple[str, str, str]] = []
        self._failures: dict[tuple[str, str], list[ApiException | None]] = {}

    # The kubernetes.client API classes
    def CoreV1Api(self) -> FakeCoreV1Api:  # noqa: N802
        return FakeCoreV1Api(self)

    def AppsV1Api(self) -> FakeAppsV1Api:  # noqa: N802
        return FakeAppsV1Api(self)

    def CustomObjectsApi(self) -> FakeCustomObjectsApi:  # noqa: N802
        return FakeCustomObjectsApi(self)

    def add(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Store a resource as if it already existed."""
        body = copy.deepcopy(body)
        meta = body["metadata"]
        meta.setdefault("namespace", "default")
        meta.setdefault("resourceVersion", "1")
        self.resources[kind][(meta["namespace"], meta["name"])] = body
        return body

    def get(self, kind: str, name: str, namespace: str = "default") -> Any:
        return self.resources[kind].get((namespace, name))

    def add_pod(self, name: str, labels: dict[str, str]) -> dict[str, Any]:
        """Store a minimal Pod body."""
        return self.add(
            "Pod",
            {
                "apiVersion": "v1",
                "kind": "Pod",
                "metadata": {"name": name, "labels": dict(labels)},
            },
        )

    def fail(
        self, verb: str, kind: str, status: int, *, after: int = 0
    ) -> None:
        """Make the next ``verb`` on ``kind`` fail with ``status`` once,
        after ``after`` successful calls.
        """
        self._failures[(verb, kind)] = [None] * after + [
            ApiException(status=status, reason="Injected")
        ]

    @property
    def writes(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] in WRITE_VERBS]

    def _call(self, verb: str, kind: str, name: str) -> None:
        self.calls.append((verb, kind, name))
        failures = self._failures.get((verb, kind))
        if failures:
            failure = failures.pop(0)
            if failure is not None:
                raise failure

    def _read(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        self._call("get", kind, name)
        try:
            return copy.deepcopy(self.resources[kind][(namespace, name)])
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def _create(
        self, kind: str, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self._call("create", kind, name)
        if (namespace, name) in self.resources[kind]:
            raise ApiException(status=409, reason="AlreadyExists")
        return self.add(kind, body)


class FakeCoreV1Api:
    def __init__(self, fake: FakeKubernetes) -> None:
        self.fake = fake

    def read_namespaced_service(
        self, *, name: str, namespace: str, _preload_content: bool = True
    ) -> FakeResponse:
        return FakeResponse(self.fake._read("Service", name, namespace))

    def read_namespaced_config_map(
        self, *, name: str, namespace: str, _preload_content: bool = True
    ) -> FakeResponse:
        return FakeResponse(self.fake._read("ConfigMap", name, namespace))

    def create_namespaced_service(
        self, *, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return self.fake._create("Service", namespace, body)

    def create_namespaced_config_map(
        self, *, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return self.fake._create("ConfigMap", namespace, body)

    def list_namespaced_pod(
        self,
        *,
        namespace: str,
        label_selector: str,
        _preload_content: bool = True,
    ) -> FakeResponse:
        self.fake._call("list", "Pod", label_selector)
        selector = dict(
            term.split("=", 1) for term in label_selector.split(",") if term
        )
        items = [
            pod
            for (pod_namespace, _), pod in self.fake.resources["Pod"].items()
            if pod_namespace == namespace
            and selector.items() <= pod["metadata"]["labels"].items()
        ]
        return FakeResponse({"kind": "PodList", "items": items})


class FakeAppsV1Api:
    def __init__(self, fake: FakeKubernetes) -> None:
        self.fake = fake

    def read_namespaced_stateful_set(
        self, *, name: str, namespace: str, _preload_content: bool = True
    ) -> FakeResponse:
        return FakeResponse(self.fake._read("StatefulSet", name, namespace))

    def create_namespaced_stateful_set(
        self, *, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return self.fake._create("StatefulSet", namespace, body)

    def patch_namespaced_stateful_set(
        self, *, name: str, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self.fake._call("patch", "StatefulSet", name)
        stored = self.fake.resources["StatefulSet"][(namespace, name)]
        stored_version = stored["metadata"]["resourceVersion"]
        expected_version = body.get("metadata", {}).get("resourceVersion")
        if expected_version not in (None, stored_version):
            raise ApiException(status=409, reason="Conflict")
        stored["spec"].update(body["spec"])
        stored["metadata"]["resourceVersion"] = str(int(stored_version) + 1)
        return copy.deepcopy(stored)


class FakeCustomObjectsApi:
    def __init__(self, fake: FakeKubernetes) -> None:
        self.fake = fake

    def get_namespaced_custom_object(
        self,
        *,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        name: str,
        _preload_content: bool = True,
    ) -> FakeResponse:
        return FakeResponse(self.fake._read("Cluster", name, namespace))

    def replace_namespaced_custom_object_status(
        self,
        *,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        self.fake._call("replace_status", "Cluster", name)
        stored = self.fake.resources["Cluster"][(namespace, name)]
        stored_version = stored["metadata"]["resourceVersion"]
        if body["metadata"]["resourceVersion"] != stored_version:
            raise ApiException(status=409, reason="Conflict")
        stored["status"] = copy.deepcopy(body.get("status") or {})
        stored["metadata"]["resourceVersion"] = str(int(stored_version) + 1)
        return copy.deepcopy(stored)


@pytest.fixture
def cluster_body() -> dict[str, Any]:
    return yaml.safe_load(CLUSTER_MANIFEST)


@pytest.fixture
def fake_k8s(cluster_body: dict[str, Any]) -> FakeKubernetes:
    """A fake Kubernetes API holding the ``cluster-a`` Cluster and nothing
    else.
    """
    fake = FakeKubernetes()
    fake.add("Cluster", cluster_body)
    return fake

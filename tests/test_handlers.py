"""Tests for the redpandaoperator.handlers package."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from kubernetes.client.exceptions import ApiException

from redpandaoperator import state
from redpandaoperator.handlers import childwatcher, reconcilecluster
from redpandaoperator.handlers.childwatcher import (
    get_owner_cluster_name,
    handle_child_event,
    handle_pod_event,
)
from redpandaoperator.handlers.reconcilecluster import (
    reconcile_cluster_handler,
    run_reconcile,
)
from redpandaoperator.reconcile import ReconcileAction

logger = logging.getLogger(__name__)

cluster_owner = {
    "apiVersion": "redpanda.vectorized.io/v1alpha1",
    "kind": "Cluster",
    "name": "cluster-a",
    "uid": "6b1f4a0e-0b8e-4d4c-9a57-3f0e1c3b9d10",
    "controller": True,
}

stateful_set_owner = {
    "apiVersion": "apps/v1",
    "kind": "StatefulSet",
    "name": "cluster-a",
    "uid": "0f8d4c5e-2f4a-4d1b-b8a4-0c1f2e3d4a5b",
    "controller": True,
}


@pytest.fixture
def reconciled(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    """Replace run_reconcile in the child watchers with a recorder."""
    calls: list[tuple[str, str]] = []

    def fake_run_reconcile(*, name: str, namespace: str, logger: Any) -> None:
        calls.append((namespace, name))

    monkeypatch.setattr(childwatcher, "run_reconcile", fake_run_reconcile)
    return calls


def test_get_owner_cluster_name() -> None:
    meta = {"ownerReferences": [stateful_set_owner, cluster_owner]}
    assert get_owner_cluster_name(meta) == "cluster-a"
    assert (
        get_owner_cluster_name(meta, kind="StatefulSet", group="apps")
        == "cluster-a"
    )
    assert get_owner_cluster_name({}) is None


def test_get_owner_cluster_name_other_group() -> None:
    other = {**cluster_owner, "apiVersion": "cluster.x-k8s.io/v1beta1"}
    assert get_owner_cluster_name({"ownerReferences": [other]}) is None


def test_child_event_reconciles_owner(reconciled: list) -> None:
    handle_child_event(
        meta={"name": "cluster-a-base", "ownerReferences": [cluster_owner]},
        namespace="default",
        event={"type": "DELETED"},
        logger=logger,
    )
    assert reconciled == [("default", "cluster-a")]


def test_child_event_without_owner(reconciled: list) -> None:
    handle_child_event(
        meta={"name": "unrelated"},
        namespace="default",
        event={"type": "MODIFIED"},
        logger=logger,
    )
    assert reconciled == []


def test_pod_event_reconciles_cluster(reconciled: list) -> None:
    handle_pod_event(
        meta={"name": "cluster-a-1", "ownerReferences": [stateful_set_owner]},
        namespace="default",
        event={"type": "MODIFIED"},
        logger=logger,
    )
    assert reconciled == [("default", "cluster-a")]


def test_run_reconcile(fake_k8s) -> None:
    outcome = run_reconcile(
        name="cluster-a",
        namespace="default",
        logger=logger,
        k8s_client=fake_k8s,
    )
    assert ReconcileAction.CREATE_STATEFUL_SET in outcome.actions
    assert not state.get_cluster_lock("default", "cluster-a").locked()


def test_run_reconcile_releases_lock_on_error(fake_k8s) -> None:
    fake_k8s.fail("get", "Cluster", 500)
    with pytest.raises(ApiException):
        run_reconcile(
            name="cluster-a",
            namespace="default",
            logger=logger,
            k8s_client=fake_k8s,
        )
    assert not state.get_cluster_lock("default", "cluster-a").locked()


def test_reconcile_cluster_handler(
    fake_k8s, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        reconcilecluster, "create_k8sclient", lambda: fake_k8s
    )
    result = reconcile_cluster_handler(
        namespace="default", name="cluster-a", logger=logger
    )
    # Nothing is returned, so kopf stores nothing in the status
    assert result is None
    assert fake_k8s.get("StatefulSet", "cluster-a") is not None


def test_cluster_locks_are_per_key() -> None:
    lock = state.get_cluster_lock("default", "cluster-a")
    assert state.get_cluster_lock("default", "cluster-a") is lock
    assert state.get_cluster_lock("other", "cluster-a") is not lock


def test_run_reconcile_discards_lock_of_missing_cluster(fake_k8s) -> None:
    state.get_cluster_lock("default", "missing")

    outcome = run_reconcile(
        name="missing",
        namespace="default",
        logger=logger,
        k8s_client=fake_k8s,
    )

    assert not outcome.found
    assert ("default", "missing") not in state.cluster_locks

"""Kopf handlers for the redpanda-operator."""

__all__ = (
    "handle_child_event",
    "handle_pod_event",
    "reconcile_cluster_handler",
    "start_operator",
)

from redpandaoperator.handlers.childwatcher import (
    handle_child_event,
    handle_pod_event,
)
from redpandaoperator.handlers.reconcilecluster import (
    reconcile_cluster_handler,
)
from redpandaoperator.startup import start_operator

"""Code intended to run on start-up, before running any handlers."""

__all__ = ("configure_logging", "start_operator")

import logging
from typing import Any

import kopf
import structlog

from redpandaoperator import state
from redpandaoperator.version import get_version


handler_loggers = ("kopf.objects", "redpandaoperator")
"""Standard library loggers of the operator's own messages.

kopf passes handlers an adapter of the ``kopf.objects`` logger.
"""


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the handler loggers for the operator's own
    messages.

    Parameters
    ----------
    level : `str`, optional
        Name of the minimum log level. Defaults to ``RPO_LOG_LEVEL``.
    """
    if level is None:
        level = state.log_level
    log_level = logging.getLevelName(level.upper())
    for logger_name in handler_loggers:
        logging.getLogger(logger_name).setLevel(log_level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


@kopf.on.startup()
def start_operator(
    settings: kopf.OperatorSettings, logger: Any, **kwargs: Any
) -> None:
    """Start up the operator, configuring logging and kopf's settings."""
    configure_logging()

    # Keep kopf's bookkeeping out of the Cluster status, which only holds
    # the observed nodes and replicas.
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=state.annotation_prefix
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=state.annotation_prefix
    )
    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0

    logger.info(
        f"Started redpanda-operator {get_version()} "
        f"(cluster domain {state.cluster_domain})"
    )

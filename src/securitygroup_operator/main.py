"""Main entry point for the SecurityGroup Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .constants import API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS
from .handlers.securitygroup import SecurityGroupReconciler
from .models import ResourceKey
from .services.dcs.client import DCSClient
from .store import KubernetesRecordStore, get_k8s_client
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)


def build_reconciler(config: OperatorConfig) -> SecurityGroupReconciler:
    """Wire the reconciler to the cluster and the DCS API."""
    store = KubernetesRecordStore(
        get_k8s_client(),
        rate_limit_per_second=config.k8s_rate_limit_per_second,
    )
    service = DCSClient(
        endpoint=config.dcs_endpoint,
        timeout=config.dcs_timeout_seconds,
        rate_limit_per_second=config.dcs_rate_limit_per_second,
    )
    return SecurityGroupReconciler(
        store,
        service,
        mark_changing_on_diff=config.mark_changing_on_diff,
    )


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator."""
    config = OperatorConfig.from_env()
    structured_logging.setup_structured_logging(config.log_level)

    # Keep kopf's bookkeeping out of status, which the reconciler owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers

    memo.config = config
    memo.reconciler = build_reconciler(config)
    memo.metrics_server = health.start_metrics_server(config.metrics_port)
    logger.info(f"SecurityGroup operator started, DCS endpoint {config.dcs_endpoint}")


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    """Stop the metrics server."""
    server = getattr(memo, "metrics_server", None)
    if server is not None:
        server.shutdown()


def run_reconcile(memo: kopf.Memo, namespace: str, name: str) -> None:
    """Run a reconciliation pass and hand a requeue back to kopf as a retry.

    Raises:
        kopf.TemporaryError: If the pass asked to be retried
    """
    reconciler: SecurityGroupReconciler = memo.reconciler
    result = reconciler.reconcile(ResourceKey(namespace=namespace, name=name))
    if result.requeue:
        raise kopf.TemporaryError(
            sanitize_exception(result.error) if result.error else "reconciliation requeued",
            delay=memo.config.requeue_delay_seconds,
        )


@kopf.on.create(API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS)
def handle_security_group(
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **_: Any,
) -> None:
    """Handle SecurityGroup creation, spec changes and operator restarts."""
    run_reconcile(memo, namespace, name)


# optional=True: the reconciler manages its own finalizer, kopf must not add one
@kopf.on.delete(API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS, optional=True)
def handle_security_group_delete(
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **_: Any,
) -> None:
    """Handle SecurityGroup deletion."""
    run_reconcile(memo, namespace, name)

"""Main entry point for the Vault Engine Operator."""

from __future__ import annotations

import logging
from typing import Any, Callable

import kopf
from kubernetes import config as kube_config

from . import logging as structured_logging
from .config import OperatorConfig
from .constants import (
    API_GROUP,
    API_GROUP_VERSION,
    API_VERSION,
    KIND_AWS_ROLE,
    KIND_GCP_ROLE,
    PLURAL_AWS_ROLE,
    PLURAL_GCP_ROLE,
)
from .controller.manager import ControllerManager
from .health import start_health_server
from .roles import default_role_kinds, default_vault_client_factory
from .roles.base import RoleKind
from .store import KubernetesResourceStore
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        kube_config.load_incluster_config()
    except kube_config.ConfigException:
        kube_config.load_kube_config()


def build_manager(config: OperatorConfig) -> ControllerManager:
    """Create the controller manager for every managed role kind."""
    role_kinds = default_role_kinds(default_vault_client_factory(config.vault_addr), config.cluster_name)

    def store_factory(role_kind: RoleKind) -> KubernetesResourceStore:
        return KubernetesResourceStore(
            API_GROUP, API_VERSION, role_kind.plural, retries=config.status_update_retries
        )

    return ControllerManager(config, role_kinds, store_factory)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator and start the controllers."""
    config = OperatorConfig.from_env()
    structured_logging.setup_structured_logging(config.log_level)
    initialize_tracing()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.workers

    load_kubernetes_config()

    manager = build_manager(config)
    manager.start()
    memo.manager = manager
    memo.health_server = start_health_server(config.metrics_port, manager.is_ready)
    logger.info(f"Operator started with {config.workers} worker(s) per kind")


@kopf.on.cleanup()
def cleanup(memo: kopf.Memo, **_: Any) -> None:
    """Stop the controllers, giving in-flight finalizations their grace period."""
    manager: ControllerManager | None = getattr(memo, "manager", None)
    if manager is not None:
        abandoned = manager.stop()
        if abandoned:
            logger.warning(f"Abandoned finalizations: {', '.join(abandoned)}")
    server = getattr(memo, "health_server", None)
    if server is not None:
        server.shutdown()


def make_event_handler(plural: str) -> Callable[..., None]:
    """Create a kopf event handler feeding ``plural`` events to its dispatcher."""

    def handle_event(event: dict[str, Any], memo: kopf.Memo, **_: Any) -> None:
        memo.manager.handle_event(plural, {"type": event.get("type"), "object": event.get("object")})

    handle_event.__name__ = f"handle_{plural}_event"
    return handle_event


handle_gcp_role_event = kopf.on.event(API_GROUP_VERSION, KIND_GCP_ROLE, id="dispatch-gcproles")(
    make_event_handler(PLURAL_GCP_ROLE)
)
handle_aws_role_event = kopf.on.event(API_GROUP_VERSION, KIND_AWS_ROLE, id="dispatch-awsroles")(
    make_event_handler(PLURAL_AWS_ROLE)
)

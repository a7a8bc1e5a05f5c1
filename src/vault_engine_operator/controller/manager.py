"""Assembly of one controller per role kind."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from ..config import OperatorConfig
from ..handlers.finalization import RoleFinalizer
from ..handlers.role import RoleReconciler
from ..roles.base import RoleKind
from ..store import ResourceStore
from ..utils.cache import ObjectCache
from ..utils.rate_limit import ItemExponentialBackoff
from .dispatcher import Dispatcher
from .queue import WorkQueue
from .registry import FinalizerRegistry
from .tasks import TaskSupervisor

logger = logging.getLogger(__name__)


class RoleController:
    """Cache, queue, dispatcher, reconciler and finalizer for one role kind."""

    def __init__(
        self,
        role_kind: RoleKind,
        store: ResourceStore,
        config: OperatorConfig,
        registry: FinalizerRegistry,
        tasks: TaskSupervisor,
    ):
        self.role_kind = role_kind
        self.store = store
        self.cache = ObjectCache()
        self.finalizer = RoleFinalizer(
            role_kind,
            store,
            registry,
            timeout=config.finalizer_timeout,
            interval=config.finalizer_interval,
            stop_event=tasks.stop_event,
        )
        self.reconciler = RoleReconciler(role_kind, store, self.cache, self.finalizer, tasks)
        queue = WorkQueue(
            ItemExponentialBackoff(config.min_retry_delay, config.max_retry_delay, config.retry_backoff)
        )
        self.dispatcher = Dispatcher(
            role_kind.plural,
            self.reconciler.reconcile,
            self.cache,
            queue=queue,
            workers=config.workers,
            max_requeues=config.max_requeues,
        )


class ControllerManager:
    """Run every role controller and shut them down gracefully.

    The finalizer registry and task supervisor are shared by all controllers.
    """

    def __init__(
        self,
        config: OperatorConfig,
        role_kinds: Iterable[RoleKind],
        store_factory: Callable[[RoleKind], ResourceStore],
    ):
        self.config = config
        self.registry = FinalizerRegistry()
        self.tasks = TaskSupervisor()
        self.controllers: dict[str, RoleController] = {}
        for role_kind in role_kinds:
            self.controllers[role_kind.plural] = RoleController(
                role_kind, store_factory(role_kind), config, self.registry, self.tasks
            )
        self._watch_stop = threading.Event()
        self._started = False

    def start(self, watch: bool = False) -> None:
        """Start all dispatchers.

        Args:
            watch: Consume each store's own watch stream instead of relying on
                events pushed through :meth:`handle_event`
        """
        for controller in self.controllers.values():
            events = controller.store.watch(self._watch_stop) if watch else None
            controller.dispatcher.start(events)
        self._started = True
        logger.info(f"Started controllers for {', '.join(self.controllers)}")

    def handle_event(self, plural: str, event: dict[str, Any]) -> None:
        controller = self.controllers.get(plural)
        if controller is None:
            logger.error(f"No controller registered for {plural}")
            return
        controller.dispatcher.handle_event(event)

    def is_ready(self) -> bool:
        return self._started and all(c.dispatcher.healthy for c in self.controllers.values())

    def stop(self) -> list[str]:
        """Stop dispatching, then give in-flight finalizations a grace period.

        Returns:
            Names of finalization tasks abandoned after the grace period
        """
        self._watch_stop.set()
        for controller in self.controllers.values():
            controller.dispatcher.stop()
        self._started = False
        return self.tasks.shutdown(self.config.shutdown_grace)

"""Scheduling primitives: work queue, dispatcher, finalizer registry, task supervisor."""

from .dispatcher import Dispatcher
from .queue import WorkQueue
from .registry import FinalizerRegistry
from .tasks import TaskSupervisor

__all__ = ["Dispatcher", "FinalizerRegistry", "TaskSupervisor", "WorkQueue"]

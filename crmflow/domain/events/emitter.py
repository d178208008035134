"""Fan-out of run events to subscribed observers."""

import logging
import threading
from collections import defaultdict
from collections.abc import Iterable

from crmflow.domain.events.event import WorkflowEvent
from crmflow.domain.events.event_types import WorkflowEventType
from crmflow.domain.events.observer import WorkflowObserver

logger = logging.getLogger(__name__)


class WorkflowEventEmitter:
    """Dispatches WorkflowEvents to global and per-type observers.

    One emitter may be shared by runs on several threads. Subscriptions are
    guarded by a lock and ``emit`` works on a snapshot, so observers can be
    added or removed while runs are in flight.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_type: dict[WorkflowEventType, list[WorkflowObserver]] = defaultdict(list)
        self._global: list[WorkflowObserver] = []

    def subscribe(
        self,
        observer: WorkflowObserver,
        event_types: Iterable[WorkflowEventType] | None = None,
    ) -> None:
        """Subscribe to the given event types, or to every event when None."""
        with self._lock:
            if event_types is None:
                self._global.append(observer)
                return
            for event_type in event_types:
                self._by_type[event_type].append(observer)

    def unsubscribe(self, observer: WorkflowObserver) -> None:
        with self._lock:
            self._global = [o for o in self._global if o is not observer]
            for event_type, observers in self._by_type.items():
                self._by_type[event_type] = [o for o in observers if o is not observer]

    def emit(self, event: WorkflowEvent) -> None:
        with self._lock:
            targets = self._global + self._by_type.get(event.event_type, [])
        # An observer subscribed both globally and by type hears the event once.
        seen: set[int] = set()
        for observer in targets:
            if id(observer) in seen:
                continue
            seen.add(id(observer))
            try:
                observer.on_event(event)
            except Exception as e:
                logger.warning(
                    f"Observer {type(observer).__name__} failed on "
                    f"{event.event_type.value} for workflow '{event.workflow_id}': {e}"
                )

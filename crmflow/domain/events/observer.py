"""Observer protocol for run events."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from crmflow.domain.events.event import WorkflowEvent


@runtime_checkable
class WorkflowObserver(Protocol):
    """Anything with ``on_event`` can watch runs: audit sinks, progress views, the CLI.

    Called synchronously from the thread executing the run, so implementations
    shared across concurrent runs must do their own locking.
    """

    def on_event(self, event: "WorkflowEvent") -> None:
        ...

"""Stderr event observer for CLI integration."""

import click

from crmflow.domain.events.event import WorkflowEvent


class StderrEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: WorkflowEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}", f"workflow={event.workflow_id}"]
        if event.step_id is not None:
            parts.append(f"step={event.step_id}")
        if event.step_type is not None:
            parts.append(f"type={event.step_type}")
        if event.error:
            parts.append(f"error={event.error}")
        click.echo(" ".join(parts), err=True)

"""CRM data surface used by the built-in actions."""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any


class RecordGateway(ABC):
    """Collaborator interface for record writes, audit log and notifications."""

    @abstractmethod
    def create_record(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return it (including its ``id``)."""
        ...

    @abstractmethod
    def update_record(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def log_change(self, entity: str, action: str, description: str) -> None:
        ...

    @abstractmethod
    def notify(self, title: str, message: str, notification_type: str) -> None:
        ...


class InMemoryRecordGateway(RecordGateway):
    """Thread-safe in-memory gateway for the CLI and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.changes: list[dict[str, Any]] = []
        self.notifications: list[dict[str, Any]] = []

    def create_record(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        record = dict(data)
        record.setdefault("id", uuid.uuid4().hex)
        with self._lock:
            self.tables.setdefault(table, {})[str(record["id"])] = record
        return dict(record)

    def update_record(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            rows = self.tables.setdefault(table, {})
            rows.setdefault(str(record_id), {"id": record_id}).update(fields)

    def log_change(self, entity: str, action: str, description: str) -> None:
        with self._lock:
            self.changes.append(
                {
                    "entity": entity,
                    "action": action,
                    "description": description,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )

    def notify(self, title: str, message: str, notification_type: str) -> None:
        with self._lock:
            self.notifications.append(
                {"title": title, "message": message, "type": notification_type}
            )

"""Built-in CRM effects available to action steps."""

from typing import Any

from crmflow.domain.constants import (
    DEFAULT_LOG_DESCRIPTION,
    DEFAULT_NOTIFICATION_MESSAGE,
    DEFAULT_NOTIFICATION_TITLE,
    DEFAULT_NOTIFICATION_TYPE,
)
from crmflow.domain.errors import MissingParameterError

from .base import ActionContext, ActionEffect


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class CreateRecord(ActionEffect):
    name = "create_record"

    def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        table, data = config.get("table"), config.get("data")
        if _blank(table) or not isinstance(data, dict) or not data:
            raise MissingParameterError("Missing table or data")
        record = context.require_records().create_record(table, data)
        return {"action": self.name, "table": table, "record_id": record.get("id")}


class UpdateField(ActionEffect):
    name = "update_field"

    def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        table = config.get("table")
        record_id = config.get("record_id")
        field = config.get("field")
        if _blank(table) or _blank(record_id) or _blank(field):
            raise MissingParameterError("Missing table, record_id, or field")
        value = config.get("value")
        context.require_records().update_record(table, str(record_id), {field: value})
        return {"action": self.name, "table": table, "field": field, "value": value}


class SendNotification(ActionEffect):
    name = "send_notification"

    def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        title = config.get("title") or DEFAULT_NOTIFICATION_TITLE
        message = config.get("message") or DEFAULT_NOTIFICATION_MESSAGE
        notification_type = config.get("type") or DEFAULT_NOTIFICATION_TYPE
        context.require_records().notify(title, message, notification_type)
        return {"action": self.name, "title": title}


class LogChange(ActionEffect):
    name = "log_change"

    def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        description = config.get("description") or DEFAULT_LOG_DESCRIPTION
        context.require_records().log_change("Workflow", "automated_action", description)
        return {"action": self.name, "description": description}


BUILTIN_ACTIONS: tuple[type[ActionEffect], ...] = (
    CreateRecord,
    UpdateField,
    SendNotification,
    LogChange,
)

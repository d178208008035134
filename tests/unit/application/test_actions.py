"""Tests for the built-in action effects and ActionRegistry."""

from types import MappingProxyType
from unittest.mock import MagicMock

import pytest

from crmflow.application.actions import (
    ActionContext,
    ActionEffect,
    ActionRegistry,
    CreateRecord,
    LogChange,
    SendNotification,
    UpdateField,
)
from crmflow.domain.collaborators.record_gateway import RecordGateway
from crmflow.domain.errors import MissingParameterError, UnknownActionError


@pytest.fixture
def gateway() -> MagicMock:
    gw = MagicMock(spec=RecordGateway)
    gw.create_record.return_value = {"id": "T-1", "title": "Call back"}
    return gw


@pytest.fixture
def ctx(gateway) -> ActionContext:
    return ActionContext(trigger=MappingProxyType({"id": "L-1"}), records=gateway)


class TestCreateRecord:
    def test_creates_record(self, ctx, gateway):
        output = CreateRecord().execute({"table": "tasks", "data": {"title": "Call back"}}, ctx)
        gateway.create_record.assert_called_once_with("tasks", {"title": "Call back"})
        assert output == {"action": "create_record", "table": "tasks", "record_id": "T-1"}

    @pytest.mark.parametrize("config", [{}, {"table": "tasks"}, {"data": {"a": 1}}, {"table": "tasks", "data": {}}])
    def test_missing_table_or_data(self, ctx, gateway, config):
        with pytest.raises(MissingParameterError, match="Missing table or data"):
            CreateRecord().execute(config, ctx)
        gateway.create_record.assert_not_called()


class TestUpdateField:
    def test_updates_field(self, ctx, gateway):
        output = UpdateField().execute(
            {"table": "leads", "record_id": "L-1", "field": "status", "value": "qualified"}, ctx
        )
        gateway.update_record.assert_called_once_with("leads", "L-1", {"status": "qualified"})
        assert output["field"] == "status"
        assert output["value"] == "qualified"

    def test_record_id_is_stringified(self, ctx, gateway):
        UpdateField().execute({"table": "leads", "record_id": 42, "field": "score", "value": 90}, ctx)
        gateway.update_record.assert_called_once_with("leads", "42", {"score": 90})

    def test_missing_record_id(self, ctx):
        with pytest.raises(MissingParameterError, match="Missing table, record_id, or field"):
            UpdateField().execute({"table": "leads", "record_id": None, "field": "status"}, ctx)


class TestSendNotification:
    def test_defaults(self, ctx, gateway):
        output = SendNotification().execute({}, ctx)
        gateway.notify.assert_called_once_with(
            "Workflow Notification", "A workflow action was triggered", "info"
        )
        assert output == {"action": "send_notification", "title": "Workflow Notification"}

    def test_custom_values(self, ctx, gateway):
        SendNotification().execute({"title": "Hot lead", "message": "Call now", "type": "alert"}, ctx)
        gateway.notify.assert_called_once_with("Hot lead", "Call now", "alert")


class TestLogChange:
    def test_writes_audit_entry(self, ctx, gateway):
        output = LogChange().execute({"description": "Lead qualified"}, ctx)
        gateway.log_change.assert_called_once_with("Workflow", "automated_action", "Lead qualified")
        assert output == {"action": "log_change", "description": "Lead qualified"}

    def test_requires_gateway(self):
        with pytest.raises(MissingParameterError):
            LogChange().execute({}, ActionContext(trigger={}))


class TestActionRegistry:
    def test_builtins(self):
        registry = ActionRegistry.with_builtins()
        assert registry.list_actions() == ["create_record", "log_change", "send_notification", "update_field"]
        assert "log_change" in registry

    def test_unknown_action(self):
        with pytest.raises(UnknownActionError, match="Unknown action: teleport"):
            ActionRegistry.with_builtins().get("teleport")

    def test_registration_is_per_instance(self):
        class Noop(ActionEffect):
            name = "noop"

            def execute(self, config, context):
                return {"action": self.name}

        first = ActionRegistry.with_builtins()
        second = ActionRegistry.with_builtins()
        first.register("noop", Noop())
        assert "noop" in first
        assert "noop" not in second

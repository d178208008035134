"""Tests for InMemoryRecordGateway."""

from concurrent.futures import ThreadPoolExecutor

from crmflow.domain.collaborators.record_gateway import InMemoryRecordGateway


class TestInMemoryRecordGateway:
    def test_create_assigns_id(self):
        gateway = InMemoryRecordGateway()
        record = gateway.create_record("tasks", {"title": "Call back"})
        assert record["id"]
        assert gateway.tables["tasks"][record["id"]]["title"] == "Call back"

    def test_create_keeps_given_id(self):
        gateway = InMemoryRecordGateway()
        assert gateway.create_record("leads", {"id": "L-1"})["id"] == "L-1"

    def test_update_merges_fields(self):
        gateway = InMemoryRecordGateway()
        gateway.create_record("leads", {"id": "L-1", "status": "new", "owner": "kim"})
        gateway.update_record("leads", "L-1", {"status": "qualified"})
        assert gateway.tables["leads"]["L-1"] == {"id": "L-1", "status": "qualified", "owner": "kim"}

    def test_log_change_and_notify(self):
        gateway = InMemoryRecordGateway()
        gateway.log_change("Workflow", "automated_action", "Lead qualified")
        gateway.notify("Hot lead", "Call now", "workflow")
        assert gateway.changes[0]["description"] == "Lead qualified"
        assert gateway.changes[0]["entity"] == "Workflow"
        assert gateway.notifications == [{"title": "Hot lead", "message": "Call now", "type": "workflow"}]

    def test_concurrent_writes(self):
        gateway = InMemoryRecordGateway()
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: gateway.log_change("Workflow", "automated_action", str(i)), range(200)))
        assert len(gateway.changes) == 200

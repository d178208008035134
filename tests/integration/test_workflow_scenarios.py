"""End-to-end workflow runs against in-memory collaborators."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from conftest import FixedAgents, make_workflow

from crmflow.application.step_executor import StepExecutor
from crmflow.application.workflow_runner import WorkflowRunner
from crmflow.domain.collaborators.agent import AgentRegistry
from crmflow.domain.collaborators.dry_run import DryRunAgent, DryRunIntegrationAdapter
from crmflow.domain.collaborators.integration import IntegrationRegistry
from crmflow.domain.collaborators.record_gateway import InMemoryRecordGateway
from crmflow.domain.models.dispatch_result import DispatchResult
from crmflow.domain.models.execution_report import RunStatus
from crmflow.domain.persistence.workflow_file_store import FileWorkflowStore, load_definition_file


SCORE_GATE = [
    {"id": "score", "type": "condition", "field": "score", "operator": ">", "value": "80"},
    {"id": "log", "type": "action", "action": "log_change", "config": {"description": "High score lead"}},
]

# Mirrors the lead qualification template shipped with the CRM editor
LEAD_QUALIFICATION = [
    {
        "id": "qualify",
        "type": "agent",
        "config": {
            "agentId": "sales",
            "prompt": "Rate this lead from 0-100. Name: $trigger.name, company: $trigger.company. "
            "Reply with the number only.",
        },
    },
    {
        "id": "is-hot",
        "type": "condition",
        "field": "$step_qualify.response",
        "operator": ">=",
        "value": "80",
    },
    {
        "id": "flag",
        "type": "action",
        "action": "update_field",
        "config": {"table": "leads", "record_id": "$trigger.id", "field": "status", "value": "hot"},
    },
    {
        "id": "alert",
        "type": "integration",
        "config": {
            "integrationId": "slack",
            "action": "post_message",
            "channel": "#sales",
            "text": "Hot lead! $trigger.name scored $step_qualify.response",
        },
    },
    {
        "id": "notify",
        "type": "action",
        "action": "send_notification",
        "config": {"title": "Hot lead", "message": "Follow up with $trigger.name"},
    },
]

LEAD = {"id": "L-42", "name": "Ada Lovelace", "company": "Analytical Engines", "email": "ada@example.com"}


def _runner(reply: str, records: InMemoryRecordGateway, store=None) -> WorkflowRunner:
    integrations = IntegrationRegistry({"slack": DryRunIntegrationAdapter("slack")})
    agents = AgentRegistry({"sales": DryRunAgent("sales", reply=reply)})
    executor = StepExecutor(integrations=integrations, agents=agents, records=records)
    return WorkflowRunner(executor=executor, store=store)


class TestRunSemantics:
    def test_single_true_condition(self, runner):
        wf = make_workflow([{"id": "c", "type": "condition", "field": "status", "operator": "=", "value": "active"}])
        report = runner.execute_workflow(wf, {"status": "active"})
        assert report.success is True
        assert report.steps_executed == 1
        assert report.results[0].passed is True

    def test_false_condition_hides_later_steps(self, runner):
        wf = make_workflow(
            [
                {"id": "wait", "type": "delay", "config": {"duration": "1m"}},
                {"id": "c", "type": "condition", "field": "status", "operator": "=", "value": "active"},
                {"id": "log", "type": "action", "action": "log_change"},
            ]
        )
        report = runner.execute_workflow(wf, {"status": "closed"})
        assert report.steps_executed == 2
        assert [r.step_id for r in report.results] == ["wait", "c"]

    @pytest.mark.parametrize("operator,expected", [(">=", True), ("<", False)])
    def test_numeric_string_comparison(self, runner, operator, expected):
        wf = make_workflow([{"id": "c", "type": "condition", "field": "amount", "operator": operator, "value": "100"}])
        assert runner.execute_workflow(wf, {"amount": "150"}).results[0].passed is expected

    def test_contains(self, runner):
        wf = make_workflow(
            [{"id": "c", "type": "condition", "field": "email", "operator": "contains", "value": "@example.com"}]
        )
        assert runner.execute_workflow(wf, {"email": "user@example.com"}).results[0].passed is True

    @pytest.mark.parametrize("context", [{}, {"anything": 1}, {"duration": "2h"}])
    def test_delay_is_skipped_regardless_of_context(self, runner, context):
        wf = make_workflow([{"id": "wait", "type": "delay", "config": {"duration": "5m"}}])
        result = runner.execute_workflow(wf, context).results[0]
        assert result.skipped is True
        assert result.duration == "5m"

    def test_missing_collaborator_ids_are_isolated(self, runner):
        wf = make_workflow(
            [
                {"id": "i", "type": "integration", "config": {"action": "send_email"}},
                {"id": "a", "type": "agent", "config": {"prompt": "hello"}},
                {"id": "wait", "type": "delay", "config": {"duration": "5m"}},
            ]
        )
        report = runner.execute_workflow(wf, {})
        assert report.success is True
        assert report.steps_executed == 3
        assert "requires integrationId" in report.results[0].error
        assert "requires agentId" in report.results[1].error

    def test_idempotent_with_mocked_collaborators(self, mock_integrations):
        mock_integrations.invoke.return_value = DispatchResult.success({"sent": True})
        runner = WorkflowRunner(executor=StepExecutor(integrations=mock_integrations, agents=FixedAgents("70")))
        wf = make_workflow(
            [
                {"id": "q", "type": "agent", "config": {"agentId": "sales", "prompt": "score"}},
                {"id": "i", "type": "integration", "config": {"integrationId": "sendgrid"}},
                {"id": "c", "type": "condition", "field": "$step_q.response", "operator": ">", "value": "50"},
            ]
        )
        context = {"email": "a@b.c"}
        assert runner.execute_workflow(wf, context) == runner.execute_workflow(wf, context)

    def test_low_score_stops_before_action(self, runner, records):
        report = runner.execute_workflow(make_workflow(SCORE_GATE), {"score": "50"})
        assert report.success is True
        assert report.steps_executed == 1
        assert report.results[0].type == "condition"
        assert report.results[0].passed is False
        assert records.changes == []

    def test_high_score_runs_action(self, runner, records):
        report = runner.execute_workflow(make_workflow(SCORE_GATE), {"score": "90"})
        assert report.steps_executed == 2
        assert report.results[0].passed is True
        assert report.results[1].error is None
        assert report.results[1].output == {"action": "log_change", "description": "High score lead"}
        assert records.changes[0]["description"] == "High score lead"


class TestLeadQualification:
    def test_hot_lead(self):
        records = InMemoryRecordGateway()
        report = _runner("92", records).execute_workflow(make_workflow(LEAD_QUALIFICATION), LEAD)

        assert report.status is RunStatus.COMPLETED
        assert report.steps_executed == 5
        assert all(r.error is None for r in report.results)
        assert report.results[0].output == "92"
        assert records.tables["leads"]["L-42"]["status"] == "hot"
        assert report.results[3].output["params"] == {
            "channel": "#sales",
            "text": "Hot lead! Ada Lovelace scored 92",
        }
        assert records.notifications == [
            {"title": "Hot lead", "message": "Follow up with Ada Lovelace", "type": "info"}
        ]

    def test_cold_lead(self):
        records = InMemoryRecordGateway()
        report = _runner("35", records).execute_workflow(make_workflow(LEAD_QUALIFICATION), LEAD)

        assert report.status is RunStatus.SHORT_CIRCUITED
        assert report.steps_executed == 2
        assert records.tables == {}
        assert records.notifications == []

    def test_unparseable_agent_reply_fails_closed(self):
        records = InMemoryRecordGateway()
        report = _runner("I think it's pretty hot", records).execute_workflow(
            make_workflow(LEAD_QUALIFICATION), LEAD
        )
        assert report.status is RunStatus.SHORT_CIRCUITED
        assert report.results[1].passed is False

    def test_runs_recorded_in_store(self, store_root):
        store = FileWorkflowStore(root=store_root)
        wf = make_workflow(LEAD_QUALIFICATION, id="lead-qualification")
        store.save_workflow(wf)

        runner = _runner("92", InMemoryRecordGateway(), store=store)
        runner.execute_workflow(wf, LEAD)

        runs = store.list_runs("lead-qualification")
        assert len(runs) == 1
        assert store.load_run("lead-qualification", runs[0]).report.steps_executed == 5
        assert store.load_workflow("lead-qualification").run_count == 1


def test_concurrent_runs_share_one_runner():
    records = InMemoryRecordGateway()
    runner = _runner("92", records)
    wf = make_workflow(SCORE_GATE)
    contexts = [{"score": str(score)} for score in range(0, 200, 5)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        reports = list(pool.map(lambda ctx: runner.execute_workflow(wf, ctx), contexts))

    for ctx, report in zip(contexts, reports):
        expected = 2 if float(ctx["score"]) > 80 else 1
        assert report.steps_executed == expected
    assert len(records.changes) == sum(1 for ctx in contexts if float(ctx["score"]) > 80)


VIP_FLOW = """
name: VIP follow-up
steps:
  - id: is-vip
    type: condition
    field: vip
    operator: "="
    value: true
  - id: log
    type: action
    action: log_change
    config:
      description: VIP lead
"""


@pytest.mark.parametrize("vip", [True, "true"])
def test_yaml_boolean_condition_matches_boolean_field(tmp_path, vip):
    path = tmp_path / "vip-flow.yml"
    path.write_text(VIP_FLOW, encoding="utf-8")
    wf = load_definition_file(path)

    report = _runner("", InMemoryRecordGateway()).execute_workflow(wf, {"vip": vip})

    assert wf.steps[0].value == "true"
    assert report.results[0].passed is True
    assert report.steps_executed == 2


def test_yaml_boolean_condition_rejects_false_field(tmp_path):
    path = tmp_path / "vip-flow.yml"
    path.write_text(VIP_FLOW, encoding="utf-8")

    report = _runner("", InMemoryRecordGateway()).execute_workflow(load_definition_file(path), {"vip": False})

    assert report.status is RunStatus.SHORT_CIRCUITED

"""Stored form of one workflow run."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from crmflow.domain.models.execution_report import ExecutionReport


class RunRecord(BaseModel):
    """An ExecutionReport plus the identity the store assigns when saving it."""

    run_id: str
    workflow_id: str
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    report: ExecutionReport

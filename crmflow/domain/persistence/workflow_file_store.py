from pathlib import Path
from datetime import datetime, timezone
import json
import threading
import uuid
from typing import Any

import yaml
from pydantic import ValidationError

from crmflow.domain.collaborators.workflow_store import WorkflowStore
from crmflow.domain.constants import (
    DEFAULT_STORE_ROOT,
    TEMP_SUFFIX,
    RUNS_DIRNAME,
    WORKFLOW_SUFFIXES,
    WORKFLOWS_DIRNAME,
)
from crmflow.domain.errors import WorkflowLoadError, WorkflowNotFoundError
from crmflow.domain.models.execution_report import ExecutionReport
from crmflow.domain.models.run_record import RunRecord
from crmflow.domain.models.workflow_definition import WorkflowDefinition


def load_definition_file(path: Path) -> WorkflowDefinition:
    """
    Parse and validate a workflow definition file (YAML or JSON).

    Raises:
        FileNotFoundError: If the file doesn't exist
        WorkflowLoadError: If the file is malformed or fails validation
    """
    raw = path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw) if path.suffix == ".json" else yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise WorkflowLoadError(f"Malformed workflow file {path}: {e}") from e

    if not isinstance(data, dict):
        raise WorkflowLoadError(f"Workflow file root must be a mapping: {path}")

    # The file name is the id when the document does not carry one.
    data.setdefault("id", path.stem)
    try:
        return WorkflowDefinition.model_validate(data)
    except ValidationError as e:
        raise WorkflowLoadError(f"Invalid workflow definition {path}: {e}") from e


class FileWorkflowStore(WorkflowStore):
    """File-backed storage for workflow definitions and run history.

    Layout under ``root``:
        workflows/<workflow_id>.yml     definitions (.yml, .yaml or .json)
        runs/<workflow_id>/<run_id>.json
    """

    def __init__(self, root: Path | None = None):
        """
        Initialize the store.

        Args:
            root: Store root directory (default: .crmflow)
        """
        self.root = root or DEFAULT_STORE_ROOT
        self.workflows_dir = self.root / WORKFLOWS_DIRNAME
        self.runs_dir = self.root / RUNS_DIRNAME
        self.workflows_dir.mkdir(parents=True, exist_ok=True)
        self.runs_dir.mkdir(parents=True, exist_ok=True)
        # Serialises the read-modify-write of run bookkeeping
        self._lock = threading.Lock()

    def load_workflow(self, workflow_id: str) -> WorkflowDefinition:
        """
        Load a workflow definition.

        Raises:
            WorkflowNotFoundError: If no definition file exists
            WorkflowLoadError: If the definition is invalid
        """
        path = self._workflow_path(workflow_id)
        if path is None:
            raise WorkflowNotFoundError(workflow_id, self.workflows_dir)
        return load_definition_file(path)

    def save_workflow(self, workflow: WorkflowDefinition) -> Path:
        """
        Write a workflow definition, keeping its existing file format.

        Returns:
            Path to the written file
        """
        path = self._workflow_path(workflow.id) or self.workflows_dir / f"{workflow.id}.yml"
        data = workflow.model_dump(mode="json")
        if path.suffix == ".json":
            content = json.dumps(data, indent=2, ensure_ascii=False)
        else:
            content = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        self._write_atomic(path, content)
        return path

    def exists(self, workflow_id: str) -> bool:
        return self._workflow_path(workflow_id) is not None

    def list_workflows(self) -> list[str]:
        """List ids of all stored workflows."""
        ids = {
            p.stem
            for p in self.workflows_dir.iterdir()
            if p.is_file() and p.suffix in WORKFLOW_SUFFIXES
        }
        return sorted(ids)

    def save_run(self, workflow_id: str, report: ExecutionReport) -> Path:
        """
        Persist a run report and bump the workflow's run bookkeeping.

        Returns:
            Path to the saved run file
        """
        now = datetime.now(timezone.utc)
        run_id = f"{now.strftime('%Y%m%dT%H%M%S%f')}-{uuid.uuid4().hex[:8]}"
        record = RunRecord(run_id=run_id, workflow_id=workflow_id, saved_at=now, report=report)

        run_dir = self.runs_dir / workflow_id
        run_dir.mkdir(parents=True, exist_ok=True)
        run_file = run_dir / f"{run_id}.json"
        self._write_atomic(
            run_file,
            json.dumps(self._serialize(record), indent=2, ensure_ascii=False),
        )

        with self._lock:
            if self.exists(workflow_id):
                workflow = self.load_workflow(workflow_id)
                self.save_workflow(
                    workflow.model_copy(
                        update={"run_count": workflow.run_count + 1, "last_run_at": now}
                    )
                )
        return run_file

    def list_runs(self, workflow_id: str) -> list[str]:
        """List run ids of a workflow, oldest first."""
        run_dir = self.runs_dir / workflow_id
        if not run_dir.exists():
            return []
        return sorted(p.stem for p in run_dir.glob("*.json"))

    def load_run(self, workflow_id: str, run_id: str) -> RunRecord:
        """
        Load a stored run.

        Raises:
            FileNotFoundError: If the run doesn't exist
            ValueError: If the run file is invalid
        """
        run_file = self.runs_dir / workflow_id / f"{run_id}.json"
        if not run_file.exists():
            raise FileNotFoundError(f"Run '{run_id}' of workflow '{workflow_id}' not found")
        with open(run_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        try:
            return RunRecord.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid run data: {e}") from e

    def _workflow_path(self, workflow_id: str) -> Path | None:
        for suffix in WORKFLOW_SUFFIXES:
            candidate = self.workflows_dir / f"{workflow_id}{suffix}"
            if candidate.exists():
                return candidate
        return None

    def _serialize(self, record: RunRecord) -> dict[str, Any]:
        """Convert RunRecord to JSON-serializable dict."""
        return record.model_dump(mode="json", by_alias=True, exclude_none=True)

    def _write_atomic(self, path: Path, content: str) -> None:
        # Write to temp, then rename
        temp_file = path.with_name(path.name + TEMP_SUFFIX)
        with open(temp_file, "w", encoding="utf-8") as f:
            f.write(content)
        temp_file.replace(path)

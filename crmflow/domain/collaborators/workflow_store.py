from abc import ABC, abstractmethod

from crmflow.domain.models.execution_report import ExecutionReport
from crmflow.domain.models.workflow_definition import WorkflowDefinition


class WorkflowStore(ABC):
    """Storage collaborator: loads definitions and persists run reports.

    Implementations must be safe for concurrent use; the engine calls them from
    independent runs without coordination.
    """

    @abstractmethod
    def load_workflow(self, workflow_id: str) -> WorkflowDefinition:
        """Load a workflow definition.

        Raises:
            WorkflowNotFoundError: If no workflow has this id
            WorkflowLoadError: If the stored definition is invalid
        """
        ...

    @abstractmethod
    def save_run(self, workflow_id: str, report: ExecutionReport) -> None:
        """Persist the report of one run."""
        ...

"""Domain-level exceptions for the workflow automation engine."""


class WorkflowError(Exception):
    """Base class for engine errors."""

    pass


class WorkflowConfigurationError(WorkflowError):
    """Raised when a step is declared in a way the engine cannot execute.

    Reported per step; never aborts a run.
    """

    pass


class UnknownOperatorError(WorkflowConfigurationError):
    """Raised when a condition uses an operator outside the supported set."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"Unknown operator: {operator}")


class UnknownActionError(WorkflowConfigurationError):
    """Raised when an action step names an effect that is not registered."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class MissingParameterError(WorkflowConfigurationError):
    """Raised when a step or action lacks a required config key."""

    pass


class WorkflowInactiveError(WorkflowError):
    """Raised when an inactive workflow is asked to run (fatal)."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' is not active")


class DispatchError(WorkflowError):
    """Raised by collaborator adapters for failures (network, auth, etc.).

    Dispatchers convert it into a failed DispatchResult.
    """

    pass


class WorkflowNotFoundError(WorkflowError, FileNotFoundError):
    """Raised when the store has no workflow with the requested id."""

    def __init__(self, workflow_id: str, path=None):
        self.workflow_id = workflow_id
        message = f"Workflow '{workflow_id}' not found"
        if path is not None:
            message = f"{message} at {path}"
        super().__init__(message)


class WorkflowLoadError(WorkflowError, ValueError):
    """Raised when a stored workflow definition cannot be parsed or validated."""

    pass

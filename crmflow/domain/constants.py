from pathlib import Path

# Storage layout
DEFAULT_STORE_ROOT = Path(".crmflow")
WORKFLOWS_DIRNAME = "workflows"
RUNS_DIRNAME = "runs"
WORKFLOW_SUFFIXES = (".yml", ".yaml", ".json")
TEMP_SUFFIX = ".tmp"

# Step reference prefixes
TRIGGER_REF_PREFIX = "$trigger"
STEP_REF_PREFIX = "$step_"

# Built-in action defaults
DEFAULT_NOTIFICATION_TITLE = "Workflow Notification"
DEFAULT_NOTIFICATION_MESSAGE = "A workflow action was triggered"
DEFAULT_NOTIFICATION_TYPE = "info"
DEFAULT_LOG_DESCRIPTION = "Automated workflow action executed"
DEFAULT_DELAY_DURATION = "0s"

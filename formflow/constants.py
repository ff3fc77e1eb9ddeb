"""Default values shared across formflow modules."""

DEFAULT_WORKFLOWS_PATH = "workflows"
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_SESSION_PATH = ".formflow/sessions"
SESSION_KEY_PREFIX = "formflow"
DEFINITION_FILE_PATTERNS = ("*.yml", "*.yaml")

import os
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

STATE_DIR_NAME = ".toolpilot"
SESSIONS_DIR_NAME = "sessions"
CONFIG_FILE_NAME = "config.json"
ROLES_FILE_NAME = "roles.json"
HOME_STATE_DIR = os.path.join(os.path.expanduser("~"), STATE_DIR_NAME)

PROMPTS_DIR = os.path.join(BASE_DIR, "src", "agent_orchestrator", "prompts")
DEFAULT_SYSTEM_PROMPT_PATH = os.path.join(PROMPTS_DIR, "base_system_prompt.md")

LOG_LEVEL_ENV = "TOOLPILOT_LOG_LEVEL"

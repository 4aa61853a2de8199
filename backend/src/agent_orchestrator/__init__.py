"""Agent orchestrator: sessions, the model/tool loop, persistence and child sessions."""

from .config import AppConfig, LoggingSettings, SessionSettings, configure_logging, find_state_dir, load_config
from .models import (
    Message,
    MessageRole,
    Response,
    ResponseContent,
    ResponseType,
    Session,
    SessionStatus,
)
from .orchestrator import OrchestratorOptions, SessionOrchestrator
from .prompt import SystemPromptEnhancer
from .registry import SessionHierarchy, SessionRegistry
from .roles import RoleConfig, RoleLoader, RolesFile
from .session_store import SessionStorage
from .session_tools import SESSION_SERVER

__all__ = [
    "AppConfig",
    "LoggingSettings",
    "Message",
    "MessageRole",
    "OrchestratorOptions",
    "Response",
    "ResponseContent",
    "ResponseType",
    "RoleConfig",
    "RoleLoader",
    "RolesFile",
    "SESSION_SERVER",
    "Session",
    "SessionHierarchy",
    "SessionOrchestrator",
    "SessionRegistry",
    "SessionSettings",
    "SessionStatus",
    "SessionStorage",
    "SystemPromptEnhancer",
    "configure_logging",
    "find_state_dir",
    "load_config",
]

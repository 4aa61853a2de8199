"""Tools the orchestrator handles itself instead of dispatching to a server."""

from __future__ import annotations

from src.mcp_hub import ToolDescriptor, ToolExample

SESSION_SERVER = "session"
RUN_CHILD_SESSION = "run_child_session"
FINISH_CHILD_SESSION = "finish_child_session"

RUN_CHILD_SESSION_TOOL = ToolDescriptor(
    name=RUN_CHILD_SESSION,
    description=(
        "Start a child session with its own role to work on a sub-task. "
        "You will receive its summary as a message once it finishes."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "role": {"type": "string", "description": "Role for the child session"},
            "prompt": {"type": "string", "description": "Task for the child session"},
        },
        "required": ["role", "prompt"],
    },
    examples=[
        ToolExample(
            description="Delegate a code review",
            input={"role": "reviewer", "prompt": "Review src/app.py for error handling problems"},
        )
    ],
)

FINISH_CHILD_SESSION_TOOL = ToolDescriptor(
    name=FINISH_CHILD_SESSION,
    description="Finish this child session and send a summary of the outcome to the parent session.",
    input_schema={
        "type": "object",
        "properties": {
            "summary": {"type": "string", "description": "What was done and what was found"},
        },
        "required": ["summary"],
    },
    examples=[ToolExample(input={"summary": "Found two unhandled exceptions in src/app.py"})],
)


def session_tool_descriptors() -> list[ToolDescriptor]:
    return [RUN_CHILD_SESSION_TOOL, FINISH_CHILD_SESSION_TOOL]

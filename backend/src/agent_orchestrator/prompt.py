"""System prompt assembly from role, environment and the tool catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from src.mcp_hub import ToolCatalog

from .session_tools import FINISH_CHILD_SESSION, SESSION_SERVER
from .system_prompt_loader import get_default_system_prompt, get_prompt

CHILD_SESSION_RULES = f"""# Child Session

You are working on a sub-task delegated by another session. When the task is
done, call <{FINISH_CHILD_SESSION}> with a summary; the summary is all the
other session will see."""


@dataclass
class SystemPromptEnhancer:
    catalog: ToolCatalog
    working_directory: Path
    base_prompt: str | None = None
    sections: list[str] = field(default_factory=list)

    def add_section(self, text: str) -> None:
        if text.strip():
            self.sections.append(text.strip())

    def build(self, *, is_child: bool = False) -> str:
        parts = [self.base_prompt if self.base_prompt is not None else get_default_system_prompt()]
        parts.extend(self.sections)
        parts.append(f"# Environment\n\nWorking directory: {self.working_directory}")
        parts.append(get_prompt("tool_use_rules"))
        tools = self._tools_section(include_finish=is_child)
        if tools:
            parts.append(tools)
        if is_child:
            parts.append(CHILD_SESSION_RULES)
        return "\n\n".join(p for p in parts if p)

    def _tools_section(self, *, include_finish: bool) -> str:
        blocks: list[str] = []
        for name in self.catalog.get_all_tools():
            doc = self.catalog.get_tool_documentation(name)
            if doc is None:
                continue
            if doc.server_name == SESSION_SERVER and name == FINISH_CHILD_SESSION and not include_finish:
                continue
            schema = doc.schema or {}
            required = set(schema.get("required") or ())
            params = []
            for param, prop in (schema.get("properties") or {}).items():
                line = f"- {param} (required)" if param in required else f"- {param}"
                if prop.get("description"):
                    line = f"{line}: {prop['description']}"
                params.append(line)
            lines = [f"## {name}", f"Server: {doc.server_name}"]
            if doc.description:
                lines.append(doc.description)
            if params:
                lines.append("Parameters:\n" + "\n".join(params))
            lines.append(f"Usage:\n{doc.usage}")
            if doc.examples:
                lines.append(f"Example:\n{doc.examples[0]}")
            blocks.append("\n".join(lines))
        if not blocks:
            return ""
        return "# Available Tools\n\n" + "\n\n".join(blocks)

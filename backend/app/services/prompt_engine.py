"""Jinja2 prompt templates for the language-model calls.

Templates live in ``prompts/`` at the project root (``settings.prompts_dir``)
and are rendered as plain text, no HTML escaping.
"""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from backend.app.config import PROMPTS_DIR

PROCESS_TASK_TEMPLATE = "process_task.md.j2"
GENERATE_CODE_TEMPLATE = "generate_code.md.j2"


class PromptEngine:
    def __init__(self, prompts_dir: Path | None = None) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(prompts_dir or PROMPTS_DIR)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, **context: object) -> str:
        return self._env.get_template(template_name).render(**context)

    def render_task_analysis(self, description: str) -> str:
        """Free-text analysis prompt used by the task processor."""
        return self.render(PROCESS_TASK_TEMPLATE, description=description)

    def render_code_generation(self, description: str, language: str = "TypeScript") -> str:
        """Structured-output prompt asking for ``{files: [...], explanation}`` JSON."""
        return self.render(GENERATE_CODE_TEMPLATE, description=description, language=language)

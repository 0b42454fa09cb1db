"""Bootstrap prompt template stored in the workspace.

The template is plain text with a single ``{{doc}}`` placeholder that the
builder replaces with the cursor-annotated document. Users edit the file
directly; ``restore_default`` puts the shipped template back.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from editpilot.core.errors import PromptError

logger = structlog.get_logger()

DOC_PLACEHOLDER = "{{doc}}"

DEFAULT_TEMPLATE = """\
You are a writing copilot sitting next to an author while they edit a document.
The marker <|cursor|> shows where they are currently typing.

Give short, concrete feedback on the passage around the cursor: clarity,
flow, factual slips, and what might come next. Quote the words you are
commenting on. Do not rewrite the whole document and do not repeat it back.
Keep the answer under 150 words.

Later messages in this conversation will only show the lines around the
cursor. Use the Read tool on the file if you need more context.

Document:

{{doc}}
"""


def validate_template(text: str, source: str = "<template>") -> str:
    """Return ``text`` if it holds exactly one placeholder, else raise PromptError."""
    count = text.count(DOC_PLACEHOLDER)
    if count != 1:
        raise PromptError.bad_template(source, DOC_PLACEHOLDER, count)
    return text


class PromptTemplateStore:
    """Loads, creates and restores the template file at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> str:
        """Template text, falling back to the built-in default when absent."""
        if not self.path.exists():
            logger.debug("prompt_template_default", path=str(self.path))
            return DEFAULT_TEMPLATE
        text = self.path.read_text(encoding="utf-8")
        return validate_template(text, str(self.path))

    def ensure(self) -> Path:
        """Write the default template if the file does not exist yet."""
        if not self.path.exists():
            self._write_default()
        return self.path

    def restore_default(self) -> Path:
        self._write_default()
        logger.info("prompt_template_restored", path=str(self.path))
        return self.path

    def _write_default(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(DEFAULT_TEMPLATE, encoding="utf-8")

"""Prompt template registry with variable injection and versioning."""
from __future__ import annotations
from pathlib import Path
import hashlib

TEMPLATES_DIR = Path(__file__).parent / "templates"


class PromptRegistry:
    """Loads markdown prompt templates and fills ``{placeholder}`` variables."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self._templates_dir = templates_dir
        self._cache: dict[str, str] = {}

    def load_template(self, name: str) -> str:
        """Load a prompt template by name (e.g., 'bill_extraction_user')."""
        if name not in self._cache:
            path = self._templates_dir / f"{name}.md"
            if not path.exists():
                raise FileNotFoundError(f"Prompt template not found: {path}")
            self._cache[name] = path.read_text(encoding="utf-8")
        return self._cache[name]

    def render(self, template_name: str, variables: dict | None = None) -> str:
        """Render a prompt template with variable substitution."""
        template = self.load_template(template_name)
        if variables:
            for key, value in variables.items():
                template = template.replace(f"{{{key}}}", str(value))
        return template

    def get_version(self, template_name: str) -> str:
        """Short content hash, logged with each extraction for reproducibility."""
        content = self.load_template(template_name)
        return "v1-" + hashlib.sha256(content.encode("utf-8")).hexdigest()[:8]

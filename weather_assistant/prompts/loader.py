"""
Jinja2 loader for the direct-mode prompts.

Loads .jinja2 files from the templates directory next to this module. Missing
template variables raise instead of rendering as blanks.
"""

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .templates import Template

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _validate_templates():
    """Every Template constant must have a file. Fails fast at import."""
    for name in dir(Template):
        if name.startswith("_"):
            continue
        path = TEMPLATES_DIR / f"{getattr(Template, name)}.jinja2"
        if not path.exists():
            raise FileNotFoundError(f"Prompt template missing: {path}")


_validate_templates()


@lru_cache(maxsize=1)
def _get_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
    )


def render(template_name: str, **context) -> str:
    """
    Args:
        template_name: A Template constant (file name without .jinja2)
        **context: Variables referenced by the template

    Returns:
        Rendered prompt text
    """
    template = _get_environment().get_template(f"{template_name}.jinja2")
    return template.render(**context).strip()

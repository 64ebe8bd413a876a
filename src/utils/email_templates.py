"""
Email template loading and placeholder substitution.

Templates are HTML files with {{Placeholder}} markers.
"""

import logging
import pathlib
from typing import Mapping, Optional

from core.config import EMAIL_TEMPLATE_DIR

logger = logging.getLogger(__name__)


def load_template(name: str, template_dir: Optional[str] = None) -> str:
    """
    Read a template file.

    Relative template directories resolve against the current working directory.

    Raises:
        FileNotFoundError: If the template does not exist
    """
    path = pathlib.Path(template_dir or EMAIL_TEMPLATE_DIR) / name
    if not path.is_file():
        raise FileNotFoundError(f"Email template not found: {path}")
    return path.read_text(encoding="utf-8")


def load_template_or_default(name: str, default: str, template_dir: Optional[str] = None) -> str:
    """Read a template file, falling back to an inline template when it is missing."""
    try:
        return load_template(name, template_dir)
    except FileNotFoundError:
        logger.warning(f"Email template {name} not found, using fallback template")
        return default


def render_template(template: str, values: Mapping[str, object]) -> str:
    """Replace every {{Key}} in the template with str(values[Key])."""
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{{" + key + "}}", "" if value is None else str(value))
    return rendered

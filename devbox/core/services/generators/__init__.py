"""
Generators — render a Plan into the files under .devbox/gen/.

Templates are Jinja2 files packaged in ``templates/``.  A template set
maps template names to output paths; ``generate()`` renders a whole
set and writes it.
"""

from devbox.core.services.generators.render import (
    BUILD_FILES,
    SHELL_FILES,
    SHELL_FILES_FLAKES,
    GenerationContext,
    generate,
    render_templates,
)

__all__ = [
    "BUILD_FILES",
    "GenerationContext",
    "SHELL_FILES",
    "SHELL_FILES_FLAKES",
    "generate",
    "render_templates",
]

"""Code generators.

    python -m app.generators scaffold Post
    python -m app.generators scaffold Profile --singleton
    python -m app.generators scaffold Post --namespace admin --pretend
"""
from app.generators.scaffold import (
    GeneratedFile,
    GeneratorError,
    generate_controller_test,
    render_controller_test,
    resolve_names,
)

__all__ = [
    "GeneratedFile",
    "GeneratorError",
    "generate_controller_test",
    "render_controller_test",
    "resolve_names",
]

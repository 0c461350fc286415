"""Scaffold generator for controller tests.

Expands ``templates/controller_test.py.jinja`` for one resource and writes the
result under ``tests/controllers/``.
"""
import ast
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from app.core.inflection import ResourceNames
from app.core.logging import get_logger, LogTimer

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
CONTROLLER_TEST_TEMPLATE = "controller_test.py.jinja"

# Names the generated tests already bind; a record variable must not shadow them.
RESERVED_NAMES = {
    "client", "path_for", "status", "pytest", "response", "before", "self",
    "valid_attributes", "invalid_attributes", "new_attributes", "valid_session",
    "attributes_for",
}


class GeneratorError(Exception):
    """Raised when a scaffold cannot be generated."""


@dataclass
class GeneratedFile:
    """A rendered file and where it belongs."""
    path: Path
    source: str
    written: bool = False


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        undefined=StrictUndefined,
        trim_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )


def _ensure_packages(directory: Path, levels: int) -> None:
    # Test module basenames repeat across namespaces, so each namespace directory is a package.
    for _ in range(levels):
        init = directory / "__init__.py"
        if not init.exists():
            init.touch()
        directory = directory.parent


def template_context(names: ResourceNames) -> Dict[str, Any]:
    """Placeholder values for the controller test template."""
    var_name = names.file_name
    if var_name in RESERVED_NAMES or var_name == names.class_name:
        var_name = f"{var_name}_record"

    if names.singleton:
        member_args = ""
        last_member_args = ""
    else:
        member_args = f", id={var_name}.id"
        last_member_args = f", id={names.class_name}.objects.last().id"

    return {
        "class_name": names.class_name,
        "controller_class_name": names.controller_class_name,
        "file_name": names.file_name,
        "table_name": names.table_name,
        "ns_file_name": names.ns_file_name,
        "index_helper": names.index_helper,
        "model_module": names.model_module,
        "singleton": names.singleton,
        "namespace": ".".join(names.namespace),
        "var_name": var_name,
        "member_args": member_args,
        "last_member_args": last_member_args,
        "index_route": names.route_name("index"),
        "show_route": names.route_name("show"),
        "new_route": names.route_name("new"),
        "edit_route": names.route_name("edit"),
        "create_route": names.route_name("create"),
        "update_route": names.route_name("update"),
        "destroy_route": names.route_name("destroy"),
    }


def resolve_names(
    name: str,
    namespace: Union[str, Sequence[str], None] = None,
    singleton: bool = False,
) -> ResourceNames:
    try:
        return ResourceNames.from_name(name, namespace=namespace, singleton=singleton)
    except ValueError as e:
        raise GeneratorError(str(e)) from e


def render_controller_test(names: ResourceNames) -> str:
    """Render the controller test module for a resource.

    Raises:
        GeneratorError: If the rendered source is not valid Python
    """
    with LogTimer(logger, f"render_controller_test:{names.ns_table_name}"):
        template = _environment().get_template(CONTROLLER_TEST_TEMPLATE)
        source = template.render(**template_context(names))

    try:
        ast.parse(source)
    except SyntaxError as e:
        raise GeneratorError(f"Generated test for {names.class_name} is not valid Python: {e}") from e
    return source


def generate_controller_test(
    name: str,
    namespace: Union[str, Sequence[str], None] = None,
    singleton: bool = False,
    root: Optional[Path] = None,
    force: bool = False,
    pretend: bool = False,
) -> GeneratedFile:
    """Render and write ``tests/controllers/.../test_<table>_controller.py``.

    Args:
        name: Resource name (``Post``, ``blog_post``)
        namespace: Optional namespace (``admin`` or ``admin/reports``)
        singleton: Generate tests for a singular resource (no index)
        root: Project root, defaults to the current directory
        force: Overwrite an existing file
        pretend: Render only, do not touch the filesystem

    Raises:
        GeneratorError: On invalid names or when the file exists without ``force``
    """
    names = resolve_names(name, namespace=namespace, singleton=singleton)
    path = names.test_path(root)
    source = render_controller_test(names)
    generated = GeneratedFile(path=path, source=source)

    if pretend:
        return generated

    if path.exists() and not force:
        raise GeneratorError(f"{path} already exists (use --force to overwrite)")

    path.parent.mkdir(parents=True, exist_ok=True)
    _ensure_packages(path.parent, levels=len(names.namespace))
    path.write_text(source, encoding="utf-8")
    generated.written = True
    logger.info(f"Generated {path}", extra={"operation": "scaffold"})
    return generated

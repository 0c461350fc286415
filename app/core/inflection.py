"""Resource naming conventions shared by the resource controller and generators.

Converts a resource name such as ``BlogPost`` (optionally namespaced and/or
singular) into every derived name the conventions rely on: model class,
file/table names, route names, URL prefix and template directory.
"""
import keyword
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

UNCOUNTABLE = {
    "equipment", "information", "rice", "money", "species",
    "series", "fish", "sheep", "news", "data", "metadata",
}

IRREGULAR = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
    "goose": "geese",
    "ox": "oxen",
}

_PLURAL_RULES = [
    (re.compile(r"(quiz)$"), r"\1zes"),
    (re.compile(r"(matr|vert|ind)(?:ix|ex)$"), r"\1ices"),
    (re.compile(r"(x|ch|ss|sh|zz)$"), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$"), r"\1ies"),
    (re.compile(r"(?:([^f])fe|([lr])f)$"), r"\1\2ves"),
    (re.compile(r"(bu|statu|alia)s$"), r"\1ses"),
    (re.compile(r"(octop|vir)us$"), r"\1i"),
    (re.compile(r"(ax|test)is$"), r"\1es"),
    (re.compile(r"s$"), "s"),
    (re.compile(r"$"), "s"),
]

_SINGULAR_RULES = [
    (re.compile(r"(quiz)zes$"), r"\1"),
    (re.compile(r"(matr)ices$"), r"\1ix"),
    (re.compile(r"(vert|ind)ices$"), r"\1ex"),
    (re.compile(r"(octop|vir)i$"), r"\1us"),
    (re.compile(r"(bu|statu|alia)ses$"), r"\1s"),
    (re.compile(r"(x|ch|ss|sh|zz)es$"), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$"), r"\1y"),
    (re.compile(r"([lr])ves$"), r"\1f"),
    (re.compile(r"([^f])ves$"), r"\1fe"),
    (re.compile(r"(ax|test)es$"), r"\1is"),
    (re.compile(r"(ss|us|is)$"), r"\1"),
    (re.compile(r"s$"), ""),
]


def underscore(word: str) -> str:
    """Convert ``CamelCase`` to ``snake_case``."""
    word = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", word)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    return word.replace("-", "_").lower()


def camelize(word: str) -> str:
    """Convert ``snake_case`` to ``CamelCase``."""
    return "".join(part[:1].upper() + part[1:] for part in word.split("_") if part)


def _inflect_last(word: str, table: dict, rules: list) -> str:
    head, _, last = word.rpartition("_")
    prefix = f"{head}_" if head else ""

    if last in UNCOUNTABLE:
        return word
    if last in table:
        return prefix + table[last]
    for pattern, replacement in rules:
        if pattern.search(last):
            return prefix + pattern.sub(replacement, last, count=1)
    return word


def pluralize(word: str) -> str:
    """Pluralize the last segment of a snake_case word."""
    return _inflect_last(word, IRREGULAR, _PLURAL_RULES)


def singularize(word: str) -> str:
    """Singularize the last segment of a snake_case word."""
    if word.rpartition("_")[2] in IRREGULAR:
        return word
    reverse = {plural: singular for singular, plural in IRREGULAR.items()}
    return _inflect_last(word, reverse, _SINGULAR_RULES)


def _split_namespace(namespace: Union[str, Sequence[str], None]) -> tuple:
    if not namespace:
        return ()
    if isinstance(namespace, str):
        parts = re.split(r"[./:]+", namespace.strip("./:"))
    else:
        parts = list(namespace)
    return tuple(underscore(part) for part in parts if part)


def _check_identifier(value: str, what: str) -> None:
    if not _IDENTIFIER.match(value) or keyword.iskeyword(underscore(value)):
        raise ValueError(f"Invalid {what}: {value!r}")


@dataclass(frozen=True)
class ResourceNames:
    """All names derived from one resource name.

    Attributes:
        class_name: Model class name (``BlogPost``)
        file_name: Singular snake_case name (``blog_post``)
        table_name: Plural snake_case name (``blog_posts``)
        namespace: Namespace segments (``("admin",)``)
        singleton: Whether the resource is addressed without an id
    """
    class_name: str
    file_name: str
    table_name: str
    namespace: tuple = field(default_factory=tuple)
    singleton: bool = False

    @classmethod
    def from_name(
        cls,
        name: str,
        namespace: Union[str, Sequence[str], None] = None,
        singleton: bool = False,
    ) -> "ResourceNames":
        """Derive resource names from a model or resource name.

        Raises:
            ValueError: If the name or a namespace segment is not a valid identifier
        """
        if not name:
            raise ValueError("Resource name must not be empty")
        _check_identifier(name, "resource name")
        parts = _split_namespace(namespace)
        for part in parts:
            _check_identifier(part, "namespace")

        file_name = singularize(underscore(name))
        # A singular CamelCase name is kept as written (HTTPRequest, not HttpRequest)
        if name[0].isupper() and "_" not in name and file_name == underscore(name):
            class_name = name
        else:
            class_name = camelize(file_name)
        return cls(
            class_name=class_name,
            file_name=file_name,
            table_name=pluralize(file_name),
            namespace=parts,
            singleton=singleton,
        )

    @property
    def controller_class_name(self) -> str:
        return "".join(camelize(part) for part in self.namespace) + camelize(self.table_name)

    @property
    def ns_file_name(self) -> str:
        return "_".join(self.namespace + (self.file_name,))

    @property
    def ns_table_name(self) -> str:
        return "_".join(self.namespace + (self.table_name,))

    @property
    def human_name(self) -> str:
        return self.file_name.replace("_", " ").capitalize()

    @property
    def route_prefix(self) -> str:
        resource = self.file_name if self.singleton else self.table_name
        return "/" + "/".join(self.namespace + (resource,))

    @property
    def template_dir(self) -> str:
        return "/".join(self.namespace + (self.table_name,))

    @property
    def model_module(self) -> str:
        return ".".join(("app", "domain") + self.namespace + (self.file_name,))

    @property
    def index_helper(self) -> str:
        """Route name that destroy redirects to."""
        return "root" if self.singleton else self.ns_table_name

    def route_name(self, action: str) -> str:
        """Return the route name for a conventional action."""
        if action == "index":
            return self.ns_table_name
        if action == "show":
            return self.ns_file_name
        return f"{action}_{self.ns_file_name}"

    @property
    def actions(self) -> tuple:
        actions = ("index", "show", "new", "edit", "create", "update", "destroy")
        return actions[1:] if self.singleton else actions

    def test_path(self, root: Optional[Path] = None) -> Path:
        base = Path(root) if root is not None else Path(".")
        return base.joinpath("tests", "controllers", *self.namespace, f"test_{self.table_name}_controller.py")

"""
Base class for code generation backends.

Defines the interface that all language-specific backends must implement.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import jinja2

from ...utils import snake_to_pascal_case
from ..analyzer.ir_nodes import IRConstraints, IRMetadata, IRPrimitive, IRSchema, IRType, IRTypeDefinition, IRUnion, referenced_names
from ..config import CodeGeneratorConfig
from ..errors import DuplicateSchemaName, UnresolvedReference

logger = logging.getLogger(__name__)

# Constraint keywords rendered as documentation tags, in rendering order
DOC_TAG_KEYWORDS = (
    "minLength",
    "maxLength",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "minProperties",
    "maxProperties",
    "enum",
)


def json_value(value: Any) -> str:
    """Render a value the way JSON.stringify would."""
    return json.dumps(value, ensure_ascii=False)


def tag_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class CodeBackend(ABC):
    """Abstract base class for code generation backends."""

    # Type mapping from primitive kinds to language types
    TYPE_MAP: dict[str, str] = {}

    # Template directory name
    TEMPLATE_LANG: str = ""

    # File extension
    FILE_EXTENSION: str = ""

    def __init__(self, config: CodeGeneratorConfig | None = None):
        """
        Initialize the backend.

        Args:
            config: Code generation configuration
        """
        self.config = config or CodeGeneratorConfig()
        self.reset()
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=False,
        )
        # Add custom filters
        self.jinja_env.filters["snake_to_pascal"] = snake_to_pascal_case

        self.prefix_template = self.jinja_env.get_template(f"prefix.{self.FILE_EXTENSION}.jinja2")
        self.declaration_template = self.jinja_env.get_template(f"declaration.{self.FILE_EXTENSION}.jinja2")

    @abstractmethod
    def identifier(self, name: str) -> str:
        """
        Convert a schema name to a target-language identifier.

        Args:
            name: The schema name

        Returns:
            The identifier used for declarations and references
        """

    @abstractmethod
    def translate_type(self, node: IRType, indent: int = 0) -> str:
        """
        Translate an IR type to a language-specific type string.

        Args:
            node: The IR type node
            indent: Nesting level, for multi-line renderings

        Returns:
            Language-specific type string
        """

    @abstractmethod
    def declaration_context(self, type_def: IRTypeDefinition) -> dict[str, Any]:
        """
        Prepare the template context for one declaration.

        Args:
            type_def: The named type

        Returns:
            Dictionary of template variables
        """

    @abstractmethod
    def format_doc(self, lines: list[str], indent: int = 0) -> str:
        """Format documentation lines as a comment block ('' when there are none)."""

    def reset(self) -> None:
        """Clear per-emission state."""
        self.names: dict[str, str] = {}

    def emit(self, ir_schema: IRSchema) -> dict[str, str]:
        """
        Emit one declaration per type definition.

        Args:
            ir_schema: The converted schema

        Returns:
            Mapping from schema name to declaration text, in definition order

        Raises:
            DuplicateSchemaName: If two names map to the same identifier
            UnresolvedReference: If a reference names an undefined type
        """
        self.reset()
        self.names = self.check_names(ir_schema)
        self.check_references(ir_schema)
        self.prepare(ir_schema)

        declarations: dict[str, str] = {}
        for type_def in ir_schema.types:
            logger.debug("Emitting %s declaration %s", self.TEMPLATE_LANG, type_def.name)
            declarations[type_def.name] = self.declaration_template.render(self.declaration_context(type_def)).rstrip()
        return declarations

    def prepare(self, ir_schema: IRSchema) -> None:
        """Hook run once before the declarations are rendered."""

    def render_prefix(self, generation_comment: str = "") -> str:
        """Render the output unit header. Called after emit()."""
        return self.prefix_template.render(generation_comment=generation_comment).strip()

    def generate(self, ir_schema: IRSchema, generation_comment: str = "") -> str:
        """Emit all declarations and assemble them into one output unit."""
        declarations = self.emit(ir_schema)
        parts = [self.render_prefix(generation_comment)] + [declarations[name] for name in self.output_order(ir_schema)]
        return "\n\n".join(part for part in parts if part) + "\n"

    def output_order(self, ir_schema: IRSchema) -> list[str]:
        """Order of the declarations in the output unit. Called after emit()."""
        return ir_schema.names()

    def check_names(self, ir_schema: IRSchema) -> dict[str, str]:
        """Map every schema name to its identifier, rejecting collisions."""
        identifiers: dict[str, str] = {}
        owners: dict[str, str] = {}
        for name in ir_schema.names():
            ident = self.identifier(name)
            if ident in owners:
                raise DuplicateSchemaName(name, f"'{owners[ident]}' and '{name}' both become '{ident}'")
            owners[ident] = name
            identifiers[name] = ident
        return identifiers

    def check_references(self, ir_schema: IRSchema) -> None:
        defined = set(ir_schema.names())
        for type_def in ir_schema.types:
            for name in referenced_names(type_def.type):
                if name not in defined:
                    raise UnresolvedReference(name, "schemas", type_def.name)

    def reference_name(self, name: str) -> str:
        return self.names.get(name) or self.identifier(name)

    def doc_lines(self, node: IRType | None, metadata: IRMetadata | None = None) -> list[str]:
        """
        Collect documentation lines for a node.

        Description comes first, then the format, deprecation, constraint,
        default and example tags. Metadata defaults to the node's own; the
        format and constraints of a nullable union are taken from its members.
        """
        if not self.config.include_docs:
            return []

        metadata = metadata or (node.metadata if node is not None else None)
        fmt, constraints = self._format_and_constraints(node)

        lines: list[str] = []
        if metadata and metadata.description:
            lines.extend(metadata.description.strip().splitlines())

        if self.config.include_constraint_tags:
            if fmt:
                lines.append(f"@format {fmt}")
        if metadata and metadata.deprecated:
            lines.append("@deprecated")
        if self.config.include_constraint_tags:
            if constraints is not None:
                values = dict(constraints.items())
                for keyword in DOC_TAG_KEYWORDS:
                    if keyword not in values:
                        continue
                    if keyword == "enum":
                        lines.append("@enum " + ", ".join("" if v is None else tag_value(v) for v in values[keyword]))
                    else:
                        lines.append(f"@{keyword} {tag_value(values[keyword])}")
            if metadata and metadata.has_default:
                lines.append(f"@default {json_value(metadata.default)}")
            if metadata:
                for example in metadata.examples:
                    lines.append(f"@example {json_value(example)}")
        return lines

    def _format_and_constraints(self, node: IRType | None) -> tuple[str | None, IRConstraints | None]:
        if node is None:
            return None, None
        candidates = [node]
        if isinstance(node, IRUnion):
            candidates.extend(node.members)
        fmt = next((c.format for c in candidates if isinstance(c, IRPrimitive) and c.format), None)
        constraints = next((c.constraints for c in candidates if c.constraints is not None), None)
        return fmt, constraints

"""
Python code generation backend.

Generates TypedDict classes and PEP 695 type aliases from IR.
"""

from __future__ import annotations

import collections
import json
import keyword
from typing import Any

from ...utils import snake_to_pascal_case
from ..analyzer.ir_nodes import (
    IRArray,
    IRIntersection,
    IRLiteral,
    IRMap,
    IRObject,
    IRPrimitive,
    IRProperty,
    IRReference,
    IRSchema,
    IRType,
    IRTypeDefinition,
    IRUnion,
    PrimitiveKind,
)
from ..errors import InvalidDocument
from .base import CodeBackend

# Rendering of anonymous objects and intersections, which have no inline syntax
OPAQUE_MAPPING = "dict[str, Any]"


def is_python_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def split_union(text: str) -> list[str]:
    """Split a rendered type on its top-level ' | ' separators."""
    parts = []
    depth = 0
    start = 0
    for i, char in enumerate(text):
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        elif depth == 0 and text.startswith(" | ", i):
            parts.append(text[start:i])
            start = i + 3
    parts.append(text[start:])
    return parts


class PythonBackend(CodeBackend):
    """Python code generation backend."""

    TEMPLATE_LANG = "python"
    FILE_EXTENSION = "py"

    TYPE_MAP = {
        "string": "str",
        "number": "float",
        "integer": "int",
        "boolean": "bool",
        "null": "None",
        "any": "Any",
        "void": "None",
    }

    def reset(self) -> None:
        super().reset()
        self.python_imports: set[tuple[str, str]] = set()
        self.notes: list[str] = []
        self.class_names: set[str] = set()

    def identifier(self, name: str) -> str:
        ident = snake_to_pascal_case(name)
        if not ident:
            raise InvalidDocument(f"Schema name {name!r} has no characters usable in a Python identifier")
        if ident[0].isdigit():
            ident = "_" + ident
        if keyword.iskeyword(ident):
            ident += "_"
        return ident

    def prepare(self, ir_schema: IRSchema) -> None:
        self.class_names = self._class_form_names(ir_schema)
        if self.config.use_future_annotations:
            self.python_imports.add(("__future__", "annotations"))

    def render_prefix(self, generation_comment: str = "") -> str:
        return self.prefix_template.render(
            generation_comment=generation_comment,
            required_imports=self._assemble_imports(),
        ).strip()

    def format_doc(self, lines: list[str], indent: int = 0) -> str:
        pad = "    " * indent
        return "\n".join(f"{pad}# {line}".rstrip() for line in lines)

    def _class_form_names(self, ir_schema: IRSchema) -> set[str]:
        """Names of the definitions that become TypedDict classes."""
        by_name = {t.name: t.type for t in ir_schema.types}
        result: set[str] = set()

        def is_class(name: str, seen: frozenset[str]) -> bool:
            node = by_name.get(name)
            if node is None or name in seen:
                return False
            if isinstance(node, IRObject):
                return True
            if isinstance(node, IRIntersection):
                # Subclasses need class syntax, so every inherited-into key must be an identifier
                return all(
                    (isinstance(m, IRObject) and all(is_python_identifier(p.name) for p in m.properties))
                    or (isinstance(m, IRReference) and is_class(m.name, seen | {name}))
                    for m in node.members
                )
            return False

        for name in by_name:
            if is_class(name, frozenset()):
                result.add(name)
        return result

    def output_order(self, ir_schema: IRSchema) -> list[str]:
        """Definition order, except that base classes come before their subclasses."""
        # Class bases are evaluated at class creation, even with postponed annotations
        by_name = {t.name: t.type for t in ir_schema.types}
        ordered: list[str] = []

        def place(name: str) -> None:
            if name in ordered:
                return
            node = by_name[name]
            if name in self.class_names and isinstance(node, IRIntersection):
                for member in node.members:
                    if isinstance(member, IRReference):
                        place(member.name)
            ordered.append(name)

        for name in by_name:
            place(name)
        return ordered

    def translate_type(self, node: IRType, indent: int = 0) -> str:
        match node:
            case IRPrimitive():
                if node.primitive_kind is PrimitiveKind.ANY:
                    self.python_imports.add(("typing", "Any"))
                return self.TYPE_MAP[node.primitive_kind.value]
            case IRLiteral():
                return self._literal([node.value])
            case IRUnion():
                return self._union(node)
            case IRIntersection():
                if len(node.members) == 1:
                    return self.translate_type(node.members[0])
                self.python_imports.add(("typing", "Any"))
                return OPAQUE_MAPPING
            case IRArray():
                return f"list[{self.translate_type(node.items)}]"
            case IRMap():
                return f"dict[{self.translate_type(node.key)}, {self.translate_type(node.value)}]"
            case IRObject():
                self.python_imports.add(("typing", "Any"))
                if node.properties:
                    self.notes.append(self._object_note(node))
                return OPAQUE_MAPPING
            case IRReference():
                return self.reference_name(node.name)
        raise TypeError(f"Unknown IR node: {node!r}")

    def _object_note(self, node: IRObject) -> str:
        """Describe the keys an opaque nested object has."""
        fields = ", ".join(f"{p.name}{'' if p.required else '?'}: {self.translate_type(p.type)}" for p in node.properties)
        return f"object: {{{fields}}}"

    def _literal(self, values: list[Any]) -> str:
        """Render literal values; floats cannot be Literal members and widen to float."""
        parts = []
        exact = [v for v in values if v is not None and not isinstance(v, float)]
        if exact:
            self.python_imports.add(("typing", "Literal"))
            parts.append(f"Literal[{', '.join(self._literal_value(v) for v in exact)}]")
        floats = [v for v in values if isinstance(v, float)]
        if floats:
            self.notes.append("exact value: " + ", ".join(json.dumps(v) for v in floats))
            parts.append("float")
        if any(v is None for v in values):
            parts.append("None")
        return " | ".join(parts)

    def _literal_value(self, value: Any) -> str:
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        return repr(value)

    def _union(self, node: IRUnion) -> str:
        # Literal members are gathered into one Literal[...] at the first literal's position
        literal_values = [m.value for m in node.members if isinstance(m, IRLiteral)]
        rendered: list[str] = []
        literal_done = False
        for member in node.members:
            if isinstance(member, IRLiteral):
                if literal_done:
                    continue
                literal_done = True
                text = self._literal(literal_values)
            else:
                text = self.translate_type(member)
            for part in split_union(text):
                if part not in rendered:
                    rendered.append(part)
        return " | ".join(rendered)

    def _field_type(self, prop: IRProperty) -> str:
        rendered = self.translate_type(prop.type)
        if not prop.required:
            self.python_imports.add(("typing", "NotRequired"))
            return f"NotRequired[{rendered}]"
        return rendered

    def _fields(self, properties: list[IRProperty]) -> list[dict[str, Any]]:
        fields = []
        for prop in properties:
            self.notes = []
            field_type = self._field_type(prop)
            fields.append(
                {
                    "name": prop.name,
                    "key": json.dumps(prop.name, ensure_ascii=False),
                    "type": field_type,
                    "quoted_type": json.dumps(field_type),
                    "doc": self.format_doc(self.doc_lines(prop.type, prop.metadata), 1),
                    "note": "; ".join(self.notes),
                }
            )
        return fields

    def _merged_properties(self, objects: list[IRObject]) -> list[IRProperty]:
        merged: dict[str, IRProperty] = {}
        for obj in objects:
            for prop in obj.properties:
                merged[prop.name] = prop
        return list(merged.values())

    def declaration_context(self, type_def: IRTypeDefinition) -> dict[str, Any]:
        node = type_def.type
        name = self.reference_name(type_def.name)
        doc_lines = self.doc_lines(node)

        if type_def.name in self.class_names:
            if isinstance(node, IRObject):
                bases = []
                properties = list(node.properties)
                objects = [node]
            else:
                bases = [self.reference_name(m.name) for m in node.members if isinstance(m, IRReference)]
                objects = [m for m in node.members if isinstance(m, IRObject)]
                properties = self._merged_properties(objects)

            for obj in objects:
                if obj.additional_properties not in (None, False) and self.config.include_docs:
                    extra = "Any" if obj.additional_properties is True else self.translate_type(obj.additional_properties)
                    doc_lines.append(f"Additional properties: {extra}")

            self.python_imports.add(("typing", "TypedDict"))
            fields = self._fields(properties)
            # Intersections only reach here when every key is an identifier
            if all(is_python_identifier(p.name) for p in properties):
                return {
                    "doc": self.format_doc(doc_lines),
                    "form": "class",
                    "name": name,
                    "bases": bases or ["TypedDict"],
                    "fields": fields,
                }
            # Functional syntax evaluates its values, so annotations are quoted
            for field in fields:
                field["type"] = field["quoted_type"]
            return {"doc": self.format_doc(doc_lines), "form": "functional", "name": name, "fields": fields}

        self.notes = []
        rendered = self.translate_type(node)
        return {
            "doc": self.format_doc(doc_lines),
            "form": "alias",
            "name": name,
            "type": rendered,
            "note": "; ".join(self.notes),
        }

    def _assemble_imports(self) -> list[str]:
        """Assemble Python import statements."""
        # Group imports by module
        import_groups: dict[str, set[str]] = collections.defaultdict(set)
        for module, name in self.python_imports:
            import_groups[module].add(name)

        assembled = []

        # __future__ imports first
        if "__future__" in import_groups:
            names = sorted(import_groups["__future__"])
            assembled.append(f"from __future__ import {', '.join(names)}")
            if len(import_groups) > 1:
                assembled.append("")

        for module in sorted(m for m in import_groups if m != "__future__"):
            names = sorted(import_groups[module])
            assembled.append(f"from {module} import {', '.join(names)}")

        return assembled

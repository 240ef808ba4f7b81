"""
TypeScript code generation backend.

Generates TypeScript type aliases from IR.
"""

from __future__ import annotations

import re
from typing import Any

from ..analyzer.ir_nodes import (
    IRArray,
    IRIntersection,
    IRKind,
    IRLiteral,
    IRMap,
    IRNode,
    IRObject,
    IRPrimitive,
    IRProperty,
    IRReference,
    IRType,
    IRTypeDefinition,
    IRUnion,
)
from ..errors import InvalidDocument
from .base import CodeBackend, json_value

IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

INDENT = "  "

# Names a type alias cannot take: reserved words and the predefined type names
RESERVED_TYPE_NAMES = frozenset(
    """
    break case catch class const continue debugger default delete do else enum export extends false finally for
    function if import in instanceof new null return super switch this throw true try typeof var void while with
    implements interface let package private protected public static yield
    any bigint boolean never number object string symbol undefined unknown
    """.split()
)


class TypeScriptBackend(CodeBackend):
    """TypeScript code generation backend."""

    TEMPLATE_LANG = "typescript"
    FILE_EXTENSION = "ts"

    TYPE_MAP = {
        "string": "string",
        "number": "number",
        "integer": "number",
        "boolean": "boolean",
        "null": "null",
        "any": "any",
        "void": "void",
    }

    def identifier(self, name: str) -> str:
        ident = re.sub(r"[^A-Za-z0-9_$]", "", name)
        if not ident:
            raise InvalidDocument(f"Schema name {name!r} has no characters usable in a TypeScript identifier")
        if ident[0].isdigit():
            ident = "_" + ident
        if ident in RESERVED_TYPE_NAMES:
            ident += "_"
        return ident

    def declaration_context(self, type_def: IRTypeDefinition) -> dict[str, Any]:
        return {
            "doc": self.format_doc(self.doc_lines(type_def.type)),
            "export": self.config.export_declarations,
            "name": self.reference_name(type_def.name),
            "type": self.translate_type(type_def.type),
        }

    def format_doc(self, lines: list[str], indent: int = 0) -> str:
        if not lines:
            return ""
        pad = INDENT * indent
        lines = [line.replace("*/", "*\\/") for line in lines]
        if len(lines) == 1:
            return f"{pad}/** {lines[0]} */"
        body = "\n".join(f"{pad} * {line}".rstrip() for line in lines)
        return f"{pad}/**\n{body}\n{pad} */"

    def translate_type(self, node: IRType, indent: int = 0) -> str:
        match node:
            case IRPrimitive():
                return self.TYPE_MAP[node.primitive_kind.value]
            case IRLiteral():
                return json_value(node.value)
            case IRUnion():
                return " | ".join(self._member(m, indent) for m in node.members)
            case IRIntersection():
                return " & ".join(self._member(m, indent) for m in node.members)
            case IRArray():
                return f"{self._member(node.items, indent)}[]"
            case IRMap():
                return f"Record<{self.translate_type(node.key, indent)}, {self.translate_type(node.value, indent)}>"
            case IRObject():
                return self._object_literal(node, indent)
            case IRReference():
                return self.reference_name(node.name)
        raise TypeError(f"Unknown IR node: {node!r}")

    def _member(self, node: IRType, indent: int) -> str:
        """Render a union/intersection member or array item, parenthesised when needed."""
        rendered = self.translate_type(node, indent)
        if node.kind in (IRKind.UNION, IRKind.INTERSECTION) and len(node.members) > 1:
            return f"({rendered})"
        return rendered

    def property_key(self, name: str) -> str:
        return name if IDENTIFIER_RE.match(name) else json_value(name)

    def _property_line(self, prop: IRProperty, indent: int) -> str:
        pad = INDENT * (indent + 1)
        readonly = "readonly " if prop.readonly and self.config.use_readonly else ""
        optional = "" if prop.required else "?"
        return f"{pad}{readonly}{self.property_key(prop.name)}{optional}: {self.translate_type(prop.type, indent + 1)};"

    def _index_value(self, node: IRObject, indent: int) -> str | None:
        additional = node.additional_properties
        if additional is True:
            return "any"
        if not isinstance(additional, IRNode):
            return None

        # Declared properties must be assignable to the index signature
        values = [self.translate_type(additional, indent + 1)]
        if values[0] == "any":
            return "any"
        for prop in node.properties:
            rendered = self._member(prop.type, indent + 1)
            if rendered not in values:
                values.append(rendered)
        if any(not p.required for p in node.properties) and "undefined" not in values:
            values.append("undefined")
        if len(values) > 1:
            values[0] = self._member(additional, indent + 1)
        return " | ".join(values)

    def _object_literal(self, node: IRObject, indent: int) -> str:
        index_value = self._index_value(node, indent)
        if not node.properties and index_value is None:
            return "{}"

        pad = INDENT * indent
        lines = ["{"]
        for prop in node.properties:
            doc = self.format_doc(self.doc_lines(prop.type, prop.metadata), indent + 1)
            if doc:
                lines.append(doc)
            lines.append(self._property_line(prop, indent))
        if index_value is not None:
            lines.append(f"{pad}{INDENT}[key: string]: {index_value};")
        lines.append(f"{pad}}}")
        return "\n".join(lines)

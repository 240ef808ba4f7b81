"""
Schema converter that transforms raw OpenAPI schema objects into IR.

Each raw schema is first classified into exactly one shape (first match wins,
in a fixed precedence order) and then converted by the handler for that shape,
so no two rules can both claim the same input. Metadata and constraints are
extracted before dispatch and attached to whichever node is produced.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import CodeGeneratorConfig, Dialect
from ..errors import (
    CircularTypeReference,
    ConversionWarning,
    DuplicateSchemaName,
    InvalidDocument,
    UnresolvedReference,
)
from .cycles import check_alias_cycles
from .ir_nodes import (
    CONSTRAINT_KEYWORDS,
    LITERAL_TYPES,
    IRConstraints,
    IRDiscriminator,
    IRMetadata,
    IRNode,
    IRProperty,
    IRSchema,
    IRType,
    IRTypeDefinition,
    PrimitiveKind,
    array,
    intersection,
    is_object_shaped,
    literal,
    map_of,
    object_of,
    primitive,
    reference,
    union,
    with_annotations,
)
from .operations import extract_operations, operations_to_methods
from .reference_resolver import ReferenceResolver, parse_ref

logger = logging.getLogger(__name__)

SCALAR_TYPES = {"string", "number", "integer", "boolean"}


class SchemaShape(Enum):
    """The construct a raw schema is converted as."""

    REFERENCE = "$ref"
    CONST = "const"
    ENUM = "enum"
    ONE_OF = "oneOf"
    ANY_OF = "anyOf"
    ALL_OF = "allOf"
    TYPED = "type"
    IMPLIED_OBJECT = "properties"  # object keywords without 'type'
    IMPLIED_ARRAY = "items"  # array keywords without 'type'
    UNTYPED = "any"


# Keyword precedence: the first keyword present decides the shape
_SHAPE_PRECEDENCE = (
    SchemaShape.REFERENCE,
    SchemaShape.CONST,
    SchemaShape.ENUM,
    SchemaShape.ONE_OF,
    SchemaShape.ANY_OF,
    SchemaShape.ALL_OF,
    SchemaShape.TYPED,
)


def classify(schema: Mapping[str, Any]) -> SchemaShape:
    """Return the single shape a raw schema is converted as."""
    for shape in _SHAPE_PRECEDENCE:
        if shape.value not in schema:
            continue
        value = schema[shape.value]
        # An empty enum list or type list constrains nothing
        if shape in (SchemaShape.ENUM, SchemaShape.TYPED) and value in (None, []):
            continue
        return shape
    if "properties" in schema or "additionalProperties" in schema:
        return SchemaShape.IMPLIED_OBJECT
    if "items" in schema:
        return SchemaShape.IMPLIED_ARRAY
    return SchemaShape.UNTYPED


def extract_metadata(schema: Mapping[str, Any]) -> IRMetadata:
    """Extract documentation metadata from a raw schema."""
    examples: list[Any] = []
    if "example" in schema:
        examples.append(schema["example"])
    if isinstance(schema.get("examples"), list):
        examples.extend(schema["examples"])

    description = schema.get("description")
    title = schema.get("title")

    return IRMetadata(
        description=description if isinstance(description, str) and description else None,
        title=title if isinstance(title, str) and title else None,
        deprecated=schema.get("deprecated") is True,
        default=schema.get("default"),
        has_default="default" in schema,
        examples=tuple(examples),
        read_only=schema.get("readOnly") is True,
        write_only=schema.get("writeOnly") is True,
        extensions={k: v for k, v in schema.items() if isinstance(k, str) and k.startswith("x-")},
    )


def extract_constraints(schema: Mapping[str, Any]) -> IRConstraints:
    """Extract validation constraints from a raw schema."""
    values: dict[str, Any] = {}
    for keyword, attr in CONSTRAINT_KEYWORDS.items():
        value = schema.get(keyword)
        if value is None:
            continue
        if keyword == "enum":
            if not isinstance(value, list):
                continue
            value = tuple(value)
        values[attr] = value
    return IRConstraints(**values)


@dataclass
class ConversionContext:
    """Per-conversion state. Never shared between conversions."""

    # Schema registry used for strict reference checks
    registry: Mapping[str, Any] = field(default_factory=dict)
    dialect: Dialect | None = None
    max_depth: int = 64
    strict_references: bool = False
    warnings: list[ConversionWarning] = field(default_factory=list)

    # ids of the raw schema objects on the current conversion path
    active: list[int] = field(default_factory=list, repr=False)

    def warn(self, path: str, message: str) -> None:
        warning = ConversionWarning(path, message)
        if warning not in self.warnings:
            logger.warning("%s", warning)
            self.warnings.append(warning)


@dataclass(frozen=True)
class ConversionResult:
    """A converted schema together with the warnings collected on the way."""

    schema: IRSchema
    warnings: tuple[ConversionWarning, ...] = ()


def registry_items(schemas: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[tuple[str, Any]]:
    """
    Normalize a registry to an ordered list of (name, schema) pairs.

    Raises:
        DuplicateSchemaName: If two entries share a name
        InvalidDocument: If an entry name is not a string
    """
    pairs = list(schemas.items()) if isinstance(schemas, Mapping) else [tuple(pair) for pair in schemas]
    seen: set[str] = set()
    for name, _ in pairs:
        if not isinstance(name, str) or not name:
            raise InvalidDocument(f"Schema names must be non-empty strings, got {name!r}")
        if name in seen:
            raise DuplicateSchemaName(name, "registry contains the name twice")
        seen.add(name)
    return pairs


def detect_dialect(document: Mapping[str, Any]) -> Dialect | None:
    """Read the dialect from the document's 'openapi' version field: 3.1.x is 3.1, anything else 3.0."""
    version = document.get("openapi")
    if version is None:
        return None
    if str(version).strip().startswith("3.1"):
        return Dialect.OPENAPI_3_1
    return Dialect.OPENAPI_3_0


class SchemaConverter:
    """Converts raw OpenAPI schemas to IR."""

    def __init__(self, config: CodeGeneratorConfig | None = None):
        """
        Initialize the converter.

        Args:
            config: Code generation configuration
        """
        self.config = config or CodeGeneratorConfig()

    def new_context(self, registry: Mapping[str, Any] | None = None, dialect: Dialect | None = None) -> ConversionContext:
        return ConversionContext(
            registry=registry or {},
            dialect=dialect,
            max_depth=self.config.max_depth,
            strict_references=self.config.strict_references,
        )

    def convert(self, schema: Any, context: ConversionContext | None = None, path: str = "#") -> IRType:
        """
        Convert a single raw schema to an IR type.

        Args:
            schema: The raw schema object
            context: Conversion context (a fresh one is created if omitted)
            path: Location of the schema, used in errors and warnings

        Returns:
            The IR type node
        """
        if context is None:
            context = self.new_context(dialect=self.config.dialect)
        return self._convert(schema, context, path, 0)

    def convert_registry(
        self,
        schemas: Mapping[str, Any] | Iterable[tuple[str, Any]],
        dialect_version: str | Dialect | None = None,
    ) -> ConversionResult:
        """
        Convert every named schema of a registry.

        Args:
            schemas: Mapping (or ordered pairs) of schema name to raw schema
            dialect_version: "3.0" or "3.1"; falls back to the configured dialect

        Returns:
            ConversionResult with one type definition per schema, in registry order

        Raises:
            DuplicateSchemaName: If two schemas share a name
            CircularTypeReference: If definitions alias each other in a cycle
        """
        pairs = registry_items(schemas)
        dialect = Dialect.from_version(dialect_version) or self.config.dialect
        context = self.new_context(dict(pairs), dialect)
        types = self._convert_pairs(pairs, context)
        return ConversionResult(
            schema=IRSchema(types, version=dialect.value if dialect else None),
            warnings=tuple(context.warnings),
        )

    def convert_document(self, document: Mapping[str, Any]) -> ConversionResult:
        """
        Convert the schema registry of a whole OpenAPI document.

        The dialect comes from the configuration when set, otherwise from the
        document's 'openapi' field.
        """
        if not isinstance(document, Mapping):
            raise InvalidDocument("An OpenAPI document must be an object")

        resolver = ReferenceResolver.from_document(document)
        pairs = registry_items(resolver.registry("schemas"))
        dialect = self.config.dialect or detect_dialect(document)
        context = self.new_context(dict(pairs), dialect)
        types = self._convert_pairs(pairs, context)

        methods = ()
        if self.config.include_methods:
            records = extract_operations(document, resolver)
            methods = operations_to_methods(records, lambda schema, path: self._convert(schema, context, path, 0))

        logger.info("Converted %d schemas (%d warnings)", len(types), len(context.warnings))
        return ConversionResult(
            schema=IRSchema(types, version=dialect.value if dialect else None, methods=methods),
            warnings=tuple(context.warnings),
        )

    def _convert_pairs(self, pairs: list[tuple[str, Any]], context: ConversionContext) -> list[IRTypeDefinition]:
        types = []
        for name, schema in pairs:
            logger.debug("Converting schema %s", name)
            node = self._convert(schema, context, f"#/components/schemas/{name}", 0)
            types.append(IRTypeDefinition(name, node))
        check_alias_cycles(types)
        return types

    def _convert(self, schema: Any, context: ConversionContext, path: str, depth: int) -> IRType:
        """Convert a raw schema node, guarding against runaway recursion."""
        # Boolean schemas (3.1): true accepts anything, false accepts nothing
        if isinstance(schema, bool):
            return primitive(PrimitiveKind.ANY if schema else PrimitiveKind.VOID)
        if not isinstance(schema, Mapping):
            raise InvalidDocument(f"Schema at {path} must be an object, got {type(schema).__name__}")

        if depth > context.max_depth:
            raise CircularTypeReference([path], f"schema nesting exceeds the maximum depth of {context.max_depth}")
        if id(schema) in context.active:
            raise CircularTypeReference([path], "schema object contains itself")

        context.active.append(id(schema))
        try:
            return self._dispatch(schema, context, path, depth)
        finally:
            context.active.pop()

    def _dispatch(self, schema: Mapping[str, Any], context: ConversionContext, path: str, depth: int) -> IRType:
        metadata = extract_metadata(schema)
        constraints = extract_constraints(schema)
        shape = classify(schema)
        self._check_nullable(schema, shape, context, path)

        match shape:
            case SchemaShape.REFERENCE:
                node = self._convert_reference(schema, context, path)
            case SchemaShape.CONST:
                node = self._convert_scalar_value(schema["const"], context, path)
            case SchemaShape.ENUM:
                node = self._convert_enum(schema, context, path)
            case SchemaShape.ONE_OF | SchemaShape.ANY_OF:
                node = self._convert_union(schema, shape.value, context, path, depth)
            case SchemaShape.ALL_OF:
                node = self._convert_all_of(schema, context, path, depth)
            case SchemaShape.TYPED:
                return self._convert_typed(schema, metadata, constraints, context, path, depth)
            case SchemaShape.IMPLIED_OBJECT:
                node = self._convert_object(schema, context, path, depth)
            case SchemaShape.IMPLIED_ARRAY:
                node = self._convert_array(schema, context, path, depth)
            case _:
                node = primitive(PrimitiveKind.ANY)

        return with_annotations(node, metadata, constraints)

    def _check_nullable(self, schema: Mapping[str, Any], shape: SchemaShape, context: ConversionContext, path: str) -> None:
        """Warn about 'nullable' flags the dispatch order does not apply."""
        if schema.get("nullable") is not True:
            return
        if shape is SchemaShape.TYPED:
            if context.dialect is Dialect.OPENAPI_3_1:
                context.warn(path, "'nullable' is not part of OpenAPI 3.1, use a type array instead; honoured anyway")
            return
        if shape is SchemaShape.ENUM and None in schema["enum"]:
            return
        context.warn(path, f"'nullable' has no effect next to '{shape.value}'")

    def _convert_reference(self, schema: Mapping[str, Any], context: ConversionContext, path: str) -> IRType:
        name = parse_ref(schema["$ref"], "schemas")
        if context.strict_references and name not in context.registry:
            raise UnresolvedReference(name, "schemas", path)
        return reference(name)

    def _convert_scalar_value(self, value: Any, context: ConversionContext, path: str) -> IRType:
        """Convert a const or enum value to a literal."""
        if isinstance(value, LITERAL_TYPES):
            return literal(value)
        context.warn(path, f"non-scalar value {value!r} cannot be a literal type; converted to 'any'")
        return primitive(PrimitiveKind.ANY)

    def _convert_enum(self, schema: Mapping[str, Any], context: ConversionContext, path: str) -> IRType:
        values = schema["enum"]
        if not isinstance(values, list):
            raise InvalidDocument(f"'enum' at {path} must be a list")
        members = [self._convert_scalar_value(v, context, f"{path}/enum/{i}") for i, v in enumerate(values)]
        # A single-value enum is a bare literal, never a one-member union
        if len(members) == 1:
            return members[0]
        return union(members)

    def _convert_members(self, schema: Mapping[str, Any], keyword: str, context: ConversionContext, path: str, depth: int) -> list[IRType]:
        variants = schema[keyword]
        if not isinstance(variants, list):
            raise InvalidDocument(f"'{keyword}' at {path} must be a list")
        return [self._convert(v, context, f"{path}/{keyword}/{i}", depth + 1) for i, v in enumerate(variants)]

    def _convert_union(self, schema: Mapping[str, Any], keyword: str, context: ConversionContext, path: str, depth: int) -> IRType:
        members = self._convert_members(schema, keyword, context, path, depth)
        if not members:
            context.warn(path, f"empty '{keyword}' matches no value; converted to 'void'")
            return primitive(PrimitiveKind.VOID)

        if keyword == "anyOf" and len(members) > 1:
            context.warn(path, "'anyOf' is approximated as a union where exactly one member matches")

        discriminator = self._convert_discriminator(schema, members, context, path)
        return union(members, discriminator=discriminator)

    def _convert_discriminator(self, schema: Mapping[str, Any], members: list[IRType], context: ConversionContext, path: str) -> IRDiscriminator | None:
        raw = schema.get("discriminator")
        if raw is None:
            return None
        if not isinstance(raw, Mapping) or not isinstance(raw.get("propertyName"), str):
            raise InvalidDocument(f"'discriminator' at {path} must be an object with a 'propertyName'")

        if not all(is_object_shaped(m) for m in members):
            context.warn(path, "discriminator dropped because not every union member is an object")
            return None

        mapping = {}
        for value, target in (raw.get("mapping") or {}).items():
            # Mapping targets are either $refs or bare schema names
            mapping[str(value)] = parse_ref(target, "schemas") if str(target).startswith("#") else str(target)
        return IRDiscriminator(raw["propertyName"], mapping)

    def _convert_all_of(self, schema: Mapping[str, Any], context: ConversionContext, path: str, depth: int) -> IRType:
        members = self._convert_members(schema, "allOf", context, path, depth)
        if not members:
            return primitive(PrimitiveKind.ANY)
        return intersection(members)

    def _convert_typed(
        self,
        schema: Mapping[str, Any],
        metadata: IRMetadata,
        constraints: IRConstraints,
        context: ConversionContext,
        path: str,
        depth: int,
    ) -> IRType:
        """Convert a schema with a 'type' keyword, including nullability."""
        type_value = schema["type"]
        if isinstance(type_value, list):
            if context.dialect is Dialect.OPENAPI_3_0:
                context.warn(path, "type arrays are not part of OpenAPI 3.0, use 'nullable' instead; honoured anyway")
            type_names = list(type_value)
        else:
            type_names = [type_value]

        members = []
        for type_name in type_names:
            if not isinstance(type_name, str):
                raise InvalidDocument(f"'type' at {path} must be a string or a list of strings")
            if type_name == "null":
                members.append(primitive(PrimitiveKind.NULL))
            else:
                members.append(self._convert_type_name(type_name, schema, constraints, context, path, depth))

        if schema.get("nullable") is True and "null" not in type_names:
            members.append(primitive(PrimitiveKind.NULL))

        if len(members) == 1:
            return with_annotations(members[0], metadata, constraints)
        return union(members, metadata=metadata)

    def _convert_type_name(
        self,
        type_name: str,
        schema: Mapping[str, Any],
        constraints: IRConstraints,
        context: ConversionContext,
        path: str,
        depth: int,
    ) -> IRType:
        if type_name in SCALAR_TYPES:
            fmt = schema.get("format")
            return primitive(type_name, format=fmt if isinstance(fmt, str) else None, constraints=constraints)
        if type_name == "array":
            return with_annotations(self._convert_array(schema, context, path, depth), constraints=constraints)
        if type_name == "object":
            return with_annotations(self._convert_object(schema, context, path, depth), constraints=constraints)

        context.warn(path, f"unknown type '{type_name}'; converted to 'any'")
        return primitive(PrimitiveKind.ANY, constraints=constraints)

    def _convert_array(self, schema: Mapping[str, Any], context: ConversionContext, path: str, depth: int) -> IRType:
        items = schema.get("items")
        if items is None:
            return array(primitive(PrimitiveKind.ANY))
        if isinstance(items, list):
            # Positional items: every element is one of the listed types
            members = [self._convert(item, context, f"{path}/items/{i}", depth + 1) for i, item in enumerate(items)]
            if not members:
                return array(primitive(PrimitiveKind.ANY))
            return array(members[0] if len(members) == 1 else union(members))
        return array(self._convert(items, context, f"{path}/items", depth + 1))

    def _convert_object(self, schema: Mapping[str, Any], context: ConversionContext, path: str, depth: int) -> IRType:
        raw_properties = schema.get("properties") or {}
        if not isinstance(raw_properties, Mapping):
            raise InvalidDocument(f"'properties' at {path} must be an object")
        required = schema.get("required") or []
        if not isinstance(required, list):
            raise InvalidDocument(f"'required' at {path} must be a list")
        required_names = {name for name in required if isinstance(name, str)}

        properties = []
        for prop_name, prop_schema in raw_properties.items():
            prop_type = self._convert(prop_schema, context, f"{path}/properties/{prop_name}", depth + 1)
            prop_metadata = extract_metadata(prop_schema) if isinstance(prop_schema, Mapping) else None
            properties.append(
                IRProperty(
                    name=str(prop_name),
                    type=prop_type,
                    required=prop_name in required_names,
                    readonly=bool(prop_metadata and prop_metadata.read_only),
                    metadata=prop_metadata,
                )
            )

        additional: bool | IRType | None = None
        if "additionalProperties" in schema:
            raw_additional = schema["additionalProperties"]
            if isinstance(raw_additional, bool):
                additional = raw_additional
            elif isinstance(raw_additional, Mapping):
                additional = self._convert(raw_additional, context, f"{path}/additionalProperties", depth + 1)
            elif raw_additional is not None:
                raise InvalidDocument(f"'additionalProperties' at {path} must be a boolean or a schema")

        # No fixed property set but a typed value: a map
        if not properties and isinstance(additional, IRNode):
            return map_of(additional)
        return object_of(properties, additional)


def convert_registry(
    schemas: Mapping[str, Any] | Iterable[tuple[str, Any]],
    dialect_version: str | Dialect | None = None,
    config: CodeGeneratorConfig | None = None,
) -> ConversionResult:
    """Convert a schema registry to IR."""
    return SchemaConverter(config).convert_registry(schemas, dialect_version)


def convert_document(document: Mapping[str, Any], config: CodeGeneratorConfig | None = None) -> ConversionResult:
    """Convert an OpenAPI document's components.schemas to IR."""
    return SchemaConverter(config).convert_document(document)

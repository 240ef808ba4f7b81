"""
IR (Intermediate Representation) node definitions.

The IR is a closed, language-neutral type algebra. Nodes are frozen value
objects with structural identity: two independently built nodes with the same
shape compare equal. References resolve by name against the schema's type
list, never by pointer, so a type may reference a definition declared later.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Union

from ..errors import DuplicateSchemaName


class IRKind(Enum):
    """Kind of node in the IR."""

    PRIMITIVE = "primitive"
    LITERAL = "literal"
    UNION = "union"  # A | B | ...
    INTERSECTION = "intersection"  # A & B & ...
    ARRAY = "array"  # T[]
    MAP = "map"  # string-keyed mapping to V
    OBJECT = "object"  # record with named properties
    REFERENCE = "reference"  # named type defined elsewhere in the schema


class PrimitiveKind(Enum):
    """Built-in scalar kinds."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"
    ANY = "any"
    VOID = "void"


# Only these kinds may carry a format tag
FORMATTED_KINDS = frozenset({PrimitiveKind.STRING, PrimitiveKind.NUMBER, PrimitiveKind.INTEGER})

LITERAL_TYPES = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class IRMetadata:
    """Documentation metadata attached to a node or property."""

    description: str | None = None
    title: str | None = None
    deprecated: bool = False
    # Raw JSON values may be unhashable; they take part in equality only
    default: Any = field(default=None, hash=False)
    has_default: bool = False
    examples: tuple[Any, ...] = field(default=(), hash=False)
    read_only: bool = False
    write_only: bool = False
    # x-* extensions, keyed by their full name
    extensions: dict[str, Any] = field(default_factory=dict, hash=False)

    def is_empty(self) -> bool:
        return self == IRMetadata()


# JSON Schema keyword -> IRConstraints field, in rendering order
CONSTRAINT_KEYWORDS: dict[str, str] = {
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
    "multipleOf": "multiple_of",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "minItems": "min_items",
    "maxItems": "max_items",
    "uniqueItems": "unique_items",
    "minProperties": "min_properties",
    "maxProperties": "max_properties",
    "enum": "enum",
}


@dataclass(frozen=True)
class IRConstraints:
    """Validation constraints. Purely additive: they never change a node's kind."""

    # Number constraints
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | bool | None = None
    exclusive_maximum: float | bool | None = None
    multiple_of: float | None = None

    # String constraints
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    # Array constraints
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool | None = None

    # Object constraints
    min_properties: int | None = None
    max_properties: int | None = None

    # Enum constraint
    enum: tuple[Any, ...] | None = field(default=None, hash=False)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def items(self) -> list[tuple[str, Any]]:
        """Return (schema keyword, value) pairs for every constraint that is set."""
        return [(keyword, getattr(self, attr)) for keyword, attr in CONSTRAINT_KEYWORDS.items() if getattr(self, attr) is not None]


@dataclass(frozen=True)
class IRDiscriminator:
    """Property used to narrow a union to one of its members."""

    property_name: str
    mapping: dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True, kw_only=True)
class IRNode:
    """Base class for all IR type nodes."""

    kind: ClassVar[IRKind]

    metadata: IRMetadata | None = None
    constraints: IRConstraints | None = None

    def __post_init__(self) -> None:
        # Empty annotations are normalized away so structural equality holds
        if self.metadata is not None and self.metadata.is_empty():
            object.__setattr__(self, "metadata", None)
        if self.constraints is not None and self.constraints.is_empty():
            object.__setattr__(self, "constraints", None)


@dataclass(frozen=True)
class IRPrimitive(IRNode):
    kind: ClassVar[IRKind] = IRKind.PRIMITIVE

    primitive_kind: PrimitiveKind
    format: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.primitive_kind, PrimitiveKind):
            object.__setattr__(self, "primitive_kind", PrimitiveKind(self.primitive_kind))
        if self.format is not None and self.primitive_kind not in FORMATTED_KINDS:
            raise ValueError(f"Format '{self.format}' is not allowed on primitive '{self.primitive_kind.value}'")


@dataclass(frozen=True)
class IRLiteral(IRNode):
    kind: ClassVar[IRKind] = IRKind.LITERAL

    value: str | int | float | bool | None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.value, LITERAL_TYPES):
            raise TypeError(f"Literal value must be a scalar, got {type(self.value).__name__}")

    @property
    def primitive_kind(self) -> PrimitiveKind:
        """The primitive kind the literal value belongs to."""
        if self.value is None:
            return PrimitiveKind.NULL
        if isinstance(self.value, bool):
            return PrimitiveKind.BOOLEAN
        if isinstance(self.value, int):
            return PrimitiveKind.INTEGER
        if isinstance(self.value, float):
            return PrimitiveKind.NUMBER
        return PrimitiveKind.STRING


@dataclass(frozen=True)
class IRUnion(IRNode):
    kind: ClassVar[IRKind] = IRKind.UNION

    members: tuple[IRType, ...]
    discriminator: IRDiscriminator | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "members", tuple(self.members))
        if not self.members:
            raise ValueError("A union needs at least one member")


@dataclass(frozen=True)
class IRIntersection(IRNode):
    kind: ClassVar[IRKind] = IRKind.INTERSECTION

    members: tuple[IRType, ...]

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "members", tuple(self.members))
        if not self.members:
            raise ValueError("An intersection needs at least one member")


@dataclass(frozen=True)
class IRArray(IRNode):
    kind: ClassVar[IRKind] = IRKind.ARRAY

    items: IRType


@dataclass(frozen=True)
class IRMap(IRNode):
    kind: ClassVar[IRKind] = IRKind.MAP

    key: IRType
    value: IRType

    def __post_init__(self) -> None:
        super().__post_init__()
        key_kind = getattr(self.key, "primitive_kind", None)
        if key_kind is not PrimitiveKind.STRING:
            raise ValueError("Map keys must be string-like")


@dataclass(frozen=True)
class IRProperty:
    """A named property of an object node."""

    name: str
    type: IRType
    required: bool = False
    readonly: bool = False
    metadata: IRMetadata | None = None

    def __post_init__(self) -> None:
        if self.metadata is not None and self.metadata.is_empty():
            object.__setattr__(self, "metadata", None)


@dataclass(frozen=True)
class IRObject(IRNode):
    kind: ClassVar[IRKind] = IRKind.OBJECT

    properties: tuple[IRProperty, ...] = ()
    # None = absent, bool = allowed/forbidden, IRType = typed catch-all
    additional_properties: bool | IRType | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "properties", tuple(self.properties))
        seen: set[str] = set()
        for prop in self.properties:
            if prop.name in seen:
                raise ValueError(f"Duplicate property '{prop.name}' in object")
            seen.add(prop.name)

    @property
    def required_names(self) -> list[str]:
        return [p.name for p in self.properties if p.required]


@dataclass(frozen=True)
class IRReference(IRNode):
    kind: ClassVar[IRKind] = IRKind.REFERENCE

    name: str


IRType = Union[IRPrimitive, IRLiteral, IRUnion, IRIntersection, IRArray, IRMap, IRObject, IRReference]


@dataclass(frozen=True)
class IRTypeDefinition:
    """A named top-level type."""

    name: str
    type: IRType


@dataclass(frozen=True)
class IRMethod:
    """An HTTP operation described in IR terms."""

    name: str
    http_method: str
    path: str
    input: IRType
    output: IRType
    path_params: IRType | None = None
    query_params: IRType | None = None
    headers: IRType | None = None
    metadata: IRMetadata | None = None


@dataclass(frozen=True)
class IRSchema:
    """The complete IR for one converted document. Never mutated after construction."""

    types: tuple[IRTypeDefinition, ...] = ()
    version: str | None = None
    methods: tuple[IRMethod, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(self.types))
        object.__setattr__(self, "methods", tuple(self.methods))
        seen: set[str] = set()
        for type_def in self.types:
            if type_def.name in seen:
                raise DuplicateSchemaName(type_def.name)
            seen.add(type_def.name)

    def names(self) -> list[str]:
        return [t.name for t in self.types]

    def get(self, name: str) -> IRTypeDefinition | None:
        for type_def in self.types:
            if type_def.name == name:
                return type_def
        return None


def children(node: IRType) -> list[IRType]:
    """Direct child type nodes of a node."""
    if isinstance(node, (IRUnion, IRIntersection)):
        return list(node.members)
    if isinstance(node, IRArray):
        return [node.items]
    if isinstance(node, IRMap):
        return [node.key, node.value]
    if isinstance(node, IRObject):
        result = [p.type for p in node.properties]
        if isinstance(node.additional_properties, IRNode):
            result.append(node.additional_properties)
        return result
    return []


def walk(node: IRType) -> Iterator[IRType]:
    """Yield a node and all of its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))


def referenced_names(node: IRType) -> list[str]:
    """Names of all reference nodes in a tree, in first-seen order."""
    names: list[str] = []
    for current in walk(node):
        if isinstance(current, IRReference) and current.name not in names:
            names.append(current.name)
    return names


def is_object_shaped(node: IRType) -> bool:
    """Whether a node can carry a discriminator property."""
    return node.kind in (IRKind.OBJECT, IRKind.REFERENCE, IRKind.INTERSECTION)


def with_annotations(node: IRType, metadata: IRMetadata | None = None, constraints: IRConstraints | None = None) -> IRType:
    """Return a copy of node carrying the given metadata and constraints."""
    changes: dict[str, Any] = {}
    if metadata is not None and not metadata.is_empty():
        changes["metadata"] = metadata
    if constraints is not None and not constraints.is_empty():
        changes["constraints"] = constraints
    return replace(node, **changes) if changes else node


# Constructor helpers


def primitive(
    kind: PrimitiveKind | str,
    *,
    format: str | None = None,
    metadata: IRMetadata | None = None,
    constraints: IRConstraints | None = None,
) -> IRPrimitive:
    if isinstance(kind, str):
        kind = PrimitiveKind(kind)
    if kind not in FORMATTED_KINDS:
        format = None
    return IRPrimitive(kind, format, metadata=metadata, constraints=constraints)


def literal(value: Any, *, metadata: IRMetadata | None = None, constraints: IRConstraints | None = None) -> IRLiteral:
    return IRLiteral(value, metadata=metadata, constraints=constraints)


def union(
    members: Iterable[IRType],
    *,
    discriminator: IRDiscriminator | None = None,
    metadata: IRMetadata | None = None,
    constraints: IRConstraints | None = None,
) -> IRUnion:
    return IRUnion(tuple(members), discriminator, metadata=metadata, constraints=constraints)


def intersection(members: Iterable[IRType], *, metadata: IRMetadata | None = None, constraints: IRConstraints | None = None) -> IRIntersection:
    return IRIntersection(tuple(members), metadata=metadata, constraints=constraints)


def array(items: IRType, *, metadata: IRMetadata | None = None, constraints: IRConstraints | None = None) -> IRArray:
    return IRArray(items, metadata=metadata, constraints=constraints)


def map_of(
    value: IRType,
    *,
    key: IRType | None = None,
    metadata: IRMetadata | None = None,
    constraints: IRConstraints | None = None,
) -> IRMap:
    return IRMap(key or primitive(PrimitiveKind.STRING), value, metadata=metadata, constraints=constraints)


def object_of(
    properties: Iterable[IRProperty] = (),
    additional_properties: bool | IRType | None = None,
    *,
    metadata: IRMetadata | None = None,
    constraints: IRConstraints | None = None,
) -> IRObject:
    return IRObject(tuple(properties), additional_properties, metadata=metadata, constraints=constraints)


def reference(name: str, *, metadata: IRMetadata | None = None) -> IRReference:
    return IRReference(name, metadata=metadata)

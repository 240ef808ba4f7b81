"""
Analyzer module.

Contains reference resolution, schema conversion, cycle detection and
operation extraction.
"""

from __future__ import annotations

from .converter import ConversionContext, ConversionResult, SchemaConverter, convert_document, convert_registry
from .ir_nodes import (
    IRArray,
    IRConstraints,
    IRDiscriminator,
    IRIntersection,
    IRKind,
    IRLiteral,
    IRMap,
    IRMetadata,
    IRMethod,
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
from .operations import OperationRecord, derive_operation_name, extract_operations
from .reference_resolver import ReferenceResolver, parse_ref

__all__ = [
    "IRArray",
    "IRConstraints",
    "IRDiscriminator",
    "IRIntersection",
    "IRKind",
    "IRLiteral",
    "IRMap",
    "IRMetadata",
    "IRMethod",
    "IRObject",
    "IRPrimitive",
    "IRProperty",
    "IRReference",
    "IRSchema",
    "IRType",
    "IRTypeDefinition",
    "IRUnion",
    "PrimitiveKind",
    "ConversionContext",
    "ConversionResult",
    "SchemaConverter",
    "convert_document",
    "convert_registry",
    "OperationRecord",
    "derive_operation_name",
    "extract_operations",
    "ReferenceResolver",
    "parse_ref",
]

"""
Pipeline - OpenAPI schema to typed declarations.

1. Phase 1 (Converter): Convert raw OpenAPI schemas into the IR type algebra
2. Phase 2 (Cycle check): Reject definitions that alias each other in a loop
3. Phase 3 (Backend): Emit one declaration per named type
"""

from __future__ import annotations

from .analyzer import ConversionResult, SchemaConverter, convert_document, convert_registry, extract_operations
from .config import CodeGeneratorConfig, Dialect
from .errors import (
    CircularTypeReference,
    ConversionWarning,
    DuplicateOperationName,
    DuplicateSchemaName,
    InvalidDocument,
    OpenApiToCodeError,
    UnresolvedReference,
    UnsupportedReferenceFormat,
)
from .generator import PipelineGenerator

__all__ = [
    "PipelineGenerator",
    "CodeGeneratorConfig",
    "Dialect",
    "ConversionResult",
    "SchemaConverter",
    "convert_document",
    "convert_registry",
    "extract_operations",
    "OpenApiToCodeError",
    "InvalidDocument",
    "UnsupportedReferenceFormat",
    "UnresolvedReference",
    "CircularTypeReference",
    "DuplicateSchemaName",
    "DuplicateOperationName",
    "ConversionWarning",
]

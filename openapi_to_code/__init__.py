"""OpenAPI to Code Generator

A Python package for generating typed declarations from the schemas of an
OpenAPI 3.0/3.1 document. Supports TypeScript and Python output through a
language-neutral intermediate representation.
"""

__version__ = "0.1.0"
__author__ = "François Lagunas"

from .pipeline import (
    CircularTypeReference,
    CodeGeneratorConfig,
    ConversionWarning,
    Dialect,
    DuplicateOperationName,
    DuplicateSchemaName,
    InvalidDocument,
    OpenApiToCodeError,
    PipelineGenerator,
    UnresolvedReference,
    UnsupportedReferenceFormat,
    convert_document,
    convert_registry,
    extract_operations,
)

__all__ = [
    "PipelineGenerator",
    "CodeGeneratorConfig",
    "Dialect",
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

"""
Error taxonomy for the conversion pipeline.

Every failure aborts the whole conversion or emission call: there is no
partial-result mode. Non-fatal findings are collected as ConversionWarning
values instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass


class OpenApiToCodeError(Exception):
    """Base class for all pipeline errors."""


class InvalidDocument(OpenApiToCodeError):
    """The input document (or one of its schema nodes) has the wrong shape."""


class UnsupportedReferenceFormat(OpenApiToCodeError):
    """A $ref string falls outside the supported pointer grammar."""

    def __init__(self, ref: str, expected_section: str = "schemas"):
        self.ref = ref
        self.expected_section = expected_section
        super().__init__(f"Unsupported $ref format: {ref!r} (expected '#/components/{expected_section}/<Name>')")


class UnresolvedReference(OpenApiToCodeError):
    """A reference names a component that does not exist."""

    def __init__(self, name: str, section: str = "schemas", source: str = ""):
        self.name = name
        self.section = section
        self.source = source
        where = f" (referenced from {source})" if source else ""
        super().__init__(f"Unresolved reference to '{name}' in components.{section}{where}")


class CircularTypeReference(OpenApiToCodeError):
    """A definition refers back to itself without a structural boundary."""

    def __init__(self, cycle: list[str], reason: str = ""):
        self.cycle = list(cycle)
        message = f"Circular type reference: {' -> '.join(self.cycle)}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class DuplicateSchemaName(OpenApiToCodeError):
    """Two type definitions share a name."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        message = f"Duplicate schema name: '{name}'"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class DuplicateOperationName(OpenApiToCodeError):
    """Two operations derive the same method name."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(f"Duplicate operation names detected: {', '.join(self.names)}. Please specify unique operationIds in the document.")


@dataclass(frozen=True)
class ConversionWarning:
    """A non-fatal conversion finding."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"

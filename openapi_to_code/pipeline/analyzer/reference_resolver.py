"""
Reference resolver for $ref resolution.

Only local component pointers are supported: '#/components/<section>/<Name>'.
Anything else (external files, '#/definitions/...', pointers into a component)
is rejected with UnsupportedReferenceFormat so the schema author learns
exactly which reference broke conversion.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote

from ..errors import CircularTypeReference, InvalidDocument, UnresolvedReference, UnsupportedReferenceFormat

COMPONENTS_PREFIX = "#/components/"

# Component sections that $ref may target
SECTIONS = ("schemas", "parameters", "requestBodies", "responses")


def _unescape_pointer_token(token: str) -> str:
    """Decode one JSON pointer token (RFC 6901) from a URI fragment."""
    return unquote(token).replace("~1", "/").replace("~0", "~")


def parse_ref(ref: Any, section: str = "schemas") -> str:
    """
    Extract the component name from a $ref string.

    Args:
        ref: The $ref value
        section: Component section the reference must point into

    Returns:
        The referenced component name

    Raises:
        UnsupportedReferenceFormat: If the ref is not '#/components/<section>/<Name>'
    """
    if not isinstance(ref, str):
        raise UnsupportedReferenceFormat(repr(ref), section)

    prefix = f"{COMPONENTS_PREFIX}{section}/"
    if not ref.startswith(prefix):
        raise UnsupportedReferenceFormat(ref, section)

    token = ref[len(prefix) :]
    # An empty name, or a pointer into the component, is not a named reference
    if not token or "/" in token:
        raise UnsupportedReferenceFormat(ref, section)

    return _unescape_pointer_token(token)


def is_ref(node: Any) -> bool:
    """Check if a node is a reference object."""
    return isinstance(node, Mapping) and "$ref" in node


class ReferenceResolver:
    """Resolves component references against a document's components."""

    def __init__(self, components: Mapping[str, Any] | None = None):
        """
        Initialize the resolver.

        Args:
            components: The document's 'components' object
        """
        if components is not None and not isinstance(components, Mapping):
            raise InvalidDocument("'components' must be an object")
        self.components = components or {}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ReferenceResolver:
        return cls(document.get("components"))

    def registry(self, section: str) -> Mapping[str, Any]:
        """Return one component section, or an empty mapping."""
        registry = self.components.get(section) or {}
        if not isinstance(registry, Mapping):
            raise InvalidDocument(f"'components.{section}' must be an object")
        return registry

    def resolve(self, ref: str, section: str = "schemas") -> Any:
        """
        Resolve a $ref to the raw component it points at.

        Raises:
            UnsupportedReferenceFormat: If the ref is malformed
            UnresolvedReference: If the component does not exist
        """
        name = parse_ref(ref, section)
        registry = self.registry(section)
        if name not in registry:
            raise UnresolvedReference(name, section, ref)
        return registry[name]

    def resolve_component(self, node: Any, section: str) -> Any:
        """
        Follow a chain of reference objects until a concrete component is reached.

        Non-reference nodes are returned unchanged.
        """
        visited: list[str] = []
        while is_ref(node):
            ref = node["$ref"]
            if ref in visited:
                raise CircularTypeReference(visited + [ref], f"reference chain in components.{section}")
            visited.append(ref)
            node = self.resolve(ref, section)
        return node

    def resolve_schema(self, ref: str) -> Any:
        return self.resolve(ref, "schemas")

    def resolve_parameter(self, node: Any) -> Any:
        return self.resolve_component(node, "parameters")

    def resolve_request_body(self, node: Any) -> Any:
        return self.resolve_component(node, "requestBodies")

    def resolve_response(self, node: Any) -> Any:
        return self.resolve_component(node, "responses")

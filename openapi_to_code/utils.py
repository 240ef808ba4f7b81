"""
Utility functions for the OpenAPI to Code generator.
"""

import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens, dots) to spaces."""
    return re.sub(r"[_\-.]", " ", text)


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, kebab-case, camelCase or dotted names to PascalCase.

    Word boundaries are only inserted, never removed: a name that is already
    PascalCase comes back unchanged.

    Examples:
        "first_name" -> "FirstName"
        "user-profile" -> "UserProfile"
        "actionTemplate" -> "ActionTemplate"
        "api.v1.User" -> "ApiV1User"
        "HTTPError" -> "HTTPError"

    Args:
        text: The text to convert

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    words = _WORD_PATTERN.findall(_normalize_separators(text))
    return "".join(word[0].upper() + word[1:] for word in words if word)

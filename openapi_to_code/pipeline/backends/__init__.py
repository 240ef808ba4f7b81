"""
Code generation backends.

Contains language-specific code generators.
"""

from __future__ import annotations

from .base import CodeBackend
from .python_backend import PythonBackend
from .typescript_backend import TypeScriptBackend

__all__ = [
    "CodeBackend",
    "PythonBackend",
    "TypeScriptBackend",
]

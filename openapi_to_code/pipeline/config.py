"""
Configuration for the code generator pipeline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any


class Dialect(Enum):
    """OpenAPI schema dialect, which decides how nullability is spelled."""

    OPENAPI_3_0 = "3.0"  # nullable: true
    OPENAPI_3_1 = "3.1"  # type: [..., "null"]

    @classmethod
    def from_version(cls, version: str | Dialect | None) -> Dialect | None:
        """Map a version string such as '3.0.3' or '3.1' to a dialect."""
        if version is None or isinstance(version, Dialect):
            return version
        version = str(version).strip()
        if version.startswith("3.1"):
            return cls.OPENAPI_3_1
        if version.startswith("3.0"):
            return cls.OPENAPI_3_0
        raise ValueError(f"Unsupported OpenAPI version: {version!r}")


@dataclass
class CodeGeneratorConfig:
    """Configuration options for conversion and emission."""

    # "3.0" / "3.1"; None means detect from the document's 'openapi' field
    dialect_version: str | None = None

    # Recursion guard for nested raw schemas
    max_depth: int = 64

    # Fail at conversion time on references to missing schemas
    strict_references: bool = False

    # Add generation comment at top of output
    add_generation_comment: bool = True

    # Documentation comments on declarations and properties
    include_docs: bool = True

    # @format, @minimum, @default, ... tags in documentation comments
    include_constraint_tags: bool = True

    # TypeScript: 'export type' instead of 'type'
    export_declarations: bool = True

    # TypeScript: readOnly properties become 'readonly'
    use_readonly: bool = True

    # Python: from __future__ import annotations
    use_future_annotations: bool = True

    # Populate IRSchema.methods from the document's operations
    include_methods: bool = False

    @staticmethod
    def from_dict(d: dict[str, Any]) -> CodeGeneratorConfig:
        """Create a config from a dictionary, ignoring unknown keys."""
        config = CodeGeneratorConfig()
        known = {f.name for f in fields(config)}
        for k, v in d.items():
            if k in known:
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return asdict(self)

    @property
    def dialect(self) -> Dialect | None:
        return Dialect.from_version(self.dialect_version)

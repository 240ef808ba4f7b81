"""
Pipeline generator: document in, declarations out.

Ties the converter and one backend together and assembles the declarations
into a single output unit.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .. import __version__
from ..cli_utils import reconstruct_command_line
from .analyzer.converter import ConversionResult, SchemaConverter
from .analyzer.operations import OperationRecord, extract_operations
from .backends import CodeBackend, PythonBackend, TypeScriptBackend
from .config import CodeGeneratorConfig
from .errors import ConversionWarning

logger = logging.getLogger(__name__)

BACKENDS: dict[str, type[CodeBackend]] = {
    "typescript": TypeScriptBackend,
    "python": PythonBackend,
}


class PipelineGenerator:
    """Generates typed declarations for the schemas of an OpenAPI document."""

    def __init__(self, document: Mapping[str, Any], config: CodeGeneratorConfig | None = None, language: str = "typescript"):
        if language not in BACKENDS:
            raise ValueError(f"Language not supported: {language}")
        self.document = document
        self.config = config or CodeGeneratorConfig()
        self.language = language
        self.converter = SchemaConverter(self.config)
        self.backend = BACKENDS[language](self.config)
        self._result: ConversionResult | None = None

    def convert(self) -> ConversionResult:
        """Convert the document's schemas to IR (once)."""
        if self._result is None:
            self._result = self.converter.convert_document(self.document)
        return self._result

    @property
    def warnings(self) -> tuple[ConversionWarning, ...]:
        return self.convert().warnings

    def emit(self) -> dict[str, str]:
        """Return the declaration text of every schema, keyed by schema name."""
        return self.backend.emit(self.convert().schema)

    def extract_operations(self) -> list[OperationRecord]:
        return extract_operations(self.document)

    def generate(self) -> str:
        """Generate the complete output unit."""
        schema = self.convert().schema
        code = self.backend.generate(schema, self._generate_command_comment())
        logger.info("Generated %d %s declarations", len(schema.types), self.language)
        return code

    def _generate_command_comment(self) -> str:
        """Generate a simplified command line comment for the generated file"""
        if not self.config.add_generation_comment:
            return ""

        comment_prefix = "#" if self.language == "python" else "//"

        from ..openapi_to_code import openapi_to_code as click_command  # noqa

        command_line = reconstruct_command_line(click_command)
        return f"{comment_prefix} Generated by openapi_to_code v{__version__} : {command_line}"

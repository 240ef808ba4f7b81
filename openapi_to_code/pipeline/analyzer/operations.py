"""
Extraction of HTTP operations from an OpenAPI document.

Operation records are plain data lifted out of the document's 'paths' object:
component references to parameters, request bodies and responses are resolved,
path-level parameters are merged in, and every operation gets a unique method
name. Schemas inside the records stay raw; operations_to_methods converts them
to IR when methods are requested.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from ..errors import DuplicateOperationName, InvalidDocument
from .ir_nodes import IRMetadata, IRMethod, IRProperty, IRType, PrimitiveKind, object_of, primitive
from .reference_resolver import ReferenceResolver, is_ref, parse_ref

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head", "trace")

PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")


@dataclass
class ParameterRecord:
    name: str
    location: str
    required: bool = False
    schema: Any = None
    description: str | None = None
    deprecated: bool = False


@dataclass
class RequestBodyRecord:
    required: bool = False
    content_type: str | None = None
    schema: Any = None
    # Component name when the schema is a plain $ref
    schema_name: str | None = None


@dataclass
class ResponseRecord:
    status: str
    description: str | None = None
    content_type: str | None = None
    schema: Any = None
    schema_name: str | None = None


@dataclass
class OperationRecord:
    """One HTTP operation of the document."""

    name: str
    method: str
    path: str
    operation_id: str | None = None
    parameters: dict[str, list[ParameterRecord]] = field(default_factory=lambda: {loc: [] for loc in PARAMETER_LOCATIONS})
    request_body: RequestBodyRecord | None = None
    responses: list[ResponseRecord] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    summary: str | None = None
    description: str | None = None
    deprecated: bool = False

    @property
    def success_response(self) -> ResponseRecord | None:
        """The first 2xx response, falling back to 'default'."""
        for response in self.responses:
            if response.status.startswith("2"):
                return response
        for response in self.responses:
            if response.status == "default":
                return response
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def derive_operation_name(method: str, path: str) -> str:
    """
    Build a method name from an HTTP method and path.

    Path parameters are dropped and the remaining segments are joined in
    camel case: ('GET', '/users/{id}/posts') -> 'getUsersPosts'.
    """
    parts = []
    for segment in path.split("/"):
        if not segment or (segment.startswith("{") and segment.endswith("}")):
            continue
        cleaned = re.sub(r"[^a-zA-Z0-9]", "", segment)
        if cleaned:
            parts.append(cleaned)

    path_name = "".join(part if i == 0 else part[0].upper() + part[1:] for i, part in enumerate(parts))
    return method.lower() + path_name[:1].upper() + path_name[1:]


def select_media(content: Any) -> tuple[str | None, Any]:
    """Pick the preferred media type of a content map: JSON, then any +json type, then the first."""
    if not isinstance(content, Mapping) or not content:
        return None, None
    for content_type in content:
        if content_type.split(";")[0].strip() == "application/json":
            return content_type, content[content_type]
    for content_type in content:
        if content_type.split(";")[0].strip().endswith("+json"):
            return content_type, content[content_type]
    content_type = next(iter(content))
    return content_type, content[content_type]


def _media_schema(content: Any) -> tuple[str | None, Any, str | None]:
    content_type, media = select_media(content)
    schema = media.get("schema") if isinstance(media, Mapping) else None
    schema_name = parse_ref(schema["$ref"]) if is_ref(schema) else None
    return content_type, schema, schema_name


def _parameter(raw: Any, resolver: ReferenceResolver, where: str) -> ParameterRecord:
    param = resolver.resolve_parameter(raw)
    if not isinstance(param, Mapping) or not isinstance(param.get("name"), str) or param.get("in") not in PARAMETER_LOCATIONS:
        raise InvalidDocument(f"Invalid parameter in {where}: each parameter needs a 'name' and an 'in' of {', '.join(PARAMETER_LOCATIONS)}")

    schema = param.get("schema")
    if schema is None and "content" in param:
        _, schema, _ = _media_schema(param["content"])

    return ParameterRecord(
        name=param["name"],
        location=param["in"],
        # Path parameters are always required
        required=param["in"] == "path" or param.get("required") is True,
        schema=schema,
        description=param.get("description"),
        deprecated=param.get("deprecated") is True,
    )


def _merge_parameters(path_level: list[Any], operation_level: list[Any], resolver: ReferenceResolver, where: str) -> dict[str, list[ParameterRecord]]:
    merged: dict[tuple[str, str], ParameterRecord] = {}
    for raw in list(path_level) + list(operation_level):
        record = _parameter(raw, resolver, where)
        # Operation parameters override path-level ones with the same name and location
        merged[(record.name, record.location)] = record

    grouped: dict[str, list[ParameterRecord]] = {loc: [] for loc in PARAMETER_LOCATIONS}
    for record in merged.values():
        grouped[record.location].append(record)
    return grouped


def _request_body(raw: Any, resolver: ReferenceResolver) -> RequestBodyRecord | None:
    if raw is None:
        return None
    body = resolver.resolve_request_body(raw)
    if not isinstance(body, Mapping):
        raise InvalidDocument("A request body must be an object")
    content_type, schema, schema_name = _media_schema(body.get("content"))
    return RequestBodyRecord(required=body.get("required") is True, content_type=content_type, schema=schema, schema_name=schema_name)


def _responses(raw: Any, resolver: ReferenceResolver) -> list[ResponseRecord]:
    if raw is None:
        return []
    if not isinstance(raw, Mapping):
        raise InvalidDocument("'responses' must be an object")

    records = []
    for status, raw_response in raw.items():
        response = resolver.resolve_response(raw_response)
        if not isinstance(response, Mapping):
            raise InvalidDocument(f"Response '{status}' must be an object")
        content_type, schema, schema_name = _media_schema(response.get("content"))
        records.append(
            ResponseRecord(
                status=str(status),
                description=response.get("description"),
                content_type=content_type,
                schema=schema,
                schema_name=schema_name,
            )
        )
    return records


def extract_operations(document: Mapping[str, Any], resolver: ReferenceResolver | None = None) -> list[OperationRecord]:
    """
    Extract every operation of the document, in path then method order.

    Raises:
        DuplicateOperationName: If two operations end up with the same name
        InvalidDocument: If 'paths' or one of its entries has the wrong shape
    """
    resolver = resolver or ReferenceResolver.from_document(document)
    paths = document.get("paths") or {}
    if not isinstance(paths, Mapping):
        raise InvalidDocument("'paths' must be an object")

    operations = []
    for path, path_item in paths.items():
        if not isinstance(path_item, Mapping):
            raise InvalidDocument(f"Path item '{path}' must be an object")
        path_parameters = path_item.get("parameters") or []

        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not operation:
                continue
            where = f"{method.upper()} {path}"
            operation_id = operation.get("operationId")
            name = operation_id or derive_operation_name(method, path)
            logger.debug("Extracting operation %s (%s)", name, where)

            operations.append(
                OperationRecord(
                    name=name,
                    method=method.upper(),
                    path=path,
                    operation_id=operation_id,
                    parameters=_merge_parameters(path_parameters, operation.get("parameters") or [], resolver, where),
                    request_body=_request_body(operation.get("requestBody"), resolver),
                    responses=_responses(operation.get("responses"), resolver),
                    tags=list(operation.get("tags") or []),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    deprecated=operation.get("deprecated") is True,
                )
            )

    counts = Counter(op.name for op in operations)
    duplicates = [name for name, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateOperationName(duplicates)

    return operations


def _escape_path(path: str) -> str:
    return path.replace("~", "~0").replace("/", "~1")


def _parameters_object(params: list[ParameterRecord], convert: Callable[[Any, str], IRType], location: str) -> IRType | None:
    if not params:
        return None
    properties = []
    for param in params:
        param_type = convert(param.schema, f"{location}/{param.name}") if param.schema is not None else primitive(PrimitiveKind.STRING)
        metadata = IRMetadata(description=param.description, deprecated=param.deprecated)
        properties.append(IRProperty(param.name, param_type, required=param.required, metadata=metadata))
    return object_of(properties)


def operations_to_methods(records: list[OperationRecord], convert: Callable[[Any, str], IRType]) -> tuple[IRMethod, ...]:
    """
    Describe operation records as IR methods.

    Args:
        records: Extracted operation records
        convert: Converts a raw schema (and its document path) to an IR type

    Returns:
        One IRMethod per record; a missing body or response is 'void'
    """
    methods = []
    for record in records:
        base = f"#/paths/{_escape_path(record.path)}/{record.method.lower()}"

        body = record.request_body
        if body is not None and body.schema is not None:
            input_type = convert(body.schema, f"{base}/requestBody")
        else:
            input_type = primitive(PrimitiveKind.VOID)

        response = record.success_response
        if response is not None and response.schema is not None:
            output_type = convert(response.schema, f"{base}/responses/{response.status}")
        else:
            output_type = primitive(PrimitiveKind.VOID)

        methods.append(
            IRMethod(
                name=record.name,
                http_method=record.method,
                path=record.path,
                input=input_type,
                output=output_type,
                path_params=_parameters_object(record.parameters["path"], convert, f"{base}/parameters/path"),
                query_params=_parameters_object(record.parameters["query"], convert, f"{base}/parameters/query"),
                headers=_parameters_object(record.parameters["header"], convert, f"{base}/parameters/header"),
                metadata=IRMetadata(description=record.summary or record.description, deprecated=record.deprecated),
            )
        )
    return tuple(methods)

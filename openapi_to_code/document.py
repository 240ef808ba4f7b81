"""
Loading of OpenAPI documents from disk.

JSON and YAML parsers keep the last of two equal mapping keys. Documents are
checked for repeated keys instead: a repeated name under components.schemas
is a DuplicateSchemaName, any other repeated key an InvalidDocument.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .pipeline.errors import DuplicateSchemaName, InvalidDocument

SCHEMAS_PATH = ("components", "schemas")

YAML_MERGE_TAG = "tag:yaml.org,2002:merge"


def _duplicate_key_error(path: tuple[Any, ...], key: Any) -> Exception:
    if path == SCHEMAS_PATH:
        return DuplicateSchemaName(str(key), "the document lists the schema twice")
    pointer = "/".join(["#"] + [str(part) for part in path])
    return InvalidDocument(f"Duplicate key {key!r} at {pointer}")


class _RepeatedKeys(dict):
    """A parsed JSON object that listed some of its keys more than once."""

    def __init__(self, pairs: list[tuple[str, Any]], repeated: list[str]):
        super().__init__(pairs)
        self.repeated = repeated


def _json_object(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    seen: set[str] = set()
    repeated = []
    for key, _ in pairs:
        if key in seen:
            repeated.append(key)
        seen.add(key)
    return _RepeatedKeys(pairs, repeated) if repeated else dict(pairs)


def _check_json_keys(node: Any, path: tuple[Any, ...] = ()) -> None:
    if isinstance(node, dict):
        if isinstance(node, _RepeatedKeys):
            raise _duplicate_key_error(path, node.repeated[0])
        for key, value in node.items():
            _check_json_keys(value, path + (key,))
    elif isinstance(node, list):
        for i, value in enumerate(node):
            _check_json_keys(value, path + (i,))


def _check_yaml_keys(node: yaml.Node, path: tuple[Any, ...], seen_nodes: set[int]) -> None:
    # Aliases share node objects and may point back at an ancestor
    if id(node) in seen_nodes:
        return
    seen_nodes.add(id(node))

    if isinstance(node, yaml.MappingNode):
        keys: set[tuple[str, str]] = set()
        for key_node, value_node in node.value:
            # Merged mappings ('<<') may be overridden by explicit keys
            if key_node.tag == YAML_MERGE_TAG or not isinstance(key_node, yaml.ScalarNode):
                continue
            key = (key_node.tag, key_node.value)
            if key in keys:
                raise _duplicate_key_error(path, key_node.value)
            keys.add(key)
            _check_yaml_keys(value_node, path + (key_node.value,), seen_nodes)
    elif isinstance(node, yaml.SequenceNode):
        for i, item in enumerate(node.value):
            _check_yaml_keys(item, path + (i,), seen_nodes)


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects documents repeating a mapping key."""

    def get_single_data(self) -> Any:
        node = self.get_single_node()
        if node is None:
            return None
        _check_yaml_keys(node, (), set())
        return self.construct_document(node)


def parse_document(content: str, suffix: str = ".json") -> dict[str, Any]:
    """
    Parse the text of an OpenAPI document.

    Args:
        content: Document text
        suffix: File suffix deciding the format; anything but .json is read as YAML

    Returns:
        The document as a dictionary

    Raises:
        InvalidDocument: If the text does not parse to an object or repeats a key
        DuplicateSchemaName: If components.schemas lists a name twice
    """
    try:
        if suffix == ".json":
            document = json.loads(content, object_pairs_hook=_json_object)
            _check_json_keys(document)
        else:
            # YAML is a superset of JSON
            document = yaml.load(content, Loader=UniqueKeyLoader)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidDocument(f"Cannot parse document: {e}") from e

    if not isinstance(document, dict):
        raise InvalidDocument("An OpenAPI document must be an object")
    return document


def load_document(path: str | Path) -> dict[str, Any]:
    """Load an OpenAPI document from a YAML or JSON file."""
    path = Path(path)
    return parse_document(path.read_text(encoding="utf-8"), path.suffix.lower())

"""Build a ProtoFile from a JSON schema definition.

Enums are built first, then messages in the order listed, then services. A
field type is either a scalar type name, ``google.protobuf.Any``, an enum, a
message declared earlier in the file (nested messages by qualified name), or
a nested message of the enclosing message by its simple name.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from protogen.models import (
    ANY,
    ANY_TYPE_NAME,
    EnumBuilder,
    FieldType,
    MessageBuilder,
    ProtoEnum,
    ProtoFile,
    ProtoFileBuilder,
    ProtoMessage,
    ProtoService,
    ScalarType,
    ServiceBuilder,
)

SCALAR_TYPES: Dict[str, ScalarType] = {t.value: t for t in ScalarType}


class LoaderError(Exception):
    """Raised when a schema definition is malformed or references unknown types."""


def load_definition(file_path: str) -> ProtoFile:
    """Read a JSON schema definition file and build the ProtoFile it describes."""
    try:
        data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise LoaderError(f"{file_path} is not valid JSON: {e}") from e
    return build_proto_file(data)


def build_proto_file(data: Dict[str, Any]) -> ProtoFile:
    if not isinstance(data, dict):
        raise LoaderError("A schema definition must be a JSON object.")

    builder = ProtoFileBuilder()
    if data.get("package"):
        builder.with_package(data["package"])
    if data.get("comment"):
        builder.with_comment(data["comment"])
    for import_data in _list(data, "imports"):
        builder.with_import(_require(import_data, "path", "import"), bool(import_data.get("public", False)))

    types: Dict[str, FieldType] = {}
    for enum_data in _list(data, "enums"):
        enum = _build_enum(enum_data)
        builder.with_enum(enum)
        types[enum.name] = enum

    for message_data in _list(data, "messages"):
        message = _build_message(message_data, types)
        builder.with_message(message)
        _register_message(message, types)

    for service_data in _list(data, "services"):
        builder.with_service(_build_service(service_data, types))

    return builder.build()


def _list(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = data.get(key, [])
    if not isinstance(items, list):
        raise LoaderError(f"'{key}' must be a list, got {type(items).__name__}.")
    for item in items:
        if not isinstance(item, dict):
            raise LoaderError(f"Entries of '{key}' must be objects, got {item!r}.")
    return items


def _require(data: Dict[str, Any], key: str, kind: str) -> Any:
    if key not in data:
        raise LoaderError(f"Missing '{key}' in {kind} definition: {data!r}")
    return data[key]


def _resolve_type(type_name: str, scope: Dict[str, FieldType]) -> FieldType:
    if type_name in SCALAR_TYPES:
        return SCALAR_TYPES[type_name]
    if type_name == ANY_TYPE_NAME:
        return ANY
    if type_name in scope:
        return scope[type_name]
    raise LoaderError(f"Unknown type '{type_name}'.")


def _resolve_message(type_name: str, scope: Dict[str, FieldType]) -> ProtoMessage:
    resolved = scope.get(type_name)
    if not isinstance(resolved, ProtoMessage):
        raise LoaderError(f"Unknown message '{type_name}'.")
    return resolved


def _register_message(message: ProtoMessage, types: Dict[str, FieldType]) -> None:
    types[message.name] = message
    for nested in message.nested_messages:
        _register_message(nested, types)


def _build_enum(data: Dict[str, Any]) -> ProtoEnum:
    builder = EnumBuilder(_require(data, "name", "enum"))
    builder.with_comment(data.get("comment", ""))
    for value_data in _list(data, "values"):
        builder.with_value(
            _require(value_data, "name", "enum value"),
            value_data.get("value"),
            value_data.get("comment", ""),
        )
    return builder.build()


def _build_message(data: Dict[str, Any], scope: Dict[str, FieldType]) -> ProtoMessage:
    builder = MessageBuilder(_require(data, "name", "message"))
    builder.with_comment(data.get("comment", ""))

    # Nested messages are visible to the fields of their parent by simple name.
    local_scope = dict(scope)
    for nested_data in _list(data, "nested"):
        nested = _build_message(nested_data, local_scope)
        builder.with_nested_message(nested)
        local_scope[nested.simple_name] = nested

    for field_data in _list(data, "fields"):
        builder.with_field(
            _resolve_type(_require(field_data, "type", "field"), local_scope),
            _require(field_data, "name", "field"),
            field_data.get("number"),
            bool(field_data.get("repeated", False)),
            field_data.get("comment", ""),
        )
    return builder.build()


def _build_service(data: Dict[str, Any], scope: Dict[str, FieldType]) -> ProtoService:
    builder = ServiceBuilder(_require(data, "name", "service"))
    builder.with_comment(data.get("comment", ""))
    for rpc_data in _list(data, "rpcs"):
        builder.with_rpc(
            _require(rpc_data, "name", "rpc"),
            _resolve_message(_require(rpc_data, "input", "rpc"), scope),
            _resolve_message(_require(rpc_data, "output", "rpc"), scope),
            bool(rpc_data.get("input_stream", False)),
            bool(rpc_data.get("output_stream", False)),
            rpc_data.get("comment", ""),
        )
    return builder.build()

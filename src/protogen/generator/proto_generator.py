from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

from jinja2 import Environment, FileSystemLoader

from protogen.errors import ProtoSerializationError
from protogen.models import (
    ProtoEnum,
    ProtoField,
    ProtoFile,
    ProtoMessage,
    ProtoService,
)

TEMPLATE_NAME = "proto3.proto.j2"


def _comment_lines(comment: str) -> List[str]:
    """Split a block comment into the lines rendered as ``// line``."""
    if not comment:
        return []
    return comment.splitlines()


def trailing_comment(comment: str) -> str:
    """Render a comment placed after a declaration on the same line."""
    if not comment:
        return ""
    return " // " + " ".join(line.strip() for line in comment.splitlines())


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["trailing_comment"] = trailing_comment
    return env


def _build_field(proto_field: ProtoField) -> Dict:
    return {
        "type": proto_field.type_name,
        "name": proto_field.name,
        "number": proto_field.number,
        "repeated": proto_field.repeated,
        "comment": proto_field.comment,
    }


def _build_message(message: ProtoMessage) -> Dict:
    """Build template data for a message and, recursively, its nested messages."""
    return {
        "name": message.simple_name,
        "comment_lines": _comment_lines(message.comment),
        "fields": [_build_field(f) for f in message.fields],
        "nested": [_build_message(m) for m in message.nested_messages],
    }


def _build_enum(enum: ProtoEnum) -> Dict:
    return {
        "name": enum.name,
        "comment_lines": _comment_lines(enum.comment),
        "enum_values": [
            {"name": v.name, "number": v.number, "comment": v.comment}
            for v in enum.values
        ],
    }


def _build_service(service: ProtoService) -> Dict:
    return {
        "name": service.name,
        "comment_lines": _comment_lines(service.comment),
        "rpcs": [
            {
                "name": rpc.name,
                "input": rpc.input.name,
                "input_stream": rpc.input_stream,
                "output": rpc.output.name,
                "output_stream": rpc.output_stream,
                "comment": rpc.comment,
            }
            for rpc in service.rpcs
        ],
    }


def generate_proto(proto_file: ProtoFile) -> str:
    """Generate proto source text for a proto file.

    Raises ProtoSerializationError if the template cannot be loaded or
    rendered; no partial output is returned in that case.
    """
    context = {
        "syntax": proto_file.syntax,
        "package": proto_file.package,
        "imports": [{"path": i.path, "public": i.public} for i in proto_file.imports],
        "comment_lines": _comment_lines(proto_file.comment),
        "messages": [_build_message(m) for m in proto_file.messages],
        "enums": [_build_enum(e) for e in proto_file.enums],
        "services": [_build_service(s) for s in proto_file.services],
    }
    try:
        template = _get_template_env().get_template(TEMPLATE_NAME)
        return template.render(**context)
    except Exception as e:
        raise ProtoSerializationError(e) from e


def write_proto(proto_file: ProtoFile, file_path: Union[str, Path]) -> str:
    """Render a proto file and write it to file_path, replacing any existing file.

    Returns the path written.
    """
    source = generate_proto(proto_file)
    Path(file_path).write_text(source, encoding="utf-8")
    return str(file_path)

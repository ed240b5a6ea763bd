from __future__ import annotations

import argparse
import os
import sys

from protogen.errors import ProtoModelError, ProtoSerializationError
from protogen.generator.proto_generator import write_proto
from protogen.loader import LoaderError, load_definition


def run(definition_path: str, output_path: str) -> None:
    """Load a JSON schema definition, render it and write the .proto file."""
    if not os.path.isfile(definition_path):
        print(f"Definition file not found: {definition_path}", file=sys.stderr)
        sys.exit(1)

    # 1. Build the model
    try:
        proto_file = load_definition(definition_path)
    except (LoaderError, ProtoModelError, TypeError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    print(
        f"Loaded {definition_path}: {len(proto_file.messages)} message(s), "
        f"{len(proto_file.enums)} enum(s), {len(proto_file.services)} service(s)"
    )

    # 2. Render and persist
    output_dir = os.path.dirname(os.path.abspath(output_path))
    try:
        os.makedirs(output_dir, exist_ok=True)
        written = write_proto(proto_file, output_path)
    except (ProtoSerializationError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Generated: {written}")


def main():
    parser = argparse.ArgumentParser(
        description="Generate a proto3 file from a JSON schema definition",
    )
    parser.add_argument(
        "--definition",
        required=True,
        help="Path to the JSON schema definition",
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Path of the .proto file to write (overwritten if it exists)",
    )

    args = parser.parse_args()
    run(args.definition, args.output)


if __name__ == "__main__":
    main()

"""Schema model for a single proto3 file, and the builders that assemble it.

Leaf records (fields, enum values, rpcs, imports) validate themselves on
construction. Aggregates (messages, enums, services, the file itself) are only
created through their builders, which validate every insertion before storing
it. Built aggregates expose their collections as tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union

from protogen.errors import (
    EnumValueAlreadyExistsError,
    FieldAlreadyExistsError,
    FieldNumberAlreadyExistsError,
    FirstEnumValueNotZeroError,
    MessageAlreadyNestedError,
    MessagePinnedError,
    NestedMessageAlreadyExistsError,
    RootElementAlreadyExistsError,
    RpcAlreadyExistsError,
)
from protogen.identifiers import FieldNumber, FullIdentifier, Identifier

PROTO_SYNTAX = "proto3"

ANY_TYPE_NAME = "google.protobuf.Any"
ANY_TYPE_IMPORT = "google/protobuf/any.proto"


class ScalarType(Enum):
    DOUBLE = "double"
    FLOAT = "float"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    SINT32 = "sint32"
    SINT64 = "sint64"
    FIXED32 = "fixed32"
    FIXED64 = "fixed64"
    SFIXED32 = "sfixed32"
    SFIXED64 = "sfixed64"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"


class AnyType:
    """Google's well-known ``google.protobuf.Any`` type. There is one instance."""

    _instance: Optional[AnyType] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def name(self) -> str:
        return ANY_TYPE_NAME

    def __repr__(self) -> str:
        return "AnyType()"

    def __str__(self) -> str:
        return ANY_TYPE_NAME


ANY = AnyType()


def _check_int(value: object, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int, got {type(value).__name__}")


# --- leaf records ---


@dataclass(frozen=True)
class ProtoField:
    """A message field: ``[repeated] <type> <name> = <number>;``

    Fields compare equal by name only.
    """

    field_type: FieldType = field(compare=False)
    name: str
    number: int = field(compare=False)
    repeated: bool = field(default=False, compare=False)
    comment: str = field(default="", compare=False)

    def __post_init__(self):
        if not isinstance(self.field_type, FIELD_TYPE_CLASSES):
            raise TypeError(f"Unsupported field type: {self.field_type!r}")
        Identifier(self.name)
        FieldNumber(self.number)

    @property
    def type_name(self) -> str:
        return field_type_name(self.field_type)


@dataclass(frozen=True)
class ProtoEnumValue:
    """An enum constant: ``<NAME> = <number>;``. Compares equal by name only."""

    name: str
    number: int = field(compare=False)
    comment: str = field(default="", compare=False)

    def __post_init__(self):
        Identifier(self.name)
        _check_int(self.number, "Enum value")


@dataclass(frozen=True)
class ProtoRpc:
    """A remote procedure call of a service. Compares equal by name only."""

    name: str
    input: ProtoMessage = field(compare=False)
    output: ProtoMessage = field(compare=False)
    input_stream: bool = field(default=False, compare=False)
    output_stream: bool = field(default=False, compare=False)
    comment: str = field(default="", compare=False)

    def __post_init__(self):
        Identifier(self.name)
        for message in (self.input, self.output):
            if not isinstance(message, ProtoMessage):
                raise TypeError(f"RPC '{self.name}' expects messages, got {message!r}")


@dataclass(frozen=True)
class ProtoImport:
    """An import declaration. Imports compare equal by path only."""

    path: str
    public: bool = field(default=False, compare=False)


# --- aggregates ---


class ProtoEnum:
    """An enum definition. Create instances with :class:`EnumBuilder`."""

    def __init__(self, identifier: Identifier, comment: str, values: Tuple[ProtoEnumValue, ...]):
        self._identifier = identifier
        self._comment = comment
        self._values = values

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    @property
    def name(self) -> str:
        return str(self._identifier)

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def values(self) -> Tuple[ProtoEnumValue, ...]:
        """Enum values, sorted by number (insertion order among equal numbers)."""
        return self._values

    def __eq__(self, other):
        if not isinstance(other, ProtoEnum):
            return NotImplemented
        return self._identifier == other._identifier

    def __hash__(self):
        return hash(("enum", self._identifier))

    def __repr__(self) -> str:
        return f"ProtoEnum({self.name!r})"


class ProtoMessage:
    """A message definition, possibly containing nested messages.

    Create instances with :class:`MessageBuilder`. The parent link of a
    nested message is set once, when the enclosing message is built, and the
    qualified ``name`` is derived from the parent chain on every access. Once
    a proto file uses a message its qualified name is pinned and it can no
    longer be nested.
    """

    def __init__(
        self,
        identifier: Identifier,
        comment: str,
        fields: Tuple[ProtoField, ...],
        nested_messages: Tuple[ProtoMessage, ...],
    ):
        self._identifier = identifier
        self._comment = comment
        self._fields = fields
        self._nested_messages = nested_messages
        self._parent: Optional[ProtoMessage] = None
        self._pinned = False

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    @property
    def simple_name(self) -> str:
        return str(self._identifier)

    @property
    def name(self) -> str:
        """Fully qualified name, e.g. ``Outer.Middle.Inner`` for nested messages."""
        if self._parent is None:
            return self.simple_name
        return f"{self._parent.name}.{self.simple_name}"

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def fields(self) -> Tuple[ProtoField, ...]:
        """Fields sorted by field number."""
        return self._fields

    @property
    def nested_messages(self) -> Tuple[ProtoMessage, ...]:
        return self._nested_messages

    @property
    def parent(self) -> Optional[ProtoMessage]:
        return self._parent

    @property
    def is_nested(self) -> bool:
        return self._parent is not None

    @property
    def is_pinned(self) -> bool:
        return self._pinned

    def _check_nestable(self) -> None:
        if self._parent is not None:
            raise MessageAlreadyNestedError(self.name)
        if self._pinned:
            raise MessagePinnedError(self.name)

    def _attach(self, parent: ProtoMessage) -> None:
        self._check_nestable()
        self._parent = parent

    def _pin(self) -> None:
        self._pinned = True

    def __eq__(self, other):
        if not isinstance(other, ProtoMessage):
            return NotImplemented
        return self._identifier == other._identifier

    def __hash__(self):
        return hash(("message", self._identifier))

    def __repr__(self) -> str:
        return f"ProtoMessage({self.name!r})"


class ProtoService:
    """A service definition. Create instances with :class:`ServiceBuilder`."""

    def __init__(self, identifier: Identifier, comment: str, rpcs: Tuple[ProtoRpc, ...]):
        self._identifier = identifier
        self._comment = comment
        self._rpcs = rpcs

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    @property
    def name(self) -> str:
        return str(self._identifier)

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def rpcs(self) -> Tuple[ProtoRpc, ...]:
        return self._rpcs

    def __eq__(self, other):
        if not isinstance(other, ProtoService):
            return NotImplemented
        return self._identifier == other._identifier

    def __hash__(self):
        return hash(("service", self._identifier))

    def __repr__(self) -> str:
        return f"ProtoService({self.name!r})"


FieldType = Union[ScalarType, AnyType, ProtoMessage, ProtoEnum]
FIELD_TYPE_CLASSES = (ScalarType, AnyType, ProtoMessage, ProtoEnum)


def field_type_name(field_type: FieldType) -> str:
    """Return the name a field type has in proto source."""
    if isinstance(field_type, ScalarType):
        return field_type.value
    if isinstance(field_type, AnyType):
        return ANY_TYPE_NAME
    if isinstance(field_type, ProtoMessage):
        return field_type.name
    if isinstance(field_type, ProtoEnum):
        return field_type.name
    raise TypeError(f"Unsupported field type: {field_type!r}")


class ProtoFile:
    """One proto3 file. Create instances with :class:`ProtoFileBuilder`."""

    def __init__(
        self,
        package: Optional[FullIdentifier],
        comment: str,
        messages: Tuple[ProtoMessage, ...],
        enums: Tuple[ProtoEnum, ...],
        services: Tuple[ProtoService, ...],
        imports: Tuple[ProtoImport, ...],
    ):
        self._package = package
        self._comment = comment
        self._messages = messages
        self._enums = enums
        self._services = services
        self._imports = imports

    @property
    def syntax(self) -> str:
        return PROTO_SYNTAX

    @property
    def package(self) -> str:
        """The package name, or an empty string if none was set."""
        return str(self._package) if self._package is not None else ""

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def messages(self) -> Tuple[ProtoMessage, ...]:
        return self._messages

    @property
    def enums(self) -> Tuple[ProtoEnum, ...]:
        return self._enums

    @property
    def services(self) -> Tuple[ProtoService, ...]:
        return self._services

    @property
    def imports(self) -> Tuple[ProtoImport, ...]:
        return self._imports

    def render(self) -> str:
        """Serialize this file into proto source text."""
        from protogen.generator.proto_generator import generate_proto

        return generate_proto(self)

    def persist(self, path: Union[str, Path]) -> str:
        """Serialize this file and write it to ``path``. Returns the path written."""
        from protogen.generator.proto_generator import write_proto

        return write_proto(self, path)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return (
            f"ProtoFile(package={self.package!r}, messages={len(self._messages)}, "
            f"enums={len(self._enums)}, services={len(self._services)})"
        )


# --- builders ---


class EnumBuilder:
    """Collects enum values; the first value added must be 0.

    Values added without a number get the highest number so far plus one.
    """

    def __init__(self, name: str):
        self._identifier = Identifier(name)
        self._comment = ""
        self._values: List[ProtoEnumValue] = []

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    def with_comment(self, comment: str) -> EnumBuilder:
        self._comment = comment
        return self

    def add_value(self, value: ProtoEnumValue) -> EnumBuilder:
        if not self._values and value.number != 0:
            raise FirstEnumValueNotZeroError(str(self._identifier), value.number)
        if any(v.name == value.name for v in self._values):
            raise EnumValueAlreadyExistsError(value.name)
        self._values.append(value)
        return self

    def with_value(self, name: str, number: Optional[int] = None, comment: str = "") -> EnumBuilder:
        if number is None:
            number = max((v.number for v in self._values), default=-1) + 1
        return self.add_value(ProtoEnumValue(name, number, comment))

    def build(self) -> ProtoEnum:
        # sorted() is stable, so equal numbers keep their insertion order
        values = sorted(self._values, key=lambda v: v.number)
        return ProtoEnum(self._identifier, self._comment, tuple(values))


class MessageBuilder:
    """Collects the fields and nested messages of a message.

    Fields added without a number get the highest field number so far plus
    one, starting at 1. Nested messages are linked to the built message, so a
    builder holding nested messages can be built only once.
    """

    def __init__(self, name: str):
        self._identifier = Identifier(name)
        self._comment = ""
        self._fields: List[ProtoField] = []
        self._nested_messages: List[ProtoMessage] = []

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    def with_comment(self, comment: str) -> MessageBuilder:
        self._comment = comment
        return self

    def add_field(self, proto_field: ProtoField) -> MessageBuilder:
        if any(f.name == proto_field.name for f in self._fields):
            raise FieldAlreadyExistsError(proto_field.name)
        if any(f.number == proto_field.number for f in self._fields):
            raise FieldNumberAlreadyExistsError(str(self._identifier), proto_field.number)
        self._fields.append(proto_field)
        return self

    def with_field(
        self,
        field_type: FieldType,
        name: str,
        number: Optional[int] = None,
        repeated: bool = False,
        comment: str = "",
    ) -> MessageBuilder:
        if number is None:
            number = max((f.number for f in self._fields), default=0) + 1
        return self.add_field(ProtoField(field_type, name, number, repeated, comment))

    def with_nested_message(self, message: Union[ProtoMessage, MessageBuilder]) -> MessageBuilder:
        if any(m.identifier == message.identifier for m in self._nested_messages):
            raise NestedMessageAlreadyExistsError(str(message.identifier))
        if isinstance(message, MessageBuilder):
            message = message.build()
        message._check_nestable()
        self._nested_messages.append(message)
        return self

    def build(self) -> ProtoMessage:
        nested = tuple(self._nested_messages)
        for child in nested:
            child._check_nestable()
        message = ProtoMessage(
            self._identifier,
            self._comment,
            tuple(sorted(self._fields, key=lambda f: f.number)),
            nested,
        )
        for child in nested:
            child._attach(message)
        return message


class ServiceBuilder:
    def __init__(self, name: str):
        self._identifier = Identifier(name)
        self._comment = ""
        self._rpcs: List[ProtoRpc] = []

    @property
    def identifier(self) -> Identifier:
        return self._identifier

    def with_comment(self, comment: str) -> ServiceBuilder:
        self._comment = comment
        return self

    def add_rpc(self, rpc: ProtoRpc) -> ServiceBuilder:
        if any(r.name == rpc.name for r in self._rpcs):
            raise RpcAlreadyExistsError(rpc.name)
        self._rpcs.append(rpc)
        return self

    def with_rpc(
        self,
        name: str,
        input: ProtoMessage,
        output: ProtoMessage,
        input_stream: bool = False,
        output_stream: bool = False,
        comment: str = "",
    ) -> ServiceBuilder:
        return self.add_rpc(ProtoRpc(name, input, output, input_stream, output_stream, comment))

    def build(self) -> ProtoService:
        return ProtoService(self._identifier, self._comment, tuple(self._rpcs))


def _contains_any_type(message: ProtoMessage) -> bool:
    if any(isinstance(f.field_type, AnyType) for f in message.fields):
        return True
    return any(_contains_any_type(nested) for nested in message.nested_messages)


def _referenced_messages(messages: List[ProtoMessage], services: List[ProtoService]) -> List[ProtoMessage]:
    """Return every message a proto file renders or names, without duplicates."""
    found: List[ProtoMessage] = []
    pending: List[ProtoMessage] = list(messages)
    for service in services:
        for rpc in service.rpcs:
            pending.extend((rpc.input, rpc.output))
    while pending:
        message = pending.pop()
        if any(m is message for m in found):
            continue
        found.append(message)
        pending.extend(f.field_type for f in message.fields if isinstance(f.field_type, ProtoMessage))
        pending.extend(message.nested_messages)
    return found


class ProtoFileBuilder:
    """Assembles a :class:`ProtoFile`.

    Messages, enums and services share one namespace: a name may be used by
    only one of them. If any message (at any nesting depth) has a field of
    the any type, ``build()`` adds the import for it unless already present.
    Root messages, and every message the built file refers to, are pinned: they
    can no longer be nested into another message.
    """

    def __init__(self):
        self._messages: List[ProtoMessage] = []
        self._enums: List[ProtoEnum] = []
        self._services: List[ProtoService] = []
        self._root_names: Set[Identifier] = set()
        self._imports: List[ProtoImport] = []
        self._package: Optional[FullIdentifier] = None
        self._comment = ""

    def _claim_root_name(self, identifier: Identifier) -> None:
        if identifier in self._root_names:
            raise RootElementAlreadyExistsError(str(identifier))
        self._root_names.add(identifier)

    def with_message(self, message: Union[ProtoMessage, MessageBuilder]) -> ProtoFileBuilder:
        if message.identifier in self._root_names:
            raise RootElementAlreadyExistsError(str(message.identifier))
        if isinstance(message, MessageBuilder):
            message = message.build()
        if message.is_nested:
            raise MessageAlreadyNestedError(message.name)
        self._claim_root_name(message.identifier)
        message._pin()
        self._messages.append(message)
        return self

    def with_enum(self, enum: Union[ProtoEnum, EnumBuilder]) -> ProtoFileBuilder:
        self._claim_root_name(enum.identifier)
        if isinstance(enum, EnumBuilder):
            enum = enum.build()
        self._enums.append(enum)
        return self

    def with_service(self, service: Union[ProtoService, ServiceBuilder]) -> ProtoFileBuilder:
        self._claim_root_name(service.identifier)
        if isinstance(service, ServiceBuilder):
            service = service.build()
        self._services.append(service)
        return self

    def add_import(self, proto_import: ProtoImport) -> ProtoFileBuilder:
        self._imports.append(proto_import)
        return self

    def with_import(self, path: str, public: bool = False) -> ProtoFileBuilder:
        return self.add_import(ProtoImport(path, public))

    def with_package(self, package: Union[str, FullIdentifier]) -> ProtoFileBuilder:
        if not isinstance(package, FullIdentifier):
            package = FullIdentifier(package)
        self._package = package
        return self

    def with_comment(self, comment: str) -> ProtoFileBuilder:
        self._comment = comment
        return self

    def build(self) -> ProtoFile:
        imports = list(self._imports)
        if any(_contains_any_type(m) for m in self._messages):
            if not any(i.path == ANY_TYPE_IMPORT for i in imports):
                imports.append(ProtoImport(ANY_TYPE_IMPORT))
        # qualified names rendered by the built file must not change later
        for message in _referenced_messages(self._messages, self._services):
            message._pin()
        return ProtoFile(
            package=self._package,
            comment=self._comment,
            messages=tuple(self._messages),
            enums=tuple(self._enums),
            services=tuple(self._services),
            imports=tuple(imports),
        )

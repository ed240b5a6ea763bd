from __future__ import annotations


class ProtoModelError(Exception):
    """Base class for every violation of a schema model invariant."""


class InvalidIdentifierError(ProtoModelError):
    """Raised when a name or a dotted package name has an invalid pattern."""

    def __init__(self, name: object):
        super().__init__(f"'{name}' is not a valid identifier.")
        self.name = name


class FieldNumberOutOfRangeError(ProtoModelError):
    def __init__(self, number: int):
        super().__init__(
            f"Field number {number} is out of range; "
            f"allowed are numbers between 1 and 536870911."
        )
        self.number = number


class FieldNumberReservedError(ProtoModelError):
    def __init__(self, number: int):
        super().__init__(
            f"Field number {number} is reserved; "
            f"numbers 19000 through 19999 cannot be used."
        )
        self.number = number


class FieldAlreadyExistsError(ProtoModelError):
    def __init__(self, field_name: str):
        super().__init__(f"A field with the name '{field_name}' already exists.")
        self.field_name = field_name


class FieldNumberAlreadyExistsError(ProtoModelError):
    def __init__(self, message_name: str, number: int):
        super().__init__(
            f"The message '{message_name}' already contains a field with the number {number}."
        )
        self.message_name = message_name
        self.number = number


class EnumValueAlreadyExistsError(ProtoModelError):
    def __init__(self, value_name: str):
        super().__init__(f"An enum value with the name '{value_name}' already exists.")
        self.value_name = value_name


class FirstEnumValueNotZeroError(ProtoModelError):
    def __init__(self, enum_name: str, number: int):
        super().__init__(
            f"The first value of enum '{enum_name}' must be 0 (got {number})."
        )
        self.enum_name = enum_name
        self.number = number


class NestedMessageAlreadyExistsError(ProtoModelError):
    def __init__(self, message_name: str):
        super().__init__(f"A nested message with the name '{message_name}' already exists.")
        self.message_name = message_name


class MessageAlreadyNestedError(ProtoModelError):
    """Raised when a message that already has a parent is nested again."""

    def __init__(self, message_name: str):
        super().__init__(f"The message '{message_name}' is already nested in another message.")
        self.message_name = message_name


class MessagePinnedError(ProtoModelError):
    """Raised when nesting a message whose name is already fixed by a proto file.

    Root messages of a proto file, and messages a built proto file refers to,
    keep their qualified name for good.
    """

    def __init__(self, message_name: str):
        super().__init__(
            f"The message '{message_name}' is used by a proto file and cannot be nested."
        )
        self.message_name = message_name


class RpcAlreadyExistsError(ProtoModelError):
    def __init__(self, rpc_name: str):
        super().__init__(f"A remote procedure call with the name '{rpc_name}' already exists.")
        self.rpc_name = rpc_name


class RootElementAlreadyExistsError(ProtoModelError):
    """Raised when a message, enum or service name is used twice in one file."""

    def __init__(self, name: str):
        super().__init__(
            f"A message, enum or service with the name '{name}' already exists in this proto file."
        )
        self.name = name


class ProtoSerializationError(Exception):
    """Raised when a proto file cannot be rendered to text."""

    def __init__(self, cause: Exception):
        super().__init__(f"Could not serialize proto file: {type(cause).__name__}: {cause}")
        self.cause = cause

"""Type definitions for protocol schemas and code generation."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config


class GenerationError(RuntimeError):
    """Raised when code generation for a protocol fails."""


class UnsupportedKindError(GenerationError):
    """Raised when a field kind has no serializer or malformed type arguments."""


class UnknownProtocolError(GenerationError):
    """Raised when a nested protocol field references an unregistered id."""


class SerializerKind(StrEnum):
    """Closed set of field kinds understood by the serializer registry."""

    BOOL = "bool"
    BYTE = "byte"
    SHORT = "short"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    ARRAY = "array"
    LIST = "list"
    SET = "set"
    MAP = "map"
    NESTED_PROTOCOL = "nested"

    @classmethod
    def parse(cls, name: str) -> "SerializerKind":
        """Look up a kind by its schema name."""
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedKindError(f"Unsupported field kind: {name!r}") from None

    @property
    def arity(self) -> int:
        """Number of type arguments the kind requires."""
        if self is SerializerKind.MAP:
            return 2
        if self in CONTAINER_KINDS:
            return 1
        return 0


PRIMITIVE_KINDS = frozenset(
    [
        SerializerKind.BOOL,
        SerializerKind.BYTE,
        SerializerKind.SHORT,
        SerializerKind.INT32,
        SerializerKind.INT64,
        SerializerKind.FLOAT32,
        SerializerKind.FLOAT64,
    ]
)

CONTAINER_KINDS = frozenset(
    [
        SerializerKind.ARRAY,
        SerializerKind.LIST,
        SerializerKind.SET,
        SerializerKind.MAP,
    ]
)

# Schema documents use camelCase keys (typeArgs, compatibleAddition, ...)
_CAMEL = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]


def _decode_type_args(items: Any) -> tuple["FieldSpec", ...]:
    return tuple(FieldSpec.from_dict(item) for item in items or ())


@dataclass(frozen=True)
class FieldSpec(DataClassJsonMixin):
    """Represents one field of a protocol, or one type argument of a container.

    For containers:
    - type_args holds the element spec (array/list/set) or key and value (map)
    - element specs carry an empty name

    For nested protocols, protocol_id names the referenced schema.
    """

    dataclass_json_config = _CAMEL

    name: str
    kind: SerializerKind = field(metadata=config(decoder=SerializerKind.parse))
    type_args: tuple["FieldSpec", ...] = field(
        default=(), metadata=config(decoder=_decode_type_args)
    )
    compatible_addition: bool = False
    protocol_id: int | None = None

    @classmethod
    def element(
        cls, kind: SerializerKind, *type_args: "FieldSpec", protocol_id: int | None = None
    ) -> "FieldSpec":
        """Build an unnamed spec used as a container type argument."""
        return cls(name="", kind=kind, type_args=tuple(type_args), protocol_id=protocol_id)


def _decode_fields(items: Any) -> tuple[FieldSpec, ...]:
    return tuple(FieldSpec.from_dict(item) for item in items or ())


@dataclass(frozen=True)
class ProtocolSchema(DataClassJsonMixin):
    """Represents one message type.

    The order of fields is the wire order and must match declaration order.
    predicted_length=None means it is calculated from the original fields.
    """

    dataclass_json_config = _CAMEL

    id: int
    name: str
    fields: tuple[FieldSpec, ...] = field(default=(), metadata=config(decoder=_decode_fields))
    compatible: bool = False
    predicted_length: int | None = None

    @property
    def original_fields(self) -> tuple[FieldSpec, ...]:
        """Fields present since the first version of the protocol."""
        return tuple(f for f in self.fields if not f.compatible_addition)


def is_primitive(kind: SerializerKind) -> bool:
    """Check if a kind is a fixed-size primitive."""
    return kind in PRIMITIVE_KINDS

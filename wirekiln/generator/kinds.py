"""Serializer handlers for every field kind.

Each handler produces, for one field (or container type argument):
- the default value used to initialize the field
- the statements writing a value onto the buffer
- the statements and expression reading a value back

Container handlers delegate to the handlers of their type arguments.
Nested protocols call into the referenced protocol's own routines.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .nodes import (
    AddElement,
    Assign,
    Expr,
    ForEach,
    ForEachEntry,
    LengthOf,
    Literal,
    Names,
    NewContainer,
    PutEntry,
    ReadLength,
    ReadPacket,
    ReadValue,
    Repeat,
    Stmt,
    Var,
    WriteLength,
    WritePacket,
    WriteValue,
)
from .schema import SchemaRegistry
from .types import (
    FieldSpec,
    SerializerKind,
    UnknownProtocolError,
    UnsupportedKindError,
    is_primitive,
)


@dataclass
class Scope:
    """Per-unit emission state shared by the handlers of one protocol."""

    handlers: Mapping[SerializerKind, "KindHandler"]
    registry: SchemaRegistry
    names: Names = field(default_factory=Names)

    def handler(self, spec: FieldSpec) -> "KindHandler":
        handler = self.handlers.get(spec.kind)
        if handler is None:
            raise UnsupportedKindError(f"No serializer registered for kind {spec.kind!r}")
        return handler


def _is_hashable(spec: FieldSpec) -> bool:
    # Decoded containers and records are mutable, so only scalars can be set
    # elements or map keys
    return is_primitive(spec.kind) or spec.kind == SerializerKind.STRING


def _type_args(spec: FieldSpec) -> tuple[FieldSpec, ...]:
    if len(spec.type_args) != spec.kind.arity:
        raise UnsupportedKindError(
            f"{spec.kind} expects {spec.kind.arity} type argument(s), "
            f"got {len(spec.type_args)}"
        )
    if spec.kind in (SerializerKind.SET, SerializerKind.MAP):
        element = spec.type_args[0]
        if not _is_hashable(element):
            role = "element" if spec.kind == SerializerKind.SET else "key"
            raise UnsupportedKindError(f"{spec.kind} {role} cannot be of kind {element.kind}")
    return spec.type_args


class KindHandler:
    """Base class for field kind handlers."""

    def default_value(self, spec: FieldSpec) -> Expr:
        raise NotImplementedError

    def emit_write(self, spec: FieldSpec, value: Expr, out: list[Stmt], scope: Scope) -> None:
        raise NotImplementedError

    def emit_read(self, spec: FieldSpec, out: list[Stmt], scope: Scope) -> Expr:
        """Append any setup statements to out and return the decoded value."""
        raise NotImplementedError


class ValueHandler(KindHandler):
    """Primitives and strings: one buffer call each way."""

    def __init__(self, default: int | float | bool | str):
        self.default = default

    def default_value(self, spec: FieldSpec) -> Expr:
        return Literal(self.default)

    def emit_write(self, spec: FieldSpec, value: Expr, out: list[Stmt], scope: Scope) -> None:
        out.append(WriteValue(spec.kind, value))

    def emit_read(self, spec: FieldSpec, out: list[Stmt], scope: Scope) -> Expr:
        return ReadValue(spec.kind)


class SequenceHandler(KindHandler):
    """Arrays, lists and sets: int count followed by the elements."""

    def default_value(self, spec: FieldSpec) -> Expr:
        _type_args(spec)
        return NewContainer(spec.kind)

    def emit_write(self, spec: FieldSpec, value: Expr, out: list[Stmt], scope: Scope) -> None:
        (element_spec,) = _type_args(spec)
        element = scope.names.new("element")

        body: list[Stmt] = []
        scope.handler(element_spec).emit_write(element_spec, element, body, scope)

        out.append(WriteLength(LengthOf(value)))
        out.append(ForEach(element, value, tuple(body)))

    def emit_read(self, spec: FieldSpec, out: list[Stmt], scope: Scope) -> Expr:
        (element_spec,) = _type_args(spec)
        size = scope.names.new("size")
        result = scope.names.new(spec.kind.value)

        out.append(Assign(size, ReadLength()))
        out.append(Assign(result, NewContainer(spec.kind)))

        body: list[Stmt] = []
        element = scope.handler(element_spec).emit_read(element_spec, body, scope)
        body.append(AddElement(result, spec.kind, element))

        out.append(Repeat(size, tuple(body)))
        return result


class MapHandler(KindHandler):
    """Maps: int count followed by key/value pairs."""

    def default_value(self, spec: FieldSpec) -> Expr:
        _type_args(spec)
        return NewContainer(spec.kind)

    def emit_write(self, spec: FieldSpec, value: Expr, out: list[Stmt], scope: Scope) -> None:
        key_spec, value_spec = _type_args(spec)
        key = scope.names.new("key")
        item = scope.names.new("value")

        body: list[Stmt] = []
        scope.handler(key_spec).emit_write(key_spec, key, body, scope)
        scope.handler(value_spec).emit_write(value_spec, item, body, scope)

        out.append(WriteLength(LengthOf(value)))
        out.append(ForEachEntry(key, item, value, tuple(body)))

    def emit_read(self, spec: FieldSpec, out: list[Stmt], scope: Scope) -> Expr:
        key_spec, value_spec = _type_args(spec)
        size = scope.names.new("size")
        result = scope.names.new("map")

        out.append(Assign(size, ReadLength()))
        out.append(Assign(result, NewContainer(spec.kind)))

        body: list[Stmt] = []
        # Keys are bound before the value is read so the wire order holds
        key = scope.names.new("key")
        key_value = scope.handler(key_spec).emit_read(key_spec, body, scope)
        body.append(Assign(key, key_value))
        item = scope.handler(value_spec).emit_read(value_spec, body, scope)
        body.append(PutEntry(result, key, item))

        out.append(Repeat(size, tuple(body)))
        return result


class NestedProtocolHandler(KindHandler):
    """Nested records are written and read by their own protocol."""

    def _protocol_id(self, spec: FieldSpec, scope: Scope) -> int:
        if spec.protocol_id is None:
            raise UnsupportedKindError("Nested protocol field has no protocol id")
        if spec.protocol_id not in scope.registry:
            raise UnknownProtocolError(f"Unknown nested protocol id {spec.protocol_id}")
        return spec.protocol_id

    def default_value(self, spec: FieldSpec) -> Expr:
        # Constructing the referenced type would never end for recursive protocols
        return Literal(None)

    def emit_write(self, spec: FieldSpec, value: Expr, out: list[Stmt], scope: Scope) -> None:
        out.append(WritePacket(self._protocol_id(spec, scope), value))

    def emit_read(self, spec: FieldSpec, out: list[Stmt], scope: Scope) -> Expr:
        return ReadPacket(self._protocol_id(spec, scope))


HANDLERS: Mapping[SerializerKind, KindHandler] = MappingProxyType(
    {
        SerializerKind.BOOL: ValueHandler(False),
        SerializerKind.BYTE: ValueHandler(0),
        SerializerKind.SHORT: ValueHandler(0),
        SerializerKind.INT32: ValueHandler(0),
        SerializerKind.INT64: ValueHandler(0),
        SerializerKind.FLOAT32: ValueHandler(0.0),
        SerializerKind.FLOAT64: ValueHandler(0.0),
        SerializerKind.STRING: ValueHandler(""),
        SerializerKind.ARRAY: SequenceHandler(),
        SerializerKind.LIST: SequenceHandler(),
        SerializerKind.SET: SequenceHandler(),
        SerializerKind.MAP: MapHandler(),
        SerializerKind.NESTED_PROTOCOL: NestedProtocolHandler(),
    }
)

_missing = set(SerializerKind) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No serializer handler for kinds: {sorted(_missing)}")

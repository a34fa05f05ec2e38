"""Emission engine: turns one protocol schema into code fragments."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .kinds import HANDLERS, KindHandler, Scope
from .nodes import (
    Assign,
    CompatibleGuard,
    FieldDecl,
    FieldRef,
    Literal,
    PatchMarker,
    ReserveMarker,
    Stmt,
    Var,
    WriteValue,
)
from .schema import SchemaRegistry
from .sizes import SizeCalculator
from .types import ProtocolSchema, SerializerKind

DEFAULT_PACKAGE = "protocol"
DEFAULT_RUNTIME_IMPORT = "wirekiln.proto"

# Reserved marker position in generated write code
BEFORE_WRITE_INDEX = Var("before_write_index")


@dataclass(frozen=True)
class GeneratorContext:
    """Immutable settings for one generation run.

    Built once and passed to every emission call; nothing about a run is held
    in module state.
    """

    output_dir: Path = Path(".")
    package: str = DEFAULT_PACKAGE
    runtime_import: str = DEFAULT_RUNTIME_IMPORT
    handlers: Mapping[SerializerKind, KindHandler] = field(default_factory=lambda: HANDLERS)

    @property
    def package_dir(self) -> Path:
        return self.output_dir / self.package


@dataclass(frozen=True)
class EmittedProtocol:
    """The three code fragments generated for one protocol."""

    schema: ProtocolSchema
    predicted_length: int
    declarations: tuple[FieldDecl, ...]
    write_body: tuple[Stmt, ...]
    read_body: tuple[Stmt, ...]


class ProtocolEmitter:
    """Generates declarations, write and read bodies for protocol schemas.

    Fields are always walked in declaration order, which is the wire order.
    """

    def __init__(self, context: GeneratorContext, registry: SchemaRegistry):
        self.context = context
        self.registry = registry
        self.sizes = SizeCalculator(registry)

    def emit(self, schema: ProtocolSchema) -> EmittedProtocol:
        predicted_length = self.sizes.predicted_length(schema)
        scope = Scope(handlers=self.context.handlers, registry=self.registry)

        return EmittedProtocol(
            schema=schema,
            predicted_length=predicted_length,
            declarations=self.declarations(schema, scope),
            write_body=self.write_body(schema, predicted_length, scope),
            read_body=self.read_body(schema, scope),
        )

    def declarations(self, schema: ProtocolSchema, scope: Scope) -> tuple[FieldDecl, ...]:
        return tuple(
            FieldDecl(spec, scope.handler(spec).default_value(spec)) for spec in schema.fields
        )

    def write_body(
        self, schema: ProtocolSchema, predicted_length: int, scope: Scope
    ) -> tuple[Stmt, ...]:
        out: list[Stmt] = []
        if schema.compatible:
            out.append(ReserveMarker(BEFORE_WRITE_INDEX, predicted_length))
        else:
            # Marker kept for a uniform record shape; readers ignore it
            out.append(WriteValue(SerializerKind.INT32, Literal(-1)))

        for spec in schema.fields:
            scope.handler(spec).emit_write(spec, FieldRef(spec.name), out, scope)

        if schema.compatible:
            out.append(PatchMarker(BEFORE_WRITE_INDEX, predicted_length))
        return tuple(out)

    def read_body(self, schema: ProtocolSchema, scope: Scope) -> tuple[Stmt, ...]:
        out: list[Stmt] = []
        for spec in schema.fields:
            target = out
            if spec.compatible_addition:
                target = []
            value = scope.handler(spec).emit_read(spec, target, scope)
            target.append(Assign(FieldRef(spec.name), value))
            if spec.compatible_addition:
                # Padding left by an older writer may be shorter than the field
                min_size = self.sizes.calc_field_size(spec).min_size
                out.append(CompatibleGuard(tuple(target), min_size))
        return tuple(out)

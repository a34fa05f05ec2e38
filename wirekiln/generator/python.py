"""Python code generator for wirekiln protocols."""

import keyword
from collections.abc import Iterable, Iterator
from importlib import resources
from pathlib import PurePosixPath

from jinja2 import Environment, PackageLoader

from .emitter import EmittedProtocol, GeneratorContext
from .nodes import (
    AddElement,
    Assign,
    CompatibleGuard,
    Expr,
    FieldDecl,
    FieldRef,
    ForEach,
    ForEachEntry,
    LengthOf,
    Literal,
    NewContainer,
    PatchMarker,
    PutEntry,
    ReadLength,
    ReadPacket,
    ReadValue,
    Repeat,
    ReserveMarker,
    Stmt,
    Var,
    WriteLength,
    WritePacket,
    WriteValue,
)
from .schema import SchemaRegistry
from .types import FieldSpec, GenerationError, ProtocolSchema, SerializerKind

RUNTIME_FILES = [
    "__init__.py",
    "errors.py",
    "capacity.py",
    "buffer.py",
]

env = Environment(
    loader=PackageLoader("wirekiln.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

protocol_template = env.get_template("protocol.py.j2")
manager_template = env.get_template("protocol_manager.py.j2")

INDENT = "    "

# Map serializer kinds to Python type annotations
PRIMITIVE_TYPE_MAP = {
    SerializerKind.BOOL: "bool",
    SerializerKind.BYTE: "int",
    SerializerKind.SHORT: "int",
    SerializerKind.INT32: "int",
    SerializerKind.INT64: "int",
    SerializerKind.FLOAT32: "float",
    SerializerKind.FLOAT64: "float",
    SerializerKind.STRING: "str",
}

# Map serializer kinds to ByteBuffer method suffixes
BUFFER_METHODS = {
    SerializerKind.BOOL: "bool",
    SerializerKind.BYTE: "byte",
    SerializerKind.SHORT: "short",
    SerializerKind.INT32: "int",
    SerializerKind.INT64: "long",
    SerializerKind.FLOAT32: "float",
    SerializerKind.FLOAT64: "double",
    SerializerKind.STRING: "string",
}

CONTAINER_FACTORIES = {
    SerializerKind.ARRAY: "list",
    SerializerKind.LIST: "list",
    SerializerKind.SET: "set",
    SerializerKind.MAP: "dict",
}

CONTAINER_LITERALS = {
    SerializerKind.ARRAY: "[]",
    SerializerKind.LIST: "[]",
    SerializerKind.SET: "set()",
    SerializerKind.MAP: "{}",
}

# Names the generated class defines itself
RESERVED_FIELD_NAMES = frozenset(
    ["write", "read", "protocol_id", "PROTOCOL_ID", "COMPATIBLE", "PREDICTED_LENGTH", "_field"]
)

# Names imported by generated units
RESERVED_CLASS_NAMES = frozenset(
    ["ByteBuffer", "ClassVar", "comfortable_length", "dataclass", "_field"]
)


def protocol_module(protocol_id: int) -> str:
    """Module name of a protocol's generated unit."""
    return f"protocol_{protocol_id}"


def protocol_path(protocol_id: int) -> PurePosixPath:
    """Path of a protocol's unit, relative to the generated package."""
    return PurePosixPath("protocols", f"{protocol_module(protocol_id)}.py")


def _map_type(spec: FieldSpec, registry: SchemaRegistry) -> str:
    """Map a field spec to a Python type annotation."""
    if spec.kind in PRIMITIVE_TYPE_MAP:
        return PRIMITIVE_TYPE_MAP[spec.kind]

    if spec.kind == SerializerKind.NESTED_PROTOCOL:
        nested = registry.get(spec.protocol_id) if spec.protocol_id is not None else None
        return nested.name if nested else "object"

    args = ", ".join(_map_type(arg, registry) for arg in spec.type_args)
    return f"{CONTAINER_FACTORIES[spec.kind]}[{args}]"


def _render_expr(expr: Expr) -> str:
    if isinstance(expr, Literal):
        return repr(expr.value)
    if isinstance(expr, Var):
        return expr.name
    if isinstance(expr, FieldRef):
        return f"packet.{expr.name}"
    if isinstance(expr, LengthOf):
        return f"len({_render_expr(expr.value)})"
    if isinstance(expr, ReadValue):
        return f"buffer.read_{BUFFER_METHODS[expr.kind]}()"
    if isinstance(expr, ReadLength):
        return "comfortable_length(buffer.read_int())"
    if isinstance(expr, ReadPacket):
        return f"buffer.read_packet({expr.protocol_id})"
    if isinstance(expr, NewContainer):
        return CONTAINER_LITERALS[expr.kind]
    raise TypeError(f"Unknown expression node: {expr!r}")


def _render_block(header: str, body: Iterable[Stmt], depth: int) -> Iterator[str]:
    yield INDENT * depth + header
    lines = list(_render_stmts(body, depth + 1))
    yield from lines or [INDENT * (depth + 1) + "pass"]


def _render_stmts(stmts: Iterable[Stmt], depth: int = 0) -> Iterator[str]:
    pad = INDENT * depth
    for stmt in stmts:
        if isinstance(stmt, WriteValue):
            method = BUFFER_METHODS[stmt.kind]
            yield f"{pad}buffer.write_{method}({_render_expr(stmt.value)})"
        elif isinstance(stmt, WriteLength):
            yield f"{pad}buffer.write_length({_render_expr(stmt.value)})"
        elif isinstance(stmt, WritePacket):
            yield f"{pad}buffer.write_packet({_render_expr(stmt.value)}, {stmt.protocol_id})"
        elif isinstance(stmt, Assign):
            yield f"{pad}{_render_expr(stmt.target)} = {_render_expr(stmt.value)}"
        elif isinstance(stmt, ForEach):
            header = f"for {stmt.target.name} in {_render_expr(stmt.iterable)}:"
            yield from _render_block(header, stmt.body, depth)
        elif isinstance(stmt, ForEachEntry):
            header = (
                f"for {stmt.key.name}, {stmt.value.name} "
                f"in {_render_expr(stmt.mapping)}.items():"
            )
            yield from _render_block(header, stmt.body, depth)
        elif isinstance(stmt, Repeat):
            header = f"for _ in range({_render_expr(stmt.count)}):"
            yield from _render_block(header, stmt.body, depth)
        elif isinstance(stmt, AddElement):
            method = "add" if stmt.kind == SerializerKind.SET else "append"
            yield f"{pad}{stmt.container.name}.{method}({_render_expr(stmt.value)})"
        elif isinstance(stmt, PutEntry):
            yield (
                f"{pad}{stmt.container.name}[{_render_expr(stmt.key)}] = "
                f"{_render_expr(stmt.value)}"
            )
        elif isinstance(stmt, ReserveMarker):
            yield f"{pad}{stmt.position.name} = buffer.reserve_marker({stmt.predicted_length})"
        elif isinstance(stmt, PatchMarker):
            yield f"{pad}buffer.adjust_padding({stmt.predicted_length}, {stmt.position.name})"
        elif isinstance(stmt, CompatibleGuard):
            header = f"if buffer.compatible_read(before_read_index, length, {stmt.min_size}):"
            yield from _render_block(header, stmt.body, depth)
        else:
            raise TypeError(f"Unknown statement node: {stmt!r}")


def _render_decl(decl: FieldDecl, registry: SchemaRegistry) -> str:
    spec = decl.spec
    annotation = _map_type(spec, registry)
    if isinstance(decl.default, NewContainer):
        factory = CONTAINER_FACTORIES[decl.default.kind]
        return f"{spec.name}: {annotation} = _field(default_factory={factory})"
    if isinstance(decl.default, Literal) and decl.default.value is None:
        return f"{spec.name}: {annotation} | None = None"
    return f"{spec.name}: {annotation} = {_render_expr(decl.default)}"


def _check_names(schema: ProtocolSchema) -> None:
    if schema.name in RESERVED_CLASS_NAMES:
        raise GenerationError(f"{schema.name} clashes with a name imported by generated code")
    for spec in schema.fields:
        if keyword.iskeyword(spec.name) or not spec.name.isidentifier():
            raise GenerationError(f"{schema.name}.{spec.name} is not a valid Python name")
        if spec.name in RESERVED_FIELD_NAMES:
            raise GenerationError(f"{schema.name}.{spec.name} clashes with a generated member")


def render_statements(stmts: Iterable[Stmt]) -> list[str]:
    """Render statement nodes to Python source lines (no base indentation)."""
    return list(_render_stmts(stmts))


def render_protocol(
    emitted: EmittedProtocol, context: GeneratorContext, registry: SchemaRegistry
) -> str:
    """Render one protocol's fragments to a Python module."""
    schema = emitted.schema
    _check_names(schema)
    return protocol_template.render(
        name=schema.name,
        protocol_id=schema.id,
        compatible=schema.compatible,
        predicted_length=emitted.predicted_length,
        declarations=[_render_decl(d, registry) for d in emitted.declarations],
        write_body=render_statements(emitted.write_body),
        read_body=render_statements(emitted.read_body),
        runtime_import=context.runtime_import,
    )


def render_manager(schemas: Iterable[ProtocolSchema], context: GeneratorContext) -> str:
    """Render the protocol manager mapping every protocol id to its class."""
    units = [
        {"id": schema.id, "name": schema.name, "module": protocol_module(schema.id)}
        for schema in schemas
    ]
    return manager_template.render(units=units, runtime_import=context.runtime_import)


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("wirekiln.proto").joinpath(filename).read_text()
        result[filename] = content
    return result

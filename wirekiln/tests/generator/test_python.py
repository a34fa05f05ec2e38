"""Tests for the Python printer."""

import pytest

from wirekiln.generator import (
    FieldSpec,
    GenerationError,
    GeneratorContext,
    ProtocolEmitter,
    SerializerKind,
    generate_units,
)
from wirekiln.generator.nodes import (
    Assign,
    CompatibleGuard,
    FieldRef,
    ForEach,
    LengthOf,
    Literal,
    ReadValue,
    Repeat,
    Var,
    WriteLength,
    WriteValue,
)
from wirekiln.generator.python import protocol_path, render_protocol, render_statements, runtime
from wirekiln.generator.schema import SchemaRegistry, make_schema

K = SerializerKind


def _render(*schemas, context=None):
    context = context or GeneratorContext()
    registry = SchemaRegistry(schemas)
    emitted = ProtocolEmitter(context, registry).emit(schemas[0])
    return render_protocol(emitted, context, registry)


def describe_render_statements():
    def renders_primitive_writes(expect):
        lines = render_statements(
            [
                WriteValue(K.INT32, Literal(-1)),
                WriteValue(K.INT64, FieldRef("total")),
                WriteValue(K.FLOAT32, FieldRef("ratio")),
            ]
        )
        expect(lines) == [
            "buffer.write_int(-1)",
            "buffer.write_long(packet.total)",
            "buffer.write_float(packet.ratio)",
        ]

    def indents_nested_blocks(expect):
        inner = ForEach(Var("element1"), Var("element0"), (WriteValue(K.BYTE, Var("element1")),))
        lines = render_statements([ForEach(Var("element0"), FieldRef("rows"), (inner,))])
        expect(lines) == [
            "for element0 in packet.rows:",
            "    for element1 in element0:",
            "        buffer.write_byte(element1)",
        ]

    def renders_compatible_guard(expect):
        lines = render_statements(
            [CompatibleGuard((Assign(FieldRef("y"), ReadValue(K.STRING)),), 4)]
        )
        expect(lines) == [
            "if buffer.compatible_read(before_read_index, length, 4):",
            "    packet.y = buffer.read_string()",
        ]

    def renders_bounded_length_writes(expect):
        lines = render_statements([WriteLength(LengthOf(FieldRef("items")))])
        expect(lines) == ["buffer.write_length(len(packet.items))"]

    def fills_empty_blocks(expect):
        lines = render_statements([Repeat(Var("size0"), ())])
        expect(lines) == ["for _ in range(size0):", "    pass"]


def describe_render_protocol():
    def renders_sentinel_marker(expect):
        source = _render(make_schema(7, "Point", FieldSpec("x", K.INT32)))

        expect(source).includes("class Point:")
        expect(source).includes("    x: int = 0\n")
        expect(source).includes(
            "        buffer.write_int(-1)\n"
            "        buffer.write_int(packet.x)\n"
        )
        expect(source).includes("        packet.x = buffer.read_int()\n")
        expect(source).includes("PROTOCOL_ID: ClassVar[int] = 7")
        expect(source).includes("COMPATIBLE: ClassVar[bool] = False")

    def renders_padding_for_compatible_protocol(expect):
        source = _render(
            make_schema(
                8,
                "Versioned",
                FieldSpec("x", K.INT32),
                FieldSpec("y", K.INT32, compatible_addition=True),
                compatible=True,
                predicted_length=8,
            )
        )

        expect(source).includes("before_write_index = buffer.reserve_marker(8)")
        expect(source).includes("buffer.adjust_padding(8, before_write_index)")
        expect(source).includes(
            "        if buffer.compatible_read(before_read_index, length, 4):\n"
            "            packet.y = buffer.read_int()\n"
        )
        expect(source).includes("PREDICTED_LENGTH: ClassVar[int] = 8")

    def renders_container_declarations(expect):
        source = _render(
            make_schema(
                1,
                "Bag",
                FieldSpec("items", K.LIST, type_args=(FieldSpec.element(K.STRING),)),
                FieldSpec(
                    "counts",
                    K.MAP,
                    type_args=(FieldSpec.element(K.STRING), FieldSpec.element(K.INT32)),
                ),
                FieldSpec("flags", K.SET, type_args=(FieldSpec.element(K.BOOL),)),
            )
        )

        expect(source).includes("items: list[str] = _field(default_factory=list)")
        expect(source).includes("counts: dict[str, int] = _field(default_factory=dict)")
        expect(source).includes("flags: set[bool] = _field(default_factory=set)")
        expect(source).includes("comfortable_length(buffer.read_int())")

    def renders_nested_reference(expect):
        source = _render(
            make_schema(2, "Outer", FieldSpec("inner", K.NESTED_PROTOCOL, protocol_id=1)),
            make_schema(1, "Inner", FieldSpec("x", K.INT32)),
        )

        expect(source).includes("inner: Inner | None = None")
        expect(source).includes("buffer.write_packet(packet.inner, 1)")
        expect(source).includes("packet.inner = buffer.read_packet(1)")

    def uses_configured_runtime_import(expect):
        context = GeneratorContext(runtime_import="vendored.runtime")
        source = _render(make_schema(1, "Ping"), context=context)

        expect(source).includes("from vendored.runtime import ByteBuffer, comfortable_length")

    def rejects_reserved_field_names(expect):
        with pytest.raises(GenerationError):
            _render(make_schema(1, "Clash", FieldSpec("write", K.INT32)))

    def rejects_generated_class_attribute_names(expect):
        for name in ["PROTOCOL_ID", "COMPATIBLE", "PREDICTED_LENGTH"]:
            with pytest.raises(GenerationError):
                _render(make_schema(1, "Clash", FieldSpec(name, K.INT32)))

    def rejects_keyword_field_names(expect):
        with pytest.raises(GenerationError):
            _render(make_schema(1, "Clash", FieldSpec("class", K.INT32)))

    def rejects_reserved_class_names(expect):
        with pytest.raises(GenerationError):
            _render(make_schema(1, "ByteBuffer", FieldSpec("x", K.INT32)))


def describe_generate_units():
    def renders_every_protocol(expect):
        registry = SchemaRegistry(
            [
                make_schema(1, "Ping", FieldSpec("seq", K.INT32)),
                make_schema(2, "Pong", FieldSpec("seq", K.INT32)),
            ]
        )
        units = generate_units(registry, GeneratorContext())

        expect(sorted(units)) == [1, 2]
        expect(units[2]).includes("class Pong:")

    def is_deterministic(expect):
        registry = SchemaRegistry(
            [
                make_schema(
                    1,
                    "Deep",
                    FieldSpec(
                        "m",
                        K.MAP,
                        type_args=(
                            FieldSpec.element(K.STRING),
                            FieldSpec.element(K.LIST, FieldSpec.element(K.FLOAT64)),
                        ),
                    ),
                )
            ]
        )

        first = generate_units(registry, GeneratorContext())
        second = generate_units(registry, GeneratorContext())
        expect(first) == second


def describe_layout():
    def places_units_under_protocols(expect):
        expect(str(protocol_path(42))) == "protocols/protocol_42.py"

    def ships_runtime_sources(expect):
        files = runtime()

        expect(sorted(files)) == ["__init__.py", "buffer.py", "capacity.py", "errors.py"]
        expect(files["buffer.py"]).includes("class ByteBuffer")

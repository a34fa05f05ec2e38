"""Tests for size calculation."""

import pytest

from wirekiln.generator import FieldSpec, SerializerKind, UnknownProtocolError
from wirekiln.generator.schema import SchemaRegistry, make_schema
from wirekiln.generator.sizes import SizeCalculator, SizeKind, calculate_sizes

K = SerializerKind


def describe_primitive_sizes():
    def calculates_fixed_primitives(expect):
        registry = SchemaRegistry(
            [
                make_schema(
                    1,
                    "Fixed",
                    FieldSpec("a", K.BYTE),
                    FieldSpec("b", K.INT32),
                    FieldSpec("c", K.FLOAT64),
                )
            ]
        )
        info = calculate_sizes(registry)

        # marker + 1 + 4 + 8
        expect(info[1].size.min_size) == 17
        expect(info[1].size.max_size) == 17
        expect(info[1].size.kind) == SizeKind.FIXED

    def calculates_every_primitive(expect):
        calc = SizeCalculator(SchemaRegistry())
        sizes = {
            K.BOOL: 1,
            K.BYTE: 1,
            K.SHORT: 2,
            K.INT32: 4,
            K.INT64: 8,
            K.FLOAT32: 4,
            K.FLOAT64: 8,
        }
        for kind, size in sizes.items():
            expect(calc.calc_field_size(FieldSpec("v", kind)).max_size) == size


def describe_variable_sizes():
    def strings_and_containers_are_unbounded(expect):
        calc = SizeCalculator(SchemaRegistry())
        text = calc.calc_field_size(FieldSpec("s", K.STRING))
        values = calc.calc_field_size(
            FieldSpec("l", K.LIST, type_args=(FieldSpec.element(K.INT32),))
        )

        expect(text.min_size) == 4
        expect(text.max_size) == None
        expect(text.kind) == SizeKind.UNBOUNDED
        expect(values.min_size) == 4
        expect(values.kind) == SizeKind.UNBOUNDED

    def nested_protocol_may_be_null(expect):
        registry = SchemaRegistry(
            [
                make_schema(1, "Inner", FieldSpec("x", K.INT64)),
                make_schema(2, "Outer", FieldSpec("inner", K.NESTED_PROTOCOL, protocol_id=1)),
            ]
        )
        info = calculate_sizes(registry)

        expect(info[1].size.max_size) == 12
        # Outer marker + inner null marker, up to outer marker + inner record
        expect(info[2].size.min_size) == 8
        expect(info[2].size.max_size) == 16
        expect(info[2].size.kind) == SizeKind.BOUNDED

    def recursive_protocol_is_unbounded(expect):
        registry = SchemaRegistry(
            [
                make_schema(
                    1,
                    "Node",
                    FieldSpec("value", K.INT32),
                    FieldSpec("next", K.NESTED_PROTOCOL, protocol_id=1),
                )
            ]
        )
        info = calculate_sizes(registry)

        expect(info[1].size.min_size) == 12
        expect(info[1].size.max_size) == None
        expect(info[1].size.kind) == SizeKind.UNBOUNDED

    def rejects_unknown_nested_protocol(expect):
        registry = SchemaRegistry(
            [make_schema(1, "Dangling", FieldSpec("x", K.NESTED_PROTOCOL, protocol_id=99))]
        )
        with pytest.raises(UnknownProtocolError):
            calculate_sizes(registry)


def describe_predicted_length():
    def counts_only_original_fields(expect):
        schema = make_schema(
            1,
            "Grown",
            FieldSpec("x", K.INT32),
            FieldSpec("name", K.STRING),
            FieldSpec("y", K.INT64, compatible_addition=True),
            compatible=True,
        )
        calc = SizeCalculator(SchemaRegistry([schema]))

        expect(calc.predicted_length(schema)) == 8

    def prefers_declared_value(expect):
        schema = make_schema(
            8,
            "Declared",
            FieldSpec("x", K.INT32),
            FieldSpec("y", K.INT32, compatible_addition=True),
            compatible=True,
            predicted_length=8,
        )
        calc = SizeCalculator(SchemaRegistry([schema]))

        expect(calc.predicted_length(schema)) == 8

    def pads_compatible_record_size(expect):
        schema = make_schema(
            1,
            "Padded",
            FieldSpec("flag", K.BOOL),
            compatible=True,
            predicted_length=16,
        )
        info = calculate_sizes(SchemaRegistry([schema]))

        expect(info[1].predicted_length) == 16
        expect(info[1].size.min_size) == 20
        expect(info[1].size.max_size) == 20

"""Tests for batch generation."""

import logging

from wirekiln.generator import (
    FieldSpec,
    GeneratorContext,
    SchemaRegistry,
    SerializerKind,
    UnknownProtocolError,
    generate,
)
from wirekiln.generator.python import protocol_path
from wirekiln.generator.schema import make_schema

K = SerializerKind


def _registry():
    ping = FieldSpec.element(K.NESTED_PROTOCOL, protocol_id=1)
    return SchemaRegistry(
        [
            make_schema(1, "Ping", FieldSpec("seq", K.INT32)),
            make_schema(2, "Batch", FieldSpec("pings", K.LIST, type_args=(ping,))),
        ]
    )


def describe_generate():
    def writes_one_unit_per_protocol(expect, tmp_path):
        context = GeneratorContext(output_dir=tmp_path, package="messages")
        report = generate(_registry(), context)

        expect(report.ok) == True
        expect(report.written) == {
            1: tmp_path / "messages" / protocol_path(1),
            2: tmp_path / "messages" / protocol_path(2),
        }
        expect(report.manager_path) == tmp_path / "messages" / "protocol_manager.py"
        expect((tmp_path / "messages" / "__init__.py").is_file()) == True
        expect((tmp_path / "messages" / "protocols" / "__init__.py").is_file()) == True

    def is_byte_for_byte_deterministic(expect, tmp_path):
        first = generate(_registry(), GeneratorContext(output_dir=tmp_path / "a"))
        second = generate(_registry(), GeneratorContext(output_dir=tmp_path / "b"))

        for protocol_id, path in first.written.items():
            expect(path.read_bytes()) == second.written[protocol_id].read_bytes()
        expect(first.manager_path.read_bytes()) == second.manager_path.read_bytes()

    def replaces_stale_units(expect, tmp_path):
        context = GeneratorContext(output_dir=tmp_path)
        stale = context.package_dir / "protocols" / "protocol_99.py"
        stale.parent.mkdir(parents=True)
        stale.write_text("stale")

        generate(_registry(), context)

        expect(stale.exists()) == False

    def isolates_failing_protocols(expect, tmp_path, caplog):
        registry = SchemaRegistry(
            [
                make_schema(1, "Ping", FieldSpec("seq", K.INT32)),
                make_schema(2, "Dangling", FieldSpec("x", K.NESTED_PROTOCOL, protocol_id=42)),
                make_schema(3, "Pong", FieldSpec("seq", K.INT32)),
            ]
        )
        context = GeneratorContext(output_dir=tmp_path)

        with caplog.at_level(logging.ERROR):
            report = generate(registry, context)

        expect(report.ok) == False
        expect(sorted(report.written)) == [1, 3]
        expect(isinstance(report.failures[2], UnknownProtocolError)) == True
        expect((context.package_dir / protocol_path(2)).exists()) == False
        expect("Dangling" in caplog.text) == True

        manager = report.manager_path.read_text()
        expect("import Ping" in manager) == True
        expect("import Pong" in manager) == True
        expect("Dangling" in manager) == False

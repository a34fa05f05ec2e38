"""Batch generation of protocol units for a whole schema registry."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .emitter import GeneratorContext, ProtocolEmitter
from .python import protocol_path, render_manager, render_protocol
from .schema import SchemaRegistry
from .types import GenerationError

logger = logging.getLogger(__name__)

PACKAGE_INIT = '"""Generated protocol package. Do not edit."""\n'


@dataclass
class GenerationReport:
    """Outcome of one generation run."""

    written: dict[int, Path] = field(default_factory=dict)
    failures: dict[int, Exception] = field(default_factory=dict)
    manager_path: Path | None = None

    @property
    def ok(self) -> bool:
        return not self.failures


def generate_units(registry: SchemaRegistry, context: GeneratorContext) -> dict[int, str]:
    """Render every protocol unit in memory, keyed by protocol id.

    Raises on the first failing protocol; use generate() for a run that
    isolates failures.
    """
    emitter = ProtocolEmitter(context, registry)
    return {
        schema.id: render_protocol(emitter.emit(schema), context, registry)
        for schema in registry
    }


def _prepare_package(package_dir: Path) -> None:
    if package_dir.exists():
        shutil.rmtree(package_dir)
    (package_dir / "protocols").mkdir(parents=True)
    (package_dir / "__init__.py").write_text(PACKAGE_INIT, encoding="utf-8")
    (package_dir / "protocols" / "__init__.py").write_text(PACKAGE_INIT, encoding="utf-8")


def generate(registry: SchemaRegistry, context: GeneratorContext) -> GenerationReport:
    """Write one unit per protocol plus the protocol manager.

    A protocol that fails to generate is logged and reported; the remaining
    protocols are still generated, and units already written stay in place.
    """
    report = GenerationReport()
    package_dir = context.package_dir
    _prepare_package(package_dir)

    emitter = ProtocolEmitter(context, registry)
    for schema in registry:
        path = package_dir / protocol_path(schema.id)
        try:
            source = render_protocol(emitter.emit(schema), context, registry)
            path.write_text(source, encoding="utf-8")
        except (GenerationError, OSError) as e:
            logger.error("Failed to generate %s (protocol %d): %s", schema.name, schema.id, e)
            report.failures[schema.id] = e
            continue

        logger.debug("Wrote %s (protocol %d) to %s", schema.name, schema.id, path)
        report.written[schema.id] = path

    generated = [schema for schema in registry if schema.id in report.written]
    manager_path = package_dir / "protocol_manager.py"
    manager_path.write_text(render_manager(generated, context), encoding="utf-8")
    report.manager_path = manager_path

    logger.info(
        "Generated %d of %d protocols into %s", len(report.written), len(registry), package_dir
    )
    return report

"""Unit tests configuration file."""

import importlib
import itertools
import sys

import pytest

from wirekiln.generator import GeneratorContext, SchemaRegistry, generate

_package_ids = itertools.count()


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def build_protocols(tmp_path, monkeypatch):
    """Generate a protocol package from schemas and import its manager.

    Every call produces a fresh package name so different versions of the
    same protocol can be loaded side by side.
    """
    monkeypatch.syspath_prepend(str(tmp_path))
    packages = []

    def build(*schemas):
        package = f"wk_generated_{next(_package_ids)}"
        context = GeneratorContext(output_dir=tmp_path, package=package)
        report = generate(SchemaRegistry(schemas), context)
        assert report.ok, report.failures
        packages.append(package)
        importlib.invalidate_caches()
        return importlib.import_module(f"{package}.protocol_manager")

    yield build

    for name in list(sys.modules):
        if name.split(".")[0] in packages:
            del sys.modules[name]

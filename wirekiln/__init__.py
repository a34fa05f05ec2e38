"""wirekiln - compatibility-aware binary protocol code generator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wirekiln")
except PackageNotFoundError:
    __version__ = "(local)"

"""Size calculation for protocol fields and records."""

from dataclasses import dataclass
from enum import StrEnum, auto

from .schema import SchemaRegistry
from .types import (
    FieldSpec,
    ProtocolSchema,
    SerializerKind,
    UnknownProtocolError,
    UnsupportedKindError,
)

# Primitive kind sizes in bytes
PRIMITIVE_SIZES: dict[SerializerKind, int] = {
    SerializerKind.BOOL: 1,
    SerializerKind.BYTE: 1,
    SerializerKind.SHORT: 2,
    SerializerKind.INT32: 4,
    SerializerKind.INT64: 8,
    SerializerKind.FLOAT32: 4,
    SerializerKind.FLOAT64: 8,
}

# Length marker / length prefix
INT_SIZE = 4


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Min == Max, no variable components
    BOUNDED = auto()  # Variable but has calculable max
    UNBOUNDED = auto()  # Strings, containers, recursive records


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a field or record."""

    min_size: int
    max_size: int | None  # None means unbounded
    kind: SizeKind


@dataclass(frozen=True)
class ProtocolSizeInfo:
    """Complete size information for a protocol record."""

    id: int
    name: str
    size: SizeInfo  # Whole record, marker included
    predicted_length: int


def _fixed(size: int) -> SizeInfo:
    return SizeInfo(size, size, SizeKind.FIXED)


_UNBOUNDED_PREFIXED = SizeInfo(INT_SIZE, None, SizeKind.UNBOUNDED)


def _combine(sizes: list[SizeInfo]) -> SizeInfo:
    total_min = 0
    total_max: int | None = 0
    overall_kind = SizeKind.FIXED

    for size in sizes:
        total_min += size.min_size
        if total_max is not None and size.max_size is not None:
            total_max += size.max_size
        else:
            total_max = None

        if size.kind == SizeKind.UNBOUNDED:
            overall_kind = SizeKind.UNBOUNDED
        elif size.kind == SizeKind.BOUNDED and overall_kind == SizeKind.FIXED:
            overall_kind = SizeKind.BOUNDED

    return SizeInfo(total_min, total_max, overall_kind)


class SizeCalculator:
    """Calculate encoded sizes for protocol fields and records."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry
        self._cache: dict[int, SizeInfo] = {}
        self._in_progress: set[int] = set()

    def calc_field_size(self, spec: FieldSpec) -> SizeInfo:
        """Calculate the encoded size of a single field value."""
        if spec.kind in PRIMITIVE_SIZES:
            return _fixed(PRIMITIVE_SIZES[spec.kind])

        if spec.kind == SerializerKind.NESTED_PROTOCOL:
            if spec.protocol_id is None:
                raise UnsupportedKindError("Nested protocol field has no protocol id")
            if spec.protocol_id not in self.registry:
                raise UnknownProtocolError(f"Unknown nested protocol id {spec.protocol_id}")
            record = self.calc_record_size(spec.protocol_id)
            # None encodes as a bare null marker
            kind = SizeKind.UNBOUNDED if record.max_size is None else SizeKind.BOUNDED
            return SizeInfo(INT_SIZE, record.max_size, kind)

        # Strings and containers: int length prefix, then a variable payload
        return _UNBOUNDED_PREFIXED

    def predicted_length(self, schema: ProtocolSchema) -> int:
        """Return the minimum padding target for a compatible record.

        An explicitly declared value wins; otherwise this is the minimum
        encoded size of the fields present since the first version.
        """
        if schema.predicted_length is not None:
            return schema.predicted_length
        return _combine([self.calc_field_size(f) for f in schema.original_fields]).min_size

    def calc_record_size(self, protocol_id: int) -> SizeInfo:
        """Calculate the size of a whole record (with caching)."""
        if protocol_id in self._cache:
            return self._cache[protocol_id]
        if protocol_id in self._in_progress:
            # Recursive reference
            return SizeInfo(INT_SIZE, None, SizeKind.UNBOUNDED)

        schema = self.registry.get(protocol_id)
        if schema is None:
            raise UnknownProtocolError(f"Unknown protocol id {protocol_id}")

        self._in_progress.add(protocol_id)
        try:
            body = _combine([self.calc_field_size(f) for f in schema.fields])
        finally:
            self._in_progress.discard(protocol_id)

        min_size = INT_SIZE + body.min_size
        max_size = None if body.max_size is None else INT_SIZE + body.max_size
        if schema.compatible:
            # Short bodies are padded up to the predicted length
            predicted = self.predicted_length(schema)
            min_size = max(min_size, INT_SIZE + predicted)
            if max_size is not None:
                max_size = max(max_size, INT_SIZE + predicted)

        kind = body.kind
        if kind == SizeKind.FIXED and min_size != max_size:
            kind = SizeKind.BOUNDED
        size = SizeInfo(min_size, max_size, kind)
        self._cache[protocol_id] = size
        return size

    def calc_protocol_info(self, schema: ProtocolSchema) -> ProtocolSizeInfo:
        return ProtocolSizeInfo(
            id=schema.id,
            name=schema.name,
            size=self.calc_record_size(schema.id),
            predicted_length=self.predicted_length(schema),
        )


def calculate_sizes(registry: SchemaRegistry) -> dict[int, ProtocolSizeInfo]:
    """Calculate size information for every protocol in the registry."""
    calc = SizeCalculator(registry)
    return {schema.id: calc.calc_protocol_info(schema) for schema in registry}

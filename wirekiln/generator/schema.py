"""Protocol schema loading and validation."""

import json
from collections.abc import Iterable, Iterator
from typing import Any

from .types import FieldSpec, ProtocolSchema

# The protocol manager writes ids as a signed 16-bit short
MAX_PROTOCOL_ID = 32767


class ValidationError(RuntimeError):
    """Raised when protocol validation fails."""


def _validate_field_names(schema: ProtocolSchema) -> None:
    seen: set[str] = set()
    for f in schema.fields:
        if not f.name:
            raise ValidationError(f"{schema.name}: field names must not be empty")
        if f.name in seen:
            raise ValidationError(f"{schema.name}: duplicate field {f.name}")
        seen.add(f.name)


def _validate_additions(schema: ProtocolSchema) -> None:
    additions_started = False
    for f in schema.fields:
        if f.compatible_addition:
            if not schema.compatible:
                raise ValidationError(
                    f"{schema.name}.{f.name} is a compatible addition, "
                    "but the protocol is not compatible"
                )
            additions_started = True
        elif additions_started:
            raise ValidationError(
                f"{schema.name}.{f.name} follows a compatible addition; "
                "compatible additions must be trailing"
            )

    if schema.compatible and not schema.original_fields:
        # An empty compatible record would encode as the null marker
        raise ValidationError(f"{schema.name} is compatible but declares no original fields")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_types(schema: ProtocolSchema) -> None:
    # Schemas built in code skip the document checks in load_schemas
    if not isinstance(schema.name, str):
        raise ValidationError(f"Protocol name {schema.name!r} must be a string")
    if not _is_int(schema.id):
        raise ValidationError(f"{schema.name}: protocol id {schema.id!r} must be an integer")
    if schema.predicted_length is not None and not _is_int(schema.predicted_length):
        raise ValidationError(
            f"{schema.name}: predicted length {schema.predicted_length!r} must be an integer"
        )
    if not isinstance(schema.compatible, bool):
        raise ValidationError(f"{schema.name}: compatible must be true or false")
    for f in schema.fields:
        if not isinstance(f.name, str):
            raise ValidationError(f"{schema.name}: field name {f.name!r} must be a string")
        if f.protocol_id is not None and not _is_int(f.protocol_id):
            raise ValidationError(
                f"{schema.name}.{f.name}: protocol id {f.protocol_id!r} must be an integer"
            )


def _check_raw_field(owner: str, item: Any) -> None:
    if not isinstance(item, dict):
        raise ValidationError(f"{owner}: field {item!r} must be an object")
    protocol_id = item.get("protocolId")
    if protocol_id is not None and not _is_int(protocol_id):
        raise ValidationError(f"{owner}: protocol id {protocol_id!r} must be an integer")
    if not isinstance(item.get("compatibleAddition", False), bool):
        raise ValidationError(f"{owner}: compatibleAddition must be true or false")
    type_args = item.get("typeArgs") or []
    if not isinstance(type_args, list):
        raise ValidationError(f"{owner}: typeArgs must be a list")
    for arg in type_args:
        _check_raw_field(owner, arg)


def _check_raw_protocol(item: Any) -> None:
    # from_dict coerces "7" to 7 and "false" to True, so look at the document values
    if not isinstance(item, dict):
        raise ValidationError(f"Protocol entry {item!r} must be an object")
    name = item.get("name")
    if not isinstance(name, str):
        raise ValidationError(f"Protocol name {name!r} must be a string")
    if not _is_int(item.get("id")):
        raise ValidationError(f"{name}: protocol id {item.get('id')!r} must be an integer")
    predicted_length = item.get("predictedLength")
    if predicted_length is not None and not _is_int(predicted_length):
        raise ValidationError(
            f"{name}: predicted length {predicted_length!r} must be an integer"
        )
    if not isinstance(item.get("compatible", False), bool):
        raise ValidationError(f"{name}: compatible must be true or false")
    fields = item.get("fields") or []
    if not isinstance(fields, list):
        raise ValidationError(f"{name}: fields must be a list")
    for f in fields:
        _check_raw_field(name, f)


def validate(schema: ProtocolSchema) -> None:
    """Validate a single protocol schema."""
    _validate_types(schema)
    if not 0 <= schema.id <= MAX_PROTOCOL_ID:
        raise ValidationError(
            f"{schema.name}: protocol id {schema.id} outside 0..{MAX_PROTOCOL_ID}"
        )
    if not schema.name.isidentifier():
        raise ValidationError(f"{schema.name!r} is not a valid protocol name")
    if schema.predicted_length is not None and schema.predicted_length < 0:
        raise ValidationError(f"{schema.name}: predicted length must not be negative")

    _validate_field_names(schema)
    _validate_additions(schema)


class SchemaRegistry:
    """Ordered collection of validated protocol schemas, keyed by id.

    Iteration yields schemas in registration order. Schemas are immutable once
    registered; a registry is built fresh for every generation run.
    """

    def __init__(self, schemas: Iterable[ProtocolSchema] = ()):
        self._schemas: dict[int, ProtocolSchema] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: ProtocolSchema) -> None:
        validate(schema)
        if schema.id in self._schemas:
            existing = self._schemas[schema.id]
            raise ValidationError(
                f"Protocol id {schema.id} assigned to both {existing.name} and {schema.name}"
            )
        for existing in self._schemas.values():
            if existing.name == schema.name:
                raise ValidationError(
                    f"Protocol name {schema.name} used by ids {existing.id} and {schema.id}"
                )
        self._schemas[schema.id] = schema

    def get(self, protocol_id: int) -> ProtocolSchema | None:
        return self._schemas.get(protocol_id)

    def __contains__(self, protocol_id: object) -> bool:
        return protocol_id in self._schemas

    def __iter__(self) -> Iterator[ProtocolSchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)


def make_schema(
    id: int,
    name: str,
    *fields: FieldSpec,
    compatible: bool = False,
    predicted_length: int | None = None,
) -> ProtocolSchema:
    """Shorthand for building a ProtocolSchema from field specs."""
    return ProtocolSchema(
        id=id,
        name=name,
        fields=tuple(fields),
        compatible=compatible,
        predicted_length=predicted_length,
    )


def load_schemas(text: str) -> SchemaRegistry:
    """Load a schema document.

    The document is JSON of the form {"protocols": [...]}, each protocol
    using the camelCase field names of ProtocolSchema.
    """
    document: Any = json.loads(text)
    if isinstance(document, dict):
        items = document.get("protocols", [])
    else:
        items = document
    if not isinstance(items, list):
        raise ValidationError("Schema document must contain a list of protocols")

    for item in items:
        _check_raw_protocol(item)
    return SchemaRegistry(ProtocolSchema.from_dict(item) for item in items)

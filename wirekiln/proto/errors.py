"""Errors raised by generated protocol code at encode/decode time."""


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class EncodeError(SerializationError):
    """Raised when a value cannot be written in its wire type."""


class DecodeError(SerializationError):
    """Raised when a record cannot be decoded from the buffer."""


class CapacityError(DecodeError):
    """Raised when a decoded length exceeds the safety bound."""

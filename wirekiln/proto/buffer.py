"""Byte buffer used by generated protocol code."""

import struct
from collections.abc import Mapping
from typing import Any

from .capacity import MAX_LENGTH, comfortable_length
from .errors import DecodeError, EncodeError

# Length markers and container counts are big-endian int32
INT_SIZE = 4

_BOOL = struct.Struct(">?")
_BYTE = struct.Struct(">b")
_SHORT = struct.Struct(">h")
_INT = struct.Struct(">i")
_LONG = struct.Struct(">q")
_FLOAT = struct.Struct(">f")
_DOUBLE = struct.Struct(">d")


class ByteBuffer:
    """Growable buffer with independent write and read cursors.

    Generated classes write records with ``Foo.write(buffer, packet)`` and
    read them back with ``Foo.read(buffer)``. Nested records are dispatched
    through ``protocols``, a mapping of protocol id to generated class,
    normally supplied by the generated protocol manager.

    Example:
        buffer = protocol_manager.new_buffer()
        protocol_manager.write(buffer, Login(user="ada"))
        packet = protocol_manager.read(protocol_manager.new_buffer(buffer.to_bytes()))
    """

    def __init__(self, data: bytes = b"", protocols: Mapping[int, Any] | None = None):
        self.buffer = bytearray(data)
        self.write_offset = len(self.buffer)
        self.read_offset = 0
        self.protocols: Mapping[int, Any] = protocols if protocols is not None else {}

    def to_bytes(self) -> bytes:
        return bytes(self.buffer[: self.write_offset])

    def get_write_offset(self) -> int:
        return self.write_offset

    def get_read_offset(self) -> int:
        return self.read_offset

    def set_read_offset(self, offset: int) -> None:
        if offset > self.write_offset:
            raise DecodeError(f"Read offset {offset} beyond written length {self.write_offset}")
        self.read_offset = offset

    def readable_bytes(self) -> int:
        return self.write_offset - self.read_offset

    def is_readable(self) -> bool:
        return self.write_offset > self.read_offset

    # Raw access

    def write_bytes(self, data: bytes) -> None:
        end = self.write_offset + len(data)
        self.buffer[self.write_offset : end] = data
        self.write_offset = end

    def read_bytes(self, count: int) -> bytes:
        end = self.read_offset + count
        if end > self.write_offset:
            raise DecodeError(f"Cannot read {count} bytes, only {self.readable_bytes()} left")
        data = bytes(self.buffer[self.read_offset : end])
        self.read_offset = end
        return data

    def _write(self, fmt: struct.Struct, value: Any) -> None:
        try:
            self.write_bytes(fmt.pack(value))
        except struct.error as e:
            raise EncodeError(f"Cannot encode {value!r}: {e}") from e

    def _read(self, fmt: struct.Struct) -> Any:
        if self.read_offset + fmt.size > self.write_offset:
            raise DecodeError(f"Cannot read {fmt.size} bytes, only {self.readable_bytes()} left")
        value = fmt.unpack_from(self.buffer, self.read_offset)[0]
        self.read_offset += fmt.size
        return value

    # Primitives

    def write_bool(self, value: bool) -> None:
        self._write(_BOOL, bool(value))

    def read_bool(self) -> bool:
        return self._read(_BOOL)

    def write_byte(self, value: int) -> None:
        self._write(_BYTE, value)

    def read_byte(self) -> int:
        return self._read(_BYTE)

    def write_short(self, value: int) -> None:
        self._write(_SHORT, value)

    def read_short(self) -> int:
        return self._read(_SHORT)

    def write_int(self, value: int) -> None:
        self._write(_INT, value)

    def read_int(self) -> int:
        return self._read(_INT)

    def write_long(self, value: int) -> None:
        self._write(_LONG, value)

    def read_long(self) -> int:
        return self._read(_LONG)

    def write_float(self, value: float) -> None:
        self._write(_FLOAT, value)

    def read_float(self) -> float:
        return self._read(_FLOAT)

    def write_double(self, value: float) -> None:
        self._write(_DOUBLE, value)

    def read_double(self) -> float:
        return self._read(_DOUBLE)

    def write_length(self, length: int) -> None:
        """Write a string or container length that readers will accept."""
        if length >= MAX_LENGTH:
            raise EncodeError(
                f"The length [{length}] exceeds the safety range [{MAX_LENGTH}]"
            )
        self.write_int(length)

    def write_string(self, value: str | None) -> None:
        if not value:
            self.write_int(0)
            return
        encoded = value.encode("utf-8")
        self.write_length(len(encoded))
        self.write_bytes(encoded)

    def read_string(self) -> str:
        length = comfortable_length(self.read_int())
        if length == 0:
            return ""
        try:
            return self.read_bytes(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 string: {e}") from e

    # Compatibility markers

    def reserve_marker(self, predicted_length: int) -> int:
        """Write a placeholder length marker and return its position."""
        position = self.write_offset
        self.write_int(predicted_length)
        return position

    def adjust_padding(self, predicted_length: int, before_write_index: int) -> None:
        """Patch the marker reserved at before_write_index with the record length.

        Records shorter than predicted_length are zero padded up to it, so the
        recorded length is never below the predicted one.
        """
        length = self.write_offset - before_write_index - INT_SIZE
        if length < predicted_length:
            self.write_bytes(bytes(predicted_length - length))
            length = predicted_length

        current_write_index = self.write_offset
        self.write_offset = before_write_index
        self.write_int(length)
        self.write_offset = current_write_index

    def compatible_read(self, before_read_index: int, length: int, size: int = 1) -> bool:
        """Check whether a record still holds size unread bytes for a later field."""
        return length != -1 and self.read_offset + size <= before_read_index + length

    # Nested records

    def _protocol(self, protocol_id: int) -> Any:
        protocol = self.protocols.get(protocol_id)
        if protocol is None:
            raise DecodeError(f"Unknown protocol id {protocol_id}")
        return protocol

    def write_packet(self, packet: Any, protocol_id: int) -> None:
        self._protocol(protocol_id).write(self, packet)

    def read_packet(self, protocol_id: int) -> Any:
        return self._protocol(protocol_id).read(self)

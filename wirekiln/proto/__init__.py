"""Runtime support for generated wirekiln protocol code."""

from .buffer import ByteBuffer as ByteBuffer
from .capacity import BYTES_PER_MB as BYTES_PER_MB
from .capacity import comfortable_length as comfortable_length
from .errors import CapacityError as CapacityError
from .errors import DecodeError as DecodeError
from .errors import EncodeError as EncodeError
from .errors import SerializationError as SerializationError

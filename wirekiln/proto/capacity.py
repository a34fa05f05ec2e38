"""Safety bounds for container allocation during decoding."""

from .errors import CapacityError

BYTES_PER_MB = 1024 * 1024

# Upper bound for any length read from the wire
MAX_LENGTH = BYTES_PER_MB


def comfortable_length(length: int) -> int:
    """Validate a decoded element count before allocating for it.

    A corrupt or hostile packet must not make the decoder allocate
    arbitrarily large containers.
    """
    if length < 0:
        raise CapacityError(f"Negative length {length} read from buffer")
    if length >= MAX_LENGTH:
        raise CapacityError(
            f"The length of the container [{length}] exceeds the safety range [{MAX_LENGTH}]"
        )
    return length

"""
Encoding of plain values stored through a storage adapter.

Counters are stored as decimal integer strings.
"""

from typing import Optional

from unburden.errors import StorageCorruption


def encode_counter(value: int) -> str:
    return str(value)


def decode_counter(key: str, blob: Optional[str]) -> int:
    """
    Parse a persisted counter.

    Returns:
        The counter value, 0 if absent.

    Raises:
        StorageCorruption: If the blob is not a non-negative integer.
    """
    if blob is None:
        return 0
    try:
        value = int(blob.strip())
    except ValueError as e:
        raise StorageCorruption(key, f"not an integer: {blob!r}") from e
    if value < 0:
        raise StorageCorruption(key, f"negative count {value}")
    return value

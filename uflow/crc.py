"""32-bit CRC used to protect every frame on the wire.

Polynomial 0x132C00699 (reflected form 0x9960034C), with an inverted register.
"""

_MASK32 = 0xFFFFFFFF
_REFLECTED_POLY = 0x9960034C

INITIAL_CRC = 0


def extend_bitwise(initial_crc: int, data: bytes) -> int:
    """Extend ``initial_crc`` over ``data`` one bit at a time."""
    reg = ~initial_crc & _MASK32
    for byte in data:
        reg ^= byte
        for _ in range(8):
            reg = (reg >> 1) ^ _REFLECTED_POLY if reg & 1 else reg >> 1
    return ~reg & _MASK32


PARTIAL_RESULTS: tuple[int, ...] = tuple(extend_bitwise(0, bytes((code,))) for code in range(256))


def extend(initial_crc: int, data: bytes) -> int:
    """Extend ``initial_crc`` over ``data`` using the byte-wise lookup table."""
    crc = initial_crc & _MASK32
    for byte in data:
        crc = (crc >> 8) ^ PARTIAL_RESULTS[(crc ^ byte) & 0xFF]
    return crc


def compute(data: bytes) -> int:
    """Return the CRC of ``data``."""
    return extend(INITIAL_CRC, data)
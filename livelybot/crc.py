"""Table-driven CRC-8 (Dallas/Maxim) and CRC-16 (CCITT, reflected) checksums."""

from collections.abc import Iterable


def _reflected_table(poly: int) -> tuple[int, ...]:
    table = []
    for value in range(256):
        crc = value
        for _ in range(8):
            crc = (crc >> 1) ^ poly if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_CRC8_TABLE = _reflected_table(0x8C)
_CRC16_TABLE = _reflected_table(0x8408)


def crc8(data: Iterable[int], initial: int = 0xFF) -> int:
    """Return the CRC-8 of ``data`` starting from ``initial``."""
    crc = initial & 0xFF
    for byte in data:
        crc = _CRC8_TABLE[crc ^ (byte & 0xFF)]
    return crc


def crc16_ccitt(data: Iterable[int], initial: int = 0xFFFF) -> int:
    """Return the reflected CRC-CCITT of ``data`` starting from ``initial``."""
    crc = initial & 0xFFFF
    for byte in data:
        crc = (crc >> 8) ^ _CRC16_TABLE[(crc ^ byte) & 0xFF]
    return crc
"""Finding the serial ports of the motor boards and putting them in board order."""

import logging
from collections.abc import Callable, Sequence

from .ports import list_serial_ports, usb_vid_pid

log = logging.getLogger(__name__)

BOARD1_VID = 0xCAF1
BOARD2_VID = 0xCAF2
PORTS_PER_BOARD = 4


class DiscoveryError(RuntimeError):
    """The motor board serial ports could not be found or told apart."""


def board_code(vid: int | None) -> int:
    """Return 1 or 2 for the two board vendor ids, -2 for another device, -1 if unknown."""
    if vid is None:
        return -1
    if vid == BOARD1_VID:
        return 1
    if vid == BOARD2_VID:
        return 2
    return -2


def _port_code(name: str) -> int:
    ids = usb_vid_pid(name)
    return board_code(None if ids is None else ids[0])


def order_ports(ports: Sequence[str], board_num: int, code_of: Callable[[str], int]) -> list[str]:
    """Return the ports with the first board's four first, then the second board's four."""
    ordered = list(ports)
    if len(ordered) < PORTS_PER_BOARD * board_num:
        log.error("Cannot find the motor serial port, "
                  "please check if the USB connection is normal.")
        raise DiscoveryError(
            f"found {len(ordered)} motor serial ports, need {PORTS_PER_BOARD * board_num}"
        )
    if board_num > 1:
        first: list[str] = []
        second: list[str] = []
        for port in ordered[: 2 * PORTS_PER_BOARD]:
            code = code_of(port)
            if code == 1:
                first.append(port)
            elif code == 2:
                second.append(port)
            else:
                log.error("Failed to open serial port.")
                raise DiscoveryError(f"cannot identify the board of {port}")
        if len(first) < PORTS_PER_BOARD or len(second) < PORTS_PER_BOARD:
            raise DiscoveryError(
                f"boards have {len(first)} and {len(second)} ports, "
                f"need {PORTS_PER_BOARD} each"
            )
        ordered[:PORTS_PER_BOARD] = first[:PORTS_PER_BOARD]
        ordered[PORTS_PER_BOARD: 2 * PORTS_PER_BOARD] = second[:PORTS_PER_BOARD]
    return ordered


def find_motor_ports(prefix: str, board_num: int) -> list[str]:
    """List the motor board ports under ``prefix`` in board order."""
    found = []
    for port in list_serial_ports(prefix):
        if _port_code(port) > 0:
            log.info("Serial Port%d = %s", len(found), port)
            found.append(port)
    return order_ports(found, board_num, _port_code)
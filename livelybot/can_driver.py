"""Raw SocketCAN access with a background receive loop."""

import logging
import socket
import struct
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

log = logging.getLogger(__name__)

_FRAME = struct.Struct("=IB3x8s")
FRAME_SIZE = _FRAME.size
MAX_DLC = 8


@dataclass(frozen=True)
class CanFrame:
    """A classic CAN frame."""

    can_id: int
    data: bytes


def pack_can_frame(can_id: int, data: bytes) -> bytes:
    """Return the kernel's 16-byte representation of a frame."""
    payload = bytes(data)
    if len(payload) > MAX_DLC:
        raise ValueError(f"CAN payload of {len(payload)} bytes exceeds {MAX_DLC}")
    return _FRAME.pack(int(can_id) & 0xFFFFFFFF, len(payload), payload)


def unpack_can_frame(raw: bytes) -> CanFrame:
    """Parse the kernel's 16-byte representation of a frame."""
    if len(raw) != FRAME_SIZE:
        raise ValueError(f"CAN frame must be {FRAME_SIZE} bytes, got {len(raw)}")
    can_id, dlc, data = _FRAME.unpack(raw)
    if dlc > MAX_DLC:
        raise ValueError(f"CAN frame length {dlc} exceeds {MAX_DLC}")
    return CanFrame(can_id, data[:dlc])


class CanDriver:
    """A raw CAN socket bound to one interface."""

    def __init__(self, can_dev: str = "can0", *, sock: socket.socket | None = None,
                 poll_delay: float = 0.01) -> None:
        self.can_dev = can_dev
        if sock is None:
            sock = socket.socket(socket.PF_CAN, socket.SOCK_RAW, socket.CAN_RAW)
            try:
                sock.bind((can_dev,))
            except OSError:
                sock.close()
                raise
        self._sock = sock
        self._poll_delay = poll_delay
        self._thread: threading.Thread | None = None
        self.run_flag = True

    def send(self, can_id: int, data: bytes) -> None:
        self._sock.send(pack_can_frame(can_id, data))

    def receive(self) -> CanFrame:
        """Block until one frame arrives and return it."""
        return unpack_can_frame(self._sock.recv(FRAME_SIZE))

    def start_callback(self, func: Callable[[int, bytes], object]) -> None:
        """Call ``func(can_id, data)`` for each received frame on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("receive loop already running")
        self.run_flag = True
        self._sock.settimeout(0.1)
        self._thread = threading.Thread(target=self._receive_loop, args=(func,), daemon=True)
        self._thread.start()

    def _receive_loop(self, func: Callable[[int, bytes], object]) -> None:
        while self.run_flag:
            try:
                frame = self.receive()
            except TimeoutError:
                continue
            except OSError as exc:
                log.error("Error receiving CAN frame: %s", exc)
                break
            except ValueError as exc:
                log.error("Malformed CAN frame: %s", exc)
                continue
            func(frame.can_id, frame.data)
            time.sleep(self._poll_delay)

    def close(self) -> None:
        self.run_flag = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        self._sock.close()

    def __enter__(self) -> "CanDriver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
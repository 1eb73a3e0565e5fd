"""Serial device enumeration helpers."""

import os
import sys

from serial.tools import list_ports


def list_serial_ports(full_prefix: str) -> list[str]:
    """Return sorted device paths whose file name starts with the prefix's last part."""
    base, sep, prefix = full_prefix.rpartition("/")
    base_path = base + sep
    try:
        entries = os.listdir(base_path)
    except OSError:
        print(f"Could not open the directory {base_path}", file=sys.stderr)
        return []
    return sorted(base_path + entry for entry in entries if entry.startswith(prefix))


def usb_vid_pid(name: str) -> tuple[int, int] | None:
    """Return the USB (vendor id, product id) of a serial device, or None."""
    for info in list_ports.comports():
        if info.device == name:
            if info.vid is None or info.pid is None:
                return None
            return info.vid, info.pid
    return None
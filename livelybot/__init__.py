"""Checksums, frame formats, unit conversions and serial/CAN links for LivelyBot motor, power and display boards."""

__version__ = "0.1.0"
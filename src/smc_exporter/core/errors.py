"""Exceptions raised by the exporter."""


class HardwareError(Exception):
    """The sensor controller could not be opened, enumerated or read."""


class ConfigError(Exception):
    """Start-up configuration (label file, log level) is missing or invalid."""

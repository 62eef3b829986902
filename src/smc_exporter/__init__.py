"""Prometheus exporter for Apple System Management Controller (SMC) sensors."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("smc-exporter")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

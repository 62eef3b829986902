"""Numeric kind of a raw SMC reading."""
from enum import Enum


class ValueKind(Enum):
    """Kinds of values reported by the controller, in gateway iteration order."""
    FLOAT = "float"
    UNSIGNED = "unsigned"
    SIGNED = "signed"

"""Metric category enumeration for classified SMC sensors."""
from enum import Enum


class MetricCategory(Enum):
    """Semantic categories a sensor key can be classified into."""
    TEMPERATURE = "temperature"
    POWER = "power"
    VOLTAGE = "voltage"
    CURRENT = "current"
    FAN = "fan"
    BATTERY_CHARGE_LEVEL = "battery_charge_level"
    BATTERY_CHARGE_PERCENT = "battery_charge_percent"
    BATTERY_CYCLES = "battery_cycles"
    BATTERY_TIME_REMAINING = "battery_time_remaining"

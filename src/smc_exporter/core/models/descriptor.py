"""
Metric descriptors, one per MetricCategory plus the uname info metric.

Descriptors are built once at import time and never mutated, so concurrent
scrapes share them without locking.
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

from smc_exporter.core.models.metric_category import MetricCategory

NAMESPACE = "smc"
SENSOR_LABELS: Tuple[str, ...] = ("sensor", "label")
UNAME_LABELS: Tuple[str, ...] = ("sysname", "release", "version", "machine", "nodename")


class MetricKind(Enum):
    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class MetricDescriptor:
    name: str
    documentation: str
    kind: MetricKind = MetricKind.GAUGE
    labels: Tuple[str, ...] = SENSOR_LABELS


def build_name(*parts: str) -> str:
    """Join non-empty name parts with underscores, like `smc_temp_celsius`."""
    return "_".join(part for part in (NAMESPACE, *parts) if part)


_BATTERY_HELP = "Apple System Management Control (SMC) monitor for the battery"

DESCRIPTORS: Mapping[MetricCategory, MetricDescriptor] = MappingProxyType({
    MetricCategory.TEMPERATURE: MetricDescriptor(
        build_name("temp_celsius"),
        "Apple System Management Control (SMC) monitor for temperature",
    ),
    MetricCategory.POWER: MetricDescriptor(
        build_name("power_watts"),
        "Apple System Management Control (SMC) monitor for power",
    ),
    MetricCategory.VOLTAGE: MetricDescriptor(
        build_name("voltage_volts"),
        "Apple System Management Control (SMC) monitor for voltage",
    ),
    MetricCategory.CURRENT: MetricDescriptor(
        build_name("current_amps"),
        "Apple System Management Control (SMC) monitor for current",
    ),
    MetricCategory.FAN: MetricDescriptor(
        build_name("fan_rpms"),
        "Apple System Management Control (SMC) monitor for fans",
    ),
    MetricCategory.BATTERY_CHARGE_LEVEL: MetricDescriptor(
        build_name("battery_charge_mha"), _BATTERY_HELP,
    ),
    MetricCategory.BATTERY_CHARGE_PERCENT: MetricDescriptor(
        build_name("battery_charge_percent"), _BATTERY_HELP,
    ),
    # Cycle count only ever grows over the lifetime of the battery
    MetricCategory.BATTERY_CYCLES: MetricDescriptor(
        build_name("battery_cycles"), _BATTERY_HELP, kind=MetricKind.COUNTER,
    ),
    MetricCategory.BATTERY_TIME_REMAINING: MetricDescriptor(
        build_name("battery_charge_secs"), _BATTERY_HELP,
    ),
})

UNAME_INFO = MetricDescriptor(
    build_name("uname", "info"),
    "Labeled system information as provided by the uname system call.",
    labels=UNAME_LABELS,
)

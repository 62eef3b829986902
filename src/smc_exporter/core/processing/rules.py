"""
Ordered classification rules for SMC sensor keys.

Rules are evaluated top to bottom and the first match wins, so the exact-key
special cases must stay ahead of the prefix rules that would also match them
(`B0CT` is a `B*` key, `B0AC` would otherwise be battery charge).
"""
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from smc_exporter.core.models.metric_category import MetricCategory

# 0xFFFF on B0TF means the battery is fully charged
FULL_CHARGE_SENTINEL = 0xFFFF
# No sensor legitimately reports more than this in volts or amps
MILLI_UNIT_THRESHOLD = 1000

BATTERY_VOLTAGE_KEYS = frozenset({"B0AV", "BC1V", "BC2V", "BC3V", "CHBV"})
BATTERY_CURRENT_KEY = "B0AC"

KeyPredicate = Callable[[str], bool]
Normalizer = Callable[[str, float], float]


def unchanged(key: str, value: float) -> float:
    return value


def full_charge_as_zero(key: str, value: float) -> float:
    if value == FULL_CHARGE_SENTINEL:
        return 0.0
    return value


def milli_to_unit(key: str, value: float) -> float:
    """Battery sensors sometimes report mV/mA instead of V/A."""
    if value > MILLI_UNIT_THRESHOLD:
        return value / 1000
    return value


def battery_current_to_amps(key: str, value: float) -> float:
    if key == BATTERY_CURRENT_KEY:
        return milli_to_unit(key, value)
    return value


def exact(name: str) -> KeyPredicate:
    return lambda key: key == name


def prefix(first: str) -> KeyPredicate:
    return lambda key: key.startswith(first)


def any_of(*predicates: KeyPredicate) -> KeyPredicate:
    return lambda key: any(predicate(key) for predicate in predicates)


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    category: MetricCategory
    matches: KeyPredicate
    normalize: Normalizer = unchanged

    def apply(self, key: str, value: float) -> float:
        return self.normalize(key, value)


RULES: Tuple[ClassificationRule, ...] = (
    # Average battery time to full
    ClassificationRule("battery time to full", MetricCategory.BATTERY_TIME_REMAINING,
                       exact("B0TF"), full_charge_as_zero),
    ClassificationRule("battery cycle count", MetricCategory.BATTERY_CYCLES, exact("B0CT")),
    # Battery final charge level, in %
    ClassificationRule("battery charge level", MetricCategory.BATTERY_CHARGE_PERCENT, exact("BFCL")),
    ClassificationRule("temperature", MetricCategory.TEMPERATURE, prefix("T")),
    ClassificationRule("power", MetricCategory.POWER, prefix("P")),
    ClassificationRule("voltage", MetricCategory.VOLTAGE,
                       any_of(prefix("V"), lambda key: key in BATTERY_VOLTAGE_KEYS), milli_to_unit),
    ClassificationRule("current", MetricCategory.CURRENT,
                       any_of(prefix("I"), exact(BATTERY_CURRENT_KEY)), battery_current_to_amps),
    ClassificationRule("fan", MetricCategory.FAN, prefix("F")),
    ClassificationRule("battery", MetricCategory.BATTERY_CHARGE_LEVEL, prefix("B")),
)


def match_rule(key: str, rules: Tuple[ClassificationRule, ...] = RULES) -> Optional[ClassificationRule]:
    """Return the first rule matching `key`, or None if the key has no modeled category."""
    for rule in rules:
        if rule.matches(key):
            return rule
    return None

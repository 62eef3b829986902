import logging
from typing import Iterator, Set, Tuple

from smc_exporter.core.config_loader import UNKNOWN_LABEL, SensorLabels
from smc_exporter.core.models.sensor_data import CanonicalSample, RawPartitions
from smc_exporter.core.processing.rules import RULES, ClassificationRule, match_rule

logger = logging.getLogger(__name__)


def classify_and_emit(
    partitions: RawPartitions,
    labels: SensorLabels,
    rules: Tuple[ClassificationRule, ...] = RULES,
) -> Iterator[CanonicalSample]:
    """
    Classify one scrape worth of readings into canonical samples.

    Partitions are walked floats, then unsigned, then signed; the first
    occurrence of a key (compared uppercased) wins and later ones are
    dropped. Readings <= 0 are treated as absent. Keys without a label or
    without a matching rule produce nothing.

    The seen-key set lives in this generator, so concurrent scrapes never
    share state.
    """
    seen: Set[str] = set()

    for raw in partitions:
        if not raw.value > 0:
            continue

        key = raw.key
        sensor = key.upper()
        label = labels.resolve(key)

        if sensor in seen:
            logger.debug("duplicate key found: key=%s label=%s value=%s kind=%s",
                         sensor, label, raw.value, raw.kind.value)
            continue
        if label == UNKNOWN_LABEL:
            logger.debug("unknown sensor with non-negative value: key=%s value=%s", key, raw.value)
            continue

        rule = match_rule(key, rules)
        if rule is None:
            continue

        seen.add(sensor)
        yield CanonicalSample(
            category=rule.category,
            value=rule.apply(key, float(raw.value)),
            sensor=sensor,
            label=label,
        )

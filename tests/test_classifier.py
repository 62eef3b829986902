"""
Tests for the sensor classification engine: filtering, deduplication,
unit normalization and the end-to-end scrape scenario.
"""
import logging

from smc_exporter.core.config_loader import SensorLabels
from smc_exporter.core.models.metric_category import MetricCategory
from smc_exporter.core.models.sensor_data import CanonicalSample, RawPartitions
from smc_exporter.core.processing.classifier import classify_and_emit


def classify(partitions: RawPartitions, labels: SensorLabels) -> list[CanonicalSample]:
    return list(classify_and_emit(partitions, labels))


def test_end_to_end_scenario(scenario_partitions, sensor_labels) -> None:
    """Float TC0P/PPBR and unsigned B0CT give exactly three samples."""
    samples = classify(scenario_partitions, sensor_labels)
    assert samples == [
        CanonicalSample(MetricCategory.TEMPERATURE, 45.0, "TC0P", "CPU Proximity"),
        CanonicalSample(MetricCategory.POWER, 12.3, "PPBR", "Battery Rail"),
        CanonicalSample(MetricCategory.BATTERY_CYCLES, 150.0, "B0CT", "Battery Cycle Count"),
    ]


def test_emits_lazily(scenario_partitions, sensor_labels) -> None:
    """Samples are produced one at a time."""
    samples = classify_and_emit(scenario_partitions, sensor_labels)
    first = next(samples)
    assert first.sensor == "TC0P"


def test_values_are_floats(sensor_labels) -> None:
    """Integer readings are emitted as floats."""
    samples = classify(RawPartitions(unsigned={"B0CT": 150}), sensor_labels)
    assert isinstance(samples[0].value, float)


class TestFiltering:
    """Test which readings are dropped before classification."""

    def test_non_positive_values_skipped(self, sensor_labels) -> None:
        """Zero and negative readings produce nothing."""
        partitions = RawPartitions(
            floats={"TC0P": 0.0, "PPBR": -3.5},
            unsigned={"B0CT": 0},
            signed={"F0Ac": -1},
        )
        assert classify(partitions, sensor_labels) == []

    def test_emitted_values_positive(self, sensor_labels) -> None:
        """Every emitted value is strictly positive."""
        partitions = RawPartitions(
            floats={"TC0P": 41.0, "PPBR": -2.0, "F0Ac": 0.0, "VD0R": 12.1},
            unsigned={"B0RM": 4000, "B0CT": 0},
            signed={"ID0R": -5, "B0AC": 900},
        )
        samples = classify(partitions, sensor_labels)
        assert samples
        assert all(sample.value > 0 for sample in samples)

    def test_nan_skipped(self, sensor_labels) -> None:
        """NaN readings are not greater than zero and are dropped."""
        assert classify(RawPartitions(floats={"TC0P": float("nan")}), sensor_labels) == []

    def test_non_positive_value_does_not_claim_key(self, sensor_labels) -> None:
        """A zero float reading must not hide a later positive reading of the same key."""
        partitions = RawPartitions(floats={"B0CT": 0.0}, unsigned={"B0CT": 150})
        samples = classify(partitions, sensor_labels)
        assert [(s.sensor, s.value) for s in samples] == [("B0CT", 150.0)]

    def test_unknown_key_skipped(self, sensor_labels) -> None:
        """A key missing from the label table produces nothing."""
        assert classify(RawPartitions(floats={"TZZZ": 42.0}), sensor_labels) == []

    def test_unknown_key_not_marked_seen(self) -> None:
        """An unlabeled lowercase key leaves the canonical key free for a labeled spelling."""
        labels = SensorLabels({"TC0P": ["CPU Proximity"]})
        partitions = RawPartitions(floats={"tc0p": 42.0}, unsigned={"TC0P": 50})
        samples = classify(partitions, labels)
        assert [(s.sensor, s.value) for s in samples] == [("TC0P", 50.0)]

    def test_unmatched_prefix_dropped(self) -> None:
        """Labeled keys without a matching rule are dropped."""
        labels = SensorLabels({"MSAL": ["Some Flag"], "CHBI": ["Charger Current"]})
        partitions = RawPartitions(unsigned={"MSAL": 3, "CHBI": 1200})
        assert classify(partitions, labels) == []

    def test_unknown_key_logged_at_debug(self, sensor_labels, caplog) -> None:
        """Unknown keys are reported at debug level only."""
        with caplog.at_level(logging.DEBUG, logger="smc_exporter.core.processing.classifier"):
            classify(RawPartitions(floats={"TZZZ": 42.0}), sensor_labels)
        assert "unknown sensor" in caplog.text


class TestDeduplication:
    """Test that each canonical key is emitted at most once."""

    def test_float_partition_wins(self, sensor_labels) -> None:
        """The float reading beats unsigned and signed readings of the same key."""
        partitions = RawPartitions(
            floats={"TC0P": 45.5},
            unsigned={"TC0P": 45},
            signed={"TC0P": 44},
        )
        samples = classify(partitions, sensor_labels)
        assert len(samples) == 1
        assert samples[0].value == 45.5

    def test_unsigned_wins_over_signed(self, sensor_labels) -> None:
        """Without a float reading the unsigned one is used."""
        partitions = RawPartitions(unsigned={"B0AC": 900}, signed={"B0AC": 800})
        samples = classify(partitions, sensor_labels)
        assert [(s.sensor, s.value) for s in samples] == [("B0AC", 900.0)]

    def test_signed_used_when_alone(self, sensor_labels) -> None:
        """A key only present as signed is still emitted."""
        partitions = RawPartitions(signed={"B0AC": 800})
        assert [s.value for s in classify(partitions, sensor_labels)] == [800.0]

    def test_case_insensitive(self) -> None:
        """Keys differing only in case are duplicates, emitted uppercased."""
        labels = SensorLabels({"Th1H": ["Heatpipe 1"], "TH1H": ["Heatpipe"]})
        partitions = RawPartitions(floats={"Th1H": 44.0}, unsigned={"TH1H": 40})
        samples = classify(partitions, labels)
        assert samples == [CanonicalSample(MetricCategory.TEMPERATURE, 44.0, "TH1H", "Heatpipe 1")]

    def test_duplicate_logged_at_debug(self, sensor_labels, caplog) -> None:
        """Dropped duplicates are reported at debug level."""
        partitions = RawPartitions(floats={"TC0P": 45.5}, unsigned={"TC0P": 45})
        with caplog.at_level(logging.DEBUG, logger="smc_exporter.core.processing.classifier"):
            classify(partitions, sensor_labels)
        assert "duplicate key found" in caplog.text

    def test_one_sample_per_canonical_key(self) -> None:
        """Mixed-case duplicates across partitions never repeat a sensor label."""
        labels = SensorLabels({key: [key] for key in ("TC0P", "tc0P", "PSTR", "F0Ac", "f0ac")})
        partitions = RawPartitions(
            floats={"TC0P": 1.0, "PSTR": 2.0},
            unsigned={"tc0P": 3, "F0Ac": 4},
            signed={"PSTR": 5, "f0ac": 6},
        )
        sensors = [s.sensor for s in classify(partitions, labels)]
        assert sorted(sensors) == sorted(set(sensors))


class TestUnitPolicies:
    """Test unit normalization as seen through the engine."""

    def test_battery_voltage_millivolts(self, sensor_labels) -> None:
        """BC1V 1500 is emitted as 1.5 V."""
        samples = classify(RawPartitions(unsigned={"BC1V": 1500}), sensor_labels)
        assert samples == [CanonicalSample(MetricCategory.VOLTAGE, 1.5, "BC1V", "Battery Cell 1 Voltage")]

    def test_battery_current_milliamps(self, sensor_labels) -> None:
        """B0AC 2500 is emitted as 2.5 A."""
        samples = classify(RawPartitions(unsigned={"B0AC": 2500}), sensor_labels)
        assert samples == [CanonicalSample(MetricCategory.CURRENT, 2.5, "B0AC", "Battery Current")]

    def test_time_to_full_sentinel(self, sensor_labels) -> None:
        """B0TF 65535 is emitted as 0."""
        samples = classify(RawPartitions(unsigned={"B0TF": 65535}), sensor_labels)
        assert samples == [
            CanonicalSample(MetricCategory.BATTERY_TIME_REMAINING, 0.0, "B0TF", "Battery Average Time To Full"),
        ]

    def test_time_to_full_minutes(self, sensor_labels) -> None:
        """Other B0TF values pass through."""
        samples = classify(RawPartitions(unsigned={"B0TF": 120}), sensor_labels)
        assert samples[0].value == 120.0

    def test_charge_percent(self, sensor_labels) -> None:
        """BFCL is the charge percentage."""
        samples = classify(RawPartitions(unsigned={"BFCL": 87}), sensor_labels)
        assert samples[0].category is MetricCategory.BATTERY_CHARGE_PERCENT

    def test_remaining_capacity(self, sensor_labels) -> None:
        """Other B* keys are charge levels in mAh."""
        samples = classify(RawPartitions(unsigned={"B0RM": 4630}), sensor_labels)
        assert samples[0].category is MetricCategory.BATTERY_CHARGE_LEVEL
        assert samples[0].value == 4630.0


def test_idempotent(sensor_labels) -> None:
    """The same snapshot always classifies to the same set of samples."""
    partitions = RawPartitions(
        floats={"TC0P": 45.0, "PPBR": 12.3, "VD0R": 12.4, "F0Ac": 1800.0},
        unsigned={"B0CT": 150, "TC0P": 45, "BC1V": 4200, "B0TF": 65535},
        signed={"B0AC": 1500, "ID0R": 2},
    )
    first = set(classify(partitions, sensor_labels))
    second = set(classify(partitions, sensor_labels))
    assert first == second
    assert len(first) == 9


def test_concurrent_scrapes_do_not_share_seen_keys(scenario_partitions, sensor_labels) -> None:
    """Interleaved scrapes each keep their own seen-key set."""
    first = classify_and_emit(scenario_partitions, sensor_labels)
    second = classify_and_emit(scenario_partitions, sensor_labels)
    assert next(first) == next(second)
    assert len(list(first)) == len(list(second)) == 2

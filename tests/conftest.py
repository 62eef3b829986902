"""Pytest configuration and fixtures for test suite."""
import json

import pytest

from smc_exporter.core.config_loader import SensorLabels
from smc_exporter.core.models.sensor_data import RawPartitions
from smc_exporter.core.services.gateway import EmulatedGateway

LABELS = {
    "TC0P": ["CPU Proximity"],
    "PPBR": ["Battery Rail"],
    "B0CT": ["Battery Cycle Count"],
    "B0TF": ["Battery Average Time To Full"],
    "BFCL": ["Battery Final Charge Level"],
    "B0AC": ["Battery Current"],
    "B0AV": ["Battery Voltage"],
    "B0RM": ["Battery Remaining Capacity"],
    "BC1V": ["Battery Cell 1 Voltage"],
    "VD0R": ["DC In"],
    "ID0R": ["DC In"],
    "F0Ac": ["Fan 0 Actual Speed"],
}


@pytest.fixture
def sensor_labels() -> SensorLabels:
    return SensorLabels(LABELS)


@pytest.fixture
def labels_file(tmp_path):
    """A label file on disk holding LABELS."""
    path = tmp_path / "sensors.json"
    path.write_text(json.dumps({"labels": LABELS}))
    return path


@pytest.fixture
def scenario_partitions() -> RawPartitions:
    return RawPartitions(
        floats={"TC0P": 45.0, "PPBR": 12.3},
        unsigned={"B0CT": 150},
        signed={},
    )


@pytest.fixture
def fixed_gateway(scenario_partitions) -> EmulatedGateway:
    """Emulated gateway without jitter serving the three-sensor scenario."""
    return EmulatedGateway(snapshot=scenario_partitions, jitter=0)

import logging
import random
import threading
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional

from smc_exporter.core.errors import HardwareError
from smc_exporter.core.models.sensor_data import RawPartitions
from smc_exporter.core.models.value_kind import ValueKind
from smc_exporter.core.smc.codec import decode
from smc_exporter.core.smc.iokit import SMCConnection

logger = logging.getLogger(__name__)

# One AppleSMC user client at a time for the whole process
_hardware_lock = threading.Lock()


class SensorGateway(ABC):
    """
    Source of raw sensor readings for one scrape.
    """

    @abstractmethod
    def enumerate_keys(self) -> List[str]:
        """Return every sensor key the controller exposes, in controller order."""

    @abstractmethod
    def read_values(self, keys: Iterable[str]) -> RawPartitions:
        """Read `keys` and partition them by the numeric kind the controller reports."""

    def snapshot(self) -> RawPartitions:
        """Enumerate and read every key."""
        return self.read_values(self.enumerate_keys())


class SmcGateway(SensorGateway):
    """
    Reads the Apple System Management Controller.

    A connection is opened and closed around each call, with hardware access
    serialized by a process-wide lock.
    """

    def __init__(self, connection_factory: Callable[[], SMCConnection] = SMCConnection):
        self._connection_factory = connection_factory

    def enumerate_keys(self) -> List[str]:
        with _hardware_lock, self._connection_factory() as conn:
            count = conn.key_count()
            keys = [conn.key_at(index) for index in range(count)]
        logger.debug("Enumerated %d SMC keys", len(keys))
        return keys

    def read_values(self, keys: Iterable[str]) -> RawPartitions:
        partitions = RawPartitions()
        unreadable = 0
        with _hardware_lock, self._connection_factory() as conn:
            for key in keys:
                try:
                    data_type, data = conn.read_key(key)
                except (HardwareError, ValueError) as e:
                    # A single unreadable key never fails the scrape
                    logger.debug("Unable to read SMC key %r: %s", key, e)
                    unreadable += 1
                    continue

                decoded = decode(data_type, data)
                if decoded is None:
                    logger.debug("Unsupported SMC data type %r for key %r (%d bytes)", data_type, key, len(data))
                    continue
                kind, value = decoded
                partitions.partition(kind)[key] = value

        if unreadable:
            logger.debug("%d SMC keys could not be read", unreadable)
        return partitions


def default_snapshot() -> RawPartitions:
    """Readings resembling an Intel MacBook Pro on battery."""
    return RawPartitions(
        floats={
            "TC0P": 52.25,
            "TC0D": 55.5,
            "TB0T": 31.0,
            "Th1H": 44.75,
            "PSTR": 14.2,
            "PCPC": 6.8,
            "PPBR": 9.1,
            "VD0R": 12.4,
            "VP0R": 8.9,
            "ID0R": 1.7,
            "IC0R": 0.6,
            "F0Ac": 1850.0,
            "F0Mn": 1200.0,
            "F0Mx": 6156.0,
        },
        unsigned={
            "B0CT": 212,
            "BFCL": 87,
            "B0TF": 0xFFFF,
            "B0AV": 12650,
            "B0AC": 1420,
            "B0RM": 4630,
            "B0FC": 5580,
            "BC1V": 4215,
            "BC2V": 4218,
            "BC3V": 4213,
            "TC0P": 52,
        },
        signed={
            "TA0P": 27,
            "B0AC": -1420,
        },
    )


class EmulatedGateway(SensorGateway):
    """
    Serves a fixed snapshot instead of reading hardware.

    Float readings get a small random relative jitter so dashboards show
    movement; pass jitter=0 for deterministic readings.
    """

    def __init__(self, snapshot: Optional[RawPartitions] = None, jitter: float = 0.02):
        self._snapshot = snapshot if snapshot is not None else default_snapshot()
        self.jitter = jitter

    def enumerate_keys(self) -> List[str]:
        keys: List[str] = []
        for raw in self._snapshot:
            if raw.key not in keys:
                keys.append(raw.key)
        return keys

    def read_values(self, keys: Iterable[str]) -> RawPartitions:
        wanted = set(keys)
        partitions = RawPartitions()
        for raw in self._snapshot:
            if raw.key not in wanted:
                continue
            value = raw.value
            if raw.kind is ValueKind.FLOAT and self.jitter:
                value = value * (1 + random.uniform(-self.jitter, self.jitter))
            partitions.partition(raw.kind)[raw.key] = value
        return partitions


def create_gateway(emulation: bool) -> SensorGateway:
    if emulation:
        logger.info("Using emulated SMC readings")
        return EmulatedGateway()
    return SmcGateway()

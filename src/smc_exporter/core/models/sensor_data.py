"""
Sensor data models.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Union

from smc_exporter.core.models.metric_category import MetricCategory
from smc_exporter.core.models.value_kind import ValueKind

Number = Union[float, int]


@dataclass(frozen=True)
class RawValue:
    """
    A single reading as returned by the controller.
    """
    key: str
    kind: ValueKind
    value: Number


@dataclass
class RawPartitions:
    """
    Readings of one scrape, split by the numeric kind the controller reported.

    Iterating yields floats first, then unsigned, then signed values. Within a
    partition keys keep their insertion (enumeration) order.
    """
    floats: Dict[str, float] = field(default_factory=dict)
    unsigned: Dict[str, int] = field(default_factory=dict)
    signed: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_values(cls, values: Iterable[RawValue]) -> "RawPartitions":
        partitions = cls()
        for raw in values:
            partitions.partition(raw.kind)[raw.key] = raw.value
        return partitions

    def partition(self, kind: ValueKind) -> Dict[str, Number]:
        if kind is ValueKind.FLOAT:
            return self.floats
        if kind is ValueKind.UNSIGNED:
            return self.unsigned
        return self.signed

    def __iter__(self) -> Iterator[RawValue]:
        for kind in ValueKind:
            for key, value in self.partition(kind).items():
                yield RawValue(key, kind, value)

    def __len__(self) -> int:
        return len(self.floats) + len(self.unsigned) + len(self.signed)


@dataclass(frozen=True)
class CanonicalSample:
    """
    One classified reading, ready to be exported.
    """
    category: MetricCategory
    value: float
    sensor: str
    label: str

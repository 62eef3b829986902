"""
Prometheus collector turning SMC readings into metric families on every scrape.
"""
import logging
import os
from typing import Dict, Iterator, Optional

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from smc_exporter.core.config_loader import SensorLabels
from smc_exporter.core.errors import HardwareError
from smc_exporter.core.models.descriptor import DESCRIPTORS, UNAME_INFO, MetricDescriptor, MetricKind
from smc_exporter.core.models.metric_category import MetricCategory
from smc_exporter.core.processing.classifier import classify_and_emit
from smc_exporter.core.services.gateway import SensorGateway

logger = logging.getLogger(__name__)


def new_family(descriptor: MetricDescriptor) -> Metric:
    if descriptor.kind is MetricKind.COUNTER:
        return CounterMetricFamily(descriptor.name, descriptor.documentation, labels=descriptor.labels)
    return GaugeMetricFamily(descriptor.name, descriptor.documentation, labels=descriptor.labels)


class SmcCollector(Collector):
    """
    Collects SMC sensor metrics plus the uname info metric.

    Sensor collection and the info metric fail independently: a hardware
    error drops the sensor samples of that scrape but the info metric is
    still reported, and vice versa.
    """

    def __init__(self, gateway: SensorGateway, labels: SensorLabels):
        self.gateway = gateway
        self.labels = labels

    def describe(self) -> Iterator[Metric]:
        for descriptor in DESCRIPTORS.values():
            yield new_family(descriptor)
        yield new_family(UNAME_INFO)

    def collect(self) -> Iterator[Metric]:
        yield from self._collect_sensors()

        info = self._collect_info()
        if info is not None:
            yield info

    def _collect_sensors(self) -> Iterator[Metric]:
        try:
            snapshot = self.gateway.snapshot()
        except HardwareError as e:
            logger.error("Failed to read SMC sensors: %s", e)
            return

        families: Dict[MetricCategory, Metric] = {}
        count = 0
        for sample in classify_and_emit(snapshot, self.labels):
            family = families.get(sample.category)
            if family is None:
                family = families[sample.category] = new_family(DESCRIPTORS[sample.category])
            family.add_metric([sample.sensor, sample.label], sample.value)
            count += 1

        logger.debug("Collected %d SMC samples from %d readings", count, len(snapshot))
        # Keep exposition order stable across scrapes
        for category in MetricCategory:
            if category in families:
                yield families[category]

    def _collect_info(self) -> Optional[Metric]:
        try:
            uname = os.uname()
        except (AttributeError, OSError) as e:
            logger.error("Failed to get uname: %s", e)
            return None

        family = new_family(UNAME_INFO)
        family.add_metric(
            [uname.sysname, uname.release, uname.version, uname.machine, uname.nodename], 1,
        )
        return family

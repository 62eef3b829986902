import json
import logging
from importlib.resources import files
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from smc_exporter.core.errors import ConfigError

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"


class LabelFile(BaseModel):
    """Shape of the sensor label file: `{"labels": {"TC0P": ["CPU Proximity"]}}`."""
    labels: Dict[str, List[str]]


class SensorLabels:
    """Resolves SMC sensor keys to human-readable labels."""

    def __init__(self, labels: Optional[Dict[str, List[str]]] = None):
        self._labels: Dict[str, List[str]] = dict(labels or {})

    @staticmethod
    def get_default_path() -> Path:
        """Get the path to the sensors.json file shipped inside the package."""
        return Path(str(files("smc_exporter") / "data" / "sensors.json"))

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> "SensorLabels":
        """
        Load labels from a JSON file.

        Raises:
            ConfigError: the file is missing, unreadable or not a valid label file.
        """
        label_path = Path(path) if path is not None else cls.get_default_path()

        if not label_path.is_file():
            raise ConfigError(f"Sensor label file not found: {label_path}")

        try:
            with open(label_path, "r", encoding="utf-8") as f:
                label_file = LabelFile.model_validate(json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse sensor label file {label_path}: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid sensor label file {label_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Unable to read sensor label file {label_path}: {e}") from e

        logger.debug("Sensor labels loaded from %s", label_path)
        return cls(label_file.labels)

    def resolve(self, key: str) -> str:
        """Return the first label for `key`, or "Unknown" when it has none."""
        labels = self._labels.get(key)
        if not labels:
            return UNKNOWN_LABEL
        return labels[0]

    def __contains__(self, key: str) -> bool:
        return self.resolve(key) != UNKNOWN_LABEL

    def __len__(self) -> int:
        return len(self._labels)

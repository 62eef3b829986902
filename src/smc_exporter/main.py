from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import logging
import os
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from prometheus_client import CollectorRegistry, PlatformCollector, ProcessCollector
from pydantic_settings import BaseSettings, SettingsConfigDict

from smc_exporter import __version__
from smc_exporter.core.collector import SmcCollector
from smc_exporter.core.config_loader import SensorLabels
from smc_exporter.core.errors import ConfigError
from smc_exporter.core.services.gateway import SensorGateway, create_gateway
from smc_exporter.routers.metrics import create_metrics_router
from smc_exporter.schemas import AppHealthOK

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SMC_EXPORTER_")

    app_name: str = "SMC Exporter"
    # Path under which to expose metrics
    telemetry_path: str = "/metrics"
    listen_address: str = "0.0.0.0"
    port: int = 9190
    log_level: str = "info"
    labels_file: Path = SensorLabels.get_default_path()
    # Serve canned readings instead of talking to the SMC (always on outside macOS)
    emulation_mode: bool = sys.platform != "darwin"


def configure_logging(level: str) -> None:
    """Set up root logging at `level`, one of debug, info, warn or error."""
    if level not in LOG_LEVELS:
        raise ConfigError(f"Invalid log level {level!r}, expected one of {', '.join(LOG_LEVELS)}")
    logging.basicConfig(
        level=LOG_LEVELS[level],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("smc_exporter").setLevel(LOG_LEVELS[level])
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_registry(gateway: SensorGateway, labels: SensorLabels) -> CollectorRegistry:
    """Registry with the standard process/platform metrics and the SMC collector."""
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    registry.register(SmcCollector(gateway, labels))
    return registry


def _landing_page(app_name: str, metrics_path: str) -> str:
    return f"""<html>
<head><title>{app_name}</title></head>
<body>
<h1>{app_name}</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>"""


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[SensorGateway] = None,
    labels: Optional[SensorLabels] = None,
) -> FastAPI:
    """
    Build the exporter application.

    Logging is configured and labels are loaded in the lifespan. An invalid
    log level or a missing or malformed label file aborts startup with
    ConfigError.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger.info("Starting smc_exporter version %s", __version__)
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            logger.warning("SMC Exporter is running as root user. This exporter is designed "
                           "to run as unprivileged user, root is not required.")

        sensor_labels = labels if labels is not None else SensorLabels.load(settings.labels_file)
        logger.info("Loaded sensor labels: count=%d", len(sensor_labels))

        sensor_gateway = gateway if gateway is not None else create_gateway(settings.emulation_mode)
        app.state.registry = build_registry(sensor_gateway, sensor_labels)
        try:
            yield
        finally:
            logger.info("Stopping smc_exporter")

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings

    @app.get("/", tags=["meta"], response_class=HTMLResponse)
    async def read_root() -> HTMLResponse:
        return HTMLResponse(_landing_page(settings.app_name, settings.telemetry_path))

    @app.get("/health", tags=["meta"], response_model=AppHealthOK)
    async def healthcheck() -> AppHealthOK:
        return AppHealthOK(status="ok", app=settings.app_name, version=__version__)

    app.include_router(create_metrics_router(settings.telemetry_path))
    return app


app = create_app()


def run() -> None:
    """Console entry point: parse CLI flags/env, load labels, serve."""
    try:
        settings = Settings(_cli_parse_args=True, _cli_prog_name="smc-exporter")
        configure_logging(settings.log_level)
        labels = SensorLabels.load(settings.labels_file)
        application = create_app(settings, labels=labels)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    uvicorn.run(
        application,
        host=settings.listen_address,
        port=settings.port,
        log_level="warning" if settings.log_level == "warn" else settings.log_level,
    )


if __name__ == "__main__":
    run()

"""
Process-wide settings.

Values come from environment variables prefixed with STOCKTAXCALC_ (or a local
.env file), e.g. STOCKTAXCALC_LOG_LEVEL=DEBUG. Per-run knobs live on
schemas.CalcConfig, which seeds its defaults from here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_LOGGER = "stocktaxcalc"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STOCKTAXCALC_", env_file=".env", extra="ignore")

    log_level: str = "WARNING"
    jurisdiction: str = "TR"
    dust_threshold: Decimal = Decimal("0.000001")
    indexation_threshold: Decimal = Decimal("0.10")
    near_indexation_threshold: Decimal = Decimal("0.08")


settings = Settings()


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger and set its level.

    Only touches the "stocktaxcalc" logger, never the root logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    resolved = level if level is not None else settings.log_level
    if isinstance(resolved, str):
        resolved = resolved.upper()
    logger.setLevel(resolved)
    if not any(getattr(h, "_stocktaxcalc", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stocktaxcalc = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger

"""
Configuration — environment-driven settings.

Values come from the process environment, optionally seeded from a .env
file in the working directory:

    RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET     (required)
    RAZORPAY_BASE_URL                        default https://api.razorpay.com
    CRUNCHPAY_GATEWAY_TIMEOUT                seconds, default 10
    CRUNCHPAY_CURRENCY                       default INR
    CRUNCHPAY_DATABASE_URL                   default sqlite+aiosqlite:///crunchpay.db
    CRUNCHPAY_LOG_LEVEL                      default INFO
    CRUNCHPAY_MAX_LINE_QUANTITY              default 100
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from crunchpay.gateway import DEFAULT_BASE_URL


class ConfigurationError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class Settings:
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_base_url: str = DEFAULT_BASE_URL
    gateway_timeout: float = 10.0
    currency: str = "INR"
    database_url: str = "sqlite+aiosqlite:///crunchpay.db"
    log_level: str = "INFO"
    max_line_quantity: int = 100

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        dotenv: bool = True,
    ) -> Settings:
        """
        Build settings from the environment.

        Pass `environ` to read from a mapping instead of os.environ (the .env
        file is then ignored).
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        key_id = environ.get("RAZORPAY_KEY_ID", "").strip()
        key_secret = environ.get("RAZORPAY_KEY_SECRET", "").strip()
        missing = [
            name
            for name, value in (("RAZORPAY_KEY_ID", key_id), ("RAZORPAY_KEY_SECRET", key_secret))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

        return cls(
            razorpay_key_id=key_id,
            razorpay_key_secret=key_secret,
            razorpay_base_url=environ.get("RAZORPAY_BASE_URL", DEFAULT_BASE_URL),
            gateway_timeout=_number(environ, "CRUNCHPAY_GATEWAY_TIMEOUT", 10.0, float),
            currency=environ.get("CRUNCHPAY_CURRENCY", "INR").upper(),
            database_url=environ.get("CRUNCHPAY_DATABASE_URL", "sqlite+aiosqlite:///crunchpay.db"),
            log_level=environ.get("CRUNCHPAY_LOG_LEVEL", "INFO").upper(),
            max_line_quantity=_number(environ, "CRUNCHPAY_MAX_LINE_QUANTITY", 100, int),
        )


def _number[N: (int, float)](
    environ: Mapping[str, str], name: str, default: N, parse: type[N]
) -> N:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = parse(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


__all__ = ("Settings", "ConfigurationError", "configure_logging")

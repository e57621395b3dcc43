import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

ENV_PREFIX = "TAPNCHOW_"


def _get_int(name: str, fallback: int) -> int:
    raw_value = os.getenv(ENV_PREFIX + name)
    if raw_value is None or raw_value.strip() == "":
        return fallback
    try:
        return int(raw_value)
    except ValueError:
        raise RuntimeError(
            f"Invalid integer for environment variable {ENV_PREFIX}{name}: {raw_value!r}"
        ) from None


def _get_decimal(name: str, fallback: str) -> Decimal:
    raw_value = os.getenv(ENV_PREFIX + name)
    if raw_value is None or raw_value.strip() == "":
        return Decimal(fallback)
    try:
        return Decimal(raw_value.strip())
    except InvalidOperation:
        raise RuntimeError(
            f"Invalid decimal for environment variable {ENV_PREFIX}{name}: {raw_value!r}"
        ) from None


@dataclass(frozen=True)
class Settings:
    cancellation_window_seconds: int = 60
    platform_rate: Decimal = Decimal("0.10")
    vendor_report_tax_rate: Decimal = Decimal("0.06")
    checkout_tax_rate: Decimal = Decimal("0.08")
    service_fee_rate: Decimal = Decimal("0.10")
    trend_threshold: Decimal = Decimal("0.1")
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            cancellation_window_seconds=_get_int("CANCELLATION_WINDOW_SECONDS", 60),
            platform_rate=_get_decimal("PLATFORM_RATE", "0.10"),
            vendor_report_tax_rate=_get_decimal("VENDOR_REPORT_TAX_RATE", "0.06"),
            checkout_tax_rate=_get_decimal("CHECKOUT_TAX_RATE", "0.08"),
            service_fee_rate=_get_decimal("SERVICE_FEE_RATE", "0.10"),
            trend_threshold=_get_decimal("TREND_THRESHOLD", "0.1"),
            log_level=os.getenv(ENV_PREFIX + "LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv(ENV_PREFIX + "LOG_DIR") or None,
        )


settings = Settings.from_env()

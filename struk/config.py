from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

SERVICE_NAME = "struk"


def _env(name: str, default: Any, cast: Callable[[str], Any]):
	raw = os.getenv(name)
	if raw is None:
		return default
	try:
		return cast(raw)
	except Exception as e:
		raise ValueError(
			f"env var {name!r}={raw!r} not valid for {cast.__name__}"
		) from e


def _optional_float(raw: str) -> float | None:
	raw = raw.strip()
	return float(raw) if raw else None


# minimal env surface
LOG_LEVEL = _env("LOG_LEVEL", "INFO", str)
OTLP_ENDPOINT = _env("OTLP_ENDPOINT", None, str)
LOKI_URL = _env("LOKI_URL", None, str)  # presence toggles json logs, no direct emission

# receipt-issuing service
BACKEND_URL = _env("BACKEND_URL", "http://localhost:8000", str).strip().rstrip("/")
SUBMIT_TIMEOUT_SECS = _env("SUBMIT_TIMEOUT_SECS", None, _optional_float)  # None leaves it to the transport

# snapshot export
ASSET_TIMEOUT_SECS = _env("ASSET_TIMEOUT_SECS", 15.0, float)
EXPORT_DIR = _env("EXPORT_DIR", Path("exports"), Path)
EXPORT_SCALE = _env("EXPORT_SCALE", 3, int)
APP_ORIGIN = _env("APP_ORIGIN", "http://localhost:5173", str).strip().rstrip("/")
RECEIPT_FONT = _env("RECEIPT_FONT", None, str)  # path to a TTF, default font otherwise

# branding
BRAND_NAME = _env("BRAND_NAME", "VELLIXAO", str).strip()
BRAND_PHONE = _env("BRAND_PHONE", "085706400133", str).strip()
BRAND_LOGO = _env("BRAND_LOGO", "https://files.catbox.moe/a9u0pd.png", str).strip() or None

# constraints
MIN_EXPORT_SCALE = 2
ERROR_DETAIL_MAX_CHARS = 120


@dataclass(frozen=True)
class Settings:
	service: str = SERVICE_NAME
	log_level: str = LOG_LEVEL
	json_logs: bool = bool(OTLP_ENDPOINT or LOKI_URL)
	otlp_endpoint: str | None = OTLP_ENDPOINT
	backend_url: str = BACKEND_URL
	submit_timeout_secs: float | None = SUBMIT_TIMEOUT_SECS
	asset_timeout_secs: float = ASSET_TIMEOUT_SECS
	export_dir: Path = EXPORT_DIR
	export_scale: int = EXPORT_SCALE
	app_origin: str = APP_ORIGIN
	receipt_font: str | None = RECEIPT_FONT
	brand_name: str = BRAND_NAME
	brand_phone: str = BRAND_PHONE
	brand_logo: str | None = BRAND_LOGO
	receipt_kind: str = "Struk"

	def __post_init__(self) -> None:
		if self.export_scale < MIN_EXPORT_SCALE:
			raise ValueError(
				f"export_scale must be at least {MIN_EXPORT_SCALE}, got {self.export_scale}"
			)


def load_settings() -> Settings:
	return Settings()

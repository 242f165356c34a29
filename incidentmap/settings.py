# incidentmap/settings.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from incidentmap.projection import HOME_LAT, HOME_LON

# Load .env file if it exists (from project root or current directory)
load_dotenv()

ENV_PREFIX = "INCIDENTMAP_"
CONFIG_ENV = "INCIDENTMAP_CONFIG"

OSM_TILE_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"


class AppSettings(BaseModel):
    """
    Runtime configuration for the server, map and registry.

    Precedence (lowest first): field defaults, YAML file named by
    INCIDENTMAP_CONFIG, INCIDENTMAP_* environment variables.
    """
    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8788, description="Bind port")
    title: str = Field(default="Incident Map", description="UI/API title")
    log_level: str = Field(default="info", description="Root log level")

    title_prefix: str = Field(default="Incidencia", description="Prefix of auto-generated incident titles")

    home_lon: float = Field(default=HOME_LON, description="Home view longitude")
    home_lat: float = Field(default=HOME_LAT, description="Home view latitude")
    home_zoom: int = Field(default=12, ge=0, le=19, description="Home view zoom level")

    tile_url_template: str = Field(default=OSM_TILE_URL, description="XYZ tile URL template")
    tile_check_timeout_s: float = Field(default=5.0, gt=0, description="Tile server probe timeout")

    @classmethod
    def _env_overrides(cls, environ: Mapping[str, str]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None and value.strip() != "":
                out[name] = value.strip()
        return out

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AppSettings":
        """
        Build settings from an optional YAML file plus environment overrides.
        A missing file is not an error; a malformed one raises ValueError.
        """
        environ = os.environ if environ is None else environ
        if path is None and environ.get(CONFIG_ENV):
            path = Path(environ[CONFIG_ENV]).expanduser()

        data: Dict[str, Any] = {}
        if path is not None and path.exists():
            loaded = yaml.safe_load(path.read_text("utf-8")) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"settings file must contain a mapping: {path}")
            data.update(loaded)

        data.update(cls._env_overrides(environ))
        return cls.model_validate(data)


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None

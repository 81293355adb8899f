from __future__ import annotations

# locbase/config.py
import os
from dataclasses import dataclass

import yaml

# 配置解析顺序：
# 1) 环境变量 LOCBASE_*（最高优先级）
# 2) config.yaml（LOCBASE_CONFIG 可指定路径，默认项目根目录）
# 3) 内置默认值
_PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))

DEFAULTS = {
    "location_timeout_s": 15.0,
    "accuracy": "high",
    "auto_grant_location": False,
    "log_level": "INFO",
}


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def config_path() -> str:
    return os.environ.get("LOCBASE_CONFIG") or os.path.join(_PROJECT_ROOT, "config.yaml")


def read_config_yaml(path: str | None = None) -> dict:
    cfg_path = path or config_path()
    if not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
        return cfg if isinstance(cfg, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


@dataclass(frozen=True)
class LocbaseConfig:
    """Runtime configuration, resolved once at startup."""

    db_path: str | None
    location_timeout_s: float
    accuracy: str
    auto_grant_location: bool
    static_latitude: float | None
    static_longitude: float | None
    log_level: str

    @property
    def has_static_location(self) -> bool:
        return self.static_latitude is not None and self.static_longitude is not None


def _optional_float(value) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def load_config(path: str | None = None) -> LocbaseConfig:
    cfg = read_config_yaml(path)
    static = cfg.get("static_location") or {}
    if not isinstance(static, dict):
        static = {}

    timeout = os.environ.get("LOCBASE_LOCATION_TIMEOUT", cfg.get("location_timeout_s", DEFAULTS["location_timeout_s"]))
    accuracy = os.environ.get("LOCBASE_ACCURACY", cfg.get("accuracy", DEFAULTS["accuracy"]))
    auto_grant = os.environ.get("LOCBASE_AUTO_GRANT", cfg.get("auto_grant_location", DEFAULTS["auto_grant_location"]))
    lat = os.environ.get("LOCBASE_STATIC_LAT", static.get("latitude"))
    lon = os.environ.get("LOCBASE_STATIC_LON", static.get("longitude"))
    log_level = os.environ.get("LOCBASE_LOG_LEVEL", cfg.get("log_level", DEFAULTS["log_level"]))

    return LocbaseConfig(
        db_path=os.environ.get("LOCBASE_DB_PATH"),
        location_timeout_s=float(timeout),
        accuracy=str(accuracy).strip().lower(),
        auto_grant_location=_truthy(auto_grant),
        static_latitude=_optional_float(lat),
        static_longitude=_optional_float(lon),
        log_level=str(log_level).upper(),
    )

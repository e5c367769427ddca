from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


class ConfigError(RuntimeError):
    pass


def load_config(path: str | Path) -> dict[str, Any]:
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise ConfigError(f"Config not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ConfigError("Config root must be a mapping")
    return loaded


@dataclass(slots=True)
class ScraperSettings:
    request_delay_seconds: float = 2.0
    max_retries: int = 3
    timeout_seconds: float = 20.0
    proxy_url: str = ""
    use_proxies: bool = False
    notifications_enabled: bool = True
    db_path: str = "data/jobscraper.db"
    log_dir: str = "data/logs"
    log_level: str = "INFO"

    @property
    def proxy(self) -> str | None:
        return self.proxy_url if self.use_proxies and self.proxy_url else None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ScraperSettings:
        scraper = _section(config, "scraper")
        notifications = _section(config, "notifications")
        storage = _section(config, "storage")
        logging_cfg = _section(config, "logging")
        defaults = cls()
        try:
            return cls(
                request_delay_seconds=float(scraper.get("request_delay_seconds", defaults.request_delay_seconds)),
                max_retries=int(scraper.get("max_retries", defaults.max_retries)),
                timeout_seconds=float(scraper.get("timeout_seconds", defaults.timeout_seconds)),
                proxy_url=str(scraper.get("proxy_url") or ""),
                use_proxies=bool(scraper.get("use_proxies", False)),
                notifications_enabled=bool(notifications.get("enabled", True)),
                db_path=str(storage.get("db_path", defaults.db_path)),
                log_dir=str(logging_cfg.get("log_dir", defaults.log_dir)),
                log_level=str(logging_cfg.get("level", defaults.log_level)).upper(),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid scraper settings: {exc}") from exc


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section

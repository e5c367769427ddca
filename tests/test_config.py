from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from jobscraper.core.cli import find_profile, import_profiles
from jobscraper.core.errors import InvalidSpecification
from jobscraper.storage.repository import JobRepository
from jobscraper.utils.config import ConfigError, ScraperSettings, load_config
from jobscraper.utils.logging_utils import JsonFormatter, setup_logging

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config.example.yaml"


def make_config() -> dict:
    return {
        "profiles": [
            {
                "name": "python-london",
                "keywords": "Python Developer",
                "location": "London",
                "salary_min": 50000,
                "sites": ["indeed", "reed"],
            },
            {"name": "remote-data", "keywords": "data engineer", "work_mode": "remote"},
        ],
        "schedules": [{"profile": "python-london", "cron": "0 9 * * 1-5", "enabled": True}],
    }


def test_example_config_loads() -> None:
    config = load_config(EXAMPLE_CONFIG)
    settings = ScraperSettings.from_config(config)
    assert settings.request_delay_seconds == 2.0
    assert settings.max_retries == 3
    assert settings.proxy is None
    assert config["profiles"][0]["name"] == "python-london"


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Config not found"):
        load_config(tmp_path / "nope.yaml")


def test_config_root_must_be_a_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_settings_defaults_for_empty_config() -> None:
    settings = ScraperSettings.from_config({})
    assert settings == ScraperSettings()
    assert settings.notifications_enabled is True


def test_settings_read_every_section() -> None:
    settings = ScraperSettings.from_config(
        {
            "scraper": {
                "request_delay_seconds": 0.5,
                "max_retries": "5",
                "timeout_seconds": 10,
                "use_proxies": True,
                "proxy_url": "http://proxy.local:8080",
            },
            "notifications": {"enabled": False},
            "storage": {"db_path": "/tmp/jobs.db"},
            "logging": {"log_dir": "/tmp/logs", "level": "debug"},
        }
    )
    assert settings.request_delay_seconds == 0.5
    assert settings.max_retries == 5
    assert settings.timeout_seconds == 10.0
    assert settings.proxy == "http://proxy.local:8080"
    assert settings.notifications_enabled is False
    assert settings.db_path == "/tmp/jobs.db"
    assert settings.log_level == "DEBUG"


def test_proxy_is_ignored_unless_enabled() -> None:
    settings = ScraperSettings.from_config({"scraper": {"proxy_url": "http://proxy.local:8080"}})
    assert settings.proxy is None


@pytest.mark.parametrize(
    "config",
    [
        {"scraper": {"max_retries": "several"}},
        {"scraper": ["not", "a", "mapping"]},
        {"logging": "verbose"},
    ],
)
def test_invalid_settings_raise_config_error(config: dict) -> None:
    with pytest.raises(ConfigError):
        ScraperSettings.from_config(config)


def test_import_profiles_stores_profiles_and_schedules(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))

    assert import_profiles(make_config(), repo) == (2, 1)

    spec = find_profile(repo, "python-london")
    assert spec.sites == ("indeed", "reed")
    assert spec.salary_min == 50000
    assert find_profile(repo, "remote-data").sites == ("indeed", "reed", "totaljobs", "cvlibrary")
    [binding] = repo.list_schedule_bindings()
    assert binding.specification_id == spec.id
    assert binding.cron_expression == "0 9 * * 1-5"
    assert binding.enabled is True


def test_reimport_updates_in_place(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    import_profiles(make_config(), repo)
    first_id = find_profile(repo, "python-london").id

    config = make_config()
    config["profiles"][0]["location"] = "Leeds"
    config["schedules"][0]["cron"] = "30 7 * * *"
    import_profiles(config, repo)

    spec = find_profile(repo, "python-london")
    assert spec.id == first_id
    assert spec.location == "Leeds"
    assert len(repo.list_specifications()) == 2
    [binding] = repo.list_schedule_bindings()
    assert binding.cron_expression == "30 7 * * *"


def test_import_rejects_unknown_schedule_profile(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    with pytest.raises(ConfigError, match="unknown profile"):
        import_profiles({"schedules": [{"profile": "ghost", "cron": "0 9 * * *"}]}, repo)


def test_import_rejects_invalid_profile(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    with pytest.raises(InvalidSpecification):
        import_profiles({"profiles": [{"name": "bad", "keywords": "python", "contract_type": "zero-hours"}]}, repo)
    assert repo.list_specifications() == []


def test_import_accepts_a_single_site_string(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    import_profiles({"profiles": [{"name": "p", "keywords": "python", "sites": "indeed"}]}, repo)
    assert find_profile(repo, "p").sites == ("indeed",)


@pytest.mark.parametrize("sites", ["[indeed", '["indeed", 3]', "[1, 2]"])
def test_import_rejects_malformed_site_lists(tmp_path: Path, sites: str) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    with pytest.raises(InvalidSpecification):
        import_profiles({"profiles": [{"name": "p", "keywords": "python", "sites": sites}]}, repo)
    assert repo.list_specifications() == []


def test_find_profile_unknown_name(tmp_path: Path) -> None:
    repo = JobRepository(str(tmp_path / "jobs.db"))
    with pytest.raises(ConfigError):
        find_profile(repo, "missing")


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("jobscraper.test", logging.INFO, __file__, 1, "site_complete", None, None)
    record.extra_fields = {"site": "reed", "found": 4}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "site_complete"
    assert payload["level"] == "INFO"
    assert payload["site"] == "reed"
    assert payload["found"] == 4


def test_setup_logging_writes_app_and_error_logs(tmp_path: Path) -> None:
    root = logging.getLogger()
    previous = root.handlers[:]
    previous_level = root.level
    try:
        setup_logging(str(tmp_path), "INFO", console=False)
        logging.getLogger("jobscraper.test").info("hello")
        logging.getLogger("jobscraper.test").warning("careful")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in (tmp_path / "app.log").read_text(encoding="utf-8")
        error_log = (tmp_path / "error.log").read_text(encoding="utf-8")
        assert "careful" in error_log
        assert "hello" not in error_log
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = previous
        root.setLevel(previous_level)

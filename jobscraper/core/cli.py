from __future__ import annotations

import argparse
import signal
import threading
from dataclasses import replace
from typing import Any

from jobscraper.core.models import DEFAULT_CRON, SITE_LABELS, ScheduleBinding, SearchSpecification
from jobscraper.core.orchestrator import ScrapeEngine
from jobscraper.scheduling.scheduler import Scheduler
from jobscraper.storage.repository import JobRepository
from jobscraper.utils.config import ConfigError, ScraperSettings, load_config
from jobscraper.utils.logging_utils import setup_logging


def import_profiles(config: dict[str, Any], repo: JobRepository) -> tuple[int, int]:
    existing = {spec.name: spec for spec in repo.list_specifications()}
    saved = 0
    for payload in config.get("profiles") or []:
        spec = SearchSpecification.from_dict(payload)
        spec.validate()
        if spec.name in existing:
            spec = replace(spec, id=existing[spec.name].id, created_at=existing[spec.name].created_at)
        existing[spec.name] = repo.save_specification(spec)
        saved += 1

    bindings = {binding.specification_id: binding for binding in repo.list_schedule_bindings()}
    scheduled = 0
    for payload in config.get("schedules") or []:
        profile = existing.get(payload.get("profile", ""))
        if profile is None or profile.id is None:
            raise ConfigError(f"Schedule refers to unknown profile: {payload.get('profile')!r}")
        current = bindings.get(profile.id)
        repo.save_schedule_binding(
            ScheduleBinding(
                id=current.id if current else None,
                specification_id=profile.id,
                cron_expression=payload.get("cron", DEFAULT_CRON),
                enabled=bool(payload.get("enabled", True)),
                last_run=current.last_run if current else None,
                next_run=current.next_run if current else None,
            )
        )
        scheduled += 1
    return saved, scheduled


def find_profile(repo: JobRepository, name: str) -> SearchSpecification:
    for spec in repo.list_specifications():
        if spec.name == name:
            return spec
    raise ConfigError(f"Unknown profile: {name!r}")


def run_scheduler(engine: ScrapeEngine, repo: JobRepository, settings: ScraperSettings) -> None:
    scheduler = Scheduler(engine, repo, notifications_enabled=settings.notifications_enabled)
    stopped = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stopped.set())
    active = scheduler.initialize()
    print(f"Scheduler running with {active} active schedule(s). Press Ctrl+C to stop.")
    try:
        stopped.wait()
    except KeyboardInterrupt:
        pass
    finally:
        engine.stop()
        scheduler.stop_all()


def main() -> None:
    parser = argparse.ArgumentParser(description="Scrape UK job sites")
    parser.add_argument("--config", default="config.yaml")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("import-profiles", help="Store profiles and schedules from the config file")
    scrape_cmd = commands.add_parser("scrape", help="Run one scrape for a stored profile")
    scrape_cmd.add_argument("--profile", required=True)
    commands.add_parser("run-scheduler", help="Run stored schedules until interrupted")
    args = parser.parse_args()

    config = load_config(args.config)
    settings = ScraperSettings.from_config(config)
    setup_logging(settings.log_dir, settings.log_level)
    repo = JobRepository(settings.db_path)

    if args.command == "import-profiles":
        profiles, schedules = import_profiles(config, repo)
        print(f"Imported {profiles} profile(s) and {schedules} schedule(s)")
        return

    engine = ScrapeEngine(repo, settings)
    try:
        if args.command == "scrape":
            outcomes = engine.scrape(find_profile(repo, args.profile))
            for outcome in outcomes:
                label = SITE_LABELS.get(outcome.site, outcome.site)
                line = f"{label:<10} {outcome.status:<8} found={outcome.jobs_found} new={outcome.new_jobs}"
                print(f"{line} error={outcome.error}" if outcome.error else line)
            print("Run complete:", {"found": sum(o.jobs_found for o in outcomes), "new": sum(o.new_jobs for o in outcomes)})
        else:
            run_scheduler(engine, repo, settings)
    finally:
        engine.close()
        repo.close()


if __name__ == "__main__":
    main()

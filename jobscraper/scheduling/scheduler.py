from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from croniter import croniter

from jobscraper.core.errors import ConcurrentScrapeRejected, InvalidSchedule
from jobscraper.core.events import LoggingProgressSink, ProgressSink
from jobscraper.core.models import ScheduleBinding, ScrapeSummary
from jobscraper.core.orchestrator import ScrapeEngine
from jobscraper.storage.base import JobStore

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "New jobs found"


def local_now() -> datetime:
    return datetime.now().astimezone()


def validate_expression(expression: str) -> None:
    if not expression or not croniter.is_valid(expression):
        raise InvalidSchedule(f"Invalid cron expression: {expression!r}")


def next_run(expression: str, now: datetime | None = None) -> datetime:
    """Advisory next firing time; firing itself is driven by the trigger thread."""
    now = now or local_now()
    try:
        validate_expression(expression)
    except InvalidSchedule:
        return now + timedelta(days=1)
    return croniter(expression, now).get_next(datetime)


class CronTrigger(threading.Thread):
    def __init__(
        self,
        binding_id: int,
        expression: str,
        callback: Callable[[], None],
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        super().__init__(name=f"schedule-{binding_id}", daemon=True)
        self.binding_id = binding_id
        self.expression = expression
        self._callback = callback
        self._clock = clock
        self._stopped = threading.Event()

    def run(self) -> None:
        last_fired: datetime | None = None
        while not self._stopped.is_set():
            now = self._clock()
            start = now if last_fired is None or now > last_fired else last_fired
            fire_at = croniter(self.expression, start).get_next(datetime)
            if self._stopped.wait(max(0.0, (fire_at - now).total_seconds())):
                break
            last_fired = fire_at
            try:
                self._callback()
            except Exception:  # noqa: BLE001
                logger.exception("schedule_trigger_failed", extra={"extra_fields": {"schedule_id": self.binding_id}})

    def cancel(self) -> None:
        self._stopped.set()


class Scheduler:
    """Recurring scrape triggers, one daemon thread per enabled binding."""

    def __init__(
        self,
        engine: ScrapeEngine,
        store: JobStore,
        sink: ProgressSink | None = None,
        notifications_enabled: bool = True,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.engine = engine
        self.store = store
        self.sink = sink or LoggingProgressSink()
        self.notifications_enabled = notifications_enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._triggers: dict[int, CronTrigger] = {}

    @property
    def live_trigger_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._triggers)

    def initialize(self) -> int:
        for binding in self.store.list_schedule_bindings():
            if binding.enabled:
                self.add_or_replace(binding)
        count = len(self.live_trigger_ids)
        logger.info("schedules_initialized", extra={"extra_fields": {"active": count}})
        return count

    def add_or_replace(self, binding: ScheduleBinding) -> None:
        if binding.id is None:
            logger.warning("schedule_without_id", extra={"extra_fields": {"expression": binding.cron_expression}})
            return
        self.remove(binding.id)
        if not binding.enabled:
            return
        try:
            validate_expression(binding.cron_expression)
        except InvalidSchedule as exc:
            logger.error("schedule_invalid", extra={"extra_fields": {"schedule_id": binding.id, "error": str(exc)}})
            return

        trigger = CronTrigger(binding.id, binding.cron_expression, lambda: self.run_binding(binding), self._clock)
        with self._lock:
            self._triggers[binding.id] = trigger
        trigger.start()
        logger.info(
            "schedule_added",
            extra={"extra_fields": {"schedule_id": binding.id, "expression": binding.cron_expression}},
        )

    def remove(self, binding_id: int) -> None:
        with self._lock:
            trigger = self._triggers.pop(binding_id, None)
        if trigger is not None:
            trigger.cancel()
            logger.info("schedule_removed", extra={"extra_fields": {"schedule_id": binding_id}})

    def stop_all(self, timeout: float = 5.0) -> None:
        """Cancel every trigger and wait for idle ones to exit.

        A trigger whose scrape is in flight finishes that scrape first; stop the
        engine beforehand to cut it short.
        """
        with self._lock:
            triggers = list(self._triggers.values())
            self._triggers.clear()
        for trigger in triggers:
            trigger.cancel()
        current = threading.current_thread()
        for trigger in triggers:
            if trigger is not current:
                trigger.join(timeout)
            logger.info(
                "schedule_stopped",
                extra={"extra_fields": {"schedule_id": trigger.binding_id, "alive": trigger.is_alive()}},
            )

    def run_binding(self, binding: ScheduleBinding) -> ScrapeSummary | None:
        spec = self.store.get_specification(binding.specification_id)
        if spec is None:
            logger.warning(
                "schedule_profile_missing",
                extra={"extra_fields": {"schedule_id": binding.id, "profile_id": binding.specification_id}},
            )
            return None

        logger.info("scheduled_scrape_started", extra={"extra_fields": {"schedule_id": binding.id, "profile": spec.name}})
        try:
            outcomes = self.engine.scrape(spec)
        except ConcurrentScrapeRejected:
            logger.warning("scheduled_scrape_skipped", extra={"extra_fields": {"schedule_id": binding.id}})
            return None
        except Exception:  # noqa: BLE001
            logger.exception("scheduled_scrape_failed", extra={"extra_fields": {"schedule_id": binding.id}})
            return None

        summary = ScrapeSummary(outcomes=outcomes)
        now = self._clock()
        if binding.id is not None:
            self.store.update_last_run(
                binding.id,
                now.replace(microsecond=0).isoformat(),
                next_run(binding.cron_expression, now).replace(microsecond=0).isoformat(),
            )

        if summary.total_new > 0 and self.notifications_enabled:
            self.sink.notify(
                NOTIFICATION_TITLE,
                f'Found {summary.total_new} new jobs ({summary.total_found} total) for "{spec.name}"',
            )
        logger.info(
            "scheduled_scrape_complete",
            extra={"extra_fields": {"schedule_id": binding.id, "found": summary.total_found, "new": summary.total_new}},
        )
        return summary

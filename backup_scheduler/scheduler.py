import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .errors import InvalidScheduleError
from .logger import get_logger
from .metrics import ACTIVE_TRIGGERS
from .models import Frequency, Schedule
from .retention import sweep_old_backups

logger = get_logger(__name__)

MAINTENANCE_JOB_ID = "retention_maintenance"

# crontab numbers weekdays from Sunday, APScheduler from Monday; names avoid the mismatch
CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def parse_time(value: str) -> Tuple[int, int]:
    try:
        hour_text, minute_text = value.split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise InvalidScheduleError(f"Invalid time '{value}', expected HH:MM") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidScheduleError(f"Invalid time '{value}', expected HH:MM")
    return hour, minute


def build_cron_expression(schedule: Schedule, time: Optional[str] = None) -> str:
    """
    Derives the five-field cron expression for one firing time of a schedule:
    ``minute hour * * *`` (daily), ``minute hour * * dow`` (weekly) or
    ``minute hour dom * *`` (monthly).
    """
    hour, minute = parse_time(time or schedule.time)
    frequency = schedule.frequency

    if frequency == Frequency.DAILY:
        return f"{minute} {hour} * * *"

    if frequency == Frequency.WEEKLY:
        day = schedule.day_of_week
        if day is None or not 0 <= day <= 6:
            raise InvalidScheduleError(f"Weekly schedule '{schedule.name}' needs a day_of_week between 0 and 6")
        return f"{minute} {hour} * * {day}"

    if frequency == Frequency.MONTHLY:
        day = schedule.day_of_month
        if day is None or not 1 <= day <= 31:
            raise InvalidScheduleError(f"Monthly schedule '{schedule.name}' needs a day_of_month between 1 and 31")
        return f"{minute} {hour} {day} * *"

    raise InvalidScheduleError(f"Unknown frequency: {frequency}")


def cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    minute, hour, day, month, day_of_week = expression.split()
    if day_of_week != "*":
        day_of_week = CRON_DAY_NAMES[int(day_of_week)]
    return CronTrigger(minute=minute, hour=hour, day=day, month=month, day_of_week=day_of_week, timezone=timezone)


@dataclass
class ActiveTrigger:
    schedule_id: str
    job_id: str
    time: str
    cron_expression: str
    job: Job

    def next_run_time(self) -> Optional[datetime]:
        # Jobs added before the scheduler starts have no next_run_time yet
        next_run = getattr(self.job, "next_run_time", None)
        if next_run is None:
            next_run = self.job.trigger.get_next_fire_time(None, datetime.now(self.job.trigger.timezone))
        return next_run


class ScheduleRegistry:
    """
    Turns enabled schedules into cron triggers and owns the table of active
    triggers, keyed by schedule id.
    """

    def __init__(self, store, backup_manager, settings: dict = None, scheduler: AsyncIOScheduler = None):
        self.store = store
        self.backup_manager = backup_manager
        self.settings = settings or {}
        self.timezone = self.settings.get("timezone", "UTC")
        self.scheduler = scheduler or AsyncIOScheduler(
            executors={"default": AsyncIOExecutor()},
            job_defaults={"coalesce": True, "misfire_grace_time": 3600},
            timezone=self.timezone,
        )
        self._triggers: Dict[str, List[ActiveTrigger]] = {}
        # routes run in a threadpool; cancel-and-add must be atomic per registry
        self._lock = threading.RLock()

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()

    def initialize(self):
        logger.info("Initializing backup scheduler...")
        with self._lock:
            self.cancel_all()

            for schedule in self.store.get("schedules"):
                if not schedule.enabled:
                    continue
                try:
                    self.register(schedule)
                except InvalidScheduleError as e:
                    logger.error(f"Skipping schedule '{schedule.name}': {e}")

            self._schedule_maintenance()
            logger.info(f"Initialized {len(self._triggers)} active schedules")

    def register(self, schedule: Schedule) -> List[ActiveTrigger]:
        with self._lock:
            self.cancel(schedule.id)

            # Derive every trigger up front so an invalid time registers nothing
            planned = []
            for time in schedule.run_times():
                expression = build_cron_expression(schedule, time)
                planned.append((time, expression, cron_trigger(expression, self.timezone)))

            triggers = []
            for index, (time, expression, trigger) in enumerate(planned):
                job_id = f"backup_{schedule.id}_{index}"
                logger.info(f'Registering schedule "{schedule.name}" [{index + 1}/{len(planned)}] with cron: {expression}')
                job = self.scheduler.add_job(
                    self._run_scheduled_backup,
                    trigger=trigger,
                    args=[schedule, time],
                    id=job_id,
                    name=f"Backup for {schedule.name} ({time})",
                    replace_existing=True,
                )
                triggers.append(ActiveTrigger(schedule.id, job_id, time, expression, job))

            if triggers:
                self._triggers[schedule.id] = triggers
                logger.info(
                    f'Schedule "{schedule.name}" registered with {len(triggers)} trigger(s). '
                    f"Next run: {self.next_run(schedule.id)}"
                )
            ACTIVE_TRIGGERS.set(self.active_count())
        return triggers

    def cancel(self, schedule_id: str) -> int:
        with self._lock:
            triggers = self._triggers.pop(schedule_id, None)
            if not triggers:
                return 0
            for trigger in triggers:
                self._remove_job(trigger.job_id)
            ACTIVE_TRIGGERS.set(self.active_count())
        logger.info(f"Cancelled schedule: {schedule_id} ({len(triggers)} jobs)")
        return len(triggers)

    def cancel_all(self):
        with self._lock:
            for schedule_id in list(self._triggers):
                self.cancel(schedule_id)

    def shutdown(self):
        with self._lock:
            self.cancel_all()
            self._remove_job(MAINTENANCE_JOB_ID)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Backup scheduler stopped.")

    def _remove_job(self, job_id: str):
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            logger.debug(f"Job {job_id} was already gone.")

    def active_triggers(self, schedule_id: str) -> List[ActiveTrigger]:
        with self._lock:
            return list(self._triggers.get(schedule_id, []))

    def active_count(self) -> int:
        with self._lock:
            return sum(len(triggers) for triggers in self._triggers.values())

    def is_active(self, schedule_id: str) -> bool:
        with self._lock:
            return schedule_id in self._triggers

    def next_run(self, schedule_id: str) -> Optional[datetime]:
        runs = [t.next_run_time() for t in self.active_triggers(schedule_id)]
        runs = [run for run in runs if run is not None]
        return min(runs) if runs else None

    def describe(self) -> List[dict]:
        with self._lock:
            triggers = [trigger for group in self._triggers.values() for trigger in group]
        return [
            {
                "schedule_id": trigger.schedule_id,
                "job_id": trigger.job_id,
                "time": trigger.time,
                "cron": trigger.cron_expression,
                "next_run": trigger.next_run_time(),
            }
            for trigger in triggers
        ]

    def _schedule_maintenance(self):
        maintenance_time = self.settings.get("maintenance_time", "00:00")
        hour, minute = parse_time(maintenance_time)
        self._remove_job(MAINTENANCE_JOB_ID)
        self.scheduler.add_job(
            self.run_maintenance,
            trigger=cron_trigger(f"{minute} {hour} * * *", self.timezone),
            id=MAINTENANCE_JOB_ID,
            name="Sweep expired backups",
            replace_existing=True,
        )
        logger.info(f"Scheduled daily backup cleanup at {maintenance_time}.")

    async def run_maintenance(self):
        """Sweeps every schedule with a retention period, using what is currently persisted."""
        logger.info("Running daily backup cleanup...")
        try:
            schedules = await asyncio.to_thread(self.store.get, "schedules")
        except Exception as e:
            logger.error(f"Daily cleanup could not load schedules: {e}", exc_info=True)
            return

        for schedule in schedules:
            if schedule.retention_days > 0:
                await asyncio.to_thread(sweep_old_backups, schedule)

    async def _run_scheduled_backup(self, schedule: Schedule, time: str):
        logger.info(f"Executing scheduled backup: {schedule.name} ({time})")
        try:
            await self.backup_manager.run_backup(schedule)

            # Run cleanup after backup if retention is set
            if schedule.retention_days > 0:
                await asyncio.to_thread(sweep_old_backups, schedule)
        except Exception as e:
            logger.error(f'Backup failed for "{schedule.name}": {e}', exc_info=True)

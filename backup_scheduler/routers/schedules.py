import asyncio

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from typing import List

from ..errors import BackupSchedulerError, ConnectionNotFound, InvalidScheduleError
from ..models import HistoryRecord, Schedule
from ..schemas import ScheduleCreate, ScheduleDetail, ScheduleUpdate
from ..scheduler import build_cron_expression
from ..dependencies import get_store, get_registry, get_backup_manager
from ..logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _detail(schedule: Schedule, registry) -> ScheduleDetail:
    return ScheduleDetail(
        **schedule.model_dump(),
        active=registry.is_active(schedule.id),
        next_run=registry.next_run(schedule.id),
    )


def _validate_times(schedule: Schedule):
    try:
        for time in schedule.run_times():
            build_cron_expression(schedule, time)
    except InvalidScheduleError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _apply(schedule: Schedule, registry):
    # Re-register or cancel the schedule based on enabled status
    if schedule.enabled:
        registry.register(schedule)
    else:
        registry.cancel(schedule.id)


@router.get("", response_model=List[ScheduleDetail])
def list_schedules(store=Depends(get_store), registry=Depends(get_registry)):
    return [_detail(schedule, registry) for schedule in store.get("schedules")]


@router.post("", response_model=ScheduleDetail)
def add_schedule(schedule: ScheduleCreate, store=Depends(get_store), registry=Depends(get_registry)):
    logger.info(f"Creating schedule '{schedule.name}'.")
    new_schedule = Schedule(**schedule.model_dump())
    _validate_times(new_schedule)

    store.upsert("schedules", new_schedule)
    if new_schedule.enabled:
        registry.register(new_schedule)
    return _detail(new_schedule, registry)


@router.get("/{schedule_id}", response_model=ScheduleDetail)
def get_schedule(schedule_id: str, store=Depends(get_store), registry=Depends(get_registry)):
    schedule = store.get_schedule(schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return _detail(schedule, registry)


@router.put("/{schedule_id}", response_model=ScheduleDetail)
def update_schedule(schedule_id: str, update: ScheduleUpdate, store=Depends(get_store), registry=Depends(get_registry)):
    logger.info(f"Updating schedule with id: {schedule_id}")
    schedule = store.get_schedule(schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")

    update_data = update.model_dump(exclude_unset=True)
    logger.debug(f"Update data for schedule {schedule_id}: {update_data}")
    try:
        updated = Schedule.model_validate({**schedule.model_dump(), **update_data})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    _validate_times(updated)

    store.upsert("schedules", updated)
    _apply(updated, registry)
    return _detail(updated, registry)


@router.delete("/{schedule_id}", status_code=204)
def delete_schedule(schedule_id: str, store=Depends(get_store), registry=Depends(get_registry)):
    logger.info(f"Deleting schedule with id: {schedule_id}")
    if not store.remove("schedules", schedule_id):
        raise HTTPException(status_code=404, detail="Schedule not found")

    # Cancel the active jobs
    registry.cancel(schedule_id)
    return


@router.post("/{schedule_id}/run", response_model=HistoryRecord)
async def run_backup_now(schedule_id: str, store=Depends(get_store), backup_manager=Depends(get_backup_manager)):
    schedule = await asyncio.to_thread(store.get_schedule, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")

    logger.info(f"Manual backup requested for schedule '{schedule.name}'.")
    try:
        return await backup_manager.run_backup(schedule)
    except ConnectionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (BackupSchedulerError, OSError) as e:
        raise HTTPException(status_code=502, detail=str(e))

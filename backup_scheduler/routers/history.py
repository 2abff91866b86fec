from fastapi import APIRouter, Depends
from typing import List, Optional

from ..models import HistoryRecord
from ..dependencies import get_store
from ..logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=List[HistoryRecord])
def list_history(schedule_id: Optional[str] = None, store=Depends(get_store)):
    """
    Get every backup attempt, newest first. Optionally filtered by schedule.
    """
    return store.list_history(schedule_id)


@router.get("/failed", response_model=List[HistoryRecord])
def list_failed_history(store=Depends(get_store)):
    return [record for record in store.list_history() if record.status == "failed"]


@router.delete("", status_code=204)
def clear_history(store=Depends(get_store)):
    logger.info("Clearing backup history.")
    store.clear_history()
    return

from fastapi import APIRouter, Depends, Request, status

from ..config import read_config_file, sync_static_config
from ..dependencies import get_registry, get_store

router = APIRouter()

@router.post("/reload", status_code=status.HTTP_204_NO_CONTENT)
def reload_config(request: Request, store=Depends(get_store), registry=Depends(get_registry)):
    """Re-sync connections and schedules from config.yaml and rebuild every trigger."""
    sync_static_config(store, read_config_file(request.app.state.config_path))
    registry.initialize()

@router.get("/jobs")
def list_jobs(registry=Depends(get_registry)):
    return registry.describe()

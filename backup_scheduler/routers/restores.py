import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_settings, get_store, get_restore_manager
from ..errors import ArtifactNotFound, CorruptArchive, EmptyArchive, RestoreError
from ..schemas import RestoreInfo, RestoreRequest
from ..logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

def check_restore_mode(settings: dict = Depends(get_settings)):
    if not settings.get("restore_mode"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Restore mode is not enabled in the configuration.",
        )

# Apply the dependency to all routes in this router
router.dependencies.append(Depends(check_restore_mode))

@router.post("", response_model=RestoreInfo)
async def restore_backup(
    request: RestoreRequest,
    store=Depends(get_store),
    restore_manager=Depends(get_restore_manager),
):
    """
    Restore a database from a backup file. This drops and overwrites data in the
    target database, so the request must explicitly set ``confirm``.
    """
    if not request.confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Restoring overwrites the target database; resend the request with confirm=true.",
        )

    connection = await asyncio.to_thread(store.get_connection, request.connection_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Connection not found")

    try:
        await restore_manager.restore(request.artifact_path, connection, request.database)
    except ArtifactNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (EmptyArchive, CorruptArchive) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (RestoreError, OSError) as e:
        logger.error(f"Restore of {request.artifact_path} into {request.database} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return RestoreInfo(message="Restore completed.", artifact_path=request.artifact_path, database=request.database)

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from typing import List

from ..connection_check import check_connection
from ..models import Connection
from ..schemas import ConnectionCreate, ConnectionDetail, ConnectionTestResult, ConnectionUpdate
from ..dependencies import get_settings, get_store
from ..logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=List[ConnectionDetail])
def list_connections(store=Depends(get_store)):
    return store.get("connections")


@router.post("", response_model=ConnectionDetail)
def add_connection(connection: ConnectionCreate, store=Depends(get_store)):
    logger.info(f"Registering connection '{connection.name}' ({connection.kind.value}).")
    new_connection = Connection(**connection.model_dump())
    store.upsert("connections", new_connection)
    logger.info(f"Successfully registered connection with id: {new_connection.id}")
    return new_connection


@router.get("/{connection_id}", response_model=ConnectionDetail)
def get_connection(connection_id: str, store=Depends(get_store)):
    connection = store.get_connection(connection_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Connection not found")
    return connection


@router.put("/{connection_id}", response_model=ConnectionDetail)
def update_connection(connection_id: str, update: ConnectionUpdate, store=Depends(get_store)):
    logger.info(f"Updating connection with id: {connection_id}")
    connection = store.get_connection(connection_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Connection not found")

    update_data = update.model_dump(exclude_unset=True)
    logger.debug(f"Updating fields: {[key for key in update_data if key != 'password']}")
    updated = Connection.model_validate({**connection.model_dump(), **update_data})
    store.upsert("connections", updated)
    return updated


@router.delete("/{connection_id}", status_code=204)
def delete_connection(connection_id: str, store=Depends(get_store)):
    logger.info(f"Deleting connection with id: {connection_id}")
    if not store.remove("connections", connection_id):
        raise HTTPException(status_code=404, detail="Connection not found")
    return


@router.post("/test", response_model=ConnectionTestResult)
async def test_new_connection(connection: ConnectionCreate, settings: dict = Depends(get_settings)):
    """Try the connection details before saving them."""
    return await check_connection(Connection(**connection.model_dump()), settings.get("tools_dir"))


@router.post("/{connection_id}/test", response_model=ConnectionTestResult)
async def test_saved_connection(connection_id: str, store=Depends(get_store), settings: dict = Depends(get_settings)):
    connection = await asyncio.to_thread(store.get_connection, connection_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Connection not found")
    return await check_connection(connection, settings.get("tools_dir"))

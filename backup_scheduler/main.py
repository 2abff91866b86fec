from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from .backup_manager import BackupManager
from .config import CONFIG_PATH, read_config_file, load_settings, sync_static_config
from .database import create_store_engine
from .restore_manager import RestoreManager
from .scheduler import ScheduleRegistry
from .store import ConfigStore
from .routers import connections, schedules, history, restores, system
from .logger import setup_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: dict = None, config_path: str = CONFIG_PATH) -> FastAPI:
    config_data = read_config_file(config_path)
    if settings is None:
        settings = load_settings(config_path, config_data)
        setup_logging(settings)

    app = FastAPI(title="Database Backup Scheduler")
    app.state.settings = settings
    app.state.config_path = config_path
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    async def startup_event():
        store = ConfigStore(create_store_engine(settings.get("data_dir", "data")))
        try:
            sync_static_config(store, config_data)
        except ValueError as e:
            logger.error(f"Static configuration was not applied: {e}")

        backup_manager = BackupManager(store, settings)
        registry = ScheduleRegistry(store, backup_manager, settings)

        app.state.store = store
        app.state.backup_manager = backup_manager
        app.state.restore_manager = RestoreManager(settings)
        app.state.registry = registry

        registry.start()
        registry.initialize()

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.registry.shutdown()

    app.include_router(connections.router, prefix="/connections", tags=["connections"])
    app.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
    app.include_router(history.router, prefix="/history", tags=["history"])
    app.include_router(restores.router, prefix="/restores", tags=["restores"])
    app.include_router(system.router, prefix="/system", tags=["system"])
    return app

from fastapi import Request


def get_settings(request: Request) -> dict:
    return request.app.state.settings


def get_store(request: Request):
    return request.app.state.store


def get_registry(request: Request):
    return request.app.state.registry


def get_backup_manager(request: Request):
    return request.app.state.backup_manager


def get_restore_manager(request: Request):
    return request.app.state.restore_manager

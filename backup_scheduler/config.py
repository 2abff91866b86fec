import yaml
import os
from pydantic import ValidationError

from .models import Connection, Schedule
from .logger import get_logger

logger = get_logger(__name__)

CONFIG_PATH = "config.yaml"


def default_settings() -> dict:
    return {
        "data_dir": "data",
        "tools_dir": os.path.join(os.getcwd(), "bin"),
        "timezone": os.getenv("TZ", "UTC"),
        "maintenance_time": "00:00",
        "restore_mode": False,
        "log_level": "INFO",
    }


def read_config_file(config_path: str = CONFIG_PATH) -> dict:
    if not os.path.exists(config_path):
        logger.info(f"No {config_path} found, using default settings.")
        return {}

    with open(config_path, "r") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing {config_path}: {e}")
            return {}


def load_settings(config_path: str = CONFIG_PATH, config_data: dict = None) -> dict:
    if config_data is None:
        config_data = read_config_file(config_path)

    settings = default_settings()
    settings.update(config_data.get("settings") or {})
    return settings


def _find_duplicates(ids):
    seen = set()
    return {x for x in ids if x in seen or seen.add(x)}


def _resolve_credentials(config: dict) -> None:
    # Load credentials from environment variables or directly from config
    username_var = config.pop("username_var", None)
    password_var = config.pop("password_var", None)

    if "username" not in config and username_var:
        config["username"] = os.getenv(username_var, "")
    if "password" not in config and password_var:
        config["password"] = os.getenv(password_var)


def sync_static_config(store, config_data: dict):
    """
    Seeds the store with the connections and schedules declared in config.yaml.
    Entries are matched by ``id``; existing entries are overwritten, entries
    that only exist in the store are left untouched.
    """
    if not config_data:
        logger.info("No config data provided, skipping predefined connections and schedules.")
        return

    global_config = config_data.get("global", {}) or {}
    schedule_defaults = {"retention_days", "compress", "destination_directory"}

    for key, model in (("connections", Connection), ("schedules", Schedule)):
        entries = config_data.get(key) or []
        if not entries:
            continue

        # Pre-validate for duplicate IDs
        duplicates = _find_duplicates([entry.get("id") for entry in entries if entry.get("id")])
        if duplicates:
            error_msg = f"Duplicate {key} IDs found in config.yaml: {sorted(duplicates)}. Halting sync process."
            logger.error(error_msg)
            raise ValueError(error_msg)

        items = store.get(key)
        by_id = {item.id: index for index, item in enumerate(items)}

        for entry in entries:
            entry = dict(entry)
            entry_id = entry.get("id")
            if not entry_id:
                logger.warning(
                    f"Skipping a {key[:-1]} configuration (name: {entry.get('name', 'N/A')}) "
                    f"because it is missing the required 'id' field."
                )
                continue

            if key == "connections":
                _resolve_credentials(entry)
            else:
                for default_key, value in global_config.items():
                    if default_key in schedule_defaults and default_key not in entry:
                        logger.debug(f"Applying global default '{default_key}={value}' to schedule '{entry_id}'.")
                        entry[default_key] = value

            try:
                item = model.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping invalid {key[:-1]} configuration '{entry_id}': {e}")
                continue

            if entry_id in by_id:
                logger.info(f"Updating {key[:-1]} '{entry_id}' from config.yaml.")
                items[by_id[entry_id]] = item
            else:
                logger.info(f"Creating {key[:-1]} '{entry_id}' from config.yaml.")
                by_id[entry_id] = len(items)
                items.append(item)

        store.set(key, items)

    logger.info("Successfully synced connections and schedules from config.yaml.")

import logging
import logging.handlers
import os
import sys

LOG_FILE_NAME = "backup_scheduler.log"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: dict = None):
    """
    Configure the root logger from LOG_LEVEL (or ``settings['log_level']``):
    one stdout handler and one size-rotated file under the data directory.
    """
    settings = settings or {}
    log_level = os.environ.get("LOG_LEVEL", settings.get("log_level", "INFO")).upper()
    data_dir = settings.get("data_dir", "data")

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    try:
        os.makedirs(data_dir, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            os.path.join(data_dir, LOG_FILE_NAME), maxBytes=10 * 1024 * 1024, backupCount=5  # 10 MB
        )
    except OSError as e:
        root.error(f"Logging to stdout only, cannot write {data_dir}/{LOG_FILE_NAME}: {e}")
    else:
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(max(root.level, logging.WARNING))

    logging.info(f"Logging configured with level {log_level}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

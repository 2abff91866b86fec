from prometheus_client import Counter, Histogram, Gauge

BACKUPS_TOTAL = Counter(
    "backups_total",
    "Total number of backups.",
    ["schedule_name", "status"]
)

BACKUP_DURATION_SECONDS = Histogram(
    "backup_duration_seconds",
    "Duration of backup operations in seconds.",
    ["schedule_name"]
)

BACKUP_SIZE_BYTES = Gauge(
    "backup_size_bytes",
    "Size of the last successful backup in bytes.",
    ["schedule_name"]
)

BACKUP_LAST_STATUS = Gauge(
    "backup_last_status",
    "Status of the last backup (1 for success, 0 for failure).",
    ["schedule_name"]
)

RETENTION_FILES_DELETED_TOTAL = Counter(
    "retention_files_deleted_total",
    "Total number of backup artifacts deleted by the retention sweep.",
    ["schedule_name"]
)

RESTORES_TOTAL = Counter(
    "restores_total",
    "Total number of restore operations.",
    ["kind", "status"]
)

ACTIVE_TRIGGERS = Gauge(
    "active_triggers",
    "Number of registered backup triggers."
)

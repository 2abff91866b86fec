from typing import Optional


class BackupSchedulerError(Exception):
    """Base class for every error raised by the backup engine."""


class BackupError(BackupSchedulerError):
    pass


class RestoreError(BackupSchedulerError):
    pass


class InvalidScheduleError(BackupSchedulerError):
    pass


class ConnectionNotFound(BackupError):
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection not found: {connection_id}")


class UnsupportedDatabaseKind(BackupError, RestoreError):
    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unsupported database kind: {kind}")


class DumpFailed(BackupError):
    def __init__(self, tool: str, exit_code: Optional[int], stderr: str):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"{tool} failed with exit code {exit_code}: {stderr.strip()}")


class CompressionFailed(BackupError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Compression of {path} failed: {reason}")


class ArtifactNotFound(RestoreError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Backup file not found: {path}")


class EmptyArchive(RestoreError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Empty archive (no valid files found): {path}")


class RestoreFailed(RestoreError):
    def __init__(self, tool: str, exit_code: Optional[int], stderr: str):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"{tool} failed with exit code {exit_code}: {stderr.strip()}")


class CorruptArchive(RestoreError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Backup archive is corrupt or truncated: {path} ({reason})")

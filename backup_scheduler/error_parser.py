# backup_scheduler/error_parser.py

def parse_backup_error(stderr: str, kind) -> str:
    """
    Parses the stderr output from a dump or restore command and returns a human-readable summary.
    """
    stderr = (stderr or "").lower()
    kind = getattr(kind, "value", kind)

    if "could not execute" in stderr:
        return "Tool Error: The dump/restore executable could not be started. Check the tools directory of the connection."

    if kind == "postgres":
        if "password authentication failed" in stderr:
            return "Authentication Error: The supplied password was rejected."
        if "authentication failed" in stderr:
            return "Authentication Error: The username or password is incorrect."
        if "does not exist" in stderr and "database" in stderr:
            return "Database Error: The specified database does not exist."
        if "connection refused" in stderr:
            return "Connection Error: Could not connect to the database server. Check the host and port."
        if "could not translate host name" in stderr:
            return "Connection Error: The host name could not be resolved. Check the server address."
        if "timeout expired" in stderr:
            return "Connection Error: Timed out while connecting to the server."
        if "permission denied" in stderr:
            return "Permission Error: The user lacks the privileges needed for this operation."

    elif kind == "mysql":
        if "access denied" in stderr:
            return "Authentication Error: The username or password is incorrect."
        if "unknown database" in stderr:
            return "Database Error: The specified database does not exist."
        if "can't connect" in stderr or "connection refused" in stderr:
            return "Connection Error: Could not connect to the database server. Check the host and port."
        if "unknown mysql server host" in stderr:
            return "Connection Error: The host name could not be resolved. Check the server address."

    elif kind == "mongo":
        if "authentication failed" in stderr:
            return "Authentication Error: The username or password is incorrect."
        if "could not connect to server" in stderr:
            return "Connection Error: Could not connect to the server. Check the address and port."
        if "failed to connect" in stderr:
            return "Connection Error: Failed to connect to the server. Check the network configuration."

    if "compression of" in stderr:
        return "Compression Error: The backup was written but could not be compressed."

    return "Unknown Error: The operation failed for an unidentified reason. Check the full log for details."

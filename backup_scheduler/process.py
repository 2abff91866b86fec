import asyncio
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .logger import get_logger
from .utils import redact

logger = get_logger(__name__)

EXIT_NOT_EXECUTABLE = 127


@dataclass(frozen=True)
class ProcessResult:
    args: Sequence[str]
    returncode: int
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def tool(self) -> str:
        return os.path.basename(self.args[0]) if self.args else ""


async def run_process(
    args: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    stdout_path: Optional[str] = None,
    secrets: Sequence[str] = (),
) -> ProcessResult:
    """
    Runs an external tool to completion and returns its exit code together with
    its captured stderr. When ``stdout_path`` is given the tool's stdout is
    streamed straight into that file, otherwise it is discarded.

    ``env`` is layered on top of the current environment. ``secrets`` are only
    used to redact the logged command line.
    """
    args = [str(arg) for arg in args]
    full_env = {**os.environ, **env} if env else None
    logger.debug(f"Executing command: {redact(args, secrets)}")

    stdout_file = open(stdout_path, "wb") if stdout_path else None
    try:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=stdout_file if stdout_file else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"Could not start '{args[0]}': {e}")
            return ProcessResult(args=args, returncode=EXIT_NOT_EXECUTABLE, stderr=f"Could not execute {args[0]}: {e}")

        _, stderr = await process.communicate()
    finally:
        if stdout_file:
            stdout_file.close()

    result = ProcessResult(args=args, returncode=process.returncode, stderr=stderr.decode("utf-8", errors="replace"))
    if result.ok:
        logger.debug(f"{result.tool} exited successfully.")
    else:
        logger.warning(f"{result.tool} exited with code {result.returncode}.")
    return result

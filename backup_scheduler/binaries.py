import os
import shutil
import sys
from typing import Optional

from .logger import get_logger

logger = get_logger(__name__)


def executable_name(tool: str) -> str:
    return tool + ".exe" if sys.platform.startswith("win") else tool


def resolve_binary(tool: str, tools_directory: Optional[str] = None, bundled_directory: Optional[str] = None) -> str:
    """
    Returns the path used to invoke ``tool``.

    A directory configured on the connection wins and is joined as is. Otherwise
    the bundled tools directory is used; if the tool is not bundled there, the
    one found on PATH is used instead.
    """
    if tools_directory:
        return os.path.join(tools_directory, tool)

    bundled_directory = bundled_directory or os.path.join(os.getcwd(), "bin")
    bundled_path = os.path.join(bundled_directory, executable_name(tool))
    if os.path.exists(bundled_path):
        return bundled_path

    on_path = shutil.which(tool)
    if on_path:
        logger.debug(f"'{tool}' is not bundled in {bundled_directory}, using {on_path}")
        return on_path

    return bundled_path

"""
Runs the signmar tool from the mar-tools bundle to unpack a release MAR.
"""

import asyncio
from pathlib import Path
from typing import Union

from torfetch.constants import (
    MAR_TOOLS_DIR_NAME,
    SIGNMAR_BINARY_NAME,
    WINDOWS_EXECUTABLE_SUFFIX,
)
from torfetch.download.files import add_execute_permission, ensure_directory
from torfetch.exceptions import ExternalToolError
from torfetch.log_utils import logger
from torfetch.tor_browser.platforms import Platform
from torfetch.utils import Pathish


def signmar_path(scratch_root: Pathish, host_platform: Union[Platform, str]) -> Path:
    """Return where the unzipped mar-tools bundle places signmar for a host."""
    name = SIGNMAR_BINARY_NAME
    if Platform.parse(host_platform).is_windows:
        name = f"{name}{WINDOWS_EXECUTABLE_SUFFIX}"
    return Path(scratch_root) / MAR_TOOLS_DIR_NAME / name


async def run_signmar(
    signmar: Pathish,
    bundle: Pathish,
    destination: Pathish,
    cwd: Pathish,
) -> Path:
    """
    Unpack a MAR bundle into destination with ``signmar -C <destination> -x <bundle>``.

    The binary is made executable and the destination created first. The process
    runs with `cwd` as its working directory and is awaited to completion.

    Returns:
        Path: The destination directory.

    Raises:
        ExternalToolError: If signmar cannot be launched, is killed by a signal or
            exits with a non-zero status.
        FileSystemError: If the binary or destination cannot be prepared.
    """
    signmar = Path(signmar)
    destination = Path(destination)

    await add_execute_permission(signmar)
    await ensure_directory(destination)

    command = [str(signmar), "-C", str(destination), "-x", str(bundle)]
    logger.debug(f"Running {' '.join(command)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalToolError(
            f"Could not launch {signmar.name}: {e}",
            command=command,
            archive_path=str(bundle),
        ) from e

    stdout, stderr = await process.communicate()
    stderr_text = stderr.decode(errors="replace").strip()
    if stdout:
        logger.debug(stdout.decode(errors="replace").strip())

    if process.returncode is not None and process.returncode < 0:
        raise ExternalToolError(
            f"{signmar.name} was terminated by signal {-process.returncode}",
            command=command,
            returncode=process.returncode,
            stderr=stderr_text,
            archive_path=str(bundle),
        )
    if process.returncode != 0:
        raise ExternalToolError(
            f"{signmar.name} exited with status {process.returncode}",
            command=command,
            returncode=process.returncode,
            stderr=stderr_text,
            archive_path=str(bundle),
        )

    logger.info(f"Unpacked {Path(bundle).name}")
    return destination

"""
Translation of the per-platform unpacked Tor Browser trees into the normalized
output layout::

    <output_dir>/
      tor[.exe]
      torrc-defaults
      geoip
      geoip6
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from torfetch.constants import (
    TOR_BINARY_FILENAME,
    TOR_DATA_FILES,
    WINDOWS_EXECUTABLE_SUFFIX,
)
from torfetch.download.files import move_path
from torfetch.exceptions import FileSystemError
from torfetch.log_utils import logger
from torfetch.tor_browser.platforms import Platform
from torfetch.utils import Pathish


@dataclass(frozen=True)
class PlatformLayout:
    """Where a platform's unpacked bundle keeps the tor executable and its data files."""

    executable_dir: Tuple[str, ...]
    data_dir: Tuple[str, ...]
    rename: Optional[Tuple[str, str]] = None


_TOR_BROWSER_TREE = PlatformLayout(
    executable_dir=("TorBrowser", "Tor"),
    data_dir=("TorBrowser", "Data", "Tor"),
)

PLATFORM_LAYOUTS: Dict[Platform, PlatformLayout] = {
    Platform.OSX: PlatformLayout(
        executable_dir=("Contents", "MacOS", "Tor"),
        data_dir=("Contents", "Resources", "TorBrowser", "Tor"),
        rename=("tor.real", TOR_BINARY_FILENAME),
    ),
    Platform.LINUX: _TOR_BROWSER_TREE,
    Platform.WINDOWS: _TOR_BROWSER_TREE,
}


def tor_binary_filename(platform: Union[Platform, str]) -> str:
    """Return the on-disk name of the tor executable for a platform."""
    if Platform.parse(platform).is_windows:
        return f"{TOR_BINARY_FILENAME}{WINDOWS_EXECUTABLE_SUFFIX}"
    return TOR_BINARY_FILENAME


def get_layout(platform: Union[Platform, str]) -> PlatformLayout:
    """
    Look up the unpacked layout of a platform.

    Raises:
        UnsupportedPlatformError: If the platform is not known.
    """
    return PLATFORM_LAYOUTS[Platform.parse(platform)]


async def relocate_tor_files(
    unpacked_dir: Pathish,
    output_dir: Pathish,
    platform: Union[Platform, str],
) -> Path:
    """
    Move tor and its data files out of an unpacked bundle into output_dir.

    Every entry of the platform's executable directory is moved into output_dir
    (replacing entries of the same name), the executable is renamed where the
    platform ships it under another name, and the three data files are moved to
    the top level of output_dir.

    Returns:
        Path: The tor executable inside output_dir.

    Raises:
        UnsupportedPlatformError: If the platform is not known; nothing is moved.
        FileSystemError: If an expected source path is missing or a move fails.
    """
    layout = get_layout(platform)
    unpacked_dir = Path(unpacked_dir)
    output_dir = Path(output_dir)

    executable_dir = unpacked_dir.joinpath(*layout.executable_dir)
    data_dir = unpacked_dir.joinpath(*layout.data_dir)

    if not executable_dir.is_dir():
        raise FileSystemError(
            f"Unpacked bundle has no tor directory at {executable_dir}",
            path=str(executable_dir),
        )

    for entry in sorted(executable_dir.iterdir()):
        await move_path(entry, output_dir / entry.name)

    if layout.rename is not None:
        old_name, new_name = layout.rename
        await move_path(output_dir / old_name, output_dir / new_name)

    for filename in TOR_DATA_FILES:
        await move_path(data_dir / filename, output_dir / filename)

    logger.debug(f"Relocated {Platform.parse(platform).value} tor files to {output_dir}")
    return output_dir / tor_binary_filename(platform)

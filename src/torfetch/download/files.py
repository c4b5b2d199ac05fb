"""
File Operations for the torfetch pipeline

This module provides the filesystem primitives the retrieval pipeline is built
on: exists-tolerant directory creation, zip extraction with traversal checks,
permission changes, moves, recursive removal and hashing.
"""

import asyncio
import hashlib
import os
import shutil
import stat
import zipfile
from pathlib import Path
from typing import List

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from torfetch.constants import DEFAULT_CHUNK_SIZE, EXECUTE_PERMISSION_BITS
from torfetch.exceptions import ExtractionError, FileSystemError
from torfetch.log_utils import logger
from torfetch.utils import Pathish


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.

    Returns:
        True if the candidate path is inside `real_base_dir`, False otherwise.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def safe_extract_path(extract_dir: Pathish, member_name: str) -> str:
    """
    Resolve the absolute extraction path of an archive member and prevent directory traversal.

    Raises:
        ValueError: If the resolved path is outside extract_dir.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    normalized_path = os.path.realpath(os.path.join(real_extract_dir, member_name))

    if not _is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{member_name}' is outside base '{extract_dir}'"
        )

    return normalized_path


async def ensure_directory(directory: Pathish) -> Path:
    """
    Create a directory (and parents) unless it already exists.

    An existing directory is success; any other failure, including the path
    existing as a non-directory, raises.

    Raises:
        FileSystemError: If the directory cannot be created.
    """
    path = Path(directory)
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise FileSystemError(
            f"Could not create directory {path}: {e}", path=str(path)
        ) from e
    return path


def _unzip_all(zip_path: Path, dest_dir: Path) -> List[Path]:
    extracted: List[Path] = []
    with zipfile.ZipFile(zip_path, "r") as zip_ref:
        for file_info in zip_ref.infolist():
            try:
                extract_path = safe_extract_path(dest_dir, file_info.filename)
            except ValueError as e:
                raise ExtractionError(
                    f"Refusing to extract unsafe member {file_info.filename!r}",
                    archive_path=str(zip_path),
                    details=str(e),
                ) from e

            if file_info.is_dir():
                os.makedirs(extract_path, exist_ok=True)
                continue

            os.makedirs(os.path.dirname(extract_path), exist_ok=True)
            with zip_ref.open(file_info) as source, open(extract_path, "wb") as target:
                shutil.copyfileobj(source, target)

            # Restore unix permission bits recorded in the archive
            mode = (file_info.external_attr >> 16) & 0o777
            if mode:
                os.chmod(extract_path, mode)

            extracted.append(Path(extract_path))
    return extracted


async def unzip_all(zip_path: Pathish, dest_dir: Pathish) -> List[Path]:
    """
    Extract every member of a zip archive into dest_dir.

    Returns:
        List[Path]: The extracted files.

    Raises:
        ExtractionError: If the archive is corrupt or contains members escaping dest_dir.
        FileSystemError: If extracted files cannot be written.
    """
    zip_path = Path(zip_path)
    dest_dir = Path(dest_dir)
    try:
        extracted = await asyncio.to_thread(_unzip_all, zip_path, dest_dir)
    except zipfile.BadZipFile as e:
        raise ExtractionError(
            f"Corrupted archive {zip_path.name}", archive_path=str(zip_path)
        ) from e
    except OSError as e:
        raise FileSystemError(
            f"Error extracting archive {zip_path}: {e}", path=str(dest_dir)
        ) from e

    logger.debug(f"Extracted {len(extracted)} files from {zip_path.name}")
    return extracted


async def add_execute_permission(path: Pathish) -> None:
    """
    Add execute permission for user, group and others to a file.

    Raises:
        FileSystemError: If the file mode cannot be read or changed.
    """
    try:
        current = (await aiofiles.os.stat(path)).st_mode
        await asyncio.to_thread(
            os.chmod, path, stat.S_IMODE(current) | EXECUTE_PERMISSION_BITS
        )
    except OSError as e:
        raise FileSystemError(
            f"Could not make {path} executable: {e}", path=str(path)
        ) from e


def _remove_existing(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


async def move_path(src: Pathish, dst: Pathish) -> Path:
    """
    Move a file or directory to dst, replacing anything already there.

    Raises:
        FileSystemError: If the source is missing or the move fails.
    """
    src = Path(src)
    dst = Path(dst)

    def _move() -> None:
        if not src.exists() and not src.is_symlink():
            raise FileNotFoundError(f"No such file or directory: '{src}'")
        _remove_existing(dst)
        shutil.move(str(src), str(dst))

    try:
        await asyncio.to_thread(_move)
    except OSError as e:
        raise FileSystemError(
            f"Could not move {src} to {dst}: {e}", path=str(src)
        ) from e
    return dst


async def remove_tree(path: Pathish) -> None:
    """
    Recursively remove a directory; a missing path is not an error.

    Raises:
        FileSystemError: If the tree exists but cannot be removed.
    """
    path = Path(path)
    try:
        await asyncio.to_thread(shutil.rmtree, path)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileSystemError(f"Could not remove {path}: {e}", path=str(path)) from e


async def sha256sum(file_path: Pathish, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 hex digest of a file, reading it in chunks.

    Raises:
        FileSystemError: If the file cannot be read.
    """
    sha256_hash = hashlib.sha256()
    try:
        async with aiofiles.open(file_path, "rb") as f:
            while True:
                block = await f.read(chunk_size)
                if not block:
                    break
                sha256_hash.update(block)
    except OSError as e:
        raise FileSystemError(
            f"Could not hash {file_path}: {e}", path=str(file_path)
        ) from e
    return sha256_hash.hexdigest()

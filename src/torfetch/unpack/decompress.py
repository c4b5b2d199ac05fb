"""
In-place xz decompression of a directory tree.

Files extracted from a MAR are individually xz-compressed. Every regular file
under a directory is streamed through an LZMA decompressor into a sibling
``.decompressed`` file, which then replaces the original.
"""

import asyncio
import lzma
import os
from pathlib import Path
from typing import List

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from torfetch.constants import DECOMPRESSED_SUFFIX, DEFAULT_CHUNK_SIZE
from torfetch.exceptions import DecompressionError
from torfetch.log_utils import logger
from torfetch.utils import Pathish, gather_or_cancel


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


async def decompress_file(file_path: Pathish, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Path:
    """
    Replace a compressed file with its decompressed content.

    Concatenated xz streams are decoded one after another, as ``xz -d`` does;
    null padding between streams is skipped.

    Raises:
        DecompressionError: If the file cannot be read, is not a sequence of
            complete xz streams (trailing garbage included), or the result
            cannot be written or moved into place.
    """
    file_path = Path(file_path)
    decompressed_path = file_path.with_name(f"{file_path.name}{DECOMPRESSED_SUFFIX}")
    decompressor = lzma.LZMADecompressor()

    try:
        async with aiofiles.open(file_path, "rb") as source:
            async with aiofiles.open(decompressed_path, "wb") as target:
                while True:
                    chunk = await source.read(chunk_size)
                    if not chunk:
                        break
                    pending = chunk
                    while pending:
                        if decompressor.eof:
                            # Concatenated streams, possibly separated by null padding
                            pending = pending.lstrip(b"\x00")
                            if not pending:
                                break
                            decompressor = lzma.LZMADecompressor()
                        await target.write(decompressor.decompress(pending))
                        pending = decompressor.unused_data
        if not decompressor.eof:
            raise EOFError("Compressed stream ended before the end-of-stream marker")

        await aiofiles.os.remove(file_path)
        await aiofiles.os.rename(decompressed_path, file_path)
    except asyncio.CancelledError:
        _discard(decompressed_path)
        raise
    except (lzma.LZMAError, EOFError, OSError) as e:
        _discard(decompressed_path)
        raise DecompressionError(
            f"Could not decompress {file_path.name}: {e}", path=str(file_path)
        ) from e

    logger.debug(f"Decompressed {file_path}")
    return file_path


async def decompress_tree(directory: Pathish) -> None:
    """
    Decompress every regular file below a directory, in place.

    Sibling entries are processed concurrently and subdirectories are walked
    recursively; the call returns once the whole subtree is done. Entries that
    are neither regular files nor directories (symlinks included) are left
    alone. The first failure cancels the work still in flight and propagates;
    files already decompressed stay decompressed.

    Raises:
        DecompressionError: If any file fails to decompress or the directory
            cannot be listed.
    """
    directory = Path(directory)
    try:
        entries: List[os.DirEntry] = await asyncio.to_thread(
            lambda: list(os.scandir(directory))
        )
    except OSError as e:
        raise DecompressionError(
            f"Could not list {directory}: {e}", path=str(directory)
        ) from e

    pending = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            pending.append(decompress_tree(entry.path))
        elif entry.is_file(follow_symlinks=False):
            pending.append(decompress_file(entry.path))

    await gather_or_cancel(*pending)

"""
Transport and filesystem collaborators of the retrieval pipeline.

Core Components:
- async_client: aiohttp text fetches and streaming downloads
- files: directory creation, zip extraction, moves, removal and hashing
"""

from .async_client import AsyncHttpClient, create_async_client
from .files import (
    add_execute_permission,
    ensure_directory,
    move_path,
    remove_tree,
    sha256sum,
    unzip_all,
)

__all__ = [
    "AsyncHttpClient",
    "create_async_client",
    "add_execute_permission",
    "ensure_directory",
    "move_path",
    "remove_tree",
    "sha256sum",
    "unzip_all",
]

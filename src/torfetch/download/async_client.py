"""
Async HTTP Client for torfetch

This module provides asynchronous HTTP operations using aiohttp,
with session management, connection pooling, and error handling.

Provides:
- Fetching small text resources (release index pages, public keys)
- Streaming downloads to disk with atomic replacement
"""

import asyncio
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import aiofiles  # type: ignore[import-untyped]
import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from torfetch.constants import (
    BYTES_PER_MEGABYTE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_REQUEST_TIMEOUT,
    FILE_SIZE_MB_LOGGING_THRESHOLD,
    HTTP_STATUS_ERROR_THRESHOLD,
)
from torfetch.exceptions import FileSystemError, TransportError
from torfetch.log_utils import logger
from torfetch.utils import Pathish, get_user_agent


class AsyncHttpClient:
    """
    Asynchronous HTTP client using aiohttp.

    Example:
        async with AsyncHttpClient() as client:
            page = await client.fetch_text("https://dist.torproject.org/torbrowser/")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize the async HTTP client.

        Parameters:
            timeout (float): Total request timeout in seconds.
            max_concurrent (int): Maximum concurrent requests (semaphore limit).
            chunk_size (int): Number of bytes read per chunk when streaming downloads.
        """
        self.timeout = ClientTimeout(total=timeout)
        self.max_concurrent = max(1, int(max_concurrent))
        self.chunk_size = max(1, int(chunk_size))
        self._session: Optional[ClientSession] = None
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def __aenter__(self) -> "AsyncHttpClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            connector = TCPConnector(
                limit=self.max_concurrent,
                enable_cleanup_closed=True,
            )
            self._session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        return {"User-Agent": get_user_agent()}

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a URL and return its body decoded as text.

        Raises:
            TransportError: On connection failures and HTTP error statuses.
        """
        session = await self._ensure_session()

        async with self._semaphore:
            try:
                async with session.get(url) as response:
                    if response.status >= HTTP_STATUS_ERROR_THRESHOLD:
                        raise TransportError(
                            f"HTTP error {response.status}",
                            url=url,
                            status_code=response.status,
                        )
                    text = await response.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Network error fetching {url}: {e}")
                raise TransportError(f"Network error: {e}", url=url) from e
            except UnicodeDecodeError as e:
                logger.error(f"Undecodable response from {url}: {e}")
                raise TransportError(
                    "Response body is not valid text", url=url, details=str(e)
                ) from e

        logger.debug(f"Fetched {url} ({len(text)} characters)")
        return text

    async def download_file(
        self,
        url: str,
        target_path: Pathish,
        progress_callback: Optional[Any] = None,
    ) -> Path:
        """
        Stream a URL to the given path, replacing the target atomically on success.

        Parameters:
            url (str): Source URL to download.
            target_path (Pathish): Destination file path; parent directories are created if missing.
            progress_callback (Optional[callable]): Optional callback invoked with (downloaded: int, total: Optional[int], filename: str).
                The callback may be a coroutine function; exceptions raised by the callback are logged and ignored.

        Returns:
            Path: The downloaded file.

        Raises:
            TransportError: On HTTP errors, connection failures or interrupted streams.
            FileSystemError: If the file cannot be written.
        """
        session = await self._ensure_session()
        target = Path(target_path)

        async with self._semaphore:
            temp_path = target.with_name(
                f"{target.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
            )

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                start_time = time.time()

                async with session.get(url) as response:
                    if response.status >= HTTP_STATUS_ERROR_THRESHOLD:
                        raise TransportError(
                            f"HTTP error {response.status}",
                            url=url,
                            status_code=response.status,
                        )

                    # aiohttp transparently decodes Content-Encoding, so the
                    # header length only matches identity-encoded bodies
                    raw_content_length = None
                    if not response.headers.get("Content-Encoding"):
                        raw_content_length = response.headers.get("Content-Length")
                    try:
                        total_size = (
                            int(raw_content_length) if raw_content_length else 0
                        )
                    except (TypeError, ValueError):
                        total_size = 0
                    downloaded = 0

                    async with aiofiles.open(temp_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(
                            self.chunk_size
                        ):
                            await f.write(chunk)
                            downloaded += len(chunk)

                            if progress_callback:
                                try:
                                    result = progress_callback(
                                        downloaded, total_size or None, target.name
                                    )
                                    if asyncio.iscoroutine(result):
                                        await result
                                except Exception as cb_err:
                                    logger.debug(f"Progress callback error: {cb_err}")

                if total_size and downloaded != total_size:
                    raise TransportError(
                        f"Incomplete download: got {downloaded} of {total_size} bytes",
                        url=url,
                    )

                elapsed = time.time() - start_time
                file_size_mb = downloaded / BYTES_PER_MEGABYTE
                logger.debug(
                    f"Downloaded {url} in {elapsed:.2f}s ({file_size_mb:.2f} MB)"
                )

                temp_path.replace(target)

                if file_size_mb >= FILE_SIZE_MB_LOGGING_THRESHOLD:
                    logger.info(f"Downloaded: {target.name} ({file_size_mb:.1f} MB)")
                else:
                    logger.info(f"Downloaded: {target.name} ({downloaded} bytes)")

                return target

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Download failed for {url}: {e}")
                self._discard(temp_path)
                raise TransportError(f"Download failed: {e}", url=url) from e
            except OSError as e:
                logger.error(f"Filesystem error saving {target}: {e}")
                self._discard(temp_path)
                raise FileSystemError(
                    f"Filesystem error: {e}", path=str(target)
                ) from e
            except BaseException:
                self._discard(temp_path)
                raise

    @staticmethod
    def _discard(temp_path: Path) -> None:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


@asynccontextmanager
async def create_async_client(
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[AsyncHttpClient]:
    """
    Provide a configured AsyncHttpClient and ensure it is closed after use.
    """
    client = AsyncHttpClient(
        timeout=timeout, max_concurrent=max_concurrent, chunk_size=chunk_size
    )
    try:
        yield client
    finally:
        await client.close()

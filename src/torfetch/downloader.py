"""
Tor retrieval pipeline.

``TorDownloader.retrieve`` resolves a Tor Browser release, downloads the
release MAR and the host's mar-tools bundle concurrently, unpacks the MAR with
signmar, moves tor and its data files into the output directory, decompresses
them in place, and always removes its scratch directory afterwards.
"""

import asyncio
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from torfetch.config import TorfetchConfig
from torfetch.constants import SCRATCH_DIR_PREFIX, UNPACKED_TOR_BROWSER_DIR_NAME
from torfetch.download.async_client import AsyncHttpClient
from torfetch.download.files import (
    add_execute_permission,
    ensure_directory,
    remove_tree,
    sha256sum,
    unzip_all,
)
from torfetch.exceptions import FileSystemError, SignatureError
from torfetch.log_utils import logger
from torfetch.tor_browser.platforms import (
    Branch,
    Platform,
    detect_host_architecture,
    detect_host_platform,
    normalize_architecture,
)
from torfetch.tor_browser.release import Release
from torfetch.tor_browser.repository import Repository
from torfetch.tor_browser.signature import SignatureVerifier, VerificationOutcome
from torfetch.unpack.decompress import decompress_tree
from torfetch.unpack.extraction import run_signmar, signmar_path
from torfetch.unpack.layout import relocate_tor_files, tor_binary_filename
from torfetch.utils import Pathish, gather_or_cancel


@dataclass
class RetrievalSession:
    """Working state of one ``retrieve`` call; the scratch root belongs to it alone."""

    scratch_root: Path
    output_dir: Path
    tor_browser_path: Optional[Path] = None
    mar_tools_path: Optional[Path] = None

    @property
    def unpacked_dir(self) -> Path:
        return self.scratch_root / UNPACKED_TOR_BROWSER_DIR_NAME


class TorDownloader:
    """
    Retrieves the tor executable and its data files from a Tor Browser release.

    The host platform and architecture select the mar-tools build that can run
    here; they are detected once when not given.

    Example:
        async with TorDownloader() as downloader:
            tor = await downloader.retrieve("/opt/app/tor")
            await downloader.add_execution_rights_on_tor_binary_file("/opt/app/tor")
    """

    def __init__(
        self,
        repository: Optional[Repository] = None,
        client: Optional[AsyncHttpClient] = None,
        config: Optional[TorfetchConfig] = None,
        host_platform: Optional[Union[Platform, str]] = None,
        host_architecture: Optional[str] = None,
        verifier: Optional[SignatureVerifier] = None,
    ) -> None:
        self.config = config or TorfetchConfig()
        self._owns_client = client is None
        self.client = client or AsyncHttpClient(
            timeout=self.config.request_timeout,
            max_concurrent=self.config.max_concurrent,
            chunk_size=self.config.chunk_size,
        )
        self.repository = repository or Repository(
            self.config.repository_url, client=self.client
        )
        if self.repository.client is None:
            self.repository.client = self.client

        self.host_platform = (
            Platform.parse(host_platform)
            if host_platform is not None
            else detect_host_platform()
        )
        self.host_architecture = (
            normalize_architecture(host_architecture)
            if host_architecture is not None
            else detect_host_architecture()
        )
        self.verifier = verifier

    async def __aenter__(self) -> "TorDownloader":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this downloader created it."""
        if self.verifier is not None:
            await self.verifier.close()
        if self._owns_client:
            await self.client.close()

    async def resolve_release(
        self, branch: Union[Branch, str] = Branch.STABLE
    ) -> Release:
        """Return the latest release of a branch for the host platform."""
        return await Release.from_branch(
            branch,
            self.host_platform,
            self.host_architecture,
            self.repository,
            locale=self.config.locale,
        )

    async def _open_session(self, output_dir: Pathish) -> RetrievalSession:
        parent = self.config.scratch_dir
        if parent is not None:
            await ensure_directory(parent)
        scratch_root = await asyncio.to_thread(
            tempfile.mkdtemp, prefix=SCRATCH_DIR_PREFIX, dir=parent
        )
        logger.debug(f"Created scratch directory {scratch_root}")
        return RetrievalSession(
            scratch_root=Path(scratch_root), output_dir=Path(output_dir)
        )

    async def _close_session(self, session: RetrievalSession) -> None:
        await remove_tree(session.scratch_root)
        logger.debug(f"Removed scratch directory {session.scratch_root}")

    async def _fetch_file(self, url: str, directory: Path) -> Path:
        target = directory / url.rsplit("/", 1)[-1]
        return await self.client.download_file(url, target)

    async def _fetch_tor_browser(
        self, release: Release, session: RetrievalSession
    ) -> Path:
        url = self.repository.release_url(release)
        logger.info(f"Downloading Tor Browser {release.version} ({release.main_bundle_filename()})")
        bundle = await self._fetch_file(url, session.scratch_root)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"{bundle.name} sha256={await sha256sum(bundle)}")

        if self.verifier is not None:
            await self._fetch_file(
                self.repository.signature_url(release), session.scratch_root
            )
            await self._check_signature(bundle)

        session.tor_browser_path = bundle
        return bundle

    async def _check_signature(self, bundle: Path) -> None:
        outcome = await self.verifier.check(bundle)
        if outcome is VerificationOutcome.VERIFIED:
            logger.info(f"Signature verified for {bundle.name}")
            return
        if outcome is VerificationOutcome.NOT_VERIFIED:
            raise SignatureError(
                f"Invalid signature for {bundle.name}", filename=bundle.name
            )
        if self.config.require_signature:
            raise SignatureError(
                "Signature verification is required but unavailable",
                filename=bundle.name,
            )
        logger.warning(f"Could not verify the signature of {bundle.name}")

    async def _fetch_mar_tools(
        self, release: Release, session: RetrievalSession
    ) -> Path:
        tools_release = release.auxiliary_tool_release(
            self.host_platform, self.host_architecture
        )
        url = self.repository.auxiliary_tool_url(tools_release)
        logger.info(f"Downloading {tools_release.auxiliary_tool_filename()}")
        archive = await self._fetch_file(url, session.scratch_root)
        await unzip_all(archive, session.scratch_root)
        session.mar_tools_path = archive
        return archive

    async def retrieve(
        self, output_dir: Pathish, release: Optional[Release] = None
    ) -> Path:
        """
        Retrieve tor into output_dir in the normalized layout.

        Parameters:
            output_dir: Directory to receive ``tor[.exe]``, ``torrc-defaults``,
                ``geoip`` and ``geoip6``; created if missing.
            release: Release to fetch; the latest stable release for the host
                when omitted.

        Returns:
            Path: The tor executable inside output_dir.

        Raises:
            ResolutionError, TransportError, SignatureError, ExtractionError,
            ExternalToolError, UnsupportedPlatformError, FileSystemError,
            DecompressionError: The first failure of the pipeline. output_dir may
            hold a partial layout; the scratch directory is always removed.
        """
        if release is None:
            release = await self.resolve_release(Branch.STABLE)

        session = await self._open_session(output_dir)
        try:
            await ensure_directory(session.output_dir)

            await gather_or_cancel(
                self._fetch_tor_browser(release, session),
                self._fetch_mar_tools(release, session),
            )

            await run_signmar(
                signmar_path(session.scratch_root, self.host_platform),
                session.tor_browser_path,
                session.unpacked_dir,
                cwd=session.scratch_root,
            )

            tor_binary = await relocate_tor_files(
                session.unpacked_dir, session.output_dir, release.platform
            )

            await decompress_tree(session.output_dir)
        except BaseException:
            try:
                await self._close_session(session)
            except FileSystemError as cleanup_error:
                logger.error(f"Could not remove scratch directory: {cleanup_error}")
            raise

        await self._close_session(session)

        logger.info(f"Tor {release.version} ready in {session.output_dir}")
        return tor_binary

    def tor_binary_filename(
        self, platform: Optional[Union[Platform, str]] = None
    ) -> str:
        return tor_binary_filename(platform if platform is not None else self.host_platform)

    async def add_execution_rights_on_tor_binary_file(
        self,
        output_dir: Pathish,
        platform: Optional[Union[Platform, str]] = None,
    ) -> Path:
        """Make the retrieved tor executable runnable and return its path."""
        tor_binary = Path(output_dir) / self.tor_binary_filename(platform)
        await add_execute_permission(tor_binary)
        return tor_binary


async def retrieve_tor(
    output_dir: Pathish,
    release: Optional[Release] = None,
    config: Optional[TorfetchConfig] = None,
    verify_signature: bool = False,
) -> Path:
    """
    One-shot retrieval with a downloader that is closed afterwards.

    Returns:
        Path: The executable tor binary inside output_dir.
    """
    config = config or TorfetchConfig()
    async with TorDownloader(config=config) as downloader:
        if verify_signature or config.require_signature:
            downloader.verifier = SignatureVerifier(
                downloader.client,
                key_fingerprint=config.key_fingerprint,
                keys_endpoint=config.keys_endpoint,
            )
        await downloader.retrieve(output_dir, release)
        return await downloader.add_execution_rights_on_tor_binary_file(
            output_dir, release.platform if release is not None else None
        )

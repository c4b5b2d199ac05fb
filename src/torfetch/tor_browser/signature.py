"""
Optional OpenPGP verification of downloaded release artifacts.

Verification needs python-gnupg and a working ``gpg`` binary. When either is
missing the verifier reports ``CAPABILITY_ABSENT`` instead of failing, and
callers decide whether that is acceptable.
"""

import asyncio
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol

from torfetch.constants import (
    OPENPGP_KEYS_ENDPOINT,
    SIGNATURE_EXTENSION,
    TOR_BROWSER_KEY_FINGERPRINT,
)
from torfetch.exceptions import SignatureError
from torfetch.log_utils import logger
from torfetch.utils import Pathish

try:
    import gnupg  # type: ignore[import-untyped]

    _HAS_GNUPG = True
except ImportError:
    gnupg = None
    _HAS_GNUPG = False


class TextFetcher(Protocol):
    async def fetch_text(self, url: str) -> str: ...


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    CAPABILITY_ABSENT = "capability_absent"


class SignatureVerifier:
    """
    Checks detached ``.asc`` signatures against the Tor Browser signing key.

    Parameters:
        client: Object providing ``async fetch_text(url)``, used to fetch the public key.
        key_fingerprint (str): Fingerprint of the signing key.
        keys_endpoint (str): Key server lookup URL; the fingerprint is appended.
    """

    def __init__(
        self,
        client: TextFetcher,
        key_fingerprint: str = TOR_BROWSER_KEY_FINGERPRINT,
        keys_endpoint: str = OPENPGP_KEYS_ENDPOINT,
    ) -> None:
        self.client = client
        self._key_fingerprint = key_fingerprint
        self.keys_endpoint = keys_endpoint
        self._built = False
        self._gpg: Optional[Any] = None
        self._gnupg_home: Optional[str] = None

    @property
    def key_fingerprint(self) -> str:
        return self._key_fingerprint

    async def build(self) -> None:
        """
        Probe for the OpenPGP capability and import the signing key.

        Runs once; later calls return immediately.

        Raises:
            TransportError: If the public key cannot be fetched.
            SignatureError: If the fetched key cannot be imported.
        """
        if self._built:
            return

        if not _HAS_GNUPG:
            logger.warning(
                "Missing python-gnupg dependency - signature verification unavailable"
            )
            self._built = True
            return

        gnupg_home = tempfile.mkdtemp(prefix="torfetch-gnupg-")
        try:
            gpg = await asyncio.to_thread(gnupg.GPG, gnupghome=gnupg_home)
        except (OSError, ValueError) as e:
            shutil.rmtree(gnupg_home, ignore_errors=True)
            logger.warning(f"gpg is not usable ({e}) - signature verification unavailable")
            self._built = True
            return

        self._gnupg_home = gnupg_home
        try:
            armored_key = await self.client.fetch_text(
                f"{self.keys_endpoint}{self.key_fingerprint}"
            )
            result = await asyncio.to_thread(gpg.import_keys, armored_key)
        except BaseException:
            self._cleanup_home()
            raise

        if not result.fingerprints:
            self._cleanup_home()
            raise SignatureError(
                f"Could not import signing key {self.key_fingerprint}",
                details=getattr(result, "stderr", None),
            )

        logger.debug(f"Imported signing key {self.key_fingerprint}")
        self._gpg = gpg
        self._built = True

    async def can_operate(self) -> bool:
        await self.build()
        return self._gpg is not None

    async def check(self, file_path: Pathish) -> VerificationOutcome:
        """
        Verify a file against its detached signature at ``<file_path>.asc``.

        Returns:
            VerificationOutcome: VERIFIED or NOT_VERIFIED, or CAPABILITY_ABSENT
            when OpenPGP support is not installed.
        """
        if not await self.can_operate():
            return VerificationOutcome.CAPABILITY_ABSENT

        file_path = Path(file_path)
        signature_path = file_path.with_name(f"{file_path.name}{SIGNATURE_EXTENSION}")

        def _verify() -> Any:
            with open(signature_path, "rb") as signature:
                return self._gpg.verify_file(signature, str(file_path))

        try:
            verified = await asyncio.to_thread(_verify)
        except OSError as e:
            logger.warning(f"Could not read signature for {file_path.name}: {e}")
            return VerificationOutcome.NOT_VERIFIED

        if verified and verified.valid:
            logger.debug(f"Valid signature for {file_path.name} by {verified.fingerprint}")
            return VerificationOutcome.VERIFIED

        logger.warning(
            f"Signature check failed for {file_path.name}: {getattr(verified, 'status', None)}"
        )
        return VerificationOutcome.NOT_VERIFIED

    async def verify(self, file_path: Pathish) -> bool:
        """Return False only when the signature is checked and rejected."""
        return await self.check(file_path) is not VerificationOutcome.NOT_VERIFIED

    def _cleanup_home(self) -> None:
        if self._gnupg_home:
            shutil.rmtree(self._gnupg_home, ignore_errors=True)
            self._gnupg_home = None

    async def close(self) -> None:
        """Remove the private keyring."""
        self._gpg = None
        self._built = False
        await asyncio.to_thread(self._cleanup_home)

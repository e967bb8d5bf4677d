"""
Release signing.

Signing is delegated to a ``Signer``; the repository only needs the Release
file turned into a detached signature (``Release.gpg``) and a clear-signed
copy (``InRelease``). ``GnupgSigner`` does this with python-gnupg.
"""

import logging
import os
from pathlib import Path
from typing import Protocol

import gnupg

from aptpool.constants import GPG_PASSPHRASE_ENV, INRELEASE_FILE, RELEASE_FILE, RELEASE_GPG_FILE
from aptpool.exceptions import SigningError

logger = logging.getLogger(__name__)


class Signer(Protocol):
    def sign_release(self, dist_dir: Path) -> tuple[Path, Path]:
        """Sign ``dist_dir/Release``, returning the detached and inline signature paths."""
        ...


def _replace_atomically(target: Path, data: bytes) -> None:
    tmp_path = target.with_name(f".{target.name}.tmp")
    tmp_path.write_bytes(data)
    os.replace(tmp_path, target)


class GnupgSigner:
    """Signs Release files with a GnuPG key."""

    def __init__(
        self,
        key_id: str | None = None,
        gnupghome: str | None = None,
        passphrase: str | None = None,
    ):
        """
        Args:
            key_id: Key to sign with; the GnuPG default key if None
            gnupghome: Keyring directory; the GnuPG default (~/.gnupg) if None
            passphrase: Key passphrase. If None, read from $GPG_PASSPHRASE
        """
        self.key_id = key_id
        if passphrase is None:
            passphrase = os.getenv(GPG_PASSPHRASE_ENV) or None
        self.passphrase = passphrase
        try:
            self.gpg = gnupg.GPG(gnupghome=gnupghome)
        except (OSError, ValueError) as e:
            raise SigningError(gnupghome, f"GnuPG is not available: {e}") from e

    def _sign(self, path: Path, *, detach: bool, clearsign: bool) -> bytes:
        with path.open("rb") as handle:
            signed = self.gpg.sign_file(
                handle,
                keyid=self.key_id,
                passphrase=self.passphrase,
                detach=detach,
                clearsign=clearsign,
                binary=False,
            )
        if not signed:
            error_msg = signed.status or "no signature produced"
            if signed.stderr and "bad passphrase" in signed.stderr.lower():
                error_msg += f" (check ${GPG_PASSPHRASE_ENV})"
            raise SigningError(path, f"signing failed: {error_msg}")
        return signed.data

    def sign_release(self, dist_dir: Path) -> tuple[Path, Path]:
        """Write Release.gpg and InRelease for the Release file in dist_dir."""
        release_path = dist_dir / RELEASE_FILE
        if not release_path.is_file():
            raise SigningError(release_path, "Release file not found")

        detached_path = dist_dir / RELEASE_GPG_FILE
        inline_path = dist_dir / INRELEASE_FILE
        _replace_atomically(detached_path, self._sign(release_path, detach=True, clearsign=False))
        _replace_atomically(inline_path, self._sign(release_path, detach=False, clearsign=True))

        logger.info(f"Signed {release_path}")
        return detached_path, inline_path

    def export_public_key(self, output_path: Path) -> Path:
        """Write the ASCII-armored public key of the signing key."""
        armored = self.gpg.export_keys(self.key_id or [])
        if not armored:
            raise SigningError(output_path, "no public key to export")
        output_path.write_text(armored, encoding="ascii")
        return output_path

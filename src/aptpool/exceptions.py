"""Error types raised while reading archives and maintaining a repository."""

from pathlib import Path


class AptPoolError(Exception):
    """Base class for all aptpool errors.

    Every error records the file it concerns (when there is one) so callers
    can report it without re-deriving context.
    """

    def __init__(self, path: Path | str | None, message: str):
        self.path = Path(path) if path is not None else None
        self.message = message
        super().__init__(f"{self.path}: {message}" if self.path is not None else message)


class ArchiveReadError(AptPoolError):
    """The archive could not be opened, read or seeked."""


class ArchiveFormatError(AptPoolError):
    """The archive is not a well-formed ar/tar/gzip structure."""


class ControlNotFoundError(ArchiveFormatError):
    """The archive has no control.tar member, or the member has no control file."""


class UnsupportedCompressionError(ArchiveFormatError):
    """The control member is compressed with a format other than gzip."""

    def __init__(self, path: Path | str | None, suffix: str, format_name: str | None = None):
        self.suffix = suffix
        self.format_name = format_name
        if format_name:
            message = f"unsupported compression for control archive: {format_name} ({suffix})"
        else:
            message = f"unrecognised control archive suffix {suffix!r}"
        super().__init__(path, message)


class MissingFieldError(AptPoolError):
    """A mandatory control field is absent."""

    def __init__(self, path: Path | str | None, field: str):
        self.field = field
        super().__init__(path, f"missing {field} field")


class InvalidVersionError(AptPoolError):
    """The Version field is not a valid Debian version."""

    def __init__(self, path: Path | str | None, version: str, reason: str | None = None):
        self.version = version
        super().__init__(path, f"invalid version {version!r}" + (f": {reason}" if reason else ""))


class SigningError(AptPoolError):
    """The signing backend failed to produce a signature."""

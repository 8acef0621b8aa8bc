"""Error types raised while importing debug scripts from the packager."""

from __future__ import annotations

from enum import IntEnum
from typing import Optional


class InternalErrorCode(IntEnum):
    CannotAttachToPackagerCheckPackagerRunningOnPort = 404
    SourceMapParsingFailed = 1103
    ScriptDownloadFailed = 1104
    InvalidScriptUrl = 1105
    ArtifactWriteFailed = 1106


class ScriptImportError(RuntimeError):
    """Base class for failures while acquiring debug scripts."""

    code: InternalErrorCode = InternalErrorCode.ScriptDownloadFailed


class NetworkFetchError(ScriptImportError):
    """Raised when a bundle, worker or map request fails."""

    def __init__(self, url: str, reason: str, *, status: Optional[int] = None) -> None:
        self.url = url
        self.status = status
        super().__init__(f"request to {url} failed: {reason}")


class PackagerUnreachableError(ScriptImportError):
    """Raised when the packager does not answer on the expected port."""

    code = InternalErrorCode.CannotAttachToPackagerCheckPackagerRunningOnPort

    def __init__(self, port: int, address: str = "localhost") -> None:
        self.port = port
        self.address = address
        super().__init__(
            f"Cannot attach to packager. Are you sure there is a packager and it is running "
            f"in the port {port}? (error code {int(self.code)})"
        )


class SourceMapParseError(ScriptImportError):
    """Raised when a fetched source map is not a JSON object."""

    code = InternalErrorCode.SourceMapParsingFailed

    def __init__(self, url: Optional[str], reason: str) -> None:
        self.url = url
        where = f" from {url}" if url else ""
        super().__init__(f"failed to parse source map{where}: {reason}")


class InvalidScriptUrlError(ScriptImportError):
    """Raised when a script or map URL lacks a scheme or host."""

    code = InternalErrorCode.InvalidScriptUrl

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"invalid script url: {url!r}")


class ArtifactWriteError(ScriptImportError):
    """Raised when a downloaded artifact cannot be written to storage."""

    code = InternalErrorCode.ArtifactWriteFailed

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"failed to write {path}: {reason}")

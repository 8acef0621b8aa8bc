"""
Collaborators consumed by the script importer.

Each concern is a small Protocol with one default implementation:

    Fetcher        -> HttpFetcher          single HTTP GET returning text
    ArtifactStore  -> FileArtifactStore    overwrite a file in the staging dir
    VersionOracle  -> ProjectVersionOracle react-native version of a project
    PackagerGate   -> PackagerStatusGate   packager readiness probe

Tests and embedding applications substitute their own objects.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlsplit

import httpx

from .errors import ArtifactWriteError, InvalidScriptUrlError, NetworkFetchError, PackagerUnreachableError
from .policy import VersionInfo, version_info

LOGGER = logging.getLogger("rndbg.collaborators")

PACKAGER_STATUS_PATH = "/status"
PACKAGER_RUNNING_STATUS = "packager-status:running"
FRAMEWORK_PACKAGE = "react-native"


class Fetcher(Protocol):
    async def fetch(self, url: str, expect_ok: bool = True, is_https: Optional[bool] = None) -> str: ...


class ArtifactStore(Protocol):
    async def write_file(self, path: str, content: str) -> None: ...


class VersionOracle(Protocol):
    async def get_version_info(self, project_root: str) -> VersionInfo: ...


class PackagerGate(Protocol):
    async def ensure_running(self, address: str, port: int, error: PackagerUnreachableError) -> None: ...


class HttpFetcher:
    """httpx-backed fetcher; no timeout and no retry, both belong to the caller."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, verify: bool = True) -> None:
        self._client = client
        self._verify = verify

    async def fetch(self, url: str, expect_ok: bool = True, is_https: Optional[bool] = None) -> str:
        scheme = urlsplit(url).scheme
        if scheme not in ("http", "https"):
            raise InvalidScriptUrlError(url)
        if is_https is not None and is_https != (scheme == "https"):
            raise InvalidScriptUrlError(url)
        if self._client is not None:
            return await self._get(self._client, url, expect_ok)
        async with httpx.AsyncClient(timeout=None, verify=self._verify, follow_redirects=True) as client:
            return await self._get(client, url, expect_ok)

    async def _get(self, client: httpx.AsyncClient, url: str, expect_ok: bool) -> str:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise NetworkFetchError(url, str(exc) or type(exc).__name__) from exc
        if expect_ok and not response.is_success:
            raise NetworkFetchError(url, f"HTTP {response.status_code}", status=response.status_code)
        return response.text


class FileArtifactStore:
    """Writes artifacts as UTF-8 text, creating parent directories on demand."""

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.to_thread(self._write, Path(path), content)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # keep line endings exactly as served
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(content)
        except OSError as exc:
            raise ArtifactWriteError(str(path), exc.strerror or str(exc)) from exc


def _read_package_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("failed to read %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


class ProjectVersionOracle:
    """
    Resolve the framework version of a project.

    The installed package (``node_modules/react-native/package.json``) wins;
    otherwise the dependency specifier in the project ``package.json`` is used
    with its range operator removed.  An unknown version is reported as an
    empty string, which the policy treats as a custom (modern) build.
    """

    def __init__(self, package_name: str = FRAMEWORK_PACKAGE) -> None:
        self.package_name = package_name

    async def get_version_info(self, project_root: str) -> VersionInfo:
        version = await asyncio.to_thread(self.resolve_version, Path(project_root))
        return version_info(version)

    def resolve_version(self, project_root: Path) -> str:
        installed = _read_package_json(project_root / "node_modules" / self.package_name / "package.json")
        if installed and isinstance(installed.get("version"), str):
            return installed["version"]
        manifest = _read_package_json(project_root / "package.json")
        if manifest:
            for section in ("dependencies", "devDependencies"):
                deps = manifest.get(section) or {}
                specifier = deps.get(self.package_name) if isinstance(deps, dict) else None
                if isinstance(specifier, str):
                    return specifier.lstrip("^~=<> ")
        LOGGER.warning("could not determine %s version under %s", self.package_name, project_root)
        return ""


class PackagerStatusGate:
    """Asks the packager for its status page before any worker download."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, timeout: float = 2.0) -> None:
        self._client = client
        self.timeout = timeout

    async def is_running(self, address: str, port: int) -> bool:
        url = f"http://{address}:{port}{PACKAGER_STATUS_PATH}"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as exc:
            LOGGER.debug("packager status probe %s failed: %s", url, exc)
            return False
        return response.is_success and response.text.strip() == PACKAGER_RUNNING_STATUS

    async def ensure_running(self, address: str, port: int, error: PackagerUnreachableError) -> None:
        if not await self.is_running(address, port):
            raise error

"""Downloads the app bundle and debugger worker from the packager."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import tempfile
from dataclasses import dataclass
from typing import Mapping, Optional

from . import directives, policy
from .collaborators import (
    ArtifactStore,
    Fetcher,
    FileArtifactStore,
    HttpFetcher,
    PackagerGate,
    PackagerStatusGate,
    ProjectVersionOracle,
    VersionOracle,
)
from .errors import PackagerUnreachableError
from .sourcemap import PathMappingConfig, SourceMapRewriter, derive_map_url, local_path_for, parse_script_url

LOGGER = logging.getLogger("rndbg.importer")

DEFAULT_PACKAGER_ADDRESS = "localhost"
DEFAULT_PACKAGER_PORT = 8081

_HASHED_WORKER_MAP_RE = re.compile(r"debuggerWorker\.[\dA-Fa-f]+\.worker\.js\.map")


@dataclass
class ImporterConfig:
    packager_address: str = DEFAULT_PACKAGER_ADDRESS
    packager_port: int = DEFAULT_PACKAGER_PORT
    storage_path: str = os.path.join(tempfile.gettempdir(), "rndbg")
    remote_root: Optional[str] = None
    local_root: Optional[str] = None

    @property
    def path_mapping(self) -> PathMappingConfig:
        return PathMappingConfig(remote_root=self.remote_root, local_root=self.local_root)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ImporterConfig":
        env = os.environ if environ is None else environ
        config = cls()
        if env.get("RNDBG_PACKAGER_ADDRESS"):
            config.packager_address = env["RNDBG_PACKAGER_ADDRESS"]
        if env.get("RCT_METRO_PORT"):
            try:
                config.packager_port = int(env["RCT_METRO_PORT"])
            except ValueError as exc:
                raise ValueError(f"RCT_METRO_PORT is not a port number: {env['RCT_METRO_PORT']!r}") from exc
        if env.get("RNDBG_STORAGE"):
            config.storage_path = env["RNDBG_STORAGE"]
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config


@dataclass(frozen=True)
class DownloadedScript:
    contents: str
    filepath: str


class ScriptImporter:
    """
    Fetches scripts from the packager and stages them for the debugger.

    Every call re-fetches and re-writes its artifacts.  Concurrent calls that
    target the same local file are not coordinated; the last write wins.
    """

    def __init__(
        self,
        config: Optional[ImporterConfig] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        store: Optional[ArtifactStore] = None,
        version_oracle: Optional[VersionOracle] = None,
        packager_gate: Optional[PackagerGate] = None,
        rewriter: Optional[SourceMapRewriter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ImporterConfig()
        self.fetcher = fetcher or HttpFetcher()
        self.store = store or FileArtifactStore()
        self.version_oracle = version_oracle or ProjectVersionOracle()
        self.packager_gate = packager_gate or PackagerStatusGate()
        self.rewriter = rewriter or SourceMapRewriter()
        self.logger = logger or LOGGER

    async def download_app_script(self, script_url: str, project_root: str) -> DownloadedScript:
        parsed_url = parse_script_url(script_url)
        script_body = await self.fetcher.fetch(script_url, True, parsed_url.scheme == "https")

        info = await self.version_oracle.get_version_info(project_root)
        compat = policy.compatibility_policy(info)

        if compat.synthesize_map and not directives.has_directive(script_body):
            # Metro 0.54.x omits the directive, see facebook/metro#147
            synthesized = derive_map_url(parsed_url)
            if synthesized is not None:
                self.logger.info("Appending sourceMappingURL %s for %s", synthesized, info.framework_version)
                script_body = self.rewriter.append_source_map_path(script_body, synthesized)

        source_map_url = self.rewriter.get_source_map_url(parsed_url, script_body)
        if source_map_url is not None:
            await self._write_app_source_map(source_map_url.geturl(), parsed_url.geturl())
            script_body = self.rewriter.update_script_paths(script_body, source_map_url)
        else:
            self.logger.info("No source map found for %s", script_url)

        if compat.strip_directive:
            script_body = self.rewriter.strip_directives(script_body)

        script_path = await self._write_app_script(script_body, parsed_url.geturl())
        self.logger.info("Script %s downloaded to %s", script_url, script_path)
        return DownloadedScript(contents=script_body, filepath=script_path)

    async def download_debugger_worker(
        self,
        storage_path: str,
        project_root: str,
        worker_url_path: Optional[str] = None,
    ) -> None:
        address = self.config.packager_address
        port = self.config.packager_port
        await self.packager_gate.ensure_running(address, port, PackagerUnreachableError(port, address))

        info = await self.version_oracle.get_version_info(project_root)
        worker_url = self.prepare_debugger_worker_url(info, worker_url_path)
        worker_local_path = os.path.join(storage_path, policy.DEBUGGER_WORKER_FILENAME)
        self.logger.info("About to download: %s to: %s", worker_url, worker_local_path)

        body = await self.fetcher.fetch(worker_url, True)
        body = _HASHED_WORKER_MAP_RE.sub(f"{policy.DEBUGGER_WORKER_FILENAME}.map", body)
        await self.store.write_file(worker_local_path, body)

        worker_map = await self.fetcher.fetch(f"{worker_url}.map", True)
        await self.store.write_file(f"{worker_local_path}.map", worker_map)

    def prepare_debugger_worker_url(self, info: policy.VersionInfo, worker_url_path: Optional[str] = None) -> str:
        url = policy.debugger_worker_url(
            self.config.packager_address,
            self.config.packager_port,
            policy.compatibility_policy(info),
            worker_url_path,
        )
        self.logger.info("debuggerWorkerUrlPath: %s", worker_url_path or "")
        self.logger.info("debuggerWorkerURL: %s", url)
        return url

    async def _write_app_script(self, script_body: str, script_url: str) -> str:
        script_path = local_path_for(self.config.storage_path, script_url)
        await self.store.write_file(script_path, script_body)
        return script_path

    async def _write_app_source_map(self, source_map_url: str, script_url: str) -> None:
        is_https = source_map_url.startswith("https:")
        source_map_body = await self.fetcher.fetch(source_map_url, True, is_https)
        local_map_path = local_path_for(self.config.storage_path, source_map_url)
        script_name = posixpath.basename(parse_script_url(script_url).path)
        updated = self.rewriter.update_source_map_file(
            source_map_body,
            script_name,
            self.config.storage_path,
            self.config.path_mapping,
            source_map_url=source_map_url,
        )
        await self.store.write_file(local_map_path, updated)

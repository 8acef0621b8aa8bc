"""Rewriting of packager bundles and their source maps for local debugging."""

from __future__ import annotations

import json
import os
import posixpath
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import SplitResult, urljoin, urlsplit

from . import directives
from .errors import InvalidScriptUrlError, SourceMapParseError

UrlLike = Union[str, SplitResult]

BUNDLE_TOKEN = "bundle"
MAP_TOKEN = "map"


@dataclass(frozen=True)
class PathMappingConfig:
    """How ``sources`` entries of a fetched map move from server to workspace paths."""

    remote_root: Optional[str] = None
    local_root: Optional[str] = None


def _json_dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"))


def parse_script_url(url: UrlLike) -> SplitResult:
    """Split ``url`` and insist on an absolute http(s) location."""
    parts = url if isinstance(url, SplitResult) else urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidScriptUrlError(parts.geturl())
    return parts


def local_path_for(storage_dir: str, remote_url: UrlLike) -> str:
    """Local file for ``remote_url``: the basename of its path inside ``storage_dir``."""
    parts = remote_url if isinstance(remote_url, SplitResult) else urlsplit(remote_url)
    name = posixpath.basename(parts.path)
    if not name:
        raise InvalidScriptUrlError(parts.geturl())
    return os.path.join(storage_dir, name)


def derive_map_url(script_url: UrlLike) -> Optional[str]:
    """Sibling map URL of a bundle URL, or None when the path names no bundle."""
    parts = parse_script_url(script_url)
    head, token, tail = parts.path.rpartition(BUNDLE_TOKEN)
    if not token:
        return None
    return parts._replace(path=f"{head}{MAP_TOKEN}{tail}").geturl()


def _rebase(source: str, remote_root: str, replacement: str) -> Optional[str]:
    normalized = source.replace("\\", "/")
    root = remote_root.replace("\\", "/").rstrip("/")
    # match whole path components only
    if normalized != root and not normalized.startswith(root + "/"):
        return None
    rest = normalized[len(root) :].lstrip("/")
    base = replacement.rstrip("/\\")
    return f"{base}/{rest}" if rest else base


class SourceMapRewriter:
    """Discovers, synthesizes, rewrites and strips source-map references."""

    def get_source_map_url(self, script_url: UrlLike, script_body: str) -> Optional[SplitResult]:
        """
        Resolve the script's sourceMappingURL directive against ``script_url``.

        Absolute targets keep their path and query but take the scheme and host
        of the script, since the packager may advertise an address (for
        instance an emulator alias) that is not reachable from here.
        An inline ``data:`` map yields None since there is nothing to fetch.
        """
        directive = directives.find_directive(script_body, directives.SOURCE_MAPPING_URL)
        if directive is None or directive.inline:
            return None
        base = parse_script_url(script_url)
        resolved = urlsplit(urljoin(base.geturl(), directive.target))
        if resolved.scheme in ("http", "https") and resolved.netloc:
            resolved = resolved._replace(scheme=base.scheme, netloc=base.netloc)
        return parse_script_url(resolved)

    def append_source_map_path(self, script_body: str, source_map_url: str) -> str:
        return directives.append_directive(script_body, directives.SOURCE_MAPPING_URL, source_map_url)

    def update_script_paths(self, script_body: str, source_map_url: UrlLike) -> str:
        """Point the directive at the map stored next to the script."""
        directive = directives.find_directive(script_body, directives.SOURCE_MAPPING_URL)
        if directive is None or directive.inline:
            return script_body
        parts = source_map_url if isinstance(source_map_url, SplitResult) else urlsplit(source_map_url)
        return directives.replace_target(script_body, directive, posixpath.basename(parts.path))

    def strip_directives(self, script_body: str) -> str:
        """Strip every directive comment line from the script."""
        return directives.remove_directives(script_body)

    def update_source_map_file(
        self,
        source_map_body: str,
        script_path: str,
        sources_root_path: str,
        mapping: Optional[PathMappingConfig] = None,
        *,
        source_map_url: Optional[str] = None,
    ) -> str:
        try:
            source_map = json.loads(source_map_body)
        except json.JSONDecodeError as exc:
            raise SourceMapParseError(source_map_url, str(exc)) from exc
        if not isinstance(source_map, dict):
            raise SourceMapParseError(source_map_url, "top-level value is not an object")
        self._rewrite_map(source_map, script_path, sources_root_path, mapping or PathMappingConfig(), source_map_url)
        return _json_dumps(source_map)

    def _rewrite_map(
        self,
        source_map: Dict[str, Any],
        script_path: str,
        sources_root_path: str,
        mapping: PathMappingConfig,
        source_map_url: Optional[str],
    ) -> None:
        sections = source_map.get("sections")
        if sections is not None:
            if not isinstance(sections, list):
                raise SourceMapParseError(source_map_url, "'sections' is not a list")
            for section in sections:
                nested = section.get("map") if isinstance(section, dict) else None
                # sections referencing an external "url" have nothing to rewrite
                if isinstance(nested, dict):
                    self._rewrite_map(nested, script_path, sources_root_path, mapping, source_map_url)
        sources = source_map.get("sources")
        if sources is not None:
            if not isinstance(sources, list):
                raise SourceMapParseError(source_map_url, "'sources' is not a list")
            source_map["sources"] = self._rewrite_sources(sources, sources_root_path, mapping)
        source_map["file"] = script_path

    def _rewrite_sources(self, sources: List[Any], sources_root_path: str, mapping: PathMappingConfig) -> List[Any]:
        if not mapping.remote_root:
            return list(sources)
        replacement = mapping.local_root if mapping.local_root is not None else sources_root_path
        rewritten: List[Any] = []
        for source in sources:
            rebased = _rebase(source, mapping.remote_root, replacement) if isinstance(source, str) else None
            rewritten.append(source if rebased is None else rebased)
        return rewritten

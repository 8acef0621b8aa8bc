"""
rndbg - debug script acquisition for React Native debugging sessions.

Fetches the bundle and debugger worker served by the packager, rewrites
their source-map references to point at local files, and stages the result
for the debugging engine:

    directives.py     -> sourceMappingURL / sourceURL comment grammar
    sourcemap.py      -> bundle and source map rewriting, local path helpers
    policy.py         -> version-gated compatibility decisions, worker URLs
    collaborators.py  -> HTTP fetcher, artifact store, version oracle, packager gate
    importer.py       -> ScriptImporter orchestration
    cli.py            -> ``python -m rndbg`` entry point
"""

from .errors import (  # noqa: F401
    ArtifactWriteError,
    InternalErrorCode,
    InvalidScriptUrlError,
    NetworkFetchError,
    PackagerUnreachableError,
    ScriptImportError,
    SourceMapParseError,
)
from .policy import CompatibilityPolicy, VersionInfo, compatibility_policy  # noqa: F401
from .sourcemap import PathMappingConfig, SourceMapRewriter, local_path_for  # noqa: F401
from .importer import DownloadedScript, ImporterConfig, ScriptImporter  # noqa: F401

__all__ = [
    "ArtifactWriteError",
    "InternalErrorCode",
    "InvalidScriptUrlError",
    "NetworkFetchError",
    "PackagerUnreachableError",
    "ScriptImportError",
    "SourceMapParseError",
    "CompatibilityPolicy",
    "VersionInfo",
    "compatibility_policy",
    "PathMappingConfig",
    "SourceMapRewriter",
    "local_path_for",
    "DownloadedScript",
    "ImporterConfig",
    "ScriptImporter",
]

__version__ = "0.1.0"

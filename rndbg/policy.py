"""Version-gated compatibility behaviour for the React Native packager.

The packager changed its conventions across releases and shipped a few
known-broken versions.  Every decision that depends on the framework
version lives here as a pure function so it can be tested without network
or filesystem access:

    synthesize_map   Metro in 0.54.x omits the sourceMappingURL directive
                     (facebook/metro#147); one is appended before discovery.
    strip_directive  from 0.61 the runtime resolves directives itself, so the
                     persisted bundle must not carry them.
    use_ui_prefix    from 0.50 the debugger worker is served below
                     ``debugger-ui/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

BROKEN_METRO_VERSIONS = frozenset({"0.54.0", "0.54.1", "0.54.2", "0.54.3", "0.54.4"})
REMOVE_SOURCE_URL_VERSION = "0.61.0"
DEBUGGER_UI_SUPPORTED_VERSION = "0.50.0"

DEBUGGER_WORKER_FILE_BASENAME = "debuggerWorker"
DEBUGGER_WORKER_FILENAME = f"{DEBUGGER_WORKER_FILE_BASENAME}.js"
DEBUGGER_WORKER_REMOTE_PATH = "static/js/debuggerWorker.16cda763.worker.js"
DEBUGGER_UI_PREFIX = "debugger-ui/"

_SEMVER_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

_CANARY_MARKERS = ("canary", "nightly")

PrereleaseKey = Tuple[Tuple[int, Union[int, str]], ...]
SemverKey = Tuple[int, int, int, int, PrereleaseKey]


@dataclass(frozen=True)
class VersionInfo:
    framework_version: str
    is_canary: bool = False


@dataclass(frozen=True)
class CompatibilityPolicy:
    synthesize_map: bool = False
    strip_directive: bool = False
    use_ui_prefix: bool = True


def _semver_key(version: str) -> Optional[SemverKey]:
    match = _SEMVER_RE.match(version.strip())
    if not match:
        return None
    pre = match.group("pre")
    identifiers: PrereleaseKey = ()
    if pre:
        # numeric identifiers sort before alphanumeric ones
        identifiers = tuple((0, int(part)) if part.isdigit() else (1, part) for part in pre.split("."))
    # a release sorts after all of its pre-releases
    release_rank = 0 if pre else 1
    return (
        int(match.group("major")),
        int(match.group("minor")),
        int(match.group("patch")),
        release_rank,
        identifiers,
    )


def is_valid_semver(version: Optional[str]) -> bool:
    return bool(version) and _semver_key(version) is not None


def semver_gte(version: str, threshold: str) -> bool:
    """``version >= threshold``; False when ``version`` is not valid semver."""
    left = _semver_key(version or "")
    right = _semver_key(threshold)
    if right is None:
        raise ValueError(f"invalid threshold version: {threshold}")
    if left is None:
        return False
    if left[:3] != right[:3]:
        return left[:3] > right[:3]
    if left[3] != right[3]:
        return left[3] > right[3]
    return left[4] >= right[4]


def is_canary_version(version: Optional[str]) -> bool:
    if not version:
        return False
    lowered = version.lower()
    return any(marker in lowered for marker in _CANARY_MARKERS)


def version_info(version: str, is_canary: Optional[bool] = None) -> VersionInfo:
    if is_canary is None:
        is_canary = is_canary_version(version)
    return VersionInfo(framework_version=version, is_canary=is_canary)


def compatibility_policy(info: VersionInfo) -> CompatibilityPolicy:
    version = info.framework_version
    return CompatibilityPolicy(
        synthesize_map=version in BROKEN_METRO_VERSIONS,
        strip_directive=info.is_canary or semver_gte(version, REMOVE_SOURCE_URL_VERSION),
        # custom framework builds are not semver and serve the new layout
        use_ui_prefix=(
            not is_valid_semver(version)
            or info.is_canary
            or semver_gte(version, DEBUGGER_UI_SUPPORTED_VERSION)
        ),
    )


def debugger_worker_url(
    address: str,
    port: int,
    policy: CompatibilityPolicy,
    worker_url_path: Optional[str] = None,
) -> str:
    # an empty override is valid and means "no extra path segment"
    if worker_url_path is not None:
        return f"http://{address}:{port}/{worker_url_path}{DEBUGGER_WORKER_FILENAME}"
    prefix = DEBUGGER_UI_PREFIX if policy.use_ui_prefix else ""
    return f"http://{address}:{port}/{prefix}{DEBUGGER_WORKER_REMOTE_PATH}"

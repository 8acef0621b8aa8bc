"""Parser/serializer for the one-line script directive comments.

A bundle served by the packager ends with comments such as::

    //# sourceMappingURL=/index.ios.map?platform=ios&dev=true
    //# sourceURL=http://localhost:8081/index.ios.bundle?platform=ios

Older toolchains emit the legacy ``//@`` marker instead of ``//#``.  Targets
may be absolute URLs, paths relative to the script, or ``data:`` URIs carrying
an inline map.  Inline directives are still directives: they are found and
stripped like any other, but they reference nothing to download.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

SOURCE_MAPPING_URL = "sourceMappingURL"
SOURCE_URL = "sourceURL"
DIRECTIVE_KINDS = (SOURCE_MAPPING_URL, SOURCE_URL)

CURRENT_MARKER = "#"
LEGACY_MARKER = "@"
INLINE_PREFIX = "data:"

_DIRECTIVE_RE = re.compile(
    r"^[^\S\n]*//(?P<marker>[#@])[^\S\n]*(?P<kind>sourceMappingURL|sourceURL)="
    r"(?P<target>\S+)(?=[^\S\n]*$)",
    re.MULTILINE,
)
_TRAILING_RE = re.compile(r"[^\S\n]*\n?")


@dataclass(frozen=True)
class Directive:
    kind: str
    target: str
    marker: str = CURRENT_MARKER
    start: int = 0
    end: int = 0

    @property
    def legacy(self) -> bool:
        return self.marker == LEGACY_MARKER

    @property
    def inline(self) -> bool:
        return self.target.startswith(INLINE_PREFIX)

    def render(self) -> str:
        return format_directive(self.kind, self.target, marker=self.marker)


def format_directive(kind: str, target: str, *, marker: str = CURRENT_MARKER) -> str:
    if kind not in DIRECTIVE_KINDS:
        raise ValueError(f"unknown directive kind: {kind}")
    if marker not in (CURRENT_MARKER, LEGACY_MARKER):
        raise ValueError(f"unknown directive marker: {marker}")
    return f"//{marker} {kind}={target}"


def iter_directives(body: str, kinds: Optional[Iterable[str]] = None) -> Iterator[Directive]:
    wanted = set(kinds) if kinds is not None else set(DIRECTIVE_KINDS)
    for match in _DIRECTIVE_RE.finditer(body):
        if match.group("kind") not in wanted:
            continue
        yield Directive(
            kind=match.group("kind"),
            target=match.group("target"),
            marker=match.group("marker"),
            start=match.start(),
            end=match.end(),
        )


def find_directive(body: str, kind: str = SOURCE_MAPPING_URL) -> Optional[Directive]:
    """Return the trailing directive of ``kind``, or None when the body has none."""
    found: Optional[Directive] = None
    for directive in iter_directives(body, (kind,)):
        found = directive
    return found


def has_directive(body: str, kind: str = SOURCE_MAPPING_URL) -> bool:
    return find_directive(body, kind) is not None


def append_directive(body: str, kind: str, target: str) -> str:
    separator = "" if not body or body.endswith("\n") else "\n"
    return f"{body}{separator}{format_directive(kind, target)}\n"


def replace_target(body: str, directive: Directive, target: str) -> str:
    """Point ``directive`` at ``target``; the marker is normalized to ``#``."""
    rendered = format_directive(directive.kind, target)
    return body[: directive.start] + rendered + body[directive.end :]


def remove_directives(body: str, kinds: Optional[Iterable[str]] = None) -> str:
    """Drop every matching directive line, including its line break."""
    spans: List[tuple[int, int]] = []
    for directive in iter_directives(body, kinds):
        end = _TRAILING_RE.match(body, directive.end).end()
        spans.append((directive.start, end))
    if not spans:
        return body
    pieces: List[str] = []
    cursor = 0
    for start, end in spans:
        pieces.append(body[cursor:start])
        cursor = end
    pieces.append(body[cursor:])
    return "".join(pieces)

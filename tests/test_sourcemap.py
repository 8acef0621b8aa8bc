import json
import os

import pytest

from rndbg import directives
from rndbg.errors import InvalidScriptUrlError, SourceMapParseError
from rndbg.sourcemap import PathMappingConfig, SourceMapRewriter, derive_map_url, local_path_for


SCRIPT_URL = "http://localhost:8081/index.ios.bundle?platform=ios&dev=true"
MAP_URL = "http://localhost:8081/index.ios.map?platform=ios&dev=true"


def make_map(**overrides):
    data = {
        "version": 3,
        "file": "index.ios.bundle",
        "sources": ["/srv/app/src/App.js", "node_modules/react/index.js"],
        "sourcesContent": ["export default App;", "module.exports = React;"],
        "names": ["App"],
        "mappings": "AAAA;AACA",
    }
    data.update(overrides)
    return data


@pytest.fixture
def rewriter():
    return SourceMapRewriter()


def test_relative_directive_resolves_against_script(rewriter):
    body = "code();\n//# sourceMappingURL=/index.ios.map?platform=ios&dev=true\n"
    assert rewriter.get_source_map_url(SCRIPT_URL, body).geturl() == MAP_URL


def test_path_relative_directive(rewriter):
    body = "code();\n//# sourceMappingURL=main.map\n"
    resolved = rewriter.get_source_map_url("http://localhost:8081/js/main.bundle", body)
    assert resolved.geturl() == "http://localhost:8081/js/main.map"


def test_absolute_directive_uses_script_host(rewriter):
    body = "code();\n//# sourceMappingURL=http://10.0.2.2:8081/index.android.map?platform=android\n"
    resolved = rewriter.get_source_map_url("http://localhost:8081/index.android.bundle?platform=android", body)
    assert resolved.geturl() == "http://localhost:8081/index.android.map?platform=android"


def test_missing_directive_is_not_an_error(rewriter):
    assert rewriter.get_source_map_url(SCRIPT_URL, "code();\n") is None


def test_inline_map_has_nothing_to_fetch(rewriter):
    body = "code();\n//# sourceMappingURL=data:application/json;base64,e30=\n"
    assert rewriter.get_source_map_url(SCRIPT_URL, body) is None
    assert rewriter.update_script_paths(body, MAP_URL) == body


def test_invalid_script_url(rewriter):
    with pytest.raises(InvalidScriptUrlError):
        rewriter.get_source_map_url("index.ios.bundle", "//# sourceMappingURL=index.ios.map\n")


def test_discovery_is_stable_across_noop_rewrite(rewriter):
    body = "code();\n//@ sourceMappingURL=/index.ios.map?platform=ios&dev=true\n"
    directive = directives.find_directive(body)
    rewritten = directives.replace_target(body, directive, directive.target)
    assert rewriter.get_source_map_url(SCRIPT_URL, rewritten) == rewriter.get_source_map_url(SCRIPT_URL, body)


def test_update_script_paths_points_at_local_map(rewriter):
    body = "code();\n//# sourceMappingURL=/index.ios.map?platform=ios&dev=true\n"
    updated = rewriter.update_script_paths(body, MAP_URL)
    assert updated == "code();\n//# sourceMappingURL=index.ios.map\n"
    rediscovered = rewriter.get_source_map_url(SCRIPT_URL, updated)
    assert rediscovered.path == "/index.ios.map"


def test_update_script_paths_without_directive(rewriter):
    assert rewriter.update_script_paths("code();\n", MAP_URL) == "code();\n"


def test_derive_map_url_preserves_query():
    assert derive_map_url(SCRIPT_URL) == MAP_URL
    assert derive_map_url("http://localhost:8081/index.js") is None


def test_synthesized_directive_is_unique(rewriter):
    body = rewriter.append_source_map_path("code();", derive_map_url(SCRIPT_URL))
    found = list(directives.iter_directives(body))
    assert len(found) == 1
    assert found[0].target == MAP_URL


def test_strip_directives(rewriter):
    body = "code();\n//# sourceMappingURL=index.ios.map\n//# sourceURL=" + SCRIPT_URL + "\n"
    assert rewriter.strip_directives(body) == "code();\n"


def test_source_map_prefix_rewrite(rewriter):
    mapping = PathMappingConfig(remote_root="/srv/app", local_root="/home/dev/app")
    output = json.loads(
        rewriter.update_source_map_file(json.dumps(make_map(file="ignored")), "index.ios.bundle", "/tmp/stage", mapping)
    )
    assert output["sources"] == ["/home/dev/app/src/App.js", "node_modules/react/index.js"]
    assert output["file"] == "index.ios.bundle"
    source_map = make_map()
    for key in ("version", "sourcesContent", "names", "mappings"):
        assert output[key] == source_map[key]


def test_source_map_falls_back_to_storage_dir(rewriter):
    mapping = PathMappingConfig(remote_root="/srv/app")
    output = json.loads(rewriter.update_source_map_file(json.dumps(make_map()), "index.ios.bundle", "/tmp/stage", mapping))
    assert output["sources"][0] == "/tmp/stage/src/App.js"


def test_source_map_windows_separators(rewriter):
    mapping = PathMappingConfig(remote_root="C:\\srv\\app", local_root="/home/dev/app")
    body = json.dumps(make_map(sources=["C:\\srv\\app\\src\\App.js", "D:\\other.js"]))
    output = json.loads(rewriter.update_source_map_file(body, "index.bundle", "/tmp/stage", mapping))
    assert output["sources"] == ["/home/dev/app/src/App.js", "D:\\other.js"]


def test_source_map_without_mapping_keeps_sources(rewriter):
    output = json.loads(rewriter.update_source_map_file(json.dumps(make_map()), "main.bundle", "/tmp/stage"))
    assert output["sources"] == make_map()["sources"]
    assert output["file"] == "main.bundle"


def test_indexed_source_map_sections(rewriter):
    mapping = PathMappingConfig(remote_root="/srv/app", local_root="/work")
    body = json.dumps(
        {
            "version": 3,
            "sections": [
                {"offset": {"line": 0, "column": 0}, "map": make_map()},
                {"offset": {"line": 10, "column": 0}, "url": "other.map"},
            ],
        }
    )
    output = json.loads(rewriter.update_source_map_file(body, "index.bundle", "/tmp/stage", mapping))
    assert output["file"] == "index.bundle"
    assert output["sections"][0]["map"]["sources"][0] == "/work/src/App.js"
    assert output["sections"][0]["map"]["file"] == "index.bundle"
    assert output["sections"][1] == {"offset": {"line": 10, "column": 0}, "url": "other.map"}


@pytest.mark.parametrize("body", ["<html>not found</html>", "[1, 2]", '{"sources": "a.js"}'])
def test_malformed_source_map_raises(rewriter, body):
    with pytest.raises(SourceMapParseError) as excinfo:
        rewriter.update_source_map_file(body, "index.bundle", "/tmp/stage", source_map_url=MAP_URL)
    assert excinfo.value.url == MAP_URL


def test_local_path_for():
    assert local_path_for("/tmp/stage", SCRIPT_URL) == os.path.join("/tmp/stage", "index.ios.bundle")
    assert local_path_for("/tmp/stage", MAP_URL) == os.path.join("/tmp/stage", "index.ios.map")
    with pytest.raises(InvalidScriptUrlError):
        local_path_for("/tmp/stage", "http://localhost:8081/")


def test_source_map_root_with_trailing_separator(rewriter):
    mapping = PathMappingConfig(remote_root="/srv/app/", local_root="/work/")
    body = json.dumps(make_map(sources=["/srv/app/src/App.js", "/srv/app"]))
    output = json.loads(rewriter.update_source_map_file(body, "index.bundle", "/tmp/stage", mapping))
    assert output["sources"] == ["/work/src/App.js", "/work"]


def test_source_map_sibling_directory_is_not_rebased(rewriter):
    mapping = PathMappingConfig(remote_root="/srv/app", local_root="/work")
    body = json.dumps(make_map(sources=["/srv/application/x.js", "/srv/app/x.js"]))
    output = json.loads(rewriter.update_source_map_file(body, "index.bundle", "/tmp/stage", mapping))
    assert output["sources"] == ["/srv/application/x.js", "/work/x.js"]

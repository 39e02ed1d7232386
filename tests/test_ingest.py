import io
import zipfile
from pathlib import Path

import pytest

from codeprobe.services.ingest import (
    IngestError,
    decode_source,
    is_analyzable,
    iter_directory_sources,
    iter_path_sources,
    iter_zip_sources,
)


def _zip_bytes(members: dict) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.mark.parametrize(
    "path,expected",
    [
        ("src/App.jsx", True),
        ("src/api.ts", True),
        ("index.js", True),
        ("lib/util.mjs", True),
        ("node_modules/react/index.js", False),
        ("web/node_modules/react/index.js", False),
        ("dist/main.js", False),
        ("lib/jquery.min.js", False),
        ("types/global.d.ts", False),
        ("README.md", False),
        ("styles/app.css", False),
    ],
)
def test_is_analyzable(path, expected):
    assert is_analyzable(path) is expected


def test_decode_source_strips_bom_and_replaces_bad_bytes():
    assert decode_source("\ufeffconst a = 1;".encode("utf-8")) == "const a = 1;"
    assert "\ufffd" in decode_source(b"const a = '\xff';")


def test_zip_yields_only_project_sources():
    data = _zip_bytes({
        "project/src/App.jsx": "export default function App() {}",
        "project/src/util.ts": "export const x = 1;",
        "project/node_modules/react/index.js": "module.exports = {};",
        "project/build/bundle.js": "var a;",
        "project/README.md": "# readme",
    })

    sources = dict(iter_zip_sources(data))

    assert set(sources) == {"project/src/App.jsx", "project/src/util.ts"}
    assert sources["project/src/util.ts"] == "export const x = 1;"


def test_bad_zip_raises_ingest_error():
    with pytest.raises(IngestError):
        list(iter_zip_sources(b"not a zip"))


def test_directory_honors_ignore_dirs_and_gitignore(tmp_path: Path):
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    (root / ".gitignore").write_text("generated/\n*.gen.js\n", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "App.jsx").write_text("function App() {}\n", encoding="utf-8")
    (root / "src" / "schema.gen.js").write_text("var a;\n", encoding="utf-8")
    (root / "generated").mkdir()
    (root / "generated" / "api.js").write_text("var b;\n", encoding="utf-8")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("var c;\n", encoding="utf-8")

    sources = dict(iter_directory_sources(root))

    assert list(sources) == ["src/App.jsx"]


def test_path_sources_accepts_single_file_and_zip(tmp_path: Path):
    single = tmp_path / "widget.tsx"
    single.write_text("const W = () => <div />;\n", encoding="utf-8")
    archive = tmp_path / "project.zip"
    archive.write_bytes(_zip_bytes({"a.js": "var a;"}))

    assert [name for name, _ in iter_path_sources(single)] == ["widget.tsx"]
    assert [name for name, _ in iter_path_sources(archive)] == ["a.js"]

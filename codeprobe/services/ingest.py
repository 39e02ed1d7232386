"""
Turn uploads and directories into ``(filename, source_text)`` pairs.

Only JavaScript/TypeScript sources are yielded. Vendored and build output
(``node_modules``, ``dist`` and the rest of ``IGNORE_DIRS``) is skipped, and
directory scans additionally honor ``.gitignore`` files found between the
repository root and the scanned directory.
"""

import io
import os
import zipfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from pathspec import PathSpec

from codeprobe.config import (
    ANALYZABLE_EXTENSIONS,
    IGNORE_DIRS,
    IGNORE_FILES,
    IGNORE_SUFFIXES,
)

SourceFile = Tuple[str, str]


class IngestError(Exception):
    pass


def is_analyzable(path: str) -> bool:
    """True for a JS/TS source path outside vendored or build directories."""
    posix = PurePosixPath(path.replace("\\", "/"))
    name = posix.name.lower()
    if posix.name in IGNORE_FILES:
        return False
    if any(name.endswith(suffix) for suffix in IGNORE_SUFFIXES):
        return False
    if posix.suffix.lower() not in ANALYZABLE_EXTENSIONS:
        return False
    return not any(part in IGNORE_DIRS for part in posix.parts[:-1])


def decode_source(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    # Strip a UTF-8 byte order mark so it does not show up as a token.
    return text[1:] if text.startswith("\ufeff") else text


def iter_zip_sources(archive: Union[str, Path, bytes, BinaryIO]) -> Iterator[SourceFile]:
    """Yield the analyzable members of a zip archive, in archive order."""
    if isinstance(archive, bytes):
        archive = io.BytesIO(archive)
    try:
        zf = zipfile.ZipFile(archive)
    except (zipfile.BadZipFile, OSError) as e:
        raise IngestError(f"Could not open zip archive: {e}") from e

    with zf:
        for info in zf.infolist():
            if info.is_dir() or not is_analyzable(info.filename):
                continue
            yield info.filename, decode_source(zf.read(info))


def find_repo_root(start_path: Path) -> Path:
    current = start_path.resolve()
    for parent in [current, *current.parents]:
        if (parent / ".git").exists():
            return parent
    return current


def _translate_gitignore_line(line: str, base_rel: str) -> Optional[str]:
    """
    Rewrite one .gitignore line from directory ``base_rel`` into a pattern
    relative to the repository root.
    """
    line = line.rstrip("\n")
    if not line.strip() or line.lstrip().startswith("#"):
        return None

    negated = line.startswith("!")
    body = line[1:] if negated else line
    anchored = body.startswith("/")
    body = body.lstrip("/")
    prefix = f"{base_rel}/" if base_rel else ""

    if anchored or "/" in body.rstrip("/"):
        pattern = prefix + body
    else:
        pattern = f"{prefix}**/{body}"
    return f"!{pattern}" if negated else pattern


def load_gitignore_spec(root_path: Path) -> Tuple[Path, Optional[PathSpec]]:
    repo_root = find_repo_root(root_path)
    patterns: List[str] = []

    for dirpath, dirnames, filenames in os.walk(repo_root):
        dirnames[:] = [d for d in dirnames if d not in IGNORE_DIRS]
        if ".gitignore" not in filenames:
            continue
        rel = Path(dirpath).relative_to(repo_root).as_posix()
        base_rel = "" if rel == "." else rel
        with open(Path(dirpath) / ".gitignore", "r", encoding="utf-8", errors="replace") as f:
            for raw in f:
                pattern = _translate_gitignore_line(raw, base_rel)
                if pattern is not None:
                    patterns.append(pattern)

    if not patterns:
        return repo_root, None
    return repo_root, PathSpec.from_lines("gitwildmatch", patterns)


def _is_gitignored(path: Path, ignore_root: Path, spec: Optional[PathSpec], is_dir: bool = False) -> bool:
    if spec is None:
        return False
    try:
        rel = path.resolve().relative_to(ignore_root).as_posix()
    except ValueError:
        return False
    return spec.match_file(rel + "/" if is_dir else rel)


def list_directory_sources(root_path: Path) -> List[Path]:
    """Analyzable files under ``root_path`` in a stable, sorted order."""
    ignore_root, spec = load_gitignore_spec(root_path)
    found: List[Path] = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in IGNORE_DIRS and not _is_gitignored(current / d, ignore_root, spec, is_dir=True)
        )
        for name in sorted(filenames):
            path = current / name
            rel = path.relative_to(root_path).as_posix()
            if is_analyzable(rel) and not _is_gitignored(path, ignore_root, spec):
                found.append(path)

    return found


def iter_directory_sources(root_path: Path) -> Iterator[SourceFile]:
    """Yield ``(relative_posix_path, text)`` for each analyzable file."""
    for path in list_directory_sources(root_path):
        yield path.relative_to(root_path).as_posix(), decode_source(path.read_bytes())


def iter_path_sources(path: Path) -> Iterator[SourceFile]:
    """Sources from a directory, a zip archive, or a single source file."""
    if path.is_dir():
        yield from iter_directory_sources(path)
    elif path.suffix.lower() == ".zip":
        yield from iter_zip_sources(path)
    elif is_analyzable(path.name):
        yield path.name, decode_source(path.read_bytes())

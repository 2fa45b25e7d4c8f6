"""Filesystem reads for content collection and code analysis.

Every path handed to the code analyzer is resolved and verified to stay inside
the working directory before any I/O.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path

from app.core.logging import get_logger
from app.core.state import FileEntry

logger = get_logger("tools.filesystem")

TEXT_EXTENSIONS = {
    ".txt", ".md", ".go", ".py", ".js", ".html", ".css", ".json", ".yaml", ".yml",
    ".xml", ".sh", ".c", ".cpp", ".h", ".hpp", ".java", ".ts", ".tsx", ".jsx",
    ".rb", ".rs", ".php", ".conf", ".cfg", ".ini", ".properties", ".toml", ".csv",
}

BINARY_PLACEHOLDER = "[binary file]"


class PathEscapeError(Exception):
    """Raised when a path would escape the working directory."""


def is_text_file(name: str) -> bool:
    """Extension-based guess; good enough to avoid dumping binaries into a prompt."""
    return Path(name).suffix.lower() in TEXT_EXTENSIONS


def _matches(name: str, patterns: list[str]) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)


def _read_body(path: Path) -> str:
    raw = path.read_bytes()
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    return raw.decode("utf-8", errors="replace")


def collect_directory_contents(
    root: str,
    patterns: list[str] | None = None,
    read_contents: bool = False,
    max_entries: int = 500,
    max_file_size: int = 100 * 1024,
) -> list[FileEntry]:
    """Walk *root* and return an ordered list of entries.

    Hidden files and directories are pruned. Directories are always listed;
    files only when they match one of *patterns* (all files when no pattern is
    given). Walking stops after *max_entries* entries. Files larger than
    *max_file_size* are reported without a body.
    """
    root_path = Path(root or ".").resolve()
    patterns = [p for p in (patterns or []) if p]
    entries: list[FileEntry] = []

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=lambda err: None):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        current = Path(dirpath)

        for name in dirnames:
            if len(entries) >= max_entries:
                break
            entries.append(FileEntry(path=str(current / name), is_dir=True))

        for name in sorted(filenames):
            if len(entries) >= max_entries:
                break
            if name.startswith("."):
                continue
            if patterns and not _matches(name, patterns):
                continue
            path = current / name
            try:
                size = path.stat().st_size
            except OSError:
                continue

            content: str | None = None
            if read_contents and size <= max_file_size:
                if not is_text_file(name):
                    content = BINARY_PLACEHOLDER
                else:
                    try:
                        content = _read_body(path)
                    except OSError as exc:
                        content = f"[error reading file: {exc}]"
            entries.append(FileEntry(path=str(path), size=size, content=content))

        if len(entries) >= max_entries:
            break

    logger.info("collect    | %s (%d entries, bodies=%s)", root_path, len(entries), read_contents)
    return entries


def resolve_inside(root: str, candidate: str) -> Path:
    """Resolve *candidate* against *root* and verify it stays inside."""
    root_path = Path(root or ".").resolve()
    raw = Path(candidate)
    if not raw.is_absolute():
        raw = root_path / raw
    if raw.is_symlink():
        raise PathEscapeError(f"Symlinks are not allowed: {candidate}")
    target = raw.resolve()
    try:
        target.relative_to(root_path)
    except ValueError as exc:
        raise PathEscapeError(
            f"Path escapes working directory: {candidate!r} resolved to {target}"
        ) from exc
    return target


def find_matching_files(root: str, patterns: list[str], max_files: int = 50) -> list[Path]:
    """Glob *patterns* relative to *root*, keeping regular files inside it."""
    root_path = Path(root or ".").resolve()
    found: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        try:
            matches = sorted(root_path.glob(pattern))
        except (ValueError, NotImplementedError) as exc:
            logger.warning("find_files | bad pattern %r: %s", pattern, exc)
            continue
        for match in matches:
            try:
                target = resolve_inside(str(root_path), str(match))
            except PathEscapeError as exc:
                logger.warning("find_files | skipped %s", exc)
                continue
            if not target.is_file() or target in seen:
                continue
            if any(part.startswith(".") for part in target.relative_to(root_path).parts):
                continue
            seen.add(target)
            found.append(target)
            if len(found) >= max_files:
                return found
    return found


def read_file_with_limit(path: Path, limit: int) -> str | None:
    """Return the file body, or None if it is larger than *limit* bytes."""
    size = path.stat().st_size
    if size > limit:
        return None
    return _read_body(path)

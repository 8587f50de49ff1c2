"""
Local-directory document store ("vault").

All paths are vault-relative with '/' separators. Deleted files are moved
into a trash folder inside the vault and hidden from listings.
"""

from __future__ import annotations

import asyncio
import re
import threading
import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

MARKDOWN_SUFFIX = ".md"


class VaultError(RuntimeError):
    """Base class for document store failures."""


class VaultPathError(VaultError):
    """Path escapes the vault root or is otherwise unusable."""


class VaultFileNotFoundError(VaultError):
    pass


class VaultFileExistsError(VaultError):
    pass


@dataclass
class VaultFileMeta:
    path: str
    name: str
    mtime: float
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TrashEntry:
    trash_path: str
    trash_filename: str
    original_name: str
    deleted_at: datetime
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trashPath": self.trash_path,
            "trashFilename": self.trash_filename,
            "originalName": self.original_name,
            "deletionDate": self.deleted_at.isoformat(),
            "size": self.size,
            "canRestore": True,
        }


# <ISO timestamp with ':' and '.' replaced by '-'>-<original name>
_TRASH_ISO_NAME = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3,6})Z-(.+)$")
# Older layout: <epoch milliseconds>-<original name>
_TRASH_EPOCH_NAME = re.compile(r"^(\d{13})-(.+)$")


def trash_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def parse_trash_name(trash_filename: str) -> Tuple[Optional[datetime], str]:
    """Deletion time and original name encoded in a trash filename."""
    match = _TRASH_ISO_NAME.match(trash_filename)
    if match:
        deleted_at = datetime.strptime(match.group(1), "%Y-%m-%dT%H-%M-%S-%f")
        return deleted_at.replace(tzinfo=timezone.utc), match.group(2)
    match = _TRASH_EPOCH_NAME.match(trash_filename)
    if match:
        return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc), match.group(2)
    return None, trash_filename


_JS_GROUP_REF = re.compile(r"\$(\d+|&|\$)")


def compile_js_regex(pattern: str, flags: str = "") -> Tuple["re.Pattern", bool]:
    """
    Compile a pattern using JavaScript-style flags.

    Returns the compiled pattern and whether the global ('g') flag was set.
    Unsupported flags ('u', 'y') are ignored.
    """
    re_flags = 0
    for flag in flags or "":
        if flag == "i":
            re_flags |= re.IGNORECASE
        elif flag == "m":
            re_flags |= re.MULTILINE
        elif flag == "s":
            re_flags |= re.DOTALL
    try:
        return re.compile(pattern, re_flags), "g" in (flags or "")
    except re.error as e:
        raise ValueError(f"Invalid regular expression /{pattern}/: {e}") from e


def js_replacement(replacement: str) -> str:
    """Translate '$1' / '$&' / '$$' replacement tokens into Python syntax."""
    escaped = replacement.replace("\\", "\\\\")

    def _sub(match: "re.Match") -> str:
        token = match.group(1)
        if token == "&":
            return r"\g<0>"
        if token == "$":
            return "$"
        return rf"\g<{token}>"

    return _JS_GROUP_REF.sub(_sub, escaped)


def regex_replace(content: str, pattern: str, replacement: str, flags: str = "g") -> Tuple[str, int]:
    regex, is_global = compile_js_regex(pattern, flags)
    return regex.subn(js_replacement(replacement), content, count=0 if is_global else 1)


def parent_folder(path: str) -> str:
    """Folder of a vault-relative path, '/' for root-level files."""
    parent = str(PurePosixPath(path).parent)
    return "/" if parent in ("", ".") else parent


class VaultStore:
    """
    File operations over a vault directory.

    Every method is blocking. Async callers go through ``run()``, which
    executes the work on the default executor under the store lock.
    """

    def __init__(self, root: str, trash_folder: str = "chat history/trash"):
        self.root = Path(root).expanduser().resolve()
        self.trash_folder = trash_folder.strip("/")
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    async def run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run blocking vault work off the event loop, one job at a time."""
        def _sync():
            with self._lock:
                return func(*args, **kwargs)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _sync)

    # -- paths -------------------------------------------------------------

    def normalize(self, path: str) -> str:
        """Vault-relative, '/'-separated, no leading/trailing slashes."""
        if path is None:
            raise VaultPathError("Path is required")
        cleaned = str(path).replace("\\", "/").strip().strip("/")
        parts = [p for p in cleaned.split("/") if p not in ("", ".")]
        return "/".join(parts)

    def resolve(self, path: str) -> Path:
        relative = self.normalize(path)
        target = (self.root / relative).resolve()
        if target != self.root and self.root not in target.parents:
            raise VaultPathError(f"Path escapes the vault: {path}")
        return target

    def relative(self, target: Path) -> str:
        return target.relative_to(self.root).as_posix()

    def _in_trash(self, relative: str) -> bool:
        return relative == self.trash_folder or relative.startswith(self.trash_folder + "/")

    def _require_file(self, path: str) -> Path:
        target = self.resolve(path)
        if not target.is_file():
            raise VaultFileNotFoundError(f"File not found in vault: {path}")
        return target

    # -- listing -----------------------------------------------------------

    def list_markdown_files(self) -> List[str]:
        files = []
        for target in self.root.rglob(f"*{MARKDOWN_SUFFIX}"):
            if not target.is_file():
                continue
            relative = self.relative(target)
            if not self._in_trash(relative):
                files.append(relative)
        return sorted(files)

    def list_files(
        self,
        limit: int = 20,
        offset: int = 0,
        sort_by: str = "mtime",
        sort_order: str = "desc",
        filter: Optional[str] = None,
    ) -> Tuple[List[VaultFileMeta], int]:
        """Paginated markdown listing; returns (page, total)."""
        if sort_by not in ("mtime", "name", "size"):
            raise ValueError(f"Invalid sortBy: {sort_by}")
        metas = []
        for relative in self.list_markdown_files():
            stat = (self.root / relative).stat()
            metas.append(VaultFileMeta(
                path=relative,
                name=PurePosixPath(relative).name,
                mtime=stat.st_mtime,
                size=stat.st_size,
            ))

        if filter:
            needle = filter.lower()
            metas = [m for m in metas if needle in m.path.lower() or needle in m.name.lower()]

        def _key(meta: VaultFileMeta):
            value = getattr(meta, sort_by)
            return value.lower() if isinstance(value, str) else value

        metas.sort(key=_key, reverse=(sort_order == "desc"))
        total = len(metas)
        offset = max(0, offset)
        return metas[offset:offset + max(0, limit)], total

    def folder_tree(self, folder: Optional[str] = None) -> List[str]:
        """
        All folders in the vault, or every path below ``folder`` when given.
        """
        if folder:
            base = self.resolve(folder)
            if not base.is_dir():
                raise VaultFileNotFoundError(f"Folder not found: {folder}")
            return sorted(self.relative(p) for p in base.rglob("*"))

        folders = []
        for target in self.root.rglob("*"):
            if not target.is_dir():
                continue
            relative = self.relative(target)
            if not self._in_trash(relative):
                folders.append(relative)
        return sorted(folders)

    # -- content -----------------------------------------------------------

    def read(self, filename: str) -> str:
        return self._require_file(filename).read_text(encoding="utf-8")

    def create(self, filename: str, content: str) -> str:
        target = self.resolve(filename)
        if target.exists():
            raise VaultFileExistsError(f"File already exists: {filename}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return f"Created {self.normalize(filename)} in vault"

    def update(self, filename: str, content: str) -> str:
        target = self._require_file(filename)
        target.write_text(content, encoding="utf-8")
        return f"Updated {self.normalize(filename)} in vault"

    def edit(self, filename: str, operation: str, text: Optional[str] = None, line_number: Optional[int] = None) -> str:
        """Line-based edit: append, replace_line or remove_line (1-based lines)."""
        lines = self.read(filename).split("\n")

        if operation == "append":
            lines.append(text or "")
        elif operation in ("replace_line", "remove_line"):
            if line_number is None or line_number < 1 or line_number > len(lines):
                raise ValueError(f"Invalid line number: {line_number}")
            if operation == "replace_line":
                lines[line_number - 1] = text or ""
            else:
                del lines[line_number - 1]
        else:
            raise ValueError(f"Unknown operation: {operation}")

        self.update(filename, "\n".join(lines))
        return f"Successfully performed {operation} on {self.normalize(filename)}"

    # -- organisation ------------------------------------------------------

    def rename(self, old_filename: str, new_filename: str) -> str:
        source = self.resolve(old_filename)
        if not source.exists():
            raise VaultFileNotFoundError(f"File not found: {old_filename}")
        target = self.resolve(new_filename)
        if target.exists():
            raise VaultFileExistsError(f"Target file already exists: {new_filename}")
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)
        return f"Renamed {old_filename} to {new_filename} in vault"

    def move(self, source_path: str, target_path: str) -> str:
        source = self.resolve(source_path)
        if not source.exists():
            raise VaultFileNotFoundError(f"Source file not found: {source_path}")
        target = self.resolve(target_path)
        if target.exists():
            raise VaultFileExistsError(f"Target file already exists: {target_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)
        return f"Moved {source_path} to {target_path} in vault"

    def delete(self, filename: str) -> str:
        """Move a file into the trash folder under a timestamped name."""
        source = self.resolve(filename)
        if not source.exists():
            raise VaultFileNotFoundError(f"File not found: {filename}")
        trash = self.resolve(self.trash_folder)
        trash.mkdir(parents=True, exist_ok=True)

        target = trash / f"{trash_timestamp()}-{source.name}"
        source.rename(target)
        logger.info("Moved file to trash", filename=filename, trash_path=self.relative(target))
        return f"Moved {filename} to trash"

    def list_trash(self, limit: int = 20) -> Tuple[List[TrashEntry], int]:
        """Trashed files, most recently deleted first; returns (page, total)."""
        trash = self.resolve(self.trash_folder)
        if not trash.is_dir():
            return [], 0

        entries = []
        for target in trash.iterdir():
            if not target.is_file():
                continue
            deleted_at, original_name = parse_trash_name(target.name)
            if deleted_at is None:
                continue
            entries.append(TrashEntry(
                trash_path=self.relative(target),
                trash_filename=target.name,
                original_name=original_name,
                deleted_at=deleted_at,
                size=target.stat().st_size,
            ))

        entries.sort(key=lambda entry: entry.deleted_at, reverse=True)
        return entries[:max(1, min(limit, 100))], len(entries)

    def restore_from_trash(self, trash_filename: str, target_path: Optional[str] = None) -> Tuple[str, str]:
        """
        Move a trashed file back into the vault.

        Without ``target_path`` the file goes to the vault root under its
        original name. Returns (trash_path, restored_path).
        """
        if "/" in self.normalize(trash_filename):
            trash_path = self.normalize(trash_filename)
        else:
            trash_path = f"{self.trash_folder}/{self.normalize(trash_filename)}"
        source = self.resolve(trash_path)
        if self.resolve(self.trash_folder) not in source.parents:
            raise VaultPathError(f"Not a file in the trash: {trash_filename}")
        if not source.is_file():
            raise VaultFileNotFoundError(f"File not found in trash: {trash_filename}")

        restored_path = self.normalize(target_path or parse_trash_name(source.name)[1])
        target = self.resolve(restored_path)
        if target.exists():
            raise VaultFileExistsError(
                f"Target file already exists: {restored_path}. "
                "Specify a different target_path or delete the existing file first."
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)
        logger.info("Restored file from trash", trash_path=trash_path, restored_path=restored_path)
        return trash_path, restored_path

    def create_directory(self, path: str) -> str:
        target = self.resolve(path)
        relative = self.normalize(path)
        if target.is_dir():
            return f"Directory {relative} already exists"
        if target.exists():
            raise VaultFileExistsError(f"A file already exists at {relative}")
        target.mkdir(parents=True)
        return f"Created directory {relative} in vault"

    # -- search ------------------------------------------------------------

    def search(self, query: str, is_regex: bool = False, flags: str = "i") -> List[Dict[str, Any]]:
        """Line-level search over every markdown file; one entry per matching file."""
        started = time.perf_counter()
        regex = compile_js_regex(query, flags)[0] if is_regex else None
        keyword = query.lower()
        results = []

        for filename in self.list_markdown_files():
            lines = self.read(filename).split("\n")
            matches = []
            for index, line in enumerate(lines):
                matched = bool(regex.search(line)) if regex else keyword in line.lower()
                if matched:
                    matches.append({
                        "line": index + 1,
                        "content": line,
                        "contextBefore": lines[max(0, index - 2):index],
                        "contextAfter": lines[index + 1:index + 3],
                    })
            if matches:
                results.append({"filename": filename, "matches": matches})

        logger.debug(
            "Vault search complete",
            is_regex=is_regex,
            files_matched=len(results),
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return results

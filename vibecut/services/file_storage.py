"""File storage collaborator.

Two interchangeable backends behind one protocol:

- ``DirectoryFileStorage`` ("durable") keeps one JSON record per file under
  ``settings.local_storage_path``
- ``MemoryFileStorage`` ("ephemeral") keeps files in a dict, used for shared
  projects opened read-only and for tests

``create_file_storage`` picks a backend by mode and ``migrate_files`` copies
every entry from one backend to another; ``replace_files`` swaps the whole
set and puts the old files back if the new ones cannot be stored.
"""

import hashlib
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Literal, Protocol, TypedDict

from vibecut.config import get_settings
from vibecut.exceptions import StorageError
from vibecut.schemas.project import LocalFile

logger = logging.getLogger(__name__)

StorageMode = Literal["durable", "ephemeral"]


class StorageStats(TypedDict):
    file_count: int
    total_size: int
    file_types: dict[str, int]


class FileStorage(Protocol):
    mode: StorageMode

    async def init(self) -> None: ...

    async def store_file(self, file: LocalFile) -> None: ...

    async def store_files(self, files: list[LocalFile]) -> None: ...

    async def get_file(self, file_id: str) -> LocalFile | None: ...

    async def get_all_files(self) -> list[LocalFile]: ...

    async def delete_file(self, file_id: str) -> None: ...

    async def clear_all_files(self) -> None: ...

    async def get_total_storage_size(self) -> int: ...

    async def get_storage_stats(self) -> StorageStats: ...


def _stats(files: list[LocalFile]) -> StorageStats:
    return StorageStats(
        file_count=len(files),
        total_size=sum(f.size for f in files),
        file_types=dict(Counter(f.type for f in files)),
    )


class MemoryFileStorage:
    """Ephemeral storage; contents vanish with the process."""

    mode: StorageMode = "ephemeral"

    def __init__(self) -> None:
        self._files: dict[str, LocalFile] = {}

    async def init(self) -> None:
        pass

    async def store_file(self, file: LocalFile) -> None:
        self._files[file.id] = file.model_copy(deep=True)

    async def store_files(self, files: list[LocalFile]) -> None:
        for file in files:
            await self.store_file(file)

    async def get_file(self, file_id: str) -> LocalFile | None:
        file = self._files.get(file_id)
        return file.model_copy(deep=True) if file else None

    async def get_all_files(self) -> list[LocalFile]:
        return [f.model_copy(deep=True) for f in self._files.values()]

    async def delete_file(self, file_id: str) -> None:
        self._files.pop(file_id, None)

    async def clear_all_files(self) -> None:
        self._files.clear()

    async def get_total_storage_size(self) -> int:
        return sum(f.size for f in self._files.values())

    async def get_storage_stats(self) -> StorageStats:
        return _stats(list(self._files.values()))


class DirectoryFileStorage:
    """Durable storage: one ``<hash>.json`` record per file in a directory."""

    mode: StorageMode = "durable"

    def __init__(self, base_path: str | Path | None = None) -> None:
        self.base_path = Path(base_path or get_settings().local_storage_path)

    def _record_path(self, file_id: str) -> Path:
        digest = hashlib.sha256(file_id.encode("utf-8")).hexdigest()[:32]
        return self.base_path / f"{digest}.json"

    async def init(self) -> None:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self.base_path}: {e}") from e

    async def store_file(self, file: LocalFile) -> None:
        await self.init()
        try:
            self._record_path(file.id).write_text(
                file.model_dump_json(by_alias=True, exclude_none=True), encoding="utf-8"
            )
        except OSError as e:
            raise StorageError(f"Failed to store file {file.name}: {e}") from e

    async def store_files(self, files: list[LocalFile]) -> None:
        for file in files:
            await self.store_file(file)

    async def get_file(self, file_id: str) -> LocalFile | None:
        path = self._record_path(file_id)
        if not path.exists():
            return None
        return self._read(path)

    async def get_all_files(self) -> list[LocalFile]:
        if not self.base_path.exists():
            return []
        files = [self._read(path) for path in sorted(self.base_path.glob("*.json"))]
        return sorted(files, key=lambda f: f.created_at)

    async def delete_file(self, file_id: str) -> None:
        path = self._record_path(file_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete file {file_id}: {e}") from e

    async def clear_all_files(self) -> None:
        if not self.base_path.exists():
            return
        removed = 0
        for path in self.base_path.glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Failed to clear storage: {e}") from e
            removed += 1
        logger.info(f"Cleared {removed} stored file(s) from {self.base_path}")

    async def get_total_storage_size(self) -> int:
        return sum(f.size for f in await self.get_all_files())

    async def get_storage_stats(self) -> StorageStats:
        return _stats(await self.get_all_files())

    def _read(self, path: Path) -> LocalFile:
        try:
            return LocalFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            raise StorageError(f"Corrupt storage record {path.name}: {e}") from e


def create_file_storage(mode: StorageMode | None = None, base_path: str | Path | None = None) -> FileStorage:
    """Return a storage backend for ``mode`` (defaults to ``settings.storage_mode``)."""
    mode = mode or get_settings().storage_mode
    if mode == "ephemeral":
        return MemoryFileStorage()
    return DirectoryFileStorage(base_path)


async def migrate_files(source: FileStorage, target: FileStorage) -> int:
    """Copy every file from ``source`` into ``target``; returns the count copied."""
    files = await source.get_all_files()
    if files:
        await target.store_files(files)
    logger.info(f"Migrated {len(files)} file(s) from {source.mode} to {target.mode} storage")
    return len(files)


async def replace_files(storage: FileStorage, files: list[LocalFile]) -> None:
    """Swap the stored files for ``files``.

    If storing the new set fails, the previous files are put back before the
    ``StorageError`` propagates, so the loaded project keeps its media.
    """
    previous = await storage.get_all_files()
    await storage.clear_all_files()
    try:
        if files:
            await storage.store_files(files)
    except StorageError:
        logger.warning(f"Storing {len(files)} file(s) failed; restoring {len(previous)} previous file(s)")
        await storage.clear_all_files()
        for file in previous:
            await storage.store_file(file)
        raise


def format_file_size(size: int) -> str:
    """Human-readable size: ``0 Bytes``, ``1.5 KB``, ``2 MB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    value = round(value, 2)
    return f"{value:g} {units[index]}"

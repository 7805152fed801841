"""Key-value storage for chat sessions and usage counters."""
import asyncio
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..utils.exceptions import StoreError
from ..utils.logger import get_logger

logger = get_logger()


class KeyValueStore(ABC):
    """Durable string storage addressed by key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Stored value, or None when the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key; absent keys are ignored."""


class InMemoryStore(KeyValueStore):
    """Process-local store."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One file per key inside a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe_key}.json"

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Discarding undecodable {path.name}: {e}")
            try:
                path.unlink(missing_ok=True)
            except OSError as unlink_error:
                logger.error(f"Failed to delete {path.name}: {unlink_error}")
            return None
        except OSError as e:
            logger.warning(f"Failed to read {path.name}: {e}")
            return None

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            logger.error(f"Failed to write {path.name}: {e}")
            raise StoreError(f"Failed to save {key}: {e}")

    def _remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise StoreError(f"Failed to delete {key}: {e}")

"""String-valued key-value persistence backends for the report cache."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(OSError):
    """A value is larger than the backend is willing to hold."""


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


def _check_quota(key: str, value: str, max_bytes: int | None) -> None:
    if max_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > max_bytes:
        raise StorageQuotaExceeded(f"value for {key!r} is {size} bytes; quota is {max_bytes}")


class MemoryStorage:
    """Dict-backed storage. Lives as long as the object does."""

    def __init__(self, max_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._max_bytes)
        self._data[key] = value


_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]+")


class FileStorage:
    """One file per key under ``directory``; writes are atomic (temp file + replace)."""

    def __init__(self, directory: str | os.PathLike[str], max_bytes: int | None = None) -> None:
        self.directory = Path(os.path.expanduser(str(directory)))
        self._max_bytes = max_bytes

    def path_for(self, key: str) -> Path:
        name = _SAFE_NAME.sub("_", key).strip("._") or "default"
        return self.directory / f"{name}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("FileStorage: could not read %s (%s)", path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._max_bytes)
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

"""Cache backend storing one JSON file per key on disk.

Entries expire based on the file's modification time.  An expired file is
removed the next time it is read.  Any I/O or decoding problem is logged and
reported as a miss: caching is best-effort and never fails a request.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import pathlib
import time
import urllib.parse
from typing import Any

logger = logging.getLogger(__name__)

# Most filesystems cap a path component at 255 bytes.
_MAX_NAME_LENGTH = 200


class FileCache:
    """Stores cached values as ``{"value": ...}`` JSON documents in *base_dir*."""

    def __init__(self, base_dir: str | pathlib.Path, expiration_time: float) -> None:
        self._base_dir = pathlib.Path(base_dir)
        self._expiration_time = expiration_time
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> pathlib.Path:
        return self._base_dir

    @property
    def expiration_time(self) -> float:
        return self._expiration_time

    def get(self, key: str) -> Any | None:
        path = self._filename(key)
        if not self._is_fresh(path):
            return None
        try:
            with open(path) as fh:
                document = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read cache file %s: %s", path, exc)
            return None
        if not isinstance(document, dict):
            return None
        return document.get("value")

    def age(self, key: str) -> float:
        path = self._filename(key)
        if not self._is_fresh(path):
            return -1
        try:
            return time.time() - path.stat().st_mtime
        except OSError:
            return -1

    def set(self, key: str, value: Any) -> None:
        path = self._filename(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w") as fh:
                json.dump({"value": value}, fh)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not write cache file %s: %s", path, exc)
            tmp_path.unlink(missing_ok=True)

    # -- private helpers -----------------------------------------------------

    def _filename(self, key: str) -> pathlib.Path:
        # Keys contain '/', ':' and '?'; encode them into a single path component.
        name = urllib.parse.quote(key, safe="")
        if len(name) > _MAX_NAME_LENGTH:
            name = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._base_dir / name

    def _is_fresh(self, path: pathlib.Path) -> bool:
        """Return whether *path* exists and has not expired, removing it if it has."""
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not stat cache file %s: %s", path, exc)
            return False

        if mtime + self._expiration_time < time.time():
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not remove expired cache file %s: %s", path, exc)
            return False
        return True

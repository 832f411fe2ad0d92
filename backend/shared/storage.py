"""Local document storage with atomic snapshot writes.

Every document is written to a temp file in the target directory, fsynced
and renamed over the previous version. A crash or power loss mid-write
leaves either the old snapshot or the new one on disk, never a truncated
mix of both. Files are owner-only (0o600) inside an owner-only directory
(0o700).
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

_STORE_DIR_MODE = 0o700

_STORE_FILE_MODE = 0o600


def atomic_write_text(target: Path, content: str) -> None:
    """Atomically replace target with content via temp-file-then-rename.

    The temp file lives next to the target so the final rename never
    crosses a filesystem boundary.
    """
    fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), suffix=".tmp", prefix=f".{target.stem}_")
    fd_owned = True
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fd_owned = False  # os.fdopen took ownership; it will close fd
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, _STORE_FILE_MODE)  # noqa: PTH101
        Path(tmp_path).replace(target)
    except BaseException:
        if fd_owned:
            with contextlib.suppress(OSError):
                os.close(fd)
        with contextlib.suppress(OSError):
            Path(tmp_path).unlink()
        raise


class InvalidKeyError(ValueError):
    """Document key cannot name a file inside the store."""


class LocalDocumentStore:
    """Keyed JSON documents stored as `<root>/<key>.json`."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key:
            raise InvalidKeyError("Document key must not be empty")
        if "\x00" in key:
            raise InvalidKeyError("Document key must not contain NUL")
        target = (self._root / f"{key}.json").resolve()
        if not target.is_relative_to(self._root) or target.parent != self._root:
            raise InvalidKeyError(f"Path traversal rejected: '{key}' resolves outside store directory")
        return target

    def write(self, key: str, document: Any) -> Path:  # noqa: ANN401
        """Serialize document as JSON and write it atomically under key."""
        target = self._path_for(key)
        content = json.dumps(document, indent=2, ensure_ascii=False)

        self._root.mkdir(mode=_STORE_DIR_MODE, parents=True, exist_ok=True)
        self._root.chmod(_STORE_DIR_MODE)

        atomic_write_text(target, content)
        logger.debug("document written", key=key, path=str(target))
        return target

    def read(self, key: str) -> Any | None:  # noqa: ANN401
        """Return the decoded document, or None if it does not exist.

        Raises ValueError for a document that exists but is not valid JSON.
        """
        target = self._path_for(key)
        if not target.is_file():
            return None
        try:
            return json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Corrupt document '{key}' at {target}") from exc

    def delete(self, key: str) -> bool:
        """Remove the document. Returns False if it was not present."""
        target = self._path_for(key)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.debug("document deleted", key=key, path=str(target))
        return True

    def keys(self) -> list[str]:
        """Keys of all stored documents, sorted. Temp files are skipped."""
        if not self._root.is_dir():
            return []
        return sorted(
            entry.stem
            for entry in self._root.iterdir()
            if entry.is_file() and not entry.is_symlink() and entry.suffix == ".json" and not entry.name.startswith(".")
        )

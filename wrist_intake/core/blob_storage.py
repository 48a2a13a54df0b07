from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from wrist_intake.domain.exceptions import StorageIOError


class BlobStorage:
    """Named text blobs that survive restarts (local disk now; object storage later)."""

    def read(self, *, key: str) -> str | None:
        raise NotImplementedError

    def write(self, *, key: str, text: str) -> None:
        raise NotImplementedError


def _safe_join(base_dir: Path, key: str) -> Path:
    """Resolve `key` under `base_dir`, refusing anything that escapes it."""

    base_dir = base_dir.resolve()
    candidate = (base_dir / key).resolve()
    if base_dir in candidate.parents:
        return candidate
    raise StorageIOError("Invalid storage key")


class LocalBlobStorage(BlobStorage):
    """Stores each blob as one UTF-8 file under a configurable base directory."""

    def __init__(self, *, base_dir: Path):
        self._base_dir = base_dir

    def read(self, *, key: str) -> str | None:
        path = _safe_join(self._base_dir, key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageIOError("Failed to read blob") from exc

    def write(self, *, key: str, text: str) -> None:
        path = _safe_join(self._base_dir, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Replace atomically so a crash mid-write never leaves a truncated image.
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageIOError("Failed to write blob") from exc


def encode_image(image: bytes) -> str:
    """Encode a database image as a JSON array of byte values."""

    return json.dumps(list(image), separators=(",", ":"))


def decode_image(text: str) -> bytes:
    """Inverse of `encode_image`; raises ValueError on anything else."""

    values = json.loads(text)
    if not isinstance(values, list):
        raise ValueError("database image must be a JSON array")
    try:
        return bytes(values)
    except TypeError as exc:
        raise ValueError("database image must contain integers 0..255") from exc

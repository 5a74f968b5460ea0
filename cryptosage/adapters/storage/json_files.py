"""JSON file helpers shared by the file-backed storage adapters."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Write JSON to a file by whole-file replacement.

    The payload goes to a temp file in the same directory, is flushed to
    disk, then renamed over the target, so readers see the old or the new
    content and never a partial write.

    Raises:
        OSError: If the directory is not writable.
        TypeError: If data is not JSON serializable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json(path: Path) -> Any:
    """
    Read a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the content is not valid JSON.
    """
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

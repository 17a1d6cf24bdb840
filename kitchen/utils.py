from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


def list_files(directory: Path, suffix: str) -> List[Path]:
    """Files in ``directory`` whose name ends with ``.suffix``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(f".{suffix}"))


def move_to_directory(path: Path, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / path.name
    shutil.move(str(path), str(target))
    logger.debug("Moved %s -> %s", path.name, directory.name)
    return target


def remove_directory(directory: Path, retry_seconds: float = 5.0) -> None:
    if not directory.exists():
        return
    try:
        shutil.rmtree(directory)
    except OSError:
        # NFS can report a non-empty directory right after the last unlink
        time.sleep(retry_seconds)
        shutil.rmtree(directory)

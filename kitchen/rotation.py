from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from .filename import FileNameError, SacFileName
from .models import Bucket
from .sacio import read_sac, rotate, write_sac
from .utils import list_files, move_to_directory

logger = logging.getLogger(__name__)


def pair_components(
    names: Iterable[SacFileName],
) -> Tuple[List[Tuple[SacFileName, SacFileName]], List[SacFileName], List[SacFileName]]:
    """Match X files with the Y file of the same instrument.

    Returns the pairs, the X files without a Y and the Y files without an X.
    """
    xs = {}
    ys = {}
    for name in names:
        key = (name.network, name.station, name.location, name.instrument, name.quality)
        if name.component == "X":
            xs[key] = name
        elif name.component == "Y":
            ys[key] = name
    pairs = [(xs[key], ys.pop(key)) for key in sorted(xs) if key in ys]
    paired = {x.name for x, _ in pairs}
    orphan_x = [xs[key] for key in sorted(xs) if xs[key].name not in paired]
    orphan_y = [ys[key] for key in sorted(ys)]
    return pairs, orphan_x, orphan_y


class ComponentRotator:
    """Rotates X/Y files of an event folder into R/T files."""

    def __init__(self, event_path: Path):
        self.event_path = event_path
        self.done_path = event_path / Bucket.DONE_ROTATE.value
        self.failed_path = event_path / Bucket.UN_ROTATED.value

    def _names(self) -> List[SacFileName]:
        names = []
        for suffix in ("X", "Y"):
            for path in list_files(self.event_path, suffix):
                try:
                    names.append(SacFileName.parse(path.name))
                except FileNameError:
                    logger.warning("Unparsable horizontal component %s; skipping", path.name)
        return names

    def rotate_pair(self, x_name: SacFileName, y_name: SacFileName) -> bool:
        x_trace = read_sac(self.event_path / x_name.name)
        y_trace = read_sac(self.event_path / y_name.name)
        rotated = rotate(x_trace, y_trace)
        if rotated is None:
            return False
        r_trace, t_trace = rotated
        write_sac(r_trace, self.event_path / x_name.name_with_component("R"))
        write_sac(t_trace, self.event_path / x_name.name_with_component("T"))
        return True

    def rotate(self) -> Tuple[int, int]:
        rotated = failed = 0
        pairs, orphan_x, orphan_y = pair_components(self._names())
        for x_name, y_name in pairs:
            try:
                ok = self.rotate_pair(x_name, y_name)
            except Exception:
                logger.exception("Failed to rotate: %s - %s", self.event_path.name, x_name)
                ok = False
            target = self.done_path if ok else self.failed_path
            if ok:
                rotated += 1
            else:
                logger.warning("Failed to rotate: %s - %s", self.event_path.name, x_name)
                failed += 1
            self._move((x_name, y_name), target)

        for name in orphan_x:
            logger.warning("No pair for %s - %s", self.event_path.name, name)
            self._move((name,), self.failed_path)
            failed += 1
        for name in orphan_y:
            logger.warning("No pair for %s - %s", self.event_path.name, name)
            self._move((name,), self.failed_path)
            failed += 1
        return rotated, failed

    def _move(self, names: Iterable[SacFileName], directory: Path) -> None:
        for name in names:
            path = self.event_path / name.name
            if path.exists():
                move_to_directory(path, directory)

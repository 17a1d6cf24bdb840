from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from obspy import Trace, UTCDateTime

from .filename import FileNameError, SacFileName
from .models import Bucket
from .sacio import read_sac, sac_header, write_sac
from .utils import list_files, move_to_directory

logger = logging.getLogger(__name__)

# [ms] end time mismatch that is reported, and the one that fails the merge
END_TIME_WARN_MS = 5
END_TIME_FAIL_MS = 100


class MergeError(Exception):
    """A group of segments cannot be joined into one waveform."""


def _ms(time: UTCDateTime) -> int:
    return (time.ns + 500_000) // 1_000_000


def _recorded_span_ms(trace: Trace, default: int) -> int:
    b, e = sac_header(trace, "b"), sac_header(trace, "e")
    if b is None or e is None:
        return default
    return int(round((e - b) * 1000))


def group_segments(names: Iterable[SacFileName]) -> Dict[Tuple[str, ...], List[SacFileName]]:
    groups: Dict[Tuple[str, ...], List[SacFileName]] = defaultdict(list)
    for name in names:
        groups[name.key].append(name)
    return {key: sorted(members) for key, members in groups.items()}


def merge_segments(segments: Sequence[Tuple[SacFileName, Trace]], max_gap_number: int = 500) -> Trace:
    """Join time-sorted segments of one channel into a single trace.

    Segments fully covered by what is already joined are skipped. A segment
    starting more than half a sample after the running end is appended as is;
    one overlapping the running end loses its leading overlapping samples.
    Any gap wider than ``max_gap_number`` samples fails the whole group.
    """
    if not segments:
        raise MergeError("No segments to merge")
    ordered = sorted(segments, key=lambda item: item[0].sort_key)

    first_name, first = ordered[0]
    delta = first.stats.delta
    delta_ms = int(round(1000 * delta))
    if delta_ms <= 0:
        raise MergeError(f"Sampling interval too small to merge: {first_name}")
    max_gap = delta_ms * max_gap_number
    half_delta = delta_ms // 2

    chunks = [np.asarray(first.data, dtype=np.float64)]
    current_npts = first.stats.npts
    begin_ms = _ms(first.stats.starttime)
    current_end = begin_ms + delta_ms * (current_npts - 1)
    # the running end follows the first segment's recorded e header
    end_ms = begin_ms + _recorded_span_ms(first, current_end - begin_ms)

    for name, trace in ordered[1:]:
        if abs(trace.stats.delta - delta) > 1e-9:
            raise MergeError(f"Sampling interval of {name} differs from {first_name}")
        npts = trace.stats.npts
        start = _ms(trace.stats.starttime)
        end = start + delta_ms * (npts - 1)

        if end <= current_end:
            logger.debug("Skipping %s, covered by preceding segments", name)
            continue

        # positive: no overlap, negative: overlapping samples
        time_gap = start - current_end
        if time_gap > max_gap:
            raise MergeError(f"Gap of {time_gap} ms before {name} exceeds {max_gap} ms")

        data = np.asarray(trace.data, dtype=np.float64)
        if time_gap > half_delta:
            chunks.append(data)
            end_ms += npts * delta_ms
            current_npts += npts
        else:
            skip = (delta_ms - time_gap) // delta_ms
            chunks.append(data[skip:])
            end_ms += (npts - skip) * delta_ms
            current_npts += npts - skip
        current_end = end

    merged = np.concatenate(chunks)
    if merged.size != current_npts:
        raise MergeError(f"npts mismatch {merged.size} != {current_npts} for {first_name}")

    time_diff = (merged.size - 1) * delta_ms + begin_ms - end_ms
    if abs(time_diff) > END_TIME_WARN_MS:
        logger.warning("End times differ by %d ms after merging %s", time_diff, first_name)
        if abs(time_diff) > END_TIME_FAIL_MS:
            raise MergeError(f"End times differ by {time_diff} ms for {first_name}")

    result = first.copy()
    result.data = merged
    return result


class SegmentedSacMerger:
    """Merges the ``.SET`` segments of an event folder into ``.MRG`` files."""

    def __init__(self, event_path: Path, max_gap_number: int = 500):
        self.event_path = event_path
        self.max_gap_number = max_gap_number
        self.done_merge_path = event_path / Bucket.DONE_MERGE.value
        self.un_merged_path = event_path / Bucket.UN_MERGED.value

    def _names(self) -> List[SacFileName]:
        names = []
        for path in list_files(self.event_path, "SET"):
            try:
                names.append(SacFileName.parse(path.name))
            except FileNameError:
                logger.warning("Unparsable segment name %s; skipping", path.name)
        return names

    def merge(self) -> Tuple[int, int]:
        merged = failed = 0
        groups = group_segments(self._names())
        for members in groups.values():
            root = members[0]
            if len(members) > 1:
                logger.info("Merging %d segments: %s - %s",
                            len(members), self.event_path.name, root.merged_name())
            try:
                segments = [(name, read_sac(self.event_path / name.name)) for name in members]
                trace = merge_segments(segments, self.max_gap_number)
                write_sac(trace, self.event_path / root.merged_name())
            except MergeError as exc:
                logger.warning("Failed to merge: %s - %s (%s)", self.event_path.name, root, exc)
                self._move(members, self.un_merged_path)
                failed += 1
                continue
            except Exception:
                logger.exception("Failed to merge: %s - %s", self.event_path.name, root)
                self._move(members, self.un_merged_path)
                failed += 1
                continue
            self._move(members, self.done_merge_path)
            merged += 1
        return merged, failed

    def _move(self, names: Iterable[SacFileName], directory: Path) -> None:
        for name in names:
            path = self.event_path / name.name
            if path.exists():
                move_to_directory(path, directory)

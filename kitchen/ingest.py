from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import numpy as np
import pymseed
from obspy import Trace, UTCDateTime
from pymseed import sourceid2nslc

from .sacio import write_sac

logger = logging.getLogger(__name__)

MSEED_SUFFIXES = (".mseed", ".miniseed")


def decode_mseed(body: bytes) -> pymseed.MS3TraceList:
    logger.debug("Decoding miniSEED buffer length=%d", len(body))
    traces = pymseed.MS3TraceList()
    traces.add_buffer(body, record_list=True, skip_not_data=True, validate_crc=True)
    return traces


def raw_sac_name(net: str, sta: str, loc: str, chan: str, quality: str, start: UTCDateTime) -> str:
    # mseed2sac style plus milliseconds, e.g. "IU.MAJO.00.BH2.M.2014.202.144400500.SAC"
    clock = f"{start.strftime('%H%M%S')}{start.microsecond // 1000:03d}"
    return f"{net}.{sta}.{loc}.{chan}.{quality}.{start.year}.{start.julday:03d}.{clock}.SAC"


def mseed_to_sac(path: Path, out_dir: Path, quality: str = "M") -> List[Path]:
    """Write every contiguous segment of a miniSEED file as a raw SAC file."""
    traces = decode_mseed(path.read_bytes())
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for traceid in traces:
        sid = traceid.sourceid
        net, sta, loc, chan = sourceid2nslc(sid)
        for seg in traceid:
            samples = seg.create_numpy_array_from_recordlist()
            if samples is None:
                logger.warning("No samples for %s segment; skipping", sid)
                continue
            start = UTCDateTime(seg.starttime_seconds)
            target = out_dir / raw_sac_name(net, sta, loc, chan, quality, start)
            if target in written:
                logger.warning("%s starts in the same millisecond as another segment; skipping", sid)
                continue
            if target.exists():
                logger.debug("%s already converted; reusing", target.name)
                written.append(target)
                continue
            trace = Trace(
                data=np.asarray(samples, dtype=np.float32),
                header={
                    "network": net,
                    "station": sta,
                    "location": loc,
                    "channel": chan,
                    "starttime": start,
                    "delta": 1.0 / seg.samprate,
                },
            )
            write_sac(trace, target)
            written.append(target)
    logger.info("Converted %s into %d SAC files", path.name, len(written))
    return written


def ingest_event_folder(event_dir: Path, out_dir: Path, quality: str = "M") -> List[Path]:
    converted: List[Path] = []
    for path in sorted(event_dir.iterdir()):
        if path.is_file() and path.suffix.lower() in MSEED_SUFFIXES:
            try:
                converted.extend(mseed_to_sac(path, out_dir, quality))
            except Exception:
                logger.exception("Failed to decode miniSEED file %s", path)
    return converted

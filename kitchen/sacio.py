from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from obspy import Trace, UTCDateTime, read
from obspy.core.util import AttribDict
from obspy.geodetics import gps2dist_azimuth
from obspy.signal.rotate import rotate_ne_rt

logger = logging.getLogger(__name__)

# [deg] allowed departure from 90 degrees between two horizontals
ORTHOGONALITY_TOLERANCE = 0.1


def read_sac(path: Path, headonly: bool = False) -> Trace:
    trace = read(str(path), format="SAC", headonly=headonly)[0]
    if "sac" not in trace.stats:
        trace.stats.sac = AttribDict()
    return trace


def write_sac(trace: Trace, path: Path) -> None:
    trace.write(str(path), format="SAC")


def sac_header(trace: Trace, key: str) -> Optional[float]:
    sac = trace.stats.get("sac") or {}
    value = sac.get(key)
    if value is None or value == -12345:
        return None
    return value


def reference_time(trace: Trace) -> UTCDateTime:
    sac = trace.stats.get("sac") or {}
    try:
        return UTCDateTime(
            year=int(sac["nzyear"]),
            julday=int(sac["nzjday"]),
            hour=int(sac["nzhour"]),
            minute=int(sac["nzmin"]),
            second=int(sac["nzsec"]),
            microsecond=int(sac["nzmsec"]) * 1000,
        )
    except (KeyError, ValueError):
        return trace.stats.starttime


def set_reference_time(trace: Trace, time: UTCDateTime) -> None:
    """Move the SAC reference time; begin/end become relative to ``time`` on write."""
    sac = trace.stats.setdefault("sac", AttribDict())
    sac.nzyear = time.year
    sac.nzjday = time.julday
    sac.nzhour = time.hour
    sac.nzmin = time.minute
    sac.nzsec = time.second
    sac.nzmsec = time.microsecond // 1000


def back_azimuth(trace: Trace) -> Optional[float]:
    evla, evlo = sac_header(trace, "evla"), sac_header(trace, "evlo")
    stla, stlo = sac_header(trace, "stla"), sac_header(trace, "stlo")
    if None in (evla, evlo, stla, stlo):
        return None
    _dist, _az, baz = gps2dist_azimuth(evla, evlo, stla, stlo)
    return baz


def rotate(x_trace: Trace, y_trace: Trace) -> Optional[Tuple[Trace, Trace]]:
    """Rotate two orthogonal horizontals into radial and transverse components.

    The traces are first projected onto north/east using their ``cmpaz``
    headers, then rotated along the great circle path. Returns None when the
    pair cannot be rotated.
    """
    x_az, y_az = sac_header(x_trace, "cmpaz"), sac_header(y_trace, "cmpaz")
    if x_az is None or y_az is None:
        logger.warning("Missing cmpaz for %s", x_trace.id)
        return None
    separation = abs((x_az - y_az) % 180.0 - 90.0)
    if separation > ORTHOGONALITY_TOLERANCE:
        logger.warning("Horizontals of %s are not orthogonal: %.2f / %.2f", x_trace.id, x_az, y_az)
        return None
    if x_trace.stats.npts != y_trace.stats.npts or x_trace.stats.delta != y_trace.stats.delta:
        logger.warning("Horizontals of %s differ in npts or delta", x_trace.id)
        return None
    baz = back_azimuth(x_trace)
    if baz is None:
        logger.warning("Missing event or station coordinates for %s", x_trace.id)
        return None

    x = np.asarray(x_trace.data, dtype=np.float64)
    y = np.asarray(y_trace.data, dtype=np.float64)
    x_rad, y_rad = np.radians(x_az), np.radians(y_az)
    north = x * np.cos(x_rad) + y * np.cos(y_rad)
    east = x * np.sin(x_rad) + y * np.sin(y_rad)
    radial, transverse = rotate_ne_rt(north, east, baz % 360.0)

    r_trace = x_trace.copy()
    r_trace.data = radial
    r_trace.stats.sac.cmpaz = (baz + 180.0) % 360.0
    t_trace = x_trace.copy()
    t_trace.data = transverse
    t_trace.stats.sac.cmpaz = (baz + 270.0) % 360.0
    instrument = x_trace.stats.channel[:2]
    for trace, component in ((r_trace, "R"), (t_trace, "T")):
        trace.stats.channel = instrument + component
        trace.stats.sac.cmpinc = 90.0
    return r_trace, t_trace

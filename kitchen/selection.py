from __future__ import annotations

import logging
from itertools import product
from typing import Optional

import numpy as np
from obspy import Trace

from .models import Bucket, StationMetadata
from .settings import Settings

logger = logging.getLogger(__name__)

SUPPORTED_CHANNELS = frozenset(
    band + orientation
    for band, orientation in product(("BH", "BL", "HH", "HL"), ("Z", "N", "E", "1", "2"))
)


def check_channel(channel: str) -> bool:
    return channel in SUPPORTED_CHANNELS


def check_location(location: str) -> bool:
    """Blank or "00" to "99"."""
    return location == "" or (len(location) == 2 and "00" <= location <= "99")


def is_vertical_channel(channel: str) -> bool:
    return channel[2:] == "Z"


def check_station_coordinate(latitude: float, longitude: float, settings: Settings) -> bool:
    if latitude < settings.min_latitude or settings.max_latitude < latitude:
        return False
    min_lon, max_lon = settings.min_longitude, settings.max_longitude
    # longitude range inside [-180, 180]
    if max_lon <= 180:
        return min_lon <= longitude <= max_lon
    # range crossing 180 in [0, 360]
    if min_lon <= 180:
        return not (max_lon - 360 < longitude < min_lon)
    # range entirely above 180
    return min_lon - 360 <= longitude <= max_lon - 360


def select_station(meta: StationMetadata, channel: str, settings: Settings) -> Optional[Bucket]:
    """Return the bucket a waveform belongs in, or None if the station is usable."""
    if not check_station_coordinate(meta.latitude, meta.longitude, settings):
        return Bucket.UNWANTED_COORDINATE
    # stations at (0,0) most likely have no coordinates written in
    if meta.latitude == 0.0 and meta.longitude == 0.0:
        logger.warning("Rejecting station at coordinate (0,0): %s.%s", meta.network, meta.station)
        return Bucket.UN_SET
    if settings.scale_units and meta.scale_units.upper() not in settings.scale_units:
        logger.warning("Unsupported scale units %r: %s.%s.%s.%s", meta.scale_units,
                       meta.network, meta.station, meta.location, channel)
        return Bucket.UN_SET
    expected_dip = -90.0 if is_vertical_channel(channel) else 0.0
    if meta.dip != expected_dip:
        logger.warning("Invalid dip %.1f: %s.%s.%s.%s", meta.dip,
                       meta.network, meta.station, meta.location, channel)
        return Bucket.UN_SET
    return None


def fix_header_and_delta(trace: Trace, meta: StationMetadata, delta: float) -> Trace:
    """Write station headers and resample to ``delta``."""
    trace = trace.copy()
    trace.data = np.asarray(trace.data, dtype=np.float64)
    trace.stats.network = meta.network or trace.stats.network
    trace.stats.station = meta.station or trace.stats.station
    sac = trace.stats.sac
    sac.lovrok = True
    sac.cmpaz = meta.azimuth
    sac.cmpinc = meta.inclination
    sac.stla = meta.latitude
    sac.stlo = meta.longitude
    sac.stel = meta.elevation
    sac.stdp = meta.depth
    if abs(trace.stats.delta - delta) > 1e-9:
        logger.debug("Resampling %s from delta %.4f to %.4f", trace.id, trace.stats.delta, delta)
        trace.interpolate(sampling_rate=1.0 / delta, method="weighted_average_slopes")
    return trace

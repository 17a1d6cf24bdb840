from __future__ import annotations

import logging

import numpy as np
from obspy import Trace, UTCDateTime
from obspy.geodetics import gps2dist_azimuth, locations2degrees

from .models import Bucket, EventOrigin
from .sacio import sac_header, set_reference_time
from .settings import Settings
from .signal import highest_power_of_two, is_complete_zero, remove_trend, taper_rising_sine

logger = logging.getLogger(__name__)


class ModifyError(Exception):
    def __init__(self, bucket: Bucket, reason: str):
        super().__init__(reason)
        self.bucket = bucket


def _ms(time: UTCDateTime) -> int:
    return (time.ns + 500_000) // 1_000_000


def zero_pad(data, gap_ms: int, delta_ms: int, taper_time_ms: int) -> np.ndarray:
    """Taper the onset over ``taper_time_ms`` and prepend ``gap_ms`` of zeros."""
    gap_point = gap_ms // delta_ms
    taper_point = taper_time_ms // delta_ms
    tapered = taper_rising_sine(data, taper_point)
    return np.concatenate((np.zeros(gap_point, dtype=float), tapered))


def trimmed_length(end_ms: int, delta_ms: int, max_npts: int) -> int:
    """Largest power of two not beyond the waveform end nor ``max_npts``."""
    npts = end_ms // delta_ms
    if npts < 1:
        return 0
    return highest_power_of_two(min(npts, max_npts))


def write_event_headers(trace: Trace, event: EventOrigin, event_time: UTCDateTime) -> None:
    set_reference_time(trace, event_time)
    sac = trace.stats.sac
    sac.lovrok = True
    sac.lcalda = True
    sac.o = 0.0
    sac.evla = event.latitude
    sac.evlo = event.longitude
    sac.evdp = event.depth_km
    if event.magnitude is not None:
        sac.mag = event.magnitude
    sac.kevnm = event.event_id[:16]

    stla, stlo = sac_header(trace, "stla"), sac_header(trace, "stlo")
    if stla is None or stlo is None:
        return
    dist_m, az, baz = gps2dist_azimuth(event.latitude, event.longitude, stla, stlo)
    sac.dist = dist_m / 1000.0
    sac.az = az
    sac.baz = baz
    sac.gcarc = locations2degrees(event.latitude, event.longitude, stla, stlo)


def modify_trace(trace: Trace, event: EventOrigin, settings: Settings) -> Trace:
    """Align a merged waveform to the event origin and cut it to 2^n samples.

    Raises ModifyError naming the bucket the waveform is rejected into.
    """
    trace = trace.copy()
    raw = trace.data
    trace.data = remove_trend(raw)
    if is_complete_zero(trace.data, reference=raw):
        raise ModifyError(Bucket.UN_MODIFIED, "waveform is 0 or NaN")

    event_time = event.origin_time(settings.by_pde)
    delta_ms = int(round(trace.stats.delta * 1000))
    gap_ms = _ms(trace.stats.starttime) - _ms(event_time)
    if gap_ms >= settings.taper_time_ms:
        raise ModifyError(Bucket.UN_MODIFIED, f"starts {gap_ms} ms after the event, unable to zero-pad")
    if gap_ms >= 0:
        logger.debug("%s starts %d ms after the event, zero-padding", trace.id, gap_ms)
        trace.data = zero_pad(trace.data, gap_ms, delta_ms, settings.taper_time_ms)
        trace.stats.starttime = event_time

    write_event_headers(trace, event, event_time)

    if trace.stats.endtime <= event_time:
        raise ModifyError(Bucket.UN_MODIFIED, "waveform ends before the event")
    if trace.stats.starttime != event_time:
        trace.interpolate(
            sampling_rate=trace.stats.sampling_rate,
            starttime=event_time,
            method="weighted_average_slopes",
        )
    end_ms = _ms(trace.stats.endtime) - _ms(event_time)
    npts = trimmed_length(end_ms, delta_ms, settings.max_npts)
    if npts < 1:
        raise ModifyError(Bucket.UN_MODIFIED, "waveform ends before the event")
    trace.data = trace.data[:npts]

    gcarc = sac_header(trace, "gcarc")
    if gcarc is None or not (settings.min_distance <= gcarc <= settings.max_distance):
        raise ModifyError(Bucket.UNWANTED_DISTANCE, f"epicentral distance {gcarc}")
    return trace

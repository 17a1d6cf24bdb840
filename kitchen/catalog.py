"""
Event information for the processed event folders.

Each event folder carries its event as QuakeML (``event.xml``); the folder
name is the event ID. The preferred origin is the catalog (CMT) solution and
the first other origin, when present, the alternate (PDE) determination.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from obspy import Catalog, UTCDateTime, read_events
from obspy.core.event import Event

from .models import EventOrigin

logger = logging.getLogger(__name__)

EVENT_FILE = "event.xml"


def event_id_of(event: Event) -> str:
    return str(event.resource_id).rstrip("/").rsplit("/", 1)[-1]


def to_event_origin(event: Event, event_id: Optional[str] = None) -> EventOrigin:
    origin = event.preferred_origin() or (event.origins[0] if event.origins else None)
    if origin is None:
        raise ValueError(f"Event {event_id_of(event)} has no origin")
    alternate = next((o for o in event.origins if o.resource_id != origin.resource_id), None)
    magnitude = event.preferred_magnitude() or (event.magnitudes[0] if event.magnitudes else None)

    return EventOrigin(
        event_id=event_id or event_id_of(event),
        cmt_time=origin.time,
        latitude=float(origin.latitude),
        longitude=float(origin.longitude),
        depth_km=float(origin.depth or 0.0) / 1000.0,  # ObsPy uses depth in meters.
        magnitude=float(magnitude.mag) if magnitude is not None else None,
        pde_time=alternate.time if alternate is not None else None,
    )


def read_event_origin(event_dir: Path) -> EventOrigin:
    catalog = read_events(str(event_dir / EVENT_FILE))
    if len(catalog) != 1:
        raise ValueError(f"{event_dir / EVENT_FILE} holds {len(catalog)} events, expected 1")
    return to_event_origin(catalog[0], event_id=event_dir.name)


def read_catalog(path: Path) -> Catalog:
    return read_events(str(path))


def search_events(
    catalog: Catalog,
    starttime: Optional[UTCDateTime] = None,
    endtime: Optional[UTCDateTime] = None,
    min_magnitude: Optional[float] = None,
    max_magnitude: Optional[float] = None,
    min_latitude: float = -90.0,
    max_latitude: float = 90.0,
    min_longitude: float = -180.0,
    max_longitude: float = 180.0,
    min_depth_km: Optional[float] = None,
    max_depth_km: Optional[float] = None,
) -> List[EventOrigin]:
    found: List[EventOrigin] = []
    for event in catalog:
        try:
            origin = to_event_origin(event)
        except ValueError:
            logger.warning("Skipping event without origin: %s", event_id_of(event))
            continue
        if starttime is not None and origin.cmt_time < starttime:
            continue
        if endtime is not None and origin.cmt_time > endtime:
            continue
        if not (min_latitude <= origin.latitude <= max_latitude):
            continue
        if not (min_longitude <= origin.longitude <= max_longitude):
            continue
        if min_depth_km is not None and origin.depth_km < min_depth_km:
            continue
        if max_depth_km is not None and origin.depth_km > max_depth_km:
            continue
        if min_magnitude is not None or max_magnitude is not None:
            if origin.magnitude is None:
                continue
            if min_magnitude is not None and origin.magnitude < min_magnitude:
                continue
            if max_magnitude is not None and origin.magnitude > max_magnitude:
                continue
        found.append(origin)
    logger.info("Catalog search kept %d of %d events", len(found), len(catalog))
    return found

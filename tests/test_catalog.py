import pytest
from obspy import Catalog, UTCDateTime
from obspy.core.event import Event, Magnitude, Origin, ResourceIdentifier

from kitchen.catalog import (
    EVENT_FILE,
    event_id_of,
    read_catalog,
    read_event_origin,
    search_events,
    to_event_origin,
)


def _event(event_id, time, latitude=38.3, longitude=142.4, depth_m=24000.0, mag=9.1, pde_shift=None):
    cmt = Origin(time=time, latitude=latitude, longitude=longitude, depth=depth_m)
    event = Event(resource_id=ResourceIdentifier(f"smi:local/event/{event_id}"))
    event.origins.append(cmt)
    if pde_shift is not None:
        event.origins.append(Origin(time=time + pde_shift, latitude=latitude, longitude=longitude,
                                    depth=depth_m))
    event.preferred_origin_id = cmt.resource_id
    magnitude = Magnitude(mag=mag, magnitude_type="Mw")
    event.magnitudes.append(magnitude)
    event.preferred_magnitude_id = magnitude.resource_id
    return event


def test_to_event_origin_uses_preferred_and_alternate_origins():
    time = UTCDateTime(2011, 3, 11, 5, 46, 23)
    origin = to_event_origin(_event("201103110546A", time, pde_shift=-0.8))

    assert origin.event_id == "201103110546A"
    assert origin.cmt_time == time
    assert origin.pde_time == time - 0.8
    assert origin.origin_time(by_pde=True) == time - 0.8
    assert origin.origin_time() == time
    assert origin.depth_km == pytest.approx(24.0)
    assert origin.magnitude == pytest.approx(9.1)


def test_origin_time_falls_back_without_alternate():
    time = UTCDateTime(2011, 3, 11, 5, 46, 23)
    origin = to_event_origin(_event("201103110546A", time))

    assert origin.pde_time is None
    assert origin.origin_time(by_pde=True) == time


def test_event_without_origin_is_rejected():
    with pytest.raises(ValueError):
        to_event_origin(Event(resource_id=ResourceIdentifier("smi:local/event/none")))


def test_read_event_origin_names_event_after_folder(tmp_path):
    folder = tmp_path / "201103110546A"
    folder.mkdir()
    Catalog(events=[_event("other", UTCDateTime(2011, 3, 11, 5, 46, 23))]).write(
        str(folder / EVENT_FILE), format="QUAKEML")

    origin = read_event_origin(folder)

    assert origin.event_id == "201103110546A"
    assert origin.latitude == pytest.approx(38.3)


def test_search_events_filters(tmp_path):
    catalog = Catalog(events=[
        _event("A", UTCDateTime(2011, 3, 11), mag=9.1),
        _event("B", UTCDateTime(2012, 1, 1), mag=5.0),
        _event("C", UTCDateTime(2013, 1, 1), mag=7.0, latitude=-20.0),
    ])
    path = tmp_path / "catalog.xml"
    catalog.write(str(path), format="QUAKEML")
    catalog = read_catalog(path)

    assert [event_id_of(e) for e in catalog] == ["A", "B", "C"]
    assert [o.event_id for o in search_events(catalog, min_magnitude=6.0)] == ["A", "C"]
    assert [o.event_id for o in search_events(catalog, starttime=UTCDateTime(2011, 6, 1))] == ["B", "C"]
    assert [o.event_id for o in search_events(catalog, min_latitude=0.0)] == ["A", "B"]
    assert [o.event_id for o in search_events(catalog, max_depth_km=10.0)] == []

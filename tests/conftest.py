from pathlib import Path

import numpy as np
import pytest
from obspy import Catalog, Trace, UTCDateTime
from obspy.core.event import Event, Magnitude, Origin, ResourceIdentifier

from kitchen.catalog import EVENT_FILE
from kitchen.models import EventOrigin
from kitchen.response import SpectrumRequest

EVENT_ID = "201103110546A"
ORIGIN = UTCDateTime(2011, 3, 11, 5, 46, 23)
EVENT = EventOrigin(event_id=EVENT_ID, cmt_time=ORIGIN, latitude=38.3, longitude=142.4,
                    depth_km=24.0, magnitude=9.1)

STATION_HEADER = ("#Network | Station | Location | Channel | Latitude | Longitude | Elevation | Depth"
                  " | Azimuth | Dip | SensorDescription | Scale | ScaleFreq | ScaleUnits | SampleRate"
                  " | StartTime | EndTime")
ORIENTATION = {"E": (90.0, 0.0), "N": (0.0, 0.0), "Z": (0.0, -90.0)}


def flat_evaluator(requests=None):
    """Stands in for evalresp, writing an all-ones response spectrum."""

    def _evaluate(request: SpectrumRequest) -> bool:
        if requests is not None:
            requests.append(request)
        step = (request.max_freq - request.min_freq) / (request.npts - 1)
        lines = [f"{request.min_freq + i * step:.8e} 1.0 0.0" for i in range(request.npts)]
        request.spectra_path.write_text("\n".join(lines) + "\n")
        return True

    return _evaluate


def write_event_file(folder: Path, event_id: str = EVENT_ID) -> None:
    origin = Origin(time=ORIGIN, latitude=EVENT.latitude, longitude=EVENT.longitude, depth=24000.0)
    event = Event(resource_id=ResourceIdentifier(f"smi:local/event/{event_id}"))
    event.origins.append(origin)
    event.preferred_origin_id = origin.resource_id
    magnitude = Magnitude(mag=9.1, magnitude_type="Mw")
    event.magnitudes.append(magnitude)
    event.preferred_magnitude_id = magnitude.resource_id
    Catalog(events=[event]).write(str(folder / EVENT_FILE), format="QUAKEML")


def write_raw_channel(folder: Path, channel: str, station: str = "PFO", network: str = "II",
                      location: str = "00", chunk_npts: int = 6000, delta: float = 0.05) -> None:
    """Two time-adjacent raw chunks starting a minute before the origin, plus STATION and RESP files."""
    start = ORIGIN - 60.0
    rng = np.random.default_rng(sum(map(ord, channel)))
    for i in range(2):
        chunk_start = start + i * chunk_npts * delta
        t = (np.arange(chunk_npts) + i * chunk_npts) * delta
        data = (np.sin(2 * np.pi * 0.05 * t) + 0.1 * rng.standard_normal(chunk_npts)).astype(np.float32)
        trace = Trace(data=data, header={"network": network, "station": station, "location": location,
                                         "channel": channel, "starttime": chunk_start, "delta": delta})
        name = (f"{network}.{station}.{location}.{channel}.M.{chunk_start.year}."
                f"{chunk_start.julday:03d}.{chunk_start.strftime('%H%M%S')}.SAC")
        trace.write(str(folder / name), format="SAC")

    azimuth, dip = ORIENTATION[channel[-1]]
    line = (f"{network}|{station}|{location}|{channel}|33.6107|-116.4555|1280.0|5.3|{azimuth}|{dip}"
            f"|STS-1|5.0E9|0.05|M/S|20.0|2006-07-13T00:00:00|")
    (folder / f"STATION.{network}.{station}.{location}.{channel}").write_text(STATION_HEADER + "\n" + line + "\n")
    (folder / f"RESP.{network}.{station}.{location}.{channel}").write_text("# response\n")


@pytest.fixture
def event_folder(tmp_path) -> Path:
    folder = tmp_path / "events" / EVENT_ID
    folder.mkdir(parents=True)
    write_event_file(folder)
    for channel in ("BHE", "BHN", "BHZ"):
        write_raw_channel(folder, channel)
    return folder

import pytest
from obspy import UTCDateTime

from kitchen.stationinfo import (
    StationFileError,
    inventory_epochs,
    load_inventory,
    read_station_file,
    station_file_name,
)

STATION_TEXT = """\
#Network | Station | Location | Channel | Latitude | Longitude | Elevation | Depth | Azimuth | Dip | SensorDescription | Scale | ScaleFreq | ScaleUnits | SampleRate | StartTime | EndTime
II|PFO|00|BHE|33.6107|-116.4555|1280.0|5.3|90.0|0.0|Streckeisen STS-1|5.0E9|0.05|M/S|20.0|2006-07-13T00:00:00|2010-05-01T00:00:00
II|PFO|00|BHE|33.6107|-116.4555|1280.0|5.3|89.0|0.0|Streckeisen STS-1|5.0E9|0.05|M/S|20.0|2010-05-01T00:00:00|
"""


def _write(tmp_path, text=STATION_TEXT):
    path = tmp_path / "STATION.II.PFO.00.BHE"
    path.write_text(text)
    return path


def test_station_file_name():
    assert station_file_name("II", "PFO", "00", "BHE") == "STATION.II.PFO.00.BHE"
    assert station_file_name("IU", "INU", "", "BHE") == "STATION.IU.INU..BHE"


def test_inventory_epochs(tmp_path):
    epochs = inventory_epochs(load_inventory(_write(tmp_path)))

    assert len(epochs) == 2
    first = epochs[0]
    assert (first.network, first.station, first.location, first.channel) == ("II", "PFO", "00", "BHE")
    assert first.latitude == pytest.approx(33.6107)
    assert first.longitude == pytest.approx(-116.4555)
    assert first.azimuth == 90.0
    assert first.dip == 0.0
    assert first.inclination == 90.0
    assert first.scale_units == "M/S"
    assert first.sample_rate == 20.0
    assert epochs[1].end_time is None


def test_read_station_file_selects_epoch(tmp_path):
    path = _write(tmp_path)

    assert read_station_file(path, UTCDateTime(2008, 1, 1)).azimuth == 90.0
    assert read_station_file(path, UTCDateTime(2011, 3, 11)).azimuth == 89.0
    assert read_station_file(path).azimuth == 89.0


def test_read_station_file_without_covering_epoch(tmp_path):
    with pytest.raises(StationFileError):
        read_station_file(_write(tmp_path), UTCDateTime(2000, 1, 1))


def test_read_station_file_missing(tmp_path):
    with pytest.raises(StationFileError):
        read_station_file(tmp_path / "STATION.II.PFO.00.BHE")


def test_read_station_file_bad_number(tmp_path):
    path = _write(tmp_path, STATION_TEXT.replace("33.6107", "north", 1))

    with pytest.raises(StationFileError):
        read_station_file(path)


def test_read_station_file_without_scale(tmp_path):
    path = _write(tmp_path, STATION_TEXT.replace("|5.0E9|0.05|M/S|", "||||"))

    assert read_station_file(path).scale_units == ""

import numpy as np
import pytest
from obspy import Trace, UTCDateTime
from obspy.core.util import AttribDict

from kitchen.filename import SacFileName
from kitchen.rotation import ComponentRotator, pair_components
from kitchen.sacio import read_sac, rotate, write_sac

START = UTCDateTime(2011, 3, 11, 5, 46, 23)


def _horizontal(channel, cmpaz, data, station="PFO"):
    trace = Trace(data=np.asarray(data, dtype=np.float64),
                  header={"network": "II", "station": station, "location": "00",
                          "channel": channel, "starttime": START, "delta": 0.05})
    # event straight north of the station
    trace.stats.sac = AttribDict({"cmpaz": cmpaz, "cmpinc": 90.0, "stla": 10.0, "stlo": 20.0,
                                  "evla": 40.0, "evlo": 20.0})
    return trace


def test_rotate_with_event_due_north():
    east = _horizontal("BHE", 90.0, [1.0, 2.0, 3.0])
    north = _horizontal("BHN", 0.0, [4.0, 5.0, 6.0])

    radial, transverse = rotate(east, north)

    np.testing.assert_allclose(radial.data, [-4.0, -5.0, -6.0], atol=1e-9)
    np.testing.assert_allclose(transverse.data, [-1.0, -2.0, -3.0], atol=1e-9)
    assert radial.stats.channel == "BHR"
    assert transverse.stats.channel == "BHT"
    assert radial.stats.sac.cmpaz == pytest.approx(180.0, abs=1e-6)
    assert transverse.stats.sac.cmpaz == pytest.approx(270.0, abs=1e-6)


def test_rotate_rejects_non_orthogonal_pair():
    x = _horizontal("BH1", 30.0, [1.0, 2.0])
    y = _horizontal("BH2", 100.0, [1.0, 2.0])

    assert rotate(x, y) is None


def test_rotate_rejects_missing_event_coordinates():
    x = _horizontal("BHE", 90.0, [1.0, 2.0])
    y = _horizontal("BHN", 0.0, [1.0, 2.0])
    del x.stats.sac["evla"]

    assert rotate(x, y) is None


def test_pair_components():
    names = [SacFileName.parse(n) for n in (
        "II.PFO.00.BH.M.X", "II.PFO.00.BH.M.Y", "II.BFO.00.BH.M.X", "II.KDAK.00.BH.M.Y")]

    pairs, orphan_x, orphan_y = pair_components(names)

    assert [(x.name, y.name) for x, y in pairs] == [("II.PFO.00.BH.M.X", "II.PFO.00.BH.M.Y")]
    assert [n.name for n in orphan_x] == ["II.BFO.00.BH.M.X"]
    assert [n.name for n in orphan_y] == ["II.KDAK.00.BH.M.Y"]


def test_component_rotator_routes_files(tmp_path):
    write_sac(_horizontal("BHE", 90.0, np.ones(64)), tmp_path / "II.PFO.00.BH.M.X")
    write_sac(_horizontal("BHN", 0.0, np.ones(64)), tmp_path / "II.PFO.00.BH.M.Y")
    write_sac(_horizontal("BHE", 90.0, np.ones(64), station="BFO"), tmp_path / "II.BFO.00.BH.M.X")

    rotated, failed = ComponentRotator(tmp_path).rotate()

    assert (rotated, failed) == (1, 1)
    assert read_sac(tmp_path / "II.PFO.00.BH.M.R").stats.npts == 64
    assert (tmp_path / "II.PFO.00.BH.M.T").exists()
    assert sorted(p.name for p in (tmp_path / "doneRotate").iterdir()) == [
        "II.PFO.00.BH.M.X", "II.PFO.00.BH.M.Y"]
    # the orphan is never left in place
    assert [p.name for p in (tmp_path / "unRotated").iterdir()] == ["II.BFO.00.BH.M.X"]
    assert not (tmp_path / "II.BFO.00.BH.M.X").exists()

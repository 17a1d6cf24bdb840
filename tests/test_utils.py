from kitchen import utils as utils_mod
from kitchen.utils import list_files, move_to_directory, remove_directory


def test_list_files_matches_suffix_only(tmp_path):
    for name in ("b.X", "a.X", "a.XX", "c.Y"):
        (tmp_path / name).write_text("")
    (tmp_path / "d.X").mkdir()

    assert [p.name for p in list_files(tmp_path, "X")] == ["a.X", "b.X"]
    assert list_files(tmp_path / "missing", "X") == []


def test_move_to_directory_creates_target(tmp_path):
    source = tmp_path / "II.PFO.00.BHZ.M.MRG"
    source.write_text("data")

    moved = move_to_directory(source, tmp_path / "doneModify")

    assert moved == tmp_path / "doneModify" / source.name
    assert moved.read_text() == "data"
    assert not source.exists()


def test_remove_directory_retries_once(monkeypatch, tmp_path):
    target = tmp_path / "doneMerge"
    target.mkdir()
    calls = []
    real_rmtree = utils_mod.shutil.rmtree

    def _flaky_rmtree(path):
        calls.append(path)
        if len(calls) == 1:
            raise OSError("Directory not empty")
        real_rmtree(path)

    monkeypatch.setattr(utils_mod.shutil, "rmtree", _flaky_rmtree)
    monkeypatch.setattr(utils_mod.time, "sleep", lambda seconds: None)

    remove_directory(target)

    assert len(calls) == 2
    assert not target.exists()


def test_remove_directory_missing_is_noop(tmp_path):
    remove_directory(tmp_path / "missing")

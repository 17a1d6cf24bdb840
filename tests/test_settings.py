from pathlib import Path

from kitchen.settings import Settings, parse_args


def test_parse_args_defaults(monkeypatch):
    monkeypatch.setattr("sys.argv", ["prog"])
    settings = parse_args()

    assert settings.work_path == Path(".")
    assert settings.out_path is None
    assert settings.catalog == "cmt"
    assert not settings.by_pde
    assert settings.delta == 0.05
    assert settings.sampling_hz == 20.0
    assert settings.max_gap_number == 500
    assert settings.taper_time_ms == 60000
    assert settings.max_npts == 1 << 20
    assert settings.coordinate_grid == 0.01
    assert settings.remove_intermediate_files
    assert settings.scale_units == ["M/S"]
    assert settings.threads >= 1
    assert settings.log_level == "INFO"
    assert settings.catalog_file is None


def test_parse_args_custom_values():
    settings = parse_args([
        "--work-path", "/data/events",
        "--out-path", "/data/out",
        "--catalog", "pde",
        "--min-distance", "30",
        "--max-distance", "90",
        "--max-longitude", "300",
        "--keep-intermediate-files",
        "--scale-unit", "m/s",
        "--scale-unit", "M/S**2",
        "--threads", "0",
        "--log-level", "debug",
        "--catalog-file", "/data/cmt.xml",
        "--min-magnitude", "6.5",
    ])

    assert settings.work_path == Path("/data/events")
    assert settings.out_path == Path("/data/out")
    assert settings.by_pde
    assert (settings.min_distance, settings.max_distance) == (30.0, 90.0)
    assert settings.max_longitude == 300.0
    assert not settings.remove_intermediate_files
    assert settings.scale_units == ["M/S", "M/S**2"]
    assert settings.threads == 1
    assert settings.log_level == "DEBUG"
    assert settings.catalog_file == Path("/data/cmt.xml")
    assert settings.min_magnitude == 6.5


def test_settings_dataclass_defaults():
    settings = Settings()

    assert settings.min_latitude == -90.0
    assert settings.max_longitude == 180.0
    assert settings.quality == "M"
    assert settings.evalresp == "evalresp"

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class Settings:
    work_path: Path = Path(".")
    out_path: Optional[Path] = None
    catalog: str = "cmt"
    min_distance: float = 0.0
    max_distance: float = 180.0
    min_latitude: float = -90.0
    max_latitude: float = 90.0
    min_longitude: float = -180.0
    max_longitude: float = 180.0
    coordinate_grid: float = 0.01
    remove_intermediate_files: bool = True
    delta: float = 0.05
    sampling_hz: float = 20.0
    max_gap_number: int = 500
    taper_time_ms: int = 60 * 1000
    max_npts: int = 1 << 20
    scale_units: List[str] = field(default_factory=lambda: ["M/S"])
    evalresp: str = "evalresp"
    quality: str = "M"
    threads: int = field(default_factory=lambda: os.cpu_count() or 1)
    log_level: str = "INFO"
    catalog_file: Optional[Path] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    min_magnitude: Optional[float] = None
    max_magnitude: Optional[float] = None

    @property
    def by_pde(self) -> bool:
        return self.catalog == "pde"


def parse_args(argv: Optional[List[str]] = None) -> Settings:
    parser = argparse.ArgumentParser(
        description="Turn downloaded event folders into deconvolved, rotated SAC files")
    parser.add_argument("--work-path", default=".",
                        help="Folder holding one sub-folder per event")
    parser.add_argument("--out-path", default=None,
                        help="Output folder; defaults to <work-path>/processed<timestamp>")
    parser.add_argument("--catalog", default="cmt", choices=["cmt", "pde"],
                        help="Origin time to align waveforms to")
    parser.add_argument("--min-distance", type=float, default=0.0,
                        help="Lower limit of epicentral distance [deg]")
    parser.add_argument("--max-distance", type=float, default=180.0,
                        help="Upper limit of epicentral distance [deg]")
    parser.add_argument("--min-latitude", type=float, default=-90.0)
    parser.add_argument("--max-latitude", type=float, default=90.0)
    parser.add_argument("--min-longitude", type=float, default=-180.0)
    parser.add_argument("--max-longitude", type=float, default=180.0,
                        help="Upper limit of station longitude [deg], up to 360")
    parser.add_argument("--coordinate-grid", type=float, default=0.01,
                        help="Stations closer than this [deg] count as the same position")
    parser.add_argument("--keep-intermediate-files", action="store_true",
                        help="Keep the per-stage holding folders")
    parser.add_argument("--delta", type=float, default=0.05,
                        help="Sampling interval [s] all waveforms are resampled to")
    parser.add_argument("--sampling-hz", type=float, default=20.0,
                        help="Upper frequency [Hz] of the response spectrum")
    parser.add_argument("--max-gap-number", type=int, default=500,
                        help="Largest gap, in samples, bridged when merging segments")
    parser.add_argument("--taper-time-ms", type=int, default=60 * 1000,
                        help="Largest delay [ms] of a waveform after the origin that can be zero-padded")
    parser.add_argument("--max-npts", type=int, default=1 << 20,
                        help="Upper bound on samples per output waveform")
    parser.add_argument("--scale-unit", action="append", dest="scale_units", default=None,
                        help="Accepted station ScaleUnits. Repeatable.")
    parser.add_argument("--evalresp", default="evalresp",
                        help="evalresp executable")
    parser.add_argument("--quality", default="M",
                        help="Quality flag given to waveforms converted from miniSEED")
    parser.add_argument("--threads", type=int, default=os.cpu_count() or 1)
    parser.add_argument("--catalog-file", default=None,
                        help="QuakeML catalog; only event folders of events found in it are processed")
    parser.add_argument("--start-time", default=None,
                        help="Earliest origin time of events taken from --catalog-file")
    parser.add_argument("--end-time", default=None,
                        help="Latest origin time of events taken from --catalog-file")
    parser.add_argument("--min-magnitude", type=float, default=None)
    parser.add_argument("--max-magnitude", type=float, default=None)
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    args = parser.parse_args(argv)

    scale_units = args.scale_units if args.scale_units else ["M/S"]
    return Settings(
        work_path=Path(args.work_path),
        out_path=Path(args.out_path) if args.out_path else None,
        catalog=args.catalog,
        min_distance=args.min_distance,
        max_distance=args.max_distance,
        min_latitude=args.min_latitude,
        max_latitude=args.max_latitude,
        min_longitude=args.min_longitude,
        max_longitude=args.max_longitude,
        coordinate_grid=args.coordinate_grid,
        remove_intermediate_files=not args.keep_intermediate_files,
        delta=args.delta,
        sampling_hz=args.sampling_hz,
        max_gap_number=args.max_gap_number,
        taper_time_ms=args.taper_time_ms,
        max_npts=args.max_npts,
        scale_units=[unit.upper() for unit in scale_units],
        evalresp=args.evalresp,
        quality=args.quality,
        threads=max(1, args.threads),
        log_level=args.log_level.upper(),
        catalog_file=Path(args.catalog_file) if args.catalog_file else None,
        start_time=args.start_time,
        end_time=args.end_time,
        min_magnitude=args.min_magnitude,
        max_magnitude=args.max_magnitude,
    )

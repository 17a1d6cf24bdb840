from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from obspy import UTCDateTime


class Stage(Enum):
    RAW = "SAC"
    SET = "SET"
    MERGED = "MRG"
    MODIFIED = "MOD"
    DECONVOLVED = "XYZ"
    ROTATED = "RT"


class Bucket(Enum):
    """Holding folders inside an event output directory."""

    DONE_MERGE = "doneMerge"
    DONE_MODIFY = "doneModify"
    DONE_DECONVOLVE = "doneDeconvolve"
    DONE_ROTATE = "doneRotate"
    UN_SET = "unSet"
    UN_MERGED = "unMerged"
    UN_MODIFIED = "unModified"
    UN_ROTATED = "unRotated"
    INVALID_STATION = "invalidStation"
    INVALID_RESP = "invalidResp"
    INVALID_TRIPLET = "invalidTriplet"
    UNWANTED_COORDINATE = "unwantedCoordinate"
    UNWANTED_DISTANCE = "unwantedDistance"
    DUPLICATE_COMPONENT = "duplicateComponent"
    DUPLICATE_INSTRUMENT = "duplicateInstrument"

    @property
    def is_problem(self) -> bool:
        return self in (Bucket.INVALID_STATION, Bucket.INVALID_RESP, Bucket.INVALID_TRIPLET)


@dataclass(frozen=True)
class EventOrigin:
    event_id: str
    cmt_time: UTCDateTime
    latitude: float
    longitude: float
    depth_km: float
    magnitude: float | None = None
    pde_time: UTCDateTime | None = None

    def origin_time(self, by_pde: bool = False) -> UTCDateTime:
        if by_pde and self.pde_time is not None:
            return self.pde_time
        return self.cmt_time


@dataclass(frozen=True)
class StationMetadata:
    network: str
    station: str
    location: str
    channel: str
    latitude: float
    longitude: float
    azimuth: float
    dip: float
    scale_units: str = ""
    elevation: float = 0.0
    depth: float = 0.0
    sample_rate: float | None = None
    start_time: UTCDateTime | None = None
    end_time: UTCDateTime | None = None

    @property
    def inclination(self) -> float:
        # up is dip=-90 (cmpinc=0), horizontal is dip=0 (cmpinc=90)
        return self.dip + 90.0


@dataclass(frozen=True)
class EventResult:
    event_id: str
    has_run: bool
    had_problem: bool = False
    final_files: int = 0
    buckets: dict[str, int] = field(default_factory=dict)

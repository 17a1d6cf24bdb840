from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .filename import FileNameError, SacFileName
from .models import Bucket
from .sacio import read_sac, sac_header
from .utils import list_files, move_to_directory

logger = logging.getLogger(__name__)

INSTRUMENT_RANK = {"BH": 4, "HH": 3, "BL": 2, "HL": 1}
VALID_SETS = {frozenset("RTZ"): 3, frozenset("RT"): 2, frozenset("Z"): 1}


class SacTriplet:
    """The final R, T and Z files of one station instrument."""

    def __init__(self, network: str, station: str, location: str, instrument: str,
                 latitude: Optional[float] = None, longitude: Optional[float] = None):
        self.network = network
        self.station = station
        self.location = location
        self.instrument = instrument
        self.latitude = latitude
        self.longitude = longitude
        self.paths: Dict[str, Path] = {}
        self.dismissed = False

    @classmethod
    def from_name(cls, name: SacFileName, **kwargs) -> "SacTriplet":
        return cls(name.network, name.station, name.location, name.instrument, **kwargs)

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.network, self.station, self.location, self.instrument)

    @property
    def name(self) -> str:
        return ".".join(self.key)

    def add(self, name: SacFileName, path: Path) -> bool:
        if (name.network, name.station, name.location, name.instrument) != self.key:
            return False
        self.paths[name.component] = path
        return True

    @property
    def count(self) -> int:
        return VALID_SETS.get(frozenset(self.paths), 0)

    @property
    def is_valid(self) -> bool:
        return self.count > 0

    @property
    def rank(self) -> int:
        return INSTRUMENT_RANK.get(self.instrument, 0)

    def is_itself(self, other: "SacTriplet") -> bool:
        return self.key == other.key

    def at_same_position(self, other: "SacTriplet", grid: float) -> bool:
        if self.station == other.station:
            return True
        if None in (self.latitude, self.longitude, other.latitude, other.longitude):
            return False
        return (abs(self.latitude - other.latitude) < grid
                and abs(self.longitude - other.longitude) < grid)

    def complements(self, other: "SacTriplet") -> bool:
        return self.count + other.count == 3

    def is_inferior_to(self, other: "SacTriplet") -> bool:
        """Fewer components, lower instrument rank, larger location code, then
        larger name loses."""
        if self.count != other.count:
            return self.count < other.count
        if self.rank != other.rank:
            return self.rank < other.rank
        if self.location != other.location:
            return self.location > other.location
        return self.name > other.name

    def move(self, directory: Path) -> None:
        for component in sorted(self.paths):
            path = self.paths[component]
            if path.exists():
                self.paths[component] = move_to_directory(path, directory)

    def rename(self, event_id: str) -> List[Path]:
        renamed = []
        for component in sorted(self.paths):
            path = self.paths[component]
            target = path.with_name(SacFileName.parse(path.name).final_name(event_id))
            path.rename(target)
            self.paths[component] = target
            renamed.append(target)
        return renamed

    def __repr__(self) -> str:
        return f"SacTriplet({self.name}, {''.join(sorted(self.paths))})"


def collect_triplets(paths: Iterable[Path]) -> List[SacTriplet]:
    """Group R, T and Z files by network, station, location and instrument."""
    triplets: Dict[Tuple[str, str, str, str], SacTriplet] = {}
    for path in sorted(paths):
        try:
            name = SacFileName.parse(path.name)
        except FileNameError:
            logger.warning("Unparsable final component %s; skipping", path.name)
            continue
        key = (name.network, name.station, name.location, name.instrument)
        triplet = triplets.get(key)
        if triplet is None:
            trace = read_sac(path, headonly=True)
            triplet = SacTriplet.from_name(
                name, latitude=sac_header(trace, "stla"), longitude=sac_header(trace, "stlo"))
            triplets[key] = triplet
        triplet.add(name, path)
    return [triplets[key] for key in sorted(triplets)]


def resolve_duplicates(
    triplets: List[SacTriplet], grid: float = 0.01,
) -> Tuple[List[SacTriplet], List[SacTriplet], List[SacTriplet]]:
    """Keep one recording set per station position.

    Returns the surviving, the invalid and the duplicate triplets. Triplets are
    compared in name order, and every tie is broken, so the outcome does not
    depend on the order of the input.
    """
    ordered = sorted(triplets, key=lambda t: t.name)
    invalid = [t for t in ordered if not t.is_valid]
    for triplet in invalid:
        triplet.dismissed = True

    duplicate: List[SacTriplet] = []
    for one in ordered:
        if one.dismissed:
            continue
        for other in ordered:
            if other.dismissed:
                continue
            if one.is_itself(other) or not one.at_same_position(other, grid):
                continue
            if one.complements(other):
                continue
            loser = one if one.is_inferior_to(other) else other
            loser.dismissed = True
            duplicate.append(loser)
            logger.debug("%s dismissed in favor of %s", loser.name,
                         other.name if loser is one else one.name)
            if loser is one:
                break

    survivors = [t for t in ordered if not t.dismissed]
    return survivors, invalid, duplicate


class DuplicateResolver:
    """Leaves one best triplet per station position and gives it its final name."""

    def __init__(self, event_path: Path, event_id: str, grid: float = 0.01):
        self.event_path = event_path
        self.event_id = event_id
        self.grid = grid

    def resolve(self) -> List[Path]:
        paths = []
        for suffix in ("R", "T", "Z"):
            paths.extend(list_files(self.event_path, suffix))
        survivors, invalid, duplicate = resolve_duplicates(collect_triplets(paths), self.grid)

        for triplet in invalid:
            logger.warning("Incomplete triplet: %s - %s", self.event_id, triplet)
            triplet.move(self.event_path / Bucket.INVALID_TRIPLET.value)
        for triplet in duplicate:
            logger.info("Duplicate instrument: %s - %s", self.event_id, triplet)
            triplet.move(self.event_path / Bucket.DUPLICATE_INSTRUMENT.value)

        final: List[Path] = []
        for triplet in survivors:
            final.extend(triplet.rename(self.event_id))
        return final

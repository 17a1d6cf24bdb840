from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from obspy import UTCDateTime

from .models import Stage

DECONVOLVED_COMPONENTS = {"E": "X", "1": "X", "N": "Y", "2": "Y", "Z": "Z"}


class FileNameError(ValueError):
    """Raised when a file name does not follow any stage pattern."""


@dataclass(frozen=True)
class SacFileName:
    """Identity and processing stage encoded in an intermediate SAC file name.

    Recognized patterns (fields separated by dots):

    - ``NET.STA.LOC.CHA.Q.SAC`` and ``NET.STA.LOC.CHA.Q.YEAR.JDAY.HHMMSS.SAC``
    - ``NET.STA.LOC.CHA.Q.YEAR.JDAY.HOUR.MIN.SEC.MSEC.SET``
    - ``NET.STA.LOC.CHA.Q.MRG`` and ``NET.STA.LOC.CHA.Q.MOD``
    - ``NET.STA.LOC.INSTRUMENT.Q.{X,Y,Z,R,T}``
    """

    name: str
    network: str
    station: str
    location: str
    quality: str
    stage: Stage
    channel: str = ""
    instrument: str = ""
    component: str = ""
    start_time: Optional[UTCDateTime] = None

    @classmethod
    def parse(cls, name: str) -> "SacFileName":
        parts = name.split(".")
        suffix = parts[-1]
        if suffix == "SAC" and len(parts) == 6:
            return cls._from_channel(name, parts, Stage.RAW)
        if suffix == "SAC" and len(parts) == 9:
            # HHMMSS, or HHMMSSmmm with milliseconds
            clock = parts[7]
            if len(clock) not in (6, 9):
                raise FileNameError(f"Unrecognized SAC file name: {name}")
            start = _to_time(name, parts[5], parts[6], clock[0:2], clock[2:4], clock[4:6], clock[6:] or "0")
            return cls._from_channel(name, parts, Stage.RAW, start)
        if suffix == "SET" and len(parts) == 12:
            start = _to_time(name, *parts[5:11])
            return cls._from_channel(name, parts, Stage.SET, start)
        if suffix in ("MRG", "MOD") and len(parts) == 6:
            stage = Stage.MERGED if suffix == "MRG" else Stage.MODIFIED
            return cls._from_channel(name, parts, stage)
        if suffix in ("X", "Y", "Z", "R", "T") and len(parts) == 6:
            stage = Stage.ROTATED if suffix in ("R", "T") else Stage.DECONVOLVED
            return cls(
                name=name,
                network=parts[0],
                station=parts[1],
                location=parts[2],
                instrument=parts[3],
                quality=parts[4],
                component=suffix,
                stage=stage,
            )
        raise FileNameError(f"Unrecognized SAC file name: {name}")

    @classmethod
    def _from_channel(cls, name, parts, stage, start_time=None) -> "SacFileName":
        channel = parts[3]
        if not parts[0] or not parts[1] or not channel:
            raise FileNameError(f"Missing network, station or channel: {name}")
        return cls(
            name=name,
            network=parts[0],
            station=parts[1],
            location=parts[2],
            channel=channel,
            quality=parts[4],
            stage=stage,
            instrument=channel[:2],
            component=channel[2:3],
            start_time=start_time,
        )

    @property
    def key(self) -> Tuple[str, str, str, str, str]:
        return (self.network, self.station, self.location, self.channel, self.quality)

    @property
    def sort_key(self):
        timestamp = self.start_time.timestamp if self.start_time is not None else float("-inf")
        return self.key + (timestamp,)

    def __lt__(self, other: "SacFileName") -> bool:
        return self.sort_key < other.sort_key

    def is_related(self, other: "SacFileName") -> bool:
        return self.key == other.key

    def _channel_prefix(self) -> str:
        return f"{self.network}.{self.station}.{self.location}.{self.channel}.{self.quality}"

    def _instrument_prefix(self) -> str:
        return f"{self.network}.{self.station}.{self.location}.{self.instrument}.{self.quality}"

    def set_name(self, start_time: UTCDateTime) -> str:
        return (
            f"{self._channel_prefix()}.{start_time.year}.{start_time.julday}."
            f"{start_time.hour}.{start_time.minute}.{start_time.second}."
            f"{start_time.microsecond // 1000}.SET"
        )

    def merged_name(self) -> str:
        return f"{self._channel_prefix()}.MRG"

    def modified_name(self) -> str:
        return f"{self._channel_prefix()}.MOD"

    def deconvolved_name(self) -> str:
        try:
            component = DECONVOLVED_COMPONENTS[self.component]
        except KeyError:
            raise FileNameError(f"No deconvolved component for {self.name}") from None
        return self.name_with_component(component)

    def name_with_component(self, component: str) -> str:
        return f"{self._instrument_prefix()}.{component}"

    def final_name(self, event_id: str) -> str:
        return f"{self.station}_{self.network}.{event_id}.{self.component}"

    def __str__(self) -> str:
        return self.name


def _to_time(name: str, year, jday, hour, minute, second, msec) -> UTCDateTime:
    try:
        return UTCDateTime(
            year=int(year),
            julday=int(jday),
            hour=int(hour),
            minute=int(minute),
            second=int(second),
            microsecond=int(msec) * 1000,
        )
    except ValueError as exc:
        raise FileNameError(f"Bad time fields in {name}: {exc}") from exc

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from obspy import Inventory, UTCDateTime, read_inventory

from .models import StationMetadata

logger = logging.getLogger(__name__)


class StationFileError(Exception):
    """Raised when a STATION file is missing, unreadable or has no usable epoch."""


def station_file_name(network: str, station: str, location: str, channel: str) -> str:
    # "STATION.II.PFO.00.BHE" or "STATION.IU.INU..BHE"
    return f"STATION.{network}.{station}.{location}.{channel}"


def _scale_units(channel) -> str:
    response = channel.response
    if response is None or response.instrument_sensitivity is None:
        return ""
    return response.instrument_sensitivity.input_units or ""


def inventory_epochs(inventory: Inventory) -> List[StationMetadata]:
    """One record per channel epoch, in file order."""
    epochs: List[StationMetadata] = []
    for network in inventory:
        for station in network:
            for channel in station:
                if channel.azimuth is None or channel.dip is None:
                    raise StationFileError(
                        f"No orientation for {network.code}.{station.code}.{channel.location_code}.{channel.code}"
                    )
                epochs.append(
                    StationMetadata(
                        network=network.code,
                        station=station.code,
                        location=channel.location_code,
                        channel=channel.code,
                        latitude=float(channel.latitude),
                        longitude=float(channel.longitude),
                        azimuth=float(channel.azimuth),
                        dip=float(channel.dip),
                        scale_units=_scale_units(channel),
                        elevation=float(channel.elevation or 0.0),
                        depth=float(channel.depth or 0.0),
                        sample_rate=float(channel.sample_rate) if channel.sample_rate else None,
                        start_time=channel.start_date,
                        end_time=channel.end_date,
                    )
                )
    return epochs


def load_inventory(path: Path) -> Inventory:
    try:
        return read_inventory(str(path), format="STATIONTXT")
    except Exception as exc:
        raise StationFileError(f"Unable to read {path}: {exc}") from exc


def read_station_file(path: Path, at_time: Optional[UTCDateTime] = None) -> StationMetadata:
    inventory = load_inventory(path)
    if at_time is not None:
        inventory = inventory.select(time=at_time)

    epochs = inventory_epochs(inventory)
    if not epochs:
        if at_time is None:
            raise StationFileError(f"No channel epochs in {path}")
        raise StationFileError(f"No epoch of {path.name} covers {at_time}")
    return epochs[-1]

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from .catalog import read_event_origin
from .deconvolution import compute
from .filename import DECONVOLVED_COMPONENTS, FileNameError, SacFileName
from .ingest import ingest_event_folder
from .merge import SegmentedSacMerger
from .models import Bucket, EventOrigin, EventResult
from .modifier import ModifyError, modify_trace
from .response import (
    Evalresp,
    ResponseEvaluator,
    ResponseFileError,
    SpectrumRequest,
    response_file_name,
    spectra_file_name,
)
from .rotation import ComponentRotator
from .sacio import read_sac, reference_time, write_sac
from .selection import check_channel, check_location, fix_header_and_delta, select_station
from .settings import Settings
from .stationinfo import StationFileError, read_station_file, station_file_name
from .triplet import DuplicateResolver
from .utils import list_files, move_to_directory, remove_directory

logger = logging.getLogger(__name__)

# raw SAC files converted from the miniSEED files of the input folder
MSEED_SAC_DIR = "mseedSac"


class EventProcessor:
    """Runs every processing stage for one event folder.

    The input folder holds the raw SAC (or miniSEED), STATION and RESP files of
    the event and its ``event.xml``; it is never modified. All work happens in
    ``<output_root>/<event_id>``, where rejected files end up in one folder per
    :class:`Bucket`.
    """

    def __init__(
        self,
        input_path: Path,
        output_root: Path,
        settings: Settings,
        evaluator: Optional[ResponseEvaluator] = None,
        event: Optional[EventOrigin] = None,
    ):
        self.input_path = input_path
        self.settings = settings
        self.evaluator = evaluator or Evalresp(settings.evalresp)
        self.event = event or read_event_origin(input_path)
        self.output_path = output_root / self.event.event_id

    @property
    def event_id(self) -> str:
        return self.event.event_id

    def bucket_path(self, bucket: Bucket) -> Path:
        return self.output_path / bucket.value

    def run(self) -> EventResult:
        self.output_path.mkdir(parents=True, exist_ok=True)
        logger.info("Processing %s", self.event_id)

        self.setup_sacs()
        merger = SegmentedSacMerger(self.output_path, self.settings.max_gap_number)
        merged, failed = merger.merge()
        logger.info("%s: merged %d, failed %d", self.event_id, merged, failed)
        self.modify_sacs()
        self.deconvolve_sacs()
        rotated, failed = ComponentRotator(self.output_path).rotate()
        logger.info("%s: rotated %d, failed %d", self.event_id, rotated, failed)
        final = DuplicateResolver(self.output_path, self.event_id, self.settings.coordinate_grid).resolve()

        buckets = self.count_buckets()
        had_problem = any(Bucket(name).is_problem for name in buckets)
        if self.settings.remove_intermediate_files:
            self.remove_intermediate_files()

        logger.info("%s finished with %d files", self.event_id, len(final))
        return EventResult(
            event_id=self.event_id,
            has_run=True,
            had_problem=had_problem,
            final_files=len(final),
            buckets=buckets,
        )

    # setup

    def raw_sac_paths(self) -> List[Path]:
        paths = list_files(self.input_path, "SAC")
        converted = ingest_event_folder(
            self.input_path, self.output_path / MSEED_SAC_DIR, self.settings.quality)
        known = {p.name for p in paths}
        paths.extend(p for p in converted if p.name not in known)
        return paths

    def setup_sacs(self) -> None:
        for raw_path in self.raw_sac_paths():
            try:
                name = SacFileName.parse(raw_path.name)
            except FileNameError:
                logger.warning("Unparsable SAC file name: %s - %s", self.event_id, raw_path.name)
                continue
            if not check_channel(name.channel):
                logger.warning("Unsupported channel: %s - %s", self.event_id, name)
                continue
            if not check_location(name.location):
                logger.warning("May be untrustworthy location: %s - %s", self.event_id, name)
            try:
                self.setup_sac(raw_path, name)
            except Exception:
                logger.exception("Failed to set up: %s - %s", self.event_id, name)

    def setup_sac(self, raw_path: Path, name: SacFileName) -> None:
        header = read_sac(raw_path, headonly=True)
        set_path = self.output_path / name.set_name(reference_time(header))
        shutil.copyfile(raw_path, set_path)
        try:
            self._settle_set(set_path, name)
        except Exception:
            logger.exception("Failed to set up: %s - %s", self.event_id, name)
            if set_path.exists():
                move_to_directory(set_path, self.bucket_path(Bucket.UN_SET))

    def _settle_set(self, set_path: Path, name: SacFileName) -> None:
        station_path = self.input_path / station_file_name(
            name.network, name.station, name.location, name.channel)
        try:
            meta = read_station_file(station_path, self.event.cmt_time)
        except StationFileError as exc:
            logger.warning("Unable to read station file: %s - %s (%s)", self.event_id, name, exc)
            move_to_directory(set_path, self.bucket_path(Bucket.INVALID_STATION))
            return

        bucket = select_station(meta, name.channel, self.settings)
        if bucket is not None:
            logger.debug("Rejected into %s: %s - %s", bucket.value, self.event_id, name)
            move_to_directory(set_path, self.bucket_path(bucket))
            return

        trace = fix_header_and_delta(read_sac(set_path), meta, self.settings.delta)
        write_sac(trace, set_path)

    # modify

    def modify_sacs(self) -> None:
        for path in list_files(self.output_path, "MRG"):
            try:
                name = SacFileName.parse(path.name)
            except FileNameError:
                logger.warning("Unparsable merged file: %s - %s", self.event_id, path.name)
                continue
            try:
                trace = modify_trace(read_sac(path), self.event, self.settings)
                write_sac(trace, self.output_path / name.modified_name())
            except ModifyError as exc:
                if exc.bucket is Bucket.UNWANTED_DISTANCE:
                    logger.debug("Unwanted distance: %s - %s (%s)", self.event_id, name, exc)
                else:
                    logger.warning("Unable to modify: %s - %s (%s)", self.event_id, name, exc)
                move_to_directory(path, self.bucket_path(exc.bucket))
                continue
            except Exception:
                logger.exception("Unable to modify: %s - %s", self.event_id, name)
                move_to_directory(path, self.bucket_path(Bucket.UN_MODIFIED))
                continue
            move_to_directory(path, self.bucket_path(Bucket.DONE_MODIFY))

    # deconvolve

    def _mod_names(self) -> List[SacFileName]:
        names = []
        for path in list_files(self.output_path, "MOD"):
            try:
                names.append(SacFileName.parse(path.name))
            except FileNameError:
                logger.warning("Unparsable modified file: %s - %s", self.event_id, path.name)
        # E and N win over 1 and 2 when both exist
        return sorted(names, key=lambda n: (n.component not in ("Z", "E", "N"), n.name))

    def spectrum_request(self, name: SacFileName, npts: int) -> SpectrumRequest:
        sampling_hz = self.settings.sampling_hz
        time = self.event.cmt_time
        return SpectrumRequest(
            station=name.station,
            channel=name.channel,
            year=time.year,
            julday=time.julday,
            min_freq=sampling_hz / npts,
            max_freq=sampling_hz,
            npts=npts,
            network=name.network,
            location=name.location,
            resp_path=self.input_path / response_file_name(
                name.network, name.station, name.location, name.channel),
            work_dir=self.output_path,
        )

    def deconvolve_sacs(self) -> None:
        for name in self._mod_names():
            mod_path = self.output_path / name.name
            if name.component not in DECONVOLVED_COMPONENTS:
                logger.warning("Unknown component: %s - %s", self.event_id, name)
                move_to_directory(mod_path, self.bucket_path(Bucket.INVALID_RESP))
                continue
            out_path = self.output_path / name.deconvolved_name()
            spectra_path = self.output_path / spectra_file_name(
                name.network, name.station, name.location, name.channel)

            if out_path.exists():
                logger.warning("Duplicate component: %s - %s", self.event_id, name)
                self._move_existing((mod_path, spectra_path), Bucket.DUPLICATE_COMPONENT)
                continue

            try:
                npts = read_sac(mod_path, headonly=True).stats.npts
                request = self.spectrum_request(name, npts)
                evaluated = self.evaluator(request)
            except Exception:
                logger.exception("Response evaluation failed: %s - %s", self.event_id, name)
                evaluated = False
            if not evaluated:
                logger.warning("evalresp failed: %s - %s", self.event_id, name)
                self._move_existing((mod_path, spectra_path), Bucket.INVALID_RESP)
                continue

            try:
                compute(mod_path, spectra_path, out_path, request.min_freq, self.settings.sampling_hz / 2)
            except ResponseFileError as exc:
                logger.warning("Invalid response: %s - %s (%s)", self.event_id, name, exc)
                self._move_existing((mod_path, spectra_path), Bucket.INVALID_RESP)
                continue
            except Exception:
                logger.exception("Failed to deconvolve: %s - %s", self.event_id, name)
                out_path.unlink(missing_ok=True)
                self._move_existing((mod_path, spectra_path), Bucket.INVALID_RESP)
                continue
            self._move_existing((mod_path, spectra_path), Bucket.DONE_DECONVOLVE)

    def _move_existing(self, paths, bucket: Bucket) -> None:
        for path in paths:
            if path.exists():
                move_to_directory(path, self.bucket_path(bucket))

    # cleanup

    def count_buckets(self) -> Dict[str, int]:
        counts = {}
        for bucket in Bucket:
            path = self.bucket_path(bucket)
            if path.is_dir():
                counts[bucket.value] = sum(1 for p in path.iterdir() if p.is_file())
        return counts

    def remove_intermediate_files(self) -> None:
        for directory in [self.bucket_path(b) for b in Bucket] + [self.output_path / MSEED_SAC_DIR]:
            try:
                remove_directory(directory)
            except OSError:
                logger.exception("Unable to remove %s", directory)

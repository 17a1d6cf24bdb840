from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class ResponseFileError(Exception):
    """The response spectrum is empty, non-numeric or holds NaN."""


def response_file_name(network: str, station: str, location: str, channel: str) -> str:
    # "RESP.II.PFO.00.BHE" or "RESP.IU.INU..BHE"
    return f"RESP.{network}.{station}.{location}.{channel}"


def spectra_file_name(network: str, station: str, location: str, channel: str) -> str:
    return f"SPECTRA.{network}.{station}.{location}.{channel}"


@dataclass(frozen=True)
class SpectrumRequest:
    station: str
    channel: str
    year: int
    julday: int
    min_freq: float
    max_freq: float
    npts: int
    network: str
    location: str
    resp_path: Path
    work_dir: Path

    @property
    def spectra_path(self) -> Path:
        return self.work_dir / spectra_file_name(self.network, self.station, self.location, self.channel)


# Computes the response spectrum for a request, writing it to
# ``request.spectra_path``. Returns True on success.
ResponseEvaluator = Callable[[SpectrumRequest], bool]


class Evalresp:
    """Runs the evalresp program, which writes ``SPECTRA.NET.STA.LOC.CHA``.

    With ``-u vel`` the spectrum is the response from velocity to counts
    whatever the physical input of the instrument.
    """

    def __init__(self, executable: str = "evalresp"):
        self.executable = executable

    def command(self, request: SpectrumRequest) -> List[str]:
        return [
            self.executable,
            request.station,
            request.channel,
            str(request.year),
            str(request.julday),
            str(request.min_freq),
            str(request.max_freq),
            str(request.npts),
            "-n", request.network,
            "-l", request.location,
            "-f", str(request.resp_path.resolve()),
            "-s", "lin",
            "-r", "cs",
            "-u", "vel",
        ]

    def __call__(self, request: SpectrumRequest) -> bool:
        cmd = self.command(request)
        logger.debug("Running %s in %s", " ".join(cmd), request.work_dir)
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(request.work_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError:
            logger.exception("Unable to start %s", self.executable)
            return False
        # keep draining or the process blocks once the pipe buffer is full
        try:
            with proc.stdout:
                for line in proc.stdout:
                    logger.debug("evalresp: %s", line.rstrip())
        except (OSError, ValueError):
            logger.exception("Lost output of %s", self.executable)
            proc.kill()
            return False
        finally:
            returncode = proc.wait()
        return returncode == 0


def read_spectra(path: Path) -> Tuple[np.ndarray, np.ndarray]:
    """Read ``freq real imag`` lines into frequency and complex response arrays."""
    try:
        lines = path.read_text().splitlines()
    except OSError as exc:
        raise ResponseFileError(f"Unable to read {path}: {exc}") from exc

    freq: List[float] = []
    resp: List[complex] = []
    for line in lines:
        if not line.strip():
            continue
        parts = line.split()
        try:
            f, re_, im = float(parts[0]), float(parts[1]), float(parts[2])
        except (IndexError, ValueError) as exc:
            raise ResponseFileError(f"Bad line in {path.name}: {line!r}") from exc
        if np.isnan(f) or np.isnan(re_) or np.isnan(im):
            raise ResponseFileError(f"NaN in {path.name}")
        freq.append(f)
        resp.append(complex(re_, im))

    if not freq:
        raise ResponseFileError(f"{path.name} is empty")
    return np.asarray(freq), np.asarray(resp, dtype=complex)

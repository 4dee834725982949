"""Run-time information: setup summary, orbit counting and chronometers."""

from __future__ import annotations

import math
import time as _time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from discdust.params import Flags, ParameterError

REAL_SIZE = 8  # bytes per value in binary field files

Clock = Callable[[], float]


def nb_orbits(time: float) -> float:
    """Number of orbits at unit radius elapsed after ``time``."""
    return time / (2.0 * math.pi) * math.sqrt(1.0)


def nb_outputs(time: float, dt: float, ninterm: float) -> float:
    """Number of outputs elapsed after ``time``."""
    if dt == 0 or ninterm == 0:
        raise ValueError("dt and ninterm must be non-zero")
    return time / dt / ninterm


def _required(params: Mapping[str, Any] | Any, name: str) -> float:
    value = params.get(name)
    if value is None:
        raise ParameterError(f"missing parameter {name}")
    return float(value)


def _optional(params: Mapping[str, Any] | Any, name: str, default: float) -> float:
    value = params.get(name)
    return default if value is None else float(value)


def describe_setup(params: Mapping[str, Any] | Any, flags: Flags) -> str:
    """Verbose description of the disc, grid and outputs of a run."""
    rmin = _required(params, "RMIN")
    rmax = _required(params, "RMAX")
    aspect = _required(params, "ASPECTRATIO")
    sigma0 = _required(params, "SIGMA0")
    slope = _required(params, "SIGMASLOPE")
    dt = _required(params, "DT")
    ninterm = int(_required(params, "NINTERM"))
    nrad = int(_required(params, "NRAD"))
    nsec = int(_required(params, "NSEC"))
    ntot = int(_required(params, "NTOT"))
    pmin = _optional(params, "PMIN", 0.0)
    pmax = _optional(params, "PMAX", 2.0 * math.pi)
    noise = _optional(params, "NOISEAMPLITUDE", 0.0)
    extent = pmax - pmin

    def outputs(t: float) -> float:
        return nb_outputs(t, dt, ninterm)

    def travel(r_out: float, r_in: float) -> float:
        return 2.0 / 3.0 / aspect * (r_out**1.5 - r_in**1.5)

    lines = [
        "",
        "Disc properties:",
        "----------------",
        "Inner Radius          : %g" % rmin,
        "Outer Radius          : %g" % rmax,
        "Aspect Ratio          : %g" % aspect,
        "VKep at inner edge    : %.3g" % math.sqrt(1.0 / rmin),
        "VKep at outer edge    : %.3g" % math.sqrt(1.0 / rmax),
    ]
    mass_total = extent * sigma0 / (2.0 - slope) * (rmax ** (2.0 - slope) - rmin ** (2.0 - slope))
    mass_inner = extent * sigma0 / (2.0 - slope) * (1.0 - rmin ** (2.0 - slope))
    mass_outer = extent * sigma0 / (2.0 - slope) * (rmax ** (2.0 - slope) - 1.0)
    lines += [
        "Initial Disk Mass             : %g" % mass_total,
        "Initial Mass inner to r=1.0  : %g " % mass_inner,
        "Initial Mass outer to r=1.0  : %g " % mass_outer,
        "Travelling time for acoustic density waves :",
    ]
    for label, t in (
        (" * From Rmin to Rmax  ", travel(rmax, rmin)),
        (" * From r=1.0 to Rmax", travel(rmax, 1.0)),
        (" * From r=1.0 to Rmin", travel(1.0, rmin)),
    ):
        lines.append(
            "%s: %.2g = %.2f orbits ~ %.1f outputs" % (label, t, nb_orbits(t), outputs(t))
        )
    t_in = extent * math.sqrt(rmin**3)
    t_out = extent * math.sqrt(rmax**3)
    lines += [
        "Orbital time at Rmin  : %.3g ~ %.2f outputs" % (t_in, outputs(t_in)),
        "Orbital time at Rmax  : %.3g ~ %.2f outputs" % (t_out, outputs(t_out)),
        "Sound speed :",
        " * At unit radius     : %.3g" % aspect,
        " * At outer edge      : %.3g" % (aspect * math.sqrt(1.0 / rmax)),
        " * At inner edge      : %.3g" % (aspect * math.sqrt(1.0 / rmin)),
        "",
        "Grid properties:",
        "----------------",
        "Number of rings       : %d" % nrad,
        "Number of sectors     : %d" % nsec,
        "Total cells           : %d" % (nrad * nsec),
        "",
        "Outputs properties:",
        "-------------------",
        "Time increment between outputs : %.3f = %.3f orbits"
        % (ninterm * dt, nb_orbits(ninterm * dt)),
        "At each output #i, the following files are written:",
    ]
    file_bytes = nrad * nsec * REAL_SIZE
    written = ["gasdens", "gasvrad", "gasvtheta"]
    if flags.energy_equation:
        written.append("Temperature")
    if flags.advecte_label:
        written.append("gaslabel")
    lines += ["%s[i].dat : %d bytes" % (name, file_bytes) for name in written]
    megabytes = len(written) * file_bytes * (ntot / ninterm) / (1024.0 * 1024.0)
    lines += [
        "There will be in total %d outputs" % int(ntot / ninterm),
        "(which correspond to an elapsed time = %.3f or to %.2f orbits)"
        % (ntot * dt, nb_orbits(ntot * dt)),
        "So the code will produce ~%.2f Mbytes of data" % megabytes,
        "Check (eg by issuing a 'df' command) that you have enough disk space,",
        "otherwise you will get a system full and the code will stop.",
    ]
    if flags.add_noise:
        lines.append("Noise to add: %g" % noise)
    return "\n".join(lines) + "\n"


def _ratio(num: float, den: float) -> float:
    return num / den if den != 0 else math.nan


@dataclass
class Chronometer:
    """Wall-clock and CPU-time monitor reporting between successive outputs."""

    begin_index: int = 0
    ninterm: int = 1
    wall: Clock = _time.perf_counter
    cpu: Clock = _time.process_time
    _first: tuple[float, float] | None = field(default=None, init=False)
    _previous: tuple[float, float] = field(default=(0.0, 0.0), init=False)

    def tick(self, number: int) -> str:
        """Record a time step and return the timing report for it."""
        current = (self.wall(), self.cpu())
        if self._first is None:
            self._first = current
            report = "Time counters initialized"
        else:
            total = current[0] - self._first[0]
            total_cpu = current[1] - self._first[1]
            last = current[1] - self._previous[1]
            steps = number - int(self.begin_index / self.ninterm)
            mean = _ratio(total_cpu, steps)
            load = _ratio(last, current[0] - self._previous[0]) * 100.0
            report = "\n".join([
                "Total Real Time elapsed    : %.3f s" % total,
                "Total CPU Time of process  : %.3f s (%.1f %%)"
                % (total_cpu, 100.0 * _ratio(total_cpu, total)),
                "CPU Time since last time step : %.3f s" % last,
                "Mean CPU Time between time steps : %.3f s" % mean,
                "CPU Load on last time step : %.1f %% " % load,
            ])
        self._previous = current
        return report


class SpecificTimer:
    """CPU time spent since creation in a named part of the run."""

    def __init__(self, name: str, profiling: bool = True, cpu: Clock = _time.process_time):
        self.name = name
        self.profiling = profiling
        self._cpu = cpu
        self._start = cpu() if profiling else 0.0

    def elapsed(self) -> float | None:
        """Seconds of CPU time since creation, or None when profiling is off."""
        if not self.profiling:
            return None
        return self._cpu() - self._start

    def __str__(self) -> str:
        spent = self.elapsed()
        if spent is None:
            return ""
        return "Time spent in %s : %.3f s" % (self.name, spent)
"""Dust particles: storage, initial sampling and restart reading."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from pathlib import Path

import numpy as np

from discdust.grid import Geometry

_RESTART_COLUMNS = 6


@dataclass(eq=False)
class DustSystem:
    """Per-particle state and the gas quantities interpolated at each particle."""

    size: np.ndarray
    size_init: np.ndarray
    r: np.ndarray
    th: np.ndarray
    vr: np.ndarray
    vth: np.ndarray
    l: np.ndarray
    rad_geff_acc: np.ndarray
    azi_geff_acc: np.ndarray
    rad_gradp: np.ndarray
    azi_gradp: np.ndarray
    rad_drag_acc: np.ndarray
    azi_drag_acc: np.ndarray
    rad_ind_acc: np.ndarray
    azi_ind_acc: np.ndarray
    rad_sg_acc: np.ndarray
    azi_sg_acc: np.ndarray
    gas_vr: np.ndarray
    gas_vt: np.ndarray
    gas_dens: np.ndarray
    gas_cs: np.ndarray
    jacobi: np.ndarray
    stokes: np.ndarray

    def __post_init__(self) -> None:
        lengths = set()
        for f in fields(self):
            value = np.array(getattr(self, f.name), dtype=float)
            if value.ndim != 1:
                raise ValueError(f"{f.name} must be one-dimensional")
            setattr(self, f.name, value)
            lengths.add(value.size)
        if len(lengths) > 1:
            raise ValueError("all particle arrays must have the same length")

    @classmethod
    def zeros(cls, n: int) -> DustSystem:
        """A system of ``n`` particles with every quantity set to zero."""
        if n < 0:
            raise ValueError("the number of particles cannot be negative")
        return cls(**{f.name: np.zeros(n) for f in fields(cls)})

    @property
    def n(self) -> int:
        return int(self.r.size)

    def __len__(self) -> int:
        return self.n

    def rotate(self, angle: float, geometry: Geometry) -> None:
        """Rotate all particles by ``-angle``, keeping azimuths within the grid."""
        th = self.th - angle
        extent = geometry.azimuthal_extent
        th = np.where(th < geometry.azi_inf[0], th + extent, th)
        th = np.where(th > geometry.azi_sup[-1], th - extent, th)
        self.th = th


@dataclass
class DustSettings:
    """Parameters controlling the initial distribution of dust particles."""

    size_min: float
    size_max: float
    size_slope: float = 0.0
    dust_slope: float = 1.0
    rmin_dust: float = 0.0
    rmax_dust: float = 0.0
    unit_length: float = 1.0
    self_gravity: bool = False
    axi_sg_accr: np.ndarray | None = None
    global_rmed: np.ndarray | None = None


def _uniform(rng, n: int) -> np.ndarray:
    return np.asarray(rng.random(n), dtype=float)


def _power_law(u: np.ndarray, lo: float, hi: float, slope: float) -> np.ndarray:
    if slope != 1.0:
        c1 = hi ** (1.0 - slope)
        c2 = lo ** (1.0 - slope)
        return (c2 + (c1 - c2) * u) ** (1.0 / (1.0 - slope))
    return lo * np.exp(u * math.log(hi / lo))


def sample_sizes(
    n: int, smin: float, smax: float, slope: float, unit_length: float, rng=None
) -> np.ndarray:
    """Particle sizes in code units, drawn from a power law of exponent ``-slope``."""
    if smin == smax and slope != 0.0:
        raise ValueError("SIZEMINPART = SIZEMAXPART requires SIZEPARTSLOPE = 0")
    if smin == smax:
        return np.full(n, smin / unit_length)
    rng = np.random.default_rng() if rng is None else rng
    return _power_law(_uniform(rng, n), smin, smax, slope) / unit_length


def sample_radii(n: int, rmin: float, rmax: float, slope: float, rng=None) -> np.ndarray:
    """Particle radii whose surface density scales as ``r**-slope``."""
    rng = np.random.default_rng() if rng is None else rng
    return _power_law(_uniform(rng, n), rmin, rmax, slope)


def keplerian_with_sg(radii, global_rmed, axi_sg_accr) -> np.ndarray:
    """Azimuthal velocities balancing star gravity and the disc's radial self-gravity."""
    radii = np.asarray(radii, dtype=float)
    rmed = np.asarray(global_rmed, dtype=float)
    accr = np.asarray(axi_sg_accr, dtype=float)
    if rmed.size < 2:
        raise ValueError("at least two ring centres are required")
    if accr.size < rmed.size:
        raise ValueError("the self-gravity profile is shorter than the ring list")
    ipl = np.minimum(np.searchsorted(rmed, radii, side="right"), rmed.size - 2)
    ri = rmed[ipl]
    rip1 = rmed[ipl + 1]
    sgacc = ((radii - ri) * accr[ipl + 1] + (rip1 - radii) * accr[ipl]) / (rip1 - ri)
    return radii**-0.5 * np.sqrt(1.0 - radii * radii * sgacc)


def init_dust_system(
    nbpart: int, geometry: Geometry, settings: DustSettings, rng=None
) -> DustSystem:
    """Draw sizes, radii and azimuths of new particles on circular orbits."""
    rng = np.random.default_rng() if rng is None else rng
    rmin = settings.rmin_dust or float(geometry.rinf[0])
    rmax = settings.rmax_dust or float(geometry.rsup[-1])
    if settings.self_gravity and settings.axi_sg_accr is None:
        raise ValueError("self-gravity needs the axisymmetric radial acceleration profile")
    sys = DustSystem.zeros(nbpart)
    sys.size = sample_sizes(
        nbpart, settings.size_min, settings.size_max, settings.size_slope,
        settings.unit_length, rng,
    )
    sys.r = sample_radii(nbpart, rmin, rmax, settings.dust_slope, rng)
    sys.th = geometry.azi_inf[0] + _uniform(rng, nbpart) * geometry.azimuthal_extent
    sys.size_init = sys.size.copy()
    if settings.self_gravity:
        rmed = geometry.rmed if settings.global_rmed is None else settings.global_rmed
        sys.vth = keplerian_with_sg(sys.r, rmed, settings.axi_sg_accr)
    else:
        sys.vth = sys.r**-0.5
    sys.l = sys.r * sys.vth
    return sys


def read_dust_restart(path: str | os.PathLike, unit_length: float = 1.0) -> DustSystem:
    """Read particles from a restart file of radius, azimuth, vr, vtheta, Stokes, size."""
    rows = []
    for lineno, line in enumerate(Path(path).read_text().splitlines(), start=1):
        words = line.split()
        if not words:
            continue
        if len(words) < _RESTART_COLUMNS:
            raise ValueError(f"{path}:{lineno}: expected {_RESTART_COLUMNS} columns")
        try:
            rows.append([float(w) for w in words[:_RESTART_COLUMNS]])
        except ValueError as exc:
            raise ValueError(f"{path}:{lineno}: {exc}") from exc
    data = np.array(rows, dtype=float).reshape(-1, _RESTART_COLUMNS)
    sys = DustSystem.zeros(data.shape[0])
    sys.r, sys.th, sys.vr, sys.vth, sys.stokes = (data[:, c].copy() for c in range(5))
    sys.size = data[:, 5] / unit_length
    sys.size_init = sys.size.copy()
    sys.l = sys.r * sys.vth
    return sys
"""Polar grids, ring and sector geometry, code units and output helpers."""

from __future__ import annotations

import math
import os
from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import numpy as np

# Physical constants (SI) fixing the code units.
SUN_MASS_KG = 1.9891e30
AU_M = 1.49598e11
MEAN_MOLECULAR_WEIGHT = 2.35
GRAVITATIONAL_CONSTANT_SI = 6.673e-11
TEMPERATURE_FACTOR = 8.0841643e-15
STEFAN_BOLTZMANN_SI = 5.6704e-8


@dataclass(eq=False)
class PolarGrid:
    """A named field sampled on ``nrad + 1`` rings of ``nsec`` sectors."""

    nrad: int
    nsec: int
    name: str = ""
    field: np.ndarray | None = None

    def __post_init__(self) -> None:
        if self.nrad < 1 or self.nsec < 1:
            raise ValueError("a polar grid needs at least one ring and one sector")
        shape = (self.nrad + 1, self.nsec)
        if self.field is None:
            self.field = np.zeros(shape)
        else:
            self.field = np.asarray(self.field, dtype=float)
            if self.field.shape != shape:
                raise ValueError(f"field shape {self.field.shape} does not match {shape}")

    def multiply(self, constant: float) -> None:
        """Scale every value of the field in place."""
        self.field *= constant


@dataclass(eq=False)
class Geometry:
    """Ring interfaces and sector azimuths of a full-circle polar mesh."""

    radii: np.ndarray
    nsec: int
    log_grid: bool = False
    rinf: np.ndarray = field(init=False)
    rsup: np.ndarray = field(init=False)
    rmed: np.ndarray = field(init=False)
    surf: np.ndarray = field(init=False)
    inv_diff_rmed: np.ndarray = field(init=False)
    azimuth: np.ndarray = field(init=False)
    azi_inf: np.ndarray = field(init=False)
    azi_sup: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.radii = np.asarray(self.radii, dtype=float)
        if self.radii.ndim != 1 or self.radii.size < 2:
            raise ValueError("at least two ring interfaces are required")
        if np.any(np.diff(self.radii) <= 0):
            raise ValueError("ring interfaces must increase strictly")
        if self.nsec < 1:
            raise ValueError("at least one sector is required")
        self.rinf = self.radii[:-1].copy()
        self.rsup = self.radii[1:].copy()
        self.rmed = (
            2.0 / 3.0 * (self.rsup**3 - self.rinf**3) / (self.rsup**2 - self.rinf**2)
        )
        self.surf = math.pi * (self.rsup**2 - self.rinf**2) / self.nsec
        self.inv_diff_rmed = np.zeros_like(self.rmed)
        self.inv_diff_rmed[1:] = 1.0 / np.diff(self.rmed)
        dphi = 2.0 * math.pi / self.nsec
        self.azimuth = np.arange(self.nsec) * dphi
        self.azi_inf = self.azimuth - 0.5 * dphi
        self.azi_sup = self.azimuth + 0.5 * dphi

    @classmethod
    def build(cls, rmin: float, rmax: float, nrad: int, nsec: int, log_grid: bool) -> Geometry:
        """Build an arithmetic or logarithmic mesh between ``rmin`` and ``rmax``."""
        if nrad < 1:
            raise ValueError("at least one ring is required")
        if not rmax > rmin:
            raise ValueError("rmax must exceed rmin")
        steps = np.arange(nrad + 1) / nrad
        if log_grid:
            if rmin <= 0:
                raise ValueError("a logarithmic grid needs a positive inner radius")
            radii = rmin * np.exp(steps * math.log(rmax / rmin))
        else:
            radii = rmin + (rmax - rmin) * steps
        radii[0], radii[-1] = rmin, rmax
        return cls(radii, nsec, log_grid)

    @property
    def nrad(self) -> int:
        return self.rmed.size

    @property
    def delta_r(self) -> float:
        """Radial spacing, logarithmic for a log grid."""
        if self.log_grid:
            return math.log(self.rsup[0] / self.rinf[0])
        return float(self.rsup[0] - self.rinf[0])

    @property
    def delta_phi(self) -> float:
        return float(self.azi_sup[0] - self.azi_inf[0])

    @property
    def azimuthal_extent(self) -> float:
        return float(self.azi_sup[-1] - self.azi_inf[0])

    @property
    def cell_x(self) -> np.ndarray:
        return np.outer(self.rmed, np.cos(self.azimuth))

    @property
    def cell_y(self) -> np.ndarray:
        return np.outer(self.rmed, np.sin(self.azimuth))

    def global_ifrac(self, r: float) -> float:
        """Fractional ring index of radius ``r`` measured on cell centres."""
        if r < self.rmed[0]:
            return 0.0
        if r >= self.rmed[-1]:
            return self.nrad - 1.0
        i = bisect_right(self.rmed.tolist(), r)
        lower, upper = self.rmed[i - 1], self.rmed[i]
        return float(i + (r - lower) / (upper - lower) - 1.0)

    def wrap_azimuth(self, theta: float) -> float:
        """Bring ``theta`` back once into the span of the sector interfaces."""
        if theta < self.azi_inf[0]:
            theta += self.azimuthal_extent
        if theta > self.azi_sup[-1]:
            theta -= self.azimuthal_extent
        return float(theta)

    def sector_of(self, theta: float) -> int:
        """Index of the sector holding azimuth ``theta``."""
        jp = math.floor(self.nsec * (theta - self.azi_inf[0]) / self.azimuthal_extent)
        return 0 if jp == self.nsec else jp

    def ring_of(self, r: float) -> int:
        """Index of the ring holding radius ``r``."""
        if r < self.rinf[0] or r >= self.rsup[-1]:
            raise ValueError(f"radius {r} lies outside the grid")
        return bisect_right(self.rinf.tolist(), r) - 1


@dataclass(frozen=True)
class CodeUnits:
    """Conversion factors from code units to SI."""

    mass: float
    length: float
    time: float
    temperature: float
    mmw: float
    sigma_sb: float

    def write(self, outputdir: str | os.PathLike) -> Path:
        """Write ``units.dat`` into ``outputdir`` and return its path."""
        path = Path(outputdir) / "units.dat"
        values = (self.mass, self.length, self.time, self.temperature)
        path.write_text("\t".join("%.18g" % v for v in values) + "\n")
        return path


def compute_code_units(
    factor_mass: float = 1.0, factor_length: float = 1.0, factor_mmw: float = 1.0
) -> CodeUnits:
    """Code units in which the defaults are one solar mass and one AU."""
    mass = SUN_MASS_KG * factor_mass
    length = AU_M * factor_length
    mmw = MEAN_MOLECULAR_WEIGHT * factor_mmw
    time = math.sqrt(length**3 / GRAVITATIONAL_CONSTANT_SI / mass)
    temperature = mmw * TEMPERATURE_FACTOR * mass / length
    sigma_sb = STEFAN_BOLTZMANN_SI / mass * time**3 * temperature**4
    return CodeUnits(mass, length, time, temperature, mmw, sigma_sb)


def make_dir(path: str | os.PathLike) -> bool:
    """Create ``path`` with its parents; return False if it already existed."""
    target = Path(path)
    if target.is_dir():
        return False
    target.mkdir(parents=True, exist_ok=True)
    return True


def open_for_write(path: str | os.PathLike, mode: str = "w") -> IO[str]:
    """Open a file for writing or appending, creating its directory if missing."""
    try:
        return open(path, mode)
    except FileNotFoundError:
        make_dir(Path(path).parent)
        return open(path, "w")
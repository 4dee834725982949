"""Planets: accretion of disc material and orbital elements."""

from __future__ import annotations

import math
import os
from dataclasses import astuple, dataclass, field

import numpy as np

from discdust.grid import Geometry, PolarGrid, open_for_write

ACCRETION_THRESHOLD = 1e-10
INNER_FRACTION = 0.75
OUTER_FRACTION = 0.45


def _array(values, n: int, default: float) -> np.ndarray:
    if values is None:
        return np.full(n, default, dtype=float)
    result = np.array(values, dtype=float)
    if result.shape != (n,):
        raise ValueError("all planetary arrays must have the same length")
    return result


def _flags(values, n: int, default: bool) -> list[bool]:
    if values is None:
        return [default] * n
    result = [bool(v) for v in values]
    if len(result) != n:
        raise ValueError("all planetary arrays must have the same length")
    return result


@dataclass(eq=False)
class PlanetarySystem:
    """Positions, velocities, masses and options of the planets."""

    x: np.ndarray
    y: np.ndarray
    vx: np.ndarray
    vy: np.ndarray
    mass: np.ndarray
    acc: np.ndarray | None = None
    feel_disk: list[bool] | None = None
    feel_others: list[bool] | None = None
    binary: list[bool] | None = None

    def __post_init__(self) -> None:
        n = len(self.x)
        self.x = _array(self.x, n, 0.0)
        self.y = _array(self.y, n, 0.0)
        self.vx = _array(self.vx, n, 0.0)
        self.vy = _array(self.vy, n, 0.0)
        self.mass = _array(self.mass, n, 0.0)
        self.acc = _array(self.acc, n, 0.0)
        self.feel_disk = _flags(self.feel_disk, n, True)
        self.feel_others = _flags(self.feel_others, n, True)
        self.binary = _flags(self.binary, n, False)

    @property
    def nb(self) -> int:
        return int(self.x.size)


def accrete_onto_planets(
    rho: PolarGrid,
    vrad: PolarGrid,
    vtheta: PolarGrid,
    dt: float,
    system: PlanetarySystem,
    geometry: Geometry,
    omega_frame: float = 0.0,
) -> None:
    """Remove gas from inside each accreting planet's Roche lobe and add it to the planet.

    The gas momentum removed is handed to planets that feel the disc.
    """
    dens, vr, vt = rho.field, vrad.field, vtheta.field
    nr, ns = geometry.nrad, geometry.nsec
    cell_x, cell_y = geometry.cell_x, geometry.cell_y
    scale = ns / geometry.azimuthal_extent
    for k in range(system.nb):
        if system.acc[k] <= ACCRETION_THRESHOLD:
            continue
        facc = dt * system.acc[k]
        fractions = (
            (INNER_FRACTION, facc / 3.0),
            (OUTER_FRACTION, 2.0 * facc / 3.0),
        )
        xp, yp = system.x[k], system.y[k]
        mplanet = system.mass[k]
        rplanet = math.hypot(xp, yp)
        rroche = (mplanet / 3.0) ** (1.0 / 3.0) * rplanet
        i_min = 0
        while i_min < nr and geometry.rsup[i_min] < rplanet - rroche:
            i_min += 1
        i_max = nr - 1
        while i_max > 0 and geometry.rinf[i_max] > rplanet + rroche:
            i_max -= 1
        angle = math.atan2(yp, xp)
        j_min = int(scale * (angle - 2.0 * rroche / rplanet))
        j_max = int(scale * (angle + 2.0 * rroche / rplanet))
        px = mplanet * system.vx[k]
        py = mplanet * system.vy[k]
        dm = dpx = dpy = 0.0
        for i in range(i_min, i_max + 1):
            rmed = geometry.rmed[i]
            surf = geometry.surf[i]
            for j in range(j_min, j_max + 1):
                jf = j % ns
                xc, yc = cell_x[i, jf], cell_y[i, jf]
                distance = math.hypot(xp - xc, yp - yc)
                vtcell = 0.5 * (vt[i, jf] + vt[i, (jf + 1) % ns]) + rmed * omega_frame
                vrcell = 0.5 * (vr[i, jf] + vr[i + 1, jf])
                vxcell = (vrcell * xc - vtcell * yc) / rmed
                vycell = (vrcell * yc + vtcell * xc) / rmed
                for frac, f in fractions:
                    if distance < frac * rroche:
                        delta = f * dens[i, jf] * surf
                        dens[i, jf] *= 1.0 - f
                        dpx += delta * vxcell
                        dpy += delta * vycell
                        dm += delta
        px += dpx
        py += dpy
        mplanet += dm
        if system.feel_disk[k]:
            system.vx[k] = px / mplanet
            system.vy[k] = py / mplanet
        system.mass[k] = mplanet


@dataclass(frozen=True)
class OrbitalElements:
    """Keplerian elements of a planet relative to the central star."""

    eccentricity: float
    semi_major_axis: float
    mean_anomaly: float
    true_anomaly: float
    perihelion_pa: float
    mean_longitude: float
    varpi: float = field(default=0.0)


def _acos(value: float) -> float:
    return math.acos(min(1.0, max(-1.0, value)))


def orbital_elements(x: float, y: float, vx: float, vy: float, m: float) -> OrbitalElements:
    """Orbital elements from position and velocity; ``m`` is star plus planet mass."""
    h = x * vy - y * vx
    d = math.hypot(x, y)
    ax = x * vy * vy - y * vx * vy - m * x / d
    ay = y * vx * vx - x * vx * vy - m * y / d
    e = math.hypot(ax, ay) / m
    a = h * h / m / (1.0 - e * e)
    ecc_anomaly = _acos((1.0 - d / a) / e) if e != 0.0 else 0.0
    if x * y * (vy * vy - vx * vx) + vx * vy * (x * x - y * y) < 0:
        ecc_anomaly = -ecc_anomaly
    mean_anomaly = ecc_anomaly - e * math.sin(ecc_anomaly)
    true_anomaly = _acos((a * (1.0 - e * e) / d - 1.0) / e) if e != 0.0 else 0.0
    if ecc_anomaly < 0.0:
        true_anomaly = -true_anomaly
    mean_longitude = math.atan2(y, x)
    if e != 0.0:
        perihelion_pa = math.atan2(ay, ax)
        varpi = 2.0 * math.atan2(ay, 1.0 + ax)
    else:
        perihelion_pa = math.atan2(y, x)
        varpi = mean_longitude
    return OrbitalElements(
        e, a, mean_anomaly, true_anomaly, perihelion_pa, mean_longitude, varpi
    )


def append_orbit(path: str | os.PathLike, time: float, elements: OrbitalElements) -> None:
    """Append one line of orbital elements at ``time`` to an orbit file."""
    values = (time,) + astuple(elements)
    with open_for_write(path, "a") as output:
        output.write("\t".join("%.12g" % v for v in values) + "\n")
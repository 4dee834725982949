"""Disc gravitational force on planets, torque logs and self-gravity at planets."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from discdust.grid import Geometry, PolarGrid, open_for_write
from discdust.interpolation import Scheme, _Stagger, _stencil
from discdust.planet import PlanetarySystem

G = 1.0
HILL_EPSILON = 1e-15


def _field(value) -> np.ndarray:
    if isinstance(value, PolarGrid):
        return value.field
    return np.asarray(value, dtype=float)


@dataclass(frozen=True)
class Force:
    """Specific force of the disc on a body, split into inner and outer parts.

    The ``ex`` components exclude part of the body's Hill sphere.
    """

    fx_inner: float = 0.0
    fx_ex_inner: float = 0.0
    fx_outer: float = 0.0
    fx_ex_outer: float = 0.0
    fy_inner: float = 0.0
    fy_ex_inner: float = 0.0
    fy_outer: float = 0.0
    fy_ex_outer: float = 0.0

    @property
    def fx(self) -> float:
        return self.fx_inner + self.fx_outer

    @property
    def fy(self) -> float:
        return self.fy_inner + self.fy_outer


@dataclass
class ForceSettings:
    """Options of the disc force evaluation and of the torque logs."""

    dimfxy: int = 2
    exclude_hill_factor: float = 0.0
    bm08: bool = False
    roche_smoothing: float = 0.0
    thickness_smoothing: float = 0.6
    aspect_ratio: float = 0.05
    flaring_index: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.exclude_hill_factor <= 1.0:
            raise ValueError("EXCLUDEHILLFACTOR must range between 0 and 1")
        if self.dimfxy < 2:
            raise ValueError("at least two exclusion distances are required")

    def smoothing(self, r: float, mass: float) -> float:
        """Potential smoothing length of a body of ``mass`` at radius ``r``."""
        if self.roche_smoothing:
            return r * (mass / 3.0) ** (1.0 / 3.0) * self.roche_smoothing
        return compute_smoothing(
            r, self.thickness_smoothing, self.aspect_ratio, self.flaring_index
        )


def residual_density(rho, imin: int, imax: int) -> np.ndarray:
    """Density minus its azimuthal average on rings ``imin`` to ``imax - 1``.

    Rings outside that range are zero in the result.
    """
    dens = _field(rho)
    if not 0 <= imin <= imax <= dens.shape[0]:
        raise ValueError("ring range lies outside the field")
    residual = np.zeros_like(dens)
    rows = dens[imin:imax]
    residual[imin:imax] = rows - rows.mean(axis=1, keepdims=True)
    return residual


def compute_smoothing(r: float, thickness: float, aspect_ratio: float, flaring: float) -> float:
    """Smoothing length, a fraction ``thickness`` of the disc scale height at ``r``."""
    return thickness * aspect_ratio * r ** (1.0 + flaring)


def _hill_cut(distance: np.ndarray, cutoff: float) -> np.ndarray:
    if cutoff == 0.0:
        return np.ones_like(distance)
    ratio = distance / cutoff
    rising = np.sin((ratio - 0.5) * math.pi) ** 2
    return np.where(ratio < 0.5, 0.0, np.where(distance > cutoff, 1.0, rising))


def compute_force(
    rho,
    geometry: Geometry,
    x: float,
    y: float,
    rsmoothing: float,
    mass: float,
    system: PlanetarySystem | None,
    settings: ForceSettings,
) -> Force:
    """Specific force of the disc on a body at ``(x, y)``.

    ``mass`` only fixes the Hill radius used for the exclusion. With a
    binary, exclusion is measured from the barycentre of the first two bodies.
    """
    nr = geometry.nrad
    if settings.bm08:
        dens = residual_density(rho, 0, nr)[:nr]
    else:
        dens = _field(rho)[:nr]
    xc, yc = geometry.cell_x, geometry.cell_y
    cellmass = geometry.surf[:, None] * dens
    a = math.hypot(x, y)
    rh = (mass / 3.0) ** (1.0 / 3.0) * a + HILL_EPSILON
    dx = xc - x
    dy = yc - y
    d2 = dx * dx + dy * dy
    dist2 = d2 + rsmoothing * rsmoothing
    inv_dist3 = 1.0 / dist2 / np.sqrt(dist2)
    if system is not None and system.nb >= 2 and system.binary[0]:
        m0, m1 = system.mass[0], system.mass[1]
        xb = (m0 * system.x[0] + m1 * system.x[1]) / (m0 + m1)
        yb = (m0 * system.y[0] + m1 * system.y[1]) / (m0 + m1)
        planet_distance = np.hypot(xc - xb, yc - yb)
    else:
        planet_distance = np.sqrt(d2)
    inner = (geometry.rmed < a)[:, None]
    ax = G * cellmass * dx * inv_dist3
    ay = G * cellmass * dy * inv_dist3

    dim = settings.dimfxy
    fxi, fxo, fyi, fyo = (np.zeros(dim) for _ in range(4))
    for k in range(dim):
        if k == 0:
            cut = np.ones_like(planet_distance)
        else:
            factor = k / (dim - 1) if dim != 2 else settings.exclude_hill_factor
            cut = _hill_cut(planet_distance, factor * rh)
        fxi[k] = float(np.sum(np.where(inner, ax * cut, 0.0)))
        fyi[k] = float(np.sum(np.where(inner, ay * cut, 0.0)))
        fxo[k] = float(np.sum(np.where(inner, 0.0, ax * cut)))
        fyo[k] = float(np.sum(np.where(inner, 0.0, ay * cut)))
    ex = int(settings.exclude_hill_factor * (dim - 1)) if dim != 2 else 1
    return Force(
        fx_inner=fxi[0], fx_ex_inner=fxi[ex],
        fx_outer=fxo[0], fx_ex_outer=fxo[ex],
        fy_inner=fyi[0], fy_ex_inner=fyi[ex],
        fy_outer=fyo[0], fy_ex_outer=fyo[ex],
    )


def torque_log_line(
    outputnb: int, x: float, y: float, vx: float, vy: float, force: Force, time: float
) -> str:
    """One line of a torque log: torques and powers, inner and outer, then time."""
    values = (
        x * force.fy_inner - y * force.fx_inner,
        x * force.fy_outer - y * force.fx_outer,
        x * force.fy_ex_inner - y * force.fx_ex_inner,
        x * force.fy_ex_outer - y * force.fx_ex_outer,
        vx * force.fx_inner + vy * force.fy_inner,
        vx * force.fx_outer + vy * force.fy_outer,
        vx * force.fx_ex_inner + vy * force.fy_ex_inner,
        vx * force.fx_ex_outer + vy * force.fy_ex_outer,
        time,
    )
    return "%d\t" % outputnb + "\t".join("%.18g" % v for v in values) + "\n"


def update_log(
    rho,
    geometry: Geometry,
    system: PlanetarySystem,
    settings: ForceSettings,
    outputnb: int,
    time: float,
    outputdir: str | os.PathLike,
    disk_on_primary: tuple[float, float] = (0.0, 0.0),
) -> list[Force]:
    """Append disc torques on every planet to ``tqwk<i>.dat`` and ``indtq<i>.dat``."""
    directory = Path(outputdir)
    ax_star, ay_star = disk_on_primary
    forces = []
    for i in range(system.nb):
        x, y = float(system.x[i]), float(system.y[i])
        vx, vy = float(system.vx[i]), float(system.vy[i])
        m = float(system.mass[i])
        smoothing = settings.smoothing(math.hypot(x, y), m)
        force = compute_force(rho, geometry, x, y, smoothing, m, system, settings)
        forces.append(force)
        with open_for_write(directory / f"tqwk{i}.dat", "a") as out:
            out.write(torque_log_line(outputnb, x, y, vx, vy, force, time))
        with open_for_write(directory / f"indtq{i}.dat", "a") as out:
            out.write(
                "%d\t%.18g\t%.18g\n" % (outputnb, -x * ay_star + y * ax_star, time)
            )
    return forces


def sg_acceleration_at(
    x: float, y: float, radial, azimuthal, geometry: Geometry, scheme: Scheme = Scheme.TSC
) -> tuple[float, float, float, float]:
    """Self-gravity acceleration at ``(x, y)`` from cell-centred fields.

    Returns the radial, azimuthal, x and y components.
    """
    rad = _field(radial)
    azi = _field(azimuthal)
    rp = math.hypot(x, y)
    ip = geometry.ring_of(rp)
    tp = geometry.wrap_azimuth(math.atan2(y, x))
    jp = geometry.sector_of(tp)
    acc_r = acc_t = 0.0
    for i, j, w in _stencil(_Stagger.CENTRED, scheme, rp, tp, ip, jp, geometry):
        acc_r += w * rad[i, j]
        acc_t += w * azi[i, j]
    theta = math.atan2(y, x)
    acc_x = acc_r * math.cos(theta) - acc_t * math.sin(theta)
    acc_y = acc_r * math.sin(theta) + acc_t * math.cos(theta)
    return acc_r, acc_t, acc_x, acc_y
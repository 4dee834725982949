"""Leapfrog integration of dust particles: half-step drift and velocity kick."""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from discdust.dust import DustSystem
from discdust.grid import Geometry, PolarGrid
from discdust.interpolation import GasFields, InterpolationSettings, interpolate
from discdust.planet import PlanetarySystem

GROWTH_FACTOR = 1e3
TWO_BODY_TOLERANCE = 1e-15


class GaussianPair:
    """Normal deviates drawn two at a time by the polar method.

    The second deviate of each pair is kept and returned by the next call.
    """

    def __init__(self, rng=None) -> None:
        self._rng = np.random.default_rng() if rng is None else rng
        self._spare: float | None = None

    def draw(self, mu: float, sigma: float) -> float:
        """A deviate of mean ``mu`` and standard deviation ``sigma``."""
        if self._spare is not None:
            spare, self._spare = self._spare, None
            return mu + sigma * spare
        while True:
            u1 = 2.0 * float(self._rng.random()) - 1.0
            u2 = 2.0 * float(self._rng.random()) - 1.0
            w = u1 * u1 + u2 * u2
            if 0.0 < w < 1.0:
                break
        mult = math.sqrt(-2.0 * math.log(w) / w)
        self._spare = u2 * mult
        return mu + sigma * u1 * mult


def _no_viscosity(r: float) -> float:
    return 0.0


@dataclass
class UpdateSettings:
    """Switches and constants of the dust position and velocity updates."""

    interpolation: InterpolationSettings = field(default_factory=InterpolationSettings)
    dust_feel_disk: bool = True
    dust_feel_planets: bool = True
    dust_feel_sg: bool = True
    dust_feel_turb: bool = False
    zz_integrator: bool = False
    remove_dust_from_planets_hill_radius: bool = True
    dust_growth: bool = False
    dust_mass_taper: float = 1.0
    initial_time: float = 0.0
    thickness_smoothing: float = 0.6
    aspect_ratio: float = 0.05
    flaring_index: float = 0.0
    viscosity: Callable[[float], float] = field(default=_no_viscosity)


def dust_growth_taper(time: float, initial: float, taper: float) -> float:
    """Growth factor rising as a sine squared from 0 to 1 over ``taper`` orbits."""
    if taper <= 0.0:
        raise ValueError("the growth taper must be positive")
    x = (time - initial) / (taper * 2.0 * math.pi)
    if x > 1.0:
        return 1.0
    return math.sin(x * math.pi / 2.0) ** 2


def _field(value) -> np.ndarray:
    if isinstance(value, PolarGrid):
        return value.field
    return np.asarray(value, dtype=float)


def _distance(r: float, th: float, rp: float, tp: float) -> float:
    return math.sqrt(max(0.0, r * r + rp * rp - 2.0 * r * rp * math.cos(th - tp)))


def _turbulent_kick(
    r: float,
    th: float,
    stokes: float,
    dens: np.ndarray,
    geometry: Geometry,
    settings: UpdateSettings,
    timestep: float,
    gauss_r: GaussianPair,
    gauss_phi: GaussianPair,
) -> tuple[float, float]:
    """Random radial and azimuthal displacements from gas turbulence."""
    ns, nr = geometry.nsec, geometry.nrad
    visc = settings.viscosity(r)
    st2 = stokes * stokes
    d_dust = visc * (1.0 + 4.0 * st2) / (1.0 + st2) ** 2
    ip = min(bisect_right(geometry.rinf.tolist(), r), nr) - 1
    jp = geometry.sector_of(th)
    im1 = ip - 1 if ip != 0 else ip
    jm = jp - 1 if jp != 0 else ns - 1
    here = dens[ip, jp]
    dr_mean = d_dust / here * (here - dens[im1, jp]) * geometry.inv_diff_rmed[ip] * timestep
    sigma = math.sqrt(2.0 * d_dust * timestep)
    r += gauss_r.draw(dr_mean, sigma)
    dxtheta = geometry.azimuthal_extent / ns * geometry.rmed[ip]
    dphi_mean = d_dust / here * (here - dens[ip, jm]) / dxtheta * timestep / r
    th += gauss_phi.draw(dphi_mean, sigma / r)
    return r, th


def semi_update_positions(
    dsys: DustSystem,
    psys: PlanetarySystem,
    gasdens,
    geometry: Geometry,
    settings: UpdateSettings,
    timestep: float,
    rng=None,
) -> None:
    """Drift particles on the grid over half a timestep.

    Optionally adds turbulent diffusion and moves particles found inside a
    planet's Hill radius to a random place on the grid.
    """
    rng = np.random.default_rng() if rng is None else rng
    gauss_r = GaussianPair(rng)
    gauss_phi = GaussianPair(rng)
    dens = _field(gasdens)
    rlo, rhi = float(geometry.rinf[0]), float(geometry.rsup[-1])
    azi0 = float(geometry.azi_inf[0])
    extent = geometry.azimuthal_extent
    planets = [
        (math.hypot(x, y), math.atan2(y, x), m)
        for x, y, m in zip(psys.x, psys.y, psys.mass)
    ]
    for k in range(dsys.n):
        r_old = float(dsys.r[k])
        if not rlo <= r_old < rhi:
            continue
        r = r_old + float(dsys.vr[k]) * 0.5 * timestep
        factor = 0.25 * timestep * (r_old**-2.0 + r**-2.0)
        if settings.zz_integrator:
            th = float(dsys.th[k]) + float(dsys.l[k]) * factor
        else:
            th = float(dsys.th[k]) + float(dsys.vth[k]) * r_old * factor
        th = geometry.wrap_azimuth(th)
        if settings.dust_feel_turb and rlo <= r <= rhi:
            r, th = _turbulent_kick(
                r, th, float(dsys.stokes[k]), dens, geometry, settings,
                timestep, gauss_r, gauss_phi,
            )
        if settings.remove_dust_from_planets_hill_radius:
            for rp, tp, mp in planets:
                rh = rp * (mp / 3.0) ** (1.0 / 3.0)
                while _distance(r, th, rp, tp) < rh:
                    th = azi0 + float(rng.random()) * extent
                    r = rlo + float(rng.random()) * (rhi - rlo)
        dsys.r[k] = r
        dsys.th[k] = geometry.wrap_azimuth(th)


def update_velocities(
    dsys: DustSystem,
    psys: PlanetarySystem,
    gas: GasFields,
    geometry: Geometry,
    settings: UpdateSettings,
    timestep: float,
    physical_time: float = 0.0,
) -> float | None:
    """Kick particle velocities with gravity and gas drag over a full timestep.

    Returns the minimum stopping time found by the interpolation when the
    disc is present, otherwise None.
    """
    interp = settings.interpolation
    if settings.dust_growth:
        taper = dust_growth_taper(physical_time, settings.initial_time, settings.dust_mass_taper)
        dsys.size = dsys.size_init + GROWTH_FACTOR * dsys.size_init * taper

    minimum_stopping_time = None
    if interp.is_disk:
        minimum_stopping_time = interpolate(dsys, gas, geometry, interp, timestep)

    rlo, rhi = float(geometry.rinf[0]), float(geometry.rsup[-1])
    flaring = 1.0 + settings.flaring_index
    pot_plan = omega_plan = 0.0
    for k in range(dsys.n):
        rd = float(dsys.r[k])
        if not rlo <= rd < rhi:
            continue
        td = float(dsys.th[k])
        vrd, vtd, ld = float(dsys.vr[k]), float(dsys.vth[k]), float(dsys.l[k])
        vrg, vtg = float(dsys.gas_vr[k]), float(dsys.gas_vt[k])
        feel_disk = 1.0 if settings.dust_feel_disk and rlo <= rd <= rhi else 0.0
        stoptime = float(dsys.stokes[k]) * rd**1.5

        if stoptime < timestep and interp.short_friction_time_approximation:
            dsys.vr[k] = vrg + stoptime * dsys.rad_gradp[k] / dsys.gas_dens[k]
            dsys.vth[k] = vtg + stoptime * dsys.azi_gradp[k] / dsys.gas_dens[k]
            dsys.l[k] = rd * dsys.vth[k]
        else:
            fr = -(rd**-2.0)
            fth = 0.0
            if (
                abs(fr + vtd * vtd / rd) < TWO_BODY_TOLERANCE
                and not settings.dust_feel_planets
                and not settings.dust_feel_disk
                and not settings.dust_feel_sg
            ):
                fr = -vtd * vtd / rd
            dsys.rad_geff_acc[k] = fr + vtd * vtd / rd
            dsys.azi_geff_acc[k] = fth - vrd * vtd / rd

            if settings.dust_feel_planets:
                for xp, yp, mp in zip(psys.x, psys.y, psys.mass):
                    rp = math.hypot(xp, yp)
                    tp = math.atan2(yp, xp)
                    eps = (
                        settings.thickness_smoothing * settings.aspect_ratio * rp**flaring
                    )
                    d = math.sqrt(
                        rd * rd + rp * rp - 2.0 * rd * rp * math.cos(td - tp) + eps * eps
                    )
                    fr += mp * (rp * math.cos(td - tp) - rd) * d**-3.0
                    fth += -mp * rp * math.sin(td - tp) * d**-3.0
                    pot_plan = mp / d
                    omega_plan = rp**-1.5

            if interp.indirect_term:
                fr += float(dsys.rad_ind_acc[k])
                fth += float(dsys.azi_ind_acc[k])
            if interp.is_disk and interp.self_gravity and settings.dust_feel_sg:
                fr += float(dsys.rad_sg_acc[k])
                fth += float(dsys.azi_sg_acc[k])

            if not settings.zz_integrator:
                den = 1.0 + (feel_disk * timestep / stoptime if feel_disk else 0.0)
                num_th = (vtd - vtg) + timestep * (fth - vrd * vtd / rd)
                vth_new = vtg + num_th / den
                num_r = (vrd - vrg) + timestep * (fr + vth_new * vth_new / rd)
                dsys.vth[k] = vth_new
                dsys.vr[k] = vrg + num_r / den
            else:
                drag = feel_disk / stoptime if feel_disk else 0.0
                den = 1.0 + 0.5 * timestep * drag
                fth *= rd
                num_th = timestep * (fth + drag * (rd * vtg - ld))
                l_new = ld + num_th / den
                dsys.l[k] = l_new
                dsys.vth[k] = l_new / rd
                num_r = timestep * (
                    fr + 0.5 * rd**-3.0 * (ld * ld + l_new * l_new) + drag * (vrg - vrd)
                )
                dsys.vr[k] = vrd + num_r / den

        vr_new, vth_new = float(dsys.vr[k]), float(dsys.vth[k])
        dsys.jacobi[k] = (
            0.5 * (vr_new**2 + vth_new**2)
            - 1.0 / float(dsys.r[k])
            - pot_plan
            - omega_plan * rd * vth_new
        )
    return minimum_stopping_time
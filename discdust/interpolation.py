"""Gas quantities at dust particles, Stokes numbers, drag and dust feedback."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Callable, Iterator

import numpy as np

from discdust.dust import DustSystem
from discdust.grid import AU_M, SUN_MASS_KG, Geometry, PolarGrid

INITIAL_MINIMUM_STOPPING_TIME = 1e6
MEAN_FREE_PATH_FACTOR = 3.34e-8


class Scheme(enum.Enum):
    """Particle-mesh interpolation kernel."""

    NGP = "nearest grid point"
    CIC = "cloud in cell"
    TSC = "triangular shaped cloud"


class _Stagger(enum.Enum):
    RADIAL = "radial"          # radial interfaces, centred azimuths
    AZIMUTHAL = "azimuthal"    # centred radii, azimuthal interfaces
    CENTRED = "centred"        # cell centres


def _as_field(value) -> np.ndarray:
    if isinstance(value, PolarGrid):
        return value.field
    return np.asarray(value, dtype=float)


@dataclass(eq=False)
class GasFields:
    """Gas fields read at the particles, and the fields the particles deposit into.

    Every field is indexed as ``[ring, sector]``. The deposit fields
    (``dust_density``, ``rad_fb_acc``, ``azi_fb_acc``, ``fb_edot``) are
    overwritten in place by :func:`interpolate`.
    """

    vr: np.ndarray
    vt: np.ndarray
    dens: np.ndarray
    cs: np.ndarray
    rad_grad_p: np.ndarray | None = None
    azi_grad_p: np.ndarray | None = None
    rad_ind_acc: np.ndarray | None = None
    azi_ind_acc: np.ndarray | None = None
    rad_sg_acc: np.ndarray | None = None
    azi_sg_acc: np.ndarray | None = None
    axi_sg_accr: np.ndarray | None = None
    dust_density: np.ndarray | None = None
    rad_fb_acc: np.ndarray | None = None
    azi_fb_acc: np.ndarray | None = None
    fb_edot: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.vr = _as_field(self.vr)
        self.vt = _as_field(self.vt)
        self.dens = _as_field(self.dens)
        self.cs = _as_field(self.cs)
        for name in (
            "rad_grad_p", "azi_grad_p", "rad_ind_acc", "azi_ind_acc",
            "rad_sg_acc", "azi_sg_acc", "dust_density", "rad_fb_acc",
            "azi_fb_acc", "fb_edot",
        ):
            value = getattr(self, name)
            setattr(self, name, np.zeros_like(self.dens) if value is None else _as_field(value))
        if self.axi_sg_accr is not None:
            self.axi_sg_accr = np.asarray(self.axi_sg_accr, dtype=float)


def _constant_aspect_ratio(r: float) -> float:
    return 0.05


@dataclass
class InterpolationSettings:
    """Switches and physical constants used by :func:`interpolate`."""

    scheme: Scheme = Scheme.TSC
    is_disk: bool = True
    indirect_term: bool = True
    self_gravity: bool = False
    dust_feel_sg_zero_mode: bool = False
    dust_feedback: bool = False
    energy_equation: bool = False
    short_friction_time_approximation: bool = True
    omega_frame: float = 0.0
    rho_part: float = 1.0
    unit_length: float = AU_M
    unit_mass: float = SUN_MASS_KG
    particles_mass: float = 0.0
    aspect_ratio: Callable[[float], float] = field(default=_constant_aspect_ratio)


def tsc_weight(d: float, delta: float) -> float:
    """Quadratic-spline weight of a node at distance ``d`` for spacing ``delta``."""
    if d < 0.5 * delta:
        return 0.75 - d * d / delta / delta
    if d <= 1.5 * delta:
        return 0.5 * (1.5 - d / delta) ** 2
    return 0.0


def drag_coefficient(kn: float, mach: float) -> float:
    """Drag coefficient bridging the Epstein and Stokes regimes."""
    f_d = math.sqrt(1.0 + 9.0 * math.pi * mach * mach / 128.0)
    re = 3.0 * math.sqrt(math.pi / 8.0) * mach / kn
    if re <= 500.0:
        k_d = 1.0 + 0.15 * re**0.687
    elif re <= 1500.0:
        k_d = 3.96e-6 * re**2.4
    else:
        k_d = 0.11 * re
    return (3.0 * kn + 1.0) ** 2 / (9.0 * kn * kn * f_d + 3.0 * kn * k_d)


def stokes_number(
    dustsize: float,
    rho_internal: float,
    densg_code: float,
    densg_cgs: float,
    aspect_ratio: float,
    r: float,
    mach: float,
) -> float:
    """Stokes number of a particle of size ``dustsize`` (code units) in gas at radius ``r``."""
    mean_free_path = MEAN_FREE_PATH_FACTOR / densg_cgs * aspect_ratio * r
    kn = 0.5 * mean_free_path / dustsize
    cdrag = drag_coefficient(kn, mach)
    return 0.5 * math.pi * cdrag * dustsize * rho_internal / densg_code


def _bounds(
    stagger: _Stagger, scheme: Scheme, rp: float, tp: float, ip: int, jp: int,
    geometry: Geometry,
) -> tuple[int, int, int, int]:
    below_rmed = rp < geometry.rmed[ip]
    below_az = tp < geometry.azimuth[jp]
    if scheme is Scheme.NGP:
        if stagger is _Stagger.RADIAL:
            return ip, ip + 1, jp, jp
        if stagger is _Stagger.AZIMUTHAL:
            return ip, ip, jp, jp + 1
        return ip, ip, jp, jp
    if scheme is Scheme.CIC:
        myip = ip - 1 if below_rmed else ip
        myjp = jp - 1 if below_az else jp
        if stagger is _Stagger.RADIAL:
            return ip, ip + 1, myjp, myjp + 1
        if stagger is _Stagger.AZIMUTHAL:
            return myip, myip + 1, jp, jp + 1
        return myip, myip + 1, myjp, myjp + 1
    if stagger is _Stagger.AZIMUTHAL:
        myjp = jp + 1 if tp > geometry.azimuth[jp] else jp
        return ip - 1, ip + 1, myjp - 1, myjp + 1
    return ip - 1, ip + 1, jp - 1, jp + 1


def _stencil(
    stagger: _Stagger, scheme: Scheme, rp: float, tp: float, ip: int, jp: int,
    geometry: Geometry,
) -> Iterator[tuple[int, int, float]]:
    """Yield ``(ring, sector, weight)`` of the mesh nodes around a particle."""
    ns, nr = geometry.nsec, geometry.nrad
    delta_r, delta_phi = geometry.delta_r, geometry.delta_phi
    rref = geometry.rinf if stagger is _Stagger.RADIAL else geometry.rmed
    aref = geometry.azi_inf if stagger is _Stagger.AZIMUTHAL else geometry.azimuth
    imin, imax, jmin, jmax = _bounds(stagger, scheme, rp, tp, ip, jp, geometry)
    for j in range(jmin, jmax + 1):
        if 0 <= j < ns:
            myj, az = j, aref[j]
        elif j < 0:
            myj, az = j + ns, aref[0] + j * delta_phi
        else:
            myj, az = j - ns, aref[ns - 1] + (j + 1 - ns) * delta_phi
        dphi = abs(tp - az)
        for i in range(imin, imax + 1):
            if i < 0 or i > nr - 1:
                continue
            if geometry.log_grid:
                dr = abs(math.log(rp / rref[i]))
            else:
                dr = abs(rp - rref[i])
            if scheme is Scheme.NGP:
                wr = wt = 1.0
                if stagger is _Stagger.RADIAL:
                    wr = 1.0 if dr < 0.5 * delta_r else 0.0
                elif stagger is _Stagger.AZIMUTHAL:
                    wt = 1.0 if dphi < 0.5 * delta_phi else 0.0
            elif scheme is Scheme.CIC:
                wr = 1.0 - dr / delta_r
                wt = 1.0 - dphi / delta_phi
            else:
                wr = tsc_weight(dr, delta_r)
                wt = tsc_weight(dphi, delta_phi)
            yield i, myj, wr * wt


def interpolate(
    dsys: DustSystem,
    gas: GasFields,
    geometry: Geometry,
    settings: InterpolationSettings,
    timestep: float,
) -> float:
    """Interpolate gas quantities at the particles and deposit dust onto the mesh.

    Updates the particles' interpolated gas fields, Stokes numbers and drag
    accelerations, fills the dust density (and feedback fields when dust
    feedback is on) and returns the minimum stopping time found.
    """
    nr = geometry.nrad
    scheme = settings.scheme
    mp = settings.particles_mass
    vt_fixed = gas.vt[:nr] + geometry.rmed[:, None] * settings.omega_frame
    gas.dust_density[...] = 0.0
    if settings.dust_feedback:
        gas.rad_fb_acc[...] = 0.0
        gas.azi_fb_acc[...] = 0.0
        gas.fb_edot[...] = 0.0
    if settings.self_gravity and settings.dust_feel_sg_zero_mode and gas.axi_sg_accr is None:
        raise ValueError("zero-mode self-gravity needs the axisymmetric acceleration profile")
    rho_internal = (
        settings.rho_part * 1000.0 * settings.unit_length**3 / settings.unit_mass
    )
    minimum_stopping_time = INITIAL_MINIMUM_STOPPING_TIME
    rmin, rmax = geometry.rinf[0], geometry.rsup[-1]

    for k in range(dsys.n):
        for arr in (
            dsys.gas_vr, dsys.gas_vt, dsys.rad_gradp, dsys.azi_gradp,
            dsys.rad_ind_acc, dsys.rad_sg_acc, dsys.azi_ind_acc, dsys.azi_sg_acc,
            dsys.gas_dens, dsys.gas_cs,
        ):
            arr[k] = 0.0
        rp = float(dsys.r[k])
        if not (rmin <= rp < rmax):
            continue
        tp = float(dsys.th[k])
        ip = geometry.ring_of(rp)
        jp = geometry.sector_of(tp)

        vrg = gradr = indr = sgr = 0.0
        for i, j, w in _stencil(_Stagger.RADIAL, scheme, rp, tp, ip, jp, geometry):
            vrg += w * gas.vr[i, j]
            gradr += w * gas.rad_grad_p[i, j]
            if settings.indirect_term:
                indr += w * gas.rad_ind_acc[i, j]
            if settings.self_gravity:
                if settings.dust_feel_sg_zero_mode:
                    sgr += w * gas.axi_sg_accr[i]
                else:
                    sgr += w * gas.rad_sg_acc[i, j]

        vtg = gradt = indt = sgt = 0.0
        for i, j, w in _stencil(_Stagger.AZIMUTHAL, scheme, rp, tp, ip, jp, geometry):
            vtg += w * vt_fixed[i, j]
            gradt += w * gas.azi_grad_p[i, j]
            if settings.indirect_term:
                indt += w * gas.azi_ind_acc[i, j]
            if settings.self_gravity and not settings.dust_feel_sg_zero_mode:
                sgt += w * gas.azi_sg_acc[i, j]

        densg = csg = 0.0
        for i, j, w in _stencil(_Stagger.CENTRED, scheme, rp, tp, ip, jp, geometry):
            densg += w * gas.dens[i, j]
            csg += w * gas.cs[i, j]
            gas.dust_density[i, j] += w * mp / geometry.surf[i]

        dsys.gas_vr[k], dsys.gas_vt[k] = vrg, vtg
        dsys.rad_gradp[k], dsys.azi_gradp[k] = gradr, gradt
        dsys.rad_ind_acc[k], dsys.azi_ind_acc[k] = indr, indt
        dsys.rad_sg_acc[k], dsys.azi_sg_acc[k] = sgr, sgt
        dsys.gas_dens[k], dsys.gas_cs[k] = densg, csg

        vrp, vtp = float(dsys.vr[k]), float(dsys.vth[k])
        if settings.is_disk:
            densg_cgs = 0.1 * densg * settings.unit_mass / settings.unit_length**2
            mach = math.hypot(vrp - vrg, vtp - vtg) / csg
            st = stokes_number(
                float(dsys.size[k]), rho_internal, densg, densg_cgs,
                settings.aspect_ratio(rp), rp, mach,
            )
            ts = st * float(dsys.r[k]) ** 1.5
            minimum_stopping_time = min(minimum_stopping_time, ts)
        else:
            st = ts = 1.0
        dsys.stokes[k] = st

        if settings.is_disk:
            if ts < timestep and settings.short_friction_time_approximation:
                vrp = vrg + ts * gradr / densg
                vtp = vtg + ts * gradt / densg
            dsys.rad_drag_acc[k] = -(vrp - vrg) / ts
            dsys.azi_drag_acc[k] = -(vtp - vtg) / ts

        if not settings.dust_feedback:
            continue
        for i, j, w in _stencil(_Stagger.RADIAL, scheme, rp, tp, ip, jp, geometry):
            mg = gas.dens[i, j] * geometry.surf[i]
            gas.rad_fb_acc[i, j] -= w * dsys.rad_drag_acc[k] * mp / mg
        for i, j, w in _stencil(_Stagger.AZIMUTHAL, scheme, rp, tp, ip, jp, geometry):
            mg = gas.dens[i, j] * geometry.surf[i]
            gas.azi_fb_acc[i, j] -= w * dsys.azi_drag_acc[k] * mp / mg
        if settings.energy_equation:
            dv2 = (vrp - vrg) ** 2 + (vtp - vtg) ** 2
            for i, j, w in _stencil(_Stagger.CENTRED, scheme, rp, tp, ip, jp, geometry):
                rhop = mp / geometry.surf[i]
                gas.fb_edot[i, j] += rhop * w * dv2 / ts

    return minimum_stopping_time
import math

import numpy as np
import pytest

from discdust.dust import DustSystem
from discdust.dust_update import (
    GaussianPair,
    UpdateSettings,
    dust_growth_taper,
    semi_update_positions,
    update_velocities,
)
from discdust.grid import Geometry
from discdust.interpolation import GasFields, InterpolationSettings
from discdust.planet import PlanetarySystem


@pytest.fixture
def geometry():
    return Geometry.build(0.5, 2.0, 16, 32, False)


def no_planets():
    return PlanetarySystem([], [], [], [], [])


def one_particle(r, th, vr=0.0, vth=None, stokes=1.0):
    dsys = DustSystem.zeros(1)
    dsys.r[0] = r
    dsys.th[0] = th
    dsys.vr[0] = vr
    dsys.vth[0] = r**-0.5 if vth is None else vth
    dsys.l[0] = r * dsys.vth[0]
    dsys.stokes[0] = stokes
    return dsys


def no_disk_settings(**kwargs):
    base = dict(
        interpolation=InterpolationSettings(is_disk=False, indirect_term=False),
        dust_feel_disk=False,
        dust_feel_planets=False,
        dust_feel_sg=False,
    )
    base.update(kwargs)
    return UpdateSettings(**base)


def test_growth_taper_limits():
    assert dust_growth_taper(3.0, 3.0, 10.0) == 0.0
    assert dust_growth_taper(1000.0, 0.0, 10.0) == 1.0
    assert dust_growth_taper(0.5 * 10.0 * 2.0 * math.pi, 0.0, 10.0) == pytest.approx(0.5)


def test_growth_taper_monotone():
    values = [dust_growth_taper(t, 0.0, 1.0) for t in np.linspace(0, 2 * math.pi, 20)]
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_growth_taper_rejects_zero():
    with pytest.raises(ValueError):
        dust_growth_taper(1.0, 0.0, 0.0)


def test_gaussian_zero_sigma_returns_mean():
    pair = GaussianPair(np.random.default_rng(1))
    assert pair.draw(2.5, 0.0) == 2.5
    assert pair.draw(-1.0, 0.0) == -1.0


def test_gaussian_reproducible_and_statistics():
    a = GaussianPair(np.random.default_rng(7))
    b = GaussianPair(np.random.default_rng(7))
    first = [a.draw(0.0, 1.0) for _ in range(5)]
    second = [b.draw(0.0, 1.0) for _ in range(5)]
    assert first == second
    samples = np.array([a.draw(1.0, 2.0) for _ in range(20000)])
    assert abs(samples.mean() - 1.0) < 0.1
    assert abs(samples.std() - 2.0) < 0.1


def test_drift_keplerian_azimuth(geometry):
    dsys = one_particle(1.0, 0.3)
    dt = 0.01
    semi_update_positions(dsys, no_planets(), np.ones((17, 32)), geometry,
                          no_disk_settings(), dt, np.random.default_rng(0))
    assert dsys.r[0] == pytest.approx(1.0)
    assert dsys.th[0] == pytest.approx(0.3 + 0.5 * dt)


def test_drift_zz_matches_default(geometry):
    a = one_particle(1.2, 1.0, vr=0.1)
    b = one_particle(1.2, 1.0, vr=0.1)
    dens = np.ones((17, 32))
    semi_update_positions(a, no_planets(), dens, geometry, no_disk_settings(), 0.05)
    semi_update_positions(b, no_planets(), dens, geometry,
                          no_disk_settings(zz_integrator=True), 0.05)
    assert a.r[0] == pytest.approx(b.r[0])
    assert a.th[0] == pytest.approx(b.th[0])


def test_drift_wraps_azimuth(geometry):
    top = geometry.azi_sup[-1]
    dsys = one_particle(1.0, top - 1e-4)
    semi_update_positions(dsys, no_planets(), np.ones((17, 32)), geometry,
                          no_disk_settings(), 0.1)
    assert geometry.azi_inf[0] <= dsys.th[0] <= geometry.azi_sup[-1]
    assert dsys.th[0] < 0.1


def test_particle_off_grid_untouched(geometry):
    dsys = one_particle(3.0, 0.5, vr=1.0)
    semi_update_positions(dsys, no_planets(), np.ones((17, 32)), geometry,
                          no_disk_settings(), 0.1)
    assert dsys.r[0] == 3.0
    assert dsys.th[0] == 0.5


def test_hill_radius_removal(geometry):
    psys = PlanetarySystem([1.0], [0.0], [0.0], [1.0], [3e-3])
    dsys = one_particle(1.0, 0.0, vth=0.0)
    semi_update_positions(dsys, psys, np.ones((17, 32)), geometry,
                          no_disk_settings(), 0.01, np.random.default_rng(3))
    r, th = dsys.r[0], dsys.th[0]
    dist = math.sqrt(r * r + 1.0 - 2.0 * r * math.cos(th))
    assert dist >= 1.0 * (3e-3 / 3.0) ** (1.0 / 3.0)
    assert geometry.rinf[0] <= r <= geometry.rsup[-1]


def test_turbulence_without_viscosity_is_plain_drift(geometry):
    a = one_particle(1.0, 0.3)
    b = one_particle(1.0, 0.3)
    dens = np.ones((17, 32))
    semi_update_positions(a, no_planets(), dens, geometry, no_disk_settings(), 0.01)
    semi_update_positions(b, no_planets(), dens, geometry,
                          no_disk_settings(dust_feel_turb=True), 0.01,
                          np.random.default_rng(2))
    assert b.r[0] == pytest.approx(a.r[0])
    assert b.th[0] == pytest.approx(a.th[0])


def test_turbulence_is_reproducible(geometry):
    settings = no_disk_settings(dust_feel_turb=True, viscosity=lambda r: 1e-3)
    dens = np.ones((17, 32))
    a = one_particle(1.0, 0.3)
    b = one_particle(1.0, 0.3)
    plain = one_particle(1.0, 0.3)
    semi_update_positions(a, no_planets(), dens, geometry, settings, 0.01,
                          np.random.default_rng(11))
    semi_update_positions(b, no_planets(), dens, geometry, settings, 0.01,
                          np.random.default_rng(11))
    semi_update_positions(plain, no_planets(), dens, geometry, no_disk_settings(), 0.01)
    assert a.r[0] == b.r[0]
    assert a.th[0] == b.th[0]
    assert a.r[0] != plain.r[0]


def gas_for(geometry):
    shape = (geometry.nrad + 1, geometry.nsec)
    return GasFields(np.zeros(shape), np.zeros(shape), np.ones(shape), np.full(shape, 0.05))


def test_two_body_orbit_is_kept(geometry):
    dsys = one_particle(1.3, 0.2)
    vth = dsys.vth[0]
    update_velocities(dsys, no_planets(), gas_for(geometry), geometry,
                      no_disk_settings(), 0.01)
    assert dsys.vr[0] == pytest.approx(0.0, abs=1e-12)
    assert dsys.vth[0] == pytest.approx(vth)
    assert dsys.jacobi[0] == pytest.approx(0.5 * vth**2 - 1.0 / 1.3)


def test_zz_integrator_keeps_circular_orbit(geometry):
    dsys = one_particle(1.3, 0.2)
    vth = dsys.vth[0]
    update_velocities(dsys, no_planets(), gas_for(geometry), geometry,
                      no_disk_settings(zz_integrator=True), 0.01)
    assert dsys.vr[0] == pytest.approx(0.0, abs=1e-10)
    assert dsys.vth[0] == pytest.approx(vth)
    assert dsys.l[0] == pytest.approx(1.3 * vth)


def test_short_friction_time_approximation(geometry):
    dsys = one_particle(1.0, 0.2, stokes=1e-4)
    dsys.gas_vr[0] = 0.01
    dsys.gas_vt[0] = 0.9
    dsys.gas_dens[0] = 2.0
    dsys.rad_gradp[0] = 0.4
    dsys.azi_gradp[0] = -0.2
    update_velocities(dsys, no_planets(), gas_for(geometry), geometry,
                      no_disk_settings(), 0.01)
    assert dsys.vr[0] == pytest.approx(0.01 + 1e-4 * 0.4 / 2.0)
    assert dsys.vth[0] == pytest.approx(0.9 - 1e-4 * 0.2 / 2.0)
    assert dsys.l[0] == pytest.approx(dsys.vth[0])


def test_dust_growth_scales_sizes(geometry):
    dsys = one_particle(1.0, 0.2)
    dsys.size_init[0] = 2e-12
    update_velocities(dsys, no_planets(), gas_for(geometry), geometry,
                      no_disk_settings(dust_growth=True, dust_mass_taper=1.0),
                      0.01, physical_time=100.0)
    assert dsys.size[0] == pytest.approx(2e-12 * 1001.0)


def test_planet_terms_enter_jacobi(geometry):
    psys = PlanetarySystem([1.0], [0.0], [0.0], [1.0], [0.0])
    dsys = one_particle(1.3, 0.2)
    settings = no_disk_settings(dust_feel_planets=True)
    update_velocities(dsys, psys, gas_for(geometry), geometry, settings, 0.01)
    expected = (0.5 * (dsys.vr[0] ** 2 + dsys.vth[0] ** 2) - 1.0 / 1.3
                - 1.3 * dsys.vth[0])
    assert dsys.jacobi[0] == pytest.approx(expected)


def test_disc_path_returns_minimum_stopping_time(geometry):
    shape = (geometry.nrad + 1, geometry.nsec)
    vt = np.zeros(shape)
    vt[:geometry.nrad] = (geometry.rmed**-0.5)[:, None]
    gas = GasFields(np.zeros(shape), vt, np.full(shape, 1e-3), np.full(shape, 0.05))
    dsys = one_particle(1.0, 0.3)
    dsys.size[0] = dsys.size_init[0] = 1e-3 / 1.49598e11
    settings = UpdateSettings(interpolation=InterpolationSettings(indirect_term=False),
                              dust_feel_planets=False)
    tmin = update_velocities(dsys, no_planets(), gas, geometry, settings, 0.01)
    assert dsys.stokes[0] > 0.0
    assert tmin == pytest.approx(dsys.stokes[0] * dsys.r[0] ** 1.5)
    assert dsys.vth[0] == pytest.approx(dsys.gas_vt[0])
    assert dsys.vr[0] == pytest.approx(0.0, abs=1e-12)
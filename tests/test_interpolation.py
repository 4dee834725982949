import math

import numpy as np
import pytest

from discdust.dust import DustSystem
from discdust.grid import Geometry, PolarGrid
from discdust.interpolation import (
    GasFields,
    InterpolationSettings,
    Scheme,
    drag_coefficient,
    interpolate,
    stokes_number,
    tsc_weight,
)


def _geometry():
    return Geometry.build(1.0, 2.0, 40, 64, False)


def _uniform_gas(geometry, dens=1e-3, cs=0.05, vr=0.0, vt=0.0, **extra):
    shape = (geometry.nrad + 1, geometry.nsec)
    return GasFields(
        vr=np.full(shape, vr),
        vt=np.full(shape, vt),
        dens=np.full(shape, dens),
        cs=np.full(shape, cs),
        **extra,
    )


def _particles(radii, azimuths):
    sys = DustSystem.zeros(len(radii))
    sys.r = np.array(radii, dtype=float)
    sys.th = np.array(azimuths, dtype=float)
    sys.vth = sys.r**-0.5
    sys.size = np.full(len(radii), 1e-13)
    sys.size_init = sys.size.copy()
    return sys


def test_tsc_weight_centre_and_far():
    assert tsc_weight(0.0, 1.0) == pytest.approx(0.75)
    assert tsc_weight(2.0, 1.0) == 0.0


def test_tsc_weight_continuous_at_half_spacing():
    assert tsc_weight(0.5 - 1e-12, 1.0) == pytest.approx(tsc_weight(0.5, 1.0), abs=1e-9)


@pytest.mark.parametrize("d", [0.0, 0.1, 0.25, 0.4])
def test_tsc_weights_partition_of_unity(d):
    total = tsc_weight(d, 1.0) + tsc_weight(1.0 - d, 1.0) + tsc_weight(1.0 + d, 1.0)
    assert total == pytest.approx(1.0)


@pytest.mark.parametrize("kn", [0.1, 1.0, 50.0])
def test_drag_coefficient_at_rest_matches_closed_form(kn):
    assert drag_coefficient(kn, 0.0) == pytest.approx((3 * kn + 1) / (3 * kn))


@pytest.mark.parametrize("mach", [0.0, 0.5, 3.0])
def test_drag_coefficient_positive(mach):
    for kn in (1e-6, 1e-3, 1.0):
        assert drag_coefficient(kn, mach) > 0.0


def test_stokes_number_linear_in_size_in_epstein_regime():
    small = stokes_number(1e-14, 1.0, 1e-3, 1e-12, 0.05, 1.0, 0.0)
    large = stokes_number(2e-14, 1.0, 1e-3, 1e-12, 0.05, 1.0, 0.0)
    assert large / small == pytest.approx(2.0, rel=1e-6)


def test_stokes_number_inverse_in_gas_density():
    one = stokes_number(1e-13, 1.0, 1e-3, 1e-12, 0.05, 1.0, 0.0)
    two = stokes_number(1e-13, 1.0, 2e-3, 1e-12, 0.05, 1.0, 0.0)
    assert one / two == pytest.approx(2.0)


@pytest.mark.parametrize("scheme", list(Scheme))
def test_uniform_density_recovered(scheme):
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([1.31, 1.57], [1.0, 4.2])
    interpolate(sys, gas, geometry, InterpolationSettings(scheme=scheme), 0.01)
    np.testing.assert_allclose(sys.gas_dens, 1e-3, rtol=1e-3)
    np.testing.assert_allclose(sys.gas_cs, 0.05, rtol=1e-3)


@pytest.mark.parametrize("scheme", [Scheme.CIC, Scheme.TSC])
def test_frame_rotation_added_and_field_untouched(scheme):
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    before = gas.vt.copy()
    sys = _particles([1.43], [2.0])
    settings = InterpolationSettings(scheme=scheme, omega_frame=1.0)
    interpolate(sys, gas, geometry, settings, 0.01)
    assert sys.gas_vt[0] == pytest.approx(1.43, rel=1e-2)
    np.testing.assert_array_equal(gas.vt, before)


@pytest.mark.parametrize("scheme", list(Scheme))
def test_deposited_dust_mass_is_conserved(scheme):
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([1.2, 1.5, 1.8], [0.3, 3.0, 5.5])
    settings = InterpolationSettings(scheme=scheme, particles_mass=1e-6)
    interpolate(sys, gas, geometry, settings, 0.01)
    total = float(np.sum(gas.dust_density[: geometry.nrad] * geometry.surf[:, None]))
    assert total == pytest.approx(3e-6, rel=1e-3)


def test_particle_outside_grid_is_left_alone():
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([3.0], [1.0])
    sys.stokes[:] = 7.0
    result = interpolate(sys, gas, geometry, InterpolationSettings(), 0.01)
    assert sys.gas_dens[0] == 0.0
    assert sys.stokes[0] == 7.0
    assert result == 1e6


def test_no_disk_gives_unit_stokes_number():
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([1.5], [1.0])
    interpolate(sys, gas, geometry, InterpolationSettings(is_disk=False), 0.01)
    assert sys.stokes[0] == 1.0


def test_minimum_stopping_time_returned():
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([1.2, 1.7], [0.5, 2.5])
    result = interpolate(sys, gas, geometry, InterpolationSettings(), 0.01)
    assert result == pytest.approx(float(np.min(sys.stokes * sys.r**1.5)))


def test_short_friction_time_drag_follows_pressure_gradient():
    geometry = _geometry()
    shape = (geometry.nrad + 1, geometry.nsec)
    gas = _uniform_gas(geometry, rad_grad_p=np.full(shape, 2e-5))
    sys = _particles([1.5], [1.0])
    interpolate(sys, gas, geometry, InterpolationSettings(), timestep=1e12)
    assert sys.rad_drag_acc[0] == pytest.approx(-sys.rad_gradp[0] / sys.gas_dens[0])


@pytest.mark.parametrize("scheme", [Scheme.NGP, Scheme.CIC])
def test_feedback_momentum_balances_drag(scheme):
    geometry = _geometry()
    gas = _uniform_gas(geometry, vr=0.01)
    sys = _particles([1.5], [1.0])
    settings = InterpolationSettings(
        scheme=scheme, dust_feedback=True, particles_mass=1e-6,
        short_friction_time_approximation=False,
    )
    interpolate(sys, gas, geometry, settings, 0.01)
    gas_mass = gas.dens[: geometry.nrad] * geometry.surf[:, None]
    received = float(np.sum(gas.rad_fb_acc[: geometry.nrad] * gas_mass))
    assert received == pytest.approx(-1e-6 * sys.rad_drag_acc[0], rel=1e-6)


def test_polar_grid_fields_accepted_and_written_in_place():
    geometry = _geometry()
    dust = PolarGrid(geometry.nrad, geometry.nsec, "dustpcdens")
    shape = (geometry.nrad + 1, geometry.nsec)
    gas = GasFields(
        vr=np.zeros(shape), vt=np.zeros(shape), dens=np.full(shape, 1e-3),
        cs=np.full(shape, 0.05), dust_density=dust,
    )
    sys = _particles([1.5], [1.0])
    interpolate(sys, gas, geometry, InterpolationSettings(particles_mass=1e-6), 0.01)
    total = float(np.sum(dust.field[: geometry.nrad] * geometry.surf[:, None]))
    assert total == pytest.approx(1e-6, rel=1e-3)


def test_zero_mode_self_gravity_requires_profile():
    geometry = _geometry()
    gas = _uniform_gas(geometry)
    sys = _particles([1.5], [1.0])
    settings = InterpolationSettings(self_gravity=True, dust_feel_sg_zero_mode=True)
    with pytest.raises(ValueError):
        interpolate(sys, gas, geometry, settings, 0.01)


def test_log_grid_uniform_density():
    geometry = Geometry.build(1.0, 2.0, 40, 64, True)
    gas = _uniform_gas(geometry)
    sys = _particles([1.33], [math.pi])
    interpolate(sys, gas, geometry, InterpolationSettings(scheme=Scheme.CIC), 0.01)
    assert sys.gas_dens[0] == pytest.approx(1e-3, rel=1e-3)
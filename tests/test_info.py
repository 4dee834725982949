import math

import pytest

from discdust.info import (
    Chronometer,
    SpecificTimer,
    describe_setup,
    nb_orbits,
    nb_outputs,
)
from discdust.params import Flags, ParameterError


def _params(**changes):
    base = {
        "RMIN": 0.4,
        "RMAX": 2.5,
        "ASPECTRATIO": 0.05,
        "SIGMA0": 6.3e-4,
        "SIGMASLOPE": 0.5,
        "DT": 0.314,
        "NINTERM": 20,
        "NRAD": 64,
        "NSEC": 128,
        "NTOT": 2000,
    }
    base.update(changes)
    return base


def test_one_orbit_per_two_pi():
    assert nb_orbits(2.0 * math.pi) == pytest.approx(1.0)


def test_orbits_scale_linearly():
    assert nb_orbits(6.0) == pytest.approx(3.0 * nb_orbits(2.0))


def test_outputs_round_trip_with_time():
    t = 50.0
    assert nb_outputs(t, 0.5, 4) * 0.5 * 4 == pytest.approx(t)


def test_outputs_rejects_zero_dt():
    with pytest.raises(ValueError):
        nb_outputs(1.0, 0.0, 10)


def test_describe_contains_grid_values():
    text = describe_setup(_params(), Flags())
    assert "Number of rings       : 64" in text
    assert "Number of sectors     : 128" in text
    assert "Inner Radius          : 0.4" in text


def test_describe_lists_temperature_only_with_energy_equation():
    plain = describe_setup(_params(), Flags())
    energy = describe_setup(_params(), Flags(energy_equation=True))
    assert "Temperature[i].dat" not in plain
    assert "Temperature[i].dat" in energy


def test_describe_noise_line_follows_flag():
    text = describe_setup(_params(NOISEAMPLITUDE=0.25), Flags(add_noise=True))
    assert "Noise to add: 0.25" in text
    assert "Noise to add" not in describe_setup(_params(), Flags())


def test_describe_missing_parameter_raises():
    params = _params()
    del params["NRAD"]
    with pytest.raises(ParameterError):
        describe_setup(params, Flags())


def test_chronometer_first_tick_initialises():
    chrono = Chronometer(wall=iter([0.0]).__next__, cpu=iter([0.0]).__next__)
    assert chrono.tick(0) == "Time counters initialized"


def test_chronometer_reports_elapsed_times():
    chrono = Chronometer(
        wall=iter([0.0, 10.0, 20.0]).__next__,
        cpu=iter([0.0, 5.0, 15.0]).__next__,
    )
    chrono.tick(0)
    report = chrono.tick(2)
    assert "Total Real Time elapsed    : 10.000 s" in report
    assert "CPU Time since last time step : 5.000 s" in report
    third = chrono.tick(3)
    assert "Total CPU Time of process  : 15.000 s" in third


def test_specific_timer_measures_cpu():
    timer = SpecificTimer("hydro", cpu=iter([1.0, 3.5]).__next__)
    assert timer.elapsed() == pytest.approx(2.5)


def test_specific_timer_disabled():
    timer = SpecificTimer("hydro", profiling=False)
    assert timer.elapsed() is None
    assert str(timer) == ""


def test_specific_timer_text_names_process():
    timer = SpecificTimer("transport", cpu=iter([0.0, 2.0]).__next__)
    assert str(timer) == "Time spent in transport : 2.000 s"
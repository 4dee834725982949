# discdust

`discdust` is a library for the solid component of a two-dimensional gas
disc around a star: Lagrangian dust particles, the planets embedded in the
disc, and the gravitational force the disc exerts on a body. Gas
quantities are NumPy arrays indexed `[ring, sector]` on a full-circle
polar mesh, arithmetic or logarithmic in radius. The star has unit mass
and the gravitational constant is one.

## Modules

- **`discdust.grid`**: `PolarGrid`, a named field on `nrad + 1` rings of
  `nsec` sectors, with `multiply` for in-place scaling. `Geometry` holds
  ring interfaces (`rinf`, `rsup`), ring centres (`rmed`), cell areas
  (`surf`) and sector azimuths (`azimuth`, `azi_inf`, `azi_sup`);
  `Geometry.build(rmin, rmax, nrad, nsec, log_grid)` makes one.
  `ring_of` and `sector_of` find the cell of a radius or azimuth,
  `wrap_azimuth` brings an azimuth back into the grid and `global_ifrac`
  gives the fractional ring index measured on ring centres.
  `compute_code_units` returns `CodeUnits` (one solar mass and one AU by
  default), which `CodeUnits.write` saves as `units.dat`. `make_dir` and
  `open_for_write` create output directories as needed.
- **`discdust.params`**: `Parameters.from_text` and `Parameters.from_file`
  read `NAME value` files against a list of `ParamSpec` entries
  (`ParamType.INT`, `REAL` or `STRING`, mandatory or with a default).
  Names are case-insensitive, lines whose first word starts with `#` are
  comments, and unknown or repeated names are collected in
  `Parameters.warnings`. `Flags.from_parameters` turns the first letters
  of string parameters into run switches and checks their consistency.
  Missing mandatory entries and inconsistent settings raise
  `ParameterError`. `usage` returns the text describing command-line
  options.
- **`discdust.info`**: `describe_setup` writes a summary of the disc, grid
  and expected outputs; `nb_orbits` and `nb_outputs` convert times;
  `Chronometer` and `SpecificTimer` report wall-clock and CPU time.
- **`discdust.planet`**: `PlanetarySystem`; `accrete_onto_planets`
  removes gas from inside each accreting planet's Roche lobe and adds its
  mass and momentum to the planet; `orbital_elements` returns
  `OrbitalElements` from a position and velocity, and `append_orbit`
  appends them to an orbit file.
- **`discdust.dust`**: `DustSystem` holds every per-particle quantity;
  `DustSystem.zeros` creates one and `rotate` turns all particles.
  `sample_sizes` and `sample_radii` draw from power laws,
  `keplerian_with_sg` gives circular velocities corrected for the disc's
  radial self-gravity, `init_dust_system` draws a new set of particles from
  `DustSettings`, and `read_dust_restart` reads a six-column particle file
  (radius, azimuth, vr, vtheta, Stokes number, size).
- **`discdust.interpolation`**: `interpolate` reads gas fields from
  `GasFields` at the particles with a `Scheme` (`NGP`, `CIC` or `TSC`),
  computes Stokes numbers and drag accelerations, deposits the dust
  density (and, with dust feedback, the feedback accelerations and
  heating) onto the mesh, and returns the minimum stopping time.
  `tsc_weight`, `drag_coefficient` and `stokes_number` are available on
  their own.
- **`discdust.dust_update`**: the leapfrog steps.
  `semi_update_positions` drifts particles over half a timestep, with
  optional turbulent kicks drawn by `GaussianPair` and relocation of
  particles found inside a planet's Hill radius. `update_velocities`
  applies star, planet, indirect and self-gravity forces with
  semi-implicit drag or the short-friction-time approximation, and
  updates the Jacobi constant. `dust_growth_taper` gives the growth
  factor used when dust growth is on. Options live in `UpdateSettings`.
- **`discdust.force`**: `compute_force` returns the disc's specific
  `Force` on a body, split into inner and outer parts, with a smooth
  exclusion of part of its Hill sphere (`ForceSettings`).
  `residual_density` subtracts ring averages, `compute_smoothing` gives
  the potential smoothing length, `torque_log_line` formats a torque log
  line, `update_log` appends `tqwk<i>.dat` and `indtq<i>.dat` for every
  planet, and `sg_acceleration_at` interpolates a self-gravity field at a
  point.

## A short tour

```python
import numpy as np

from discdust.dust import DustSettings, init_dust_system
from discdust.grid import Geometry, compute_code_units
from discdust.params import Flags, Parameters, ParamSpec, ParamType
from discdust.planet import orbital_elements

geometry = Geometry.build(0.4, 2.5, 128, 384, False)
ring = geometry.ring_of(1.0)
sector = geometry.sector_of(3.0)

units = compute_code_units()

# A planet on a circular orbit at unit radius around a unit-mass star.
elements = orbital_elements(1.0, 0.0, 0.0, 1.0, 1.0)

# One hundred millimetre-sized particles on circular orbits.
settings = DustSettings(size_min=1e-3, size_max=1e-3, unit_length=units.length)
dust = init_dust_system(100, geometry, settings, np.random.default_rng(1))

specs = [
    ParamSpec("RMIN", ParamType.REAL, necessary=True),
    ParamSpec("RMAX", ParamType.REAL, necessary=True),
    ParamSpec("NRAD", ParamType.INT, default="128"),
    ParamSpec("GRIDSPACING", ParamType.STRING, default="Arithmetic"),
]
params = Parameters.from_text("Rmin 0.4\nRmax 2.5\nGridSpacing Log\n", specs)
flags = Flags.from_parameters(params)   # flags.log_grid is True
```

## What the package does not do

`discdust` is a library only. It installs no command, and although
`usage` returns the text of a command-line interface, nothing here parses
command-line options or drives a run. It has no hydrodynamic solver: gas
densities, velocities, sound speeds, pressure gradients and self-gravity
fields are inputs that the caller provides. It neither writes nor reads
binary gas-field output files, and it runs in a single process.

## Requirements

Python 3.10 or later and NumPy. The tests use pytest
(`pip install discdust[test]`).
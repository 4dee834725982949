"""Parameter file reading and the run switches derived from it."""

from __future__ import annotations

import enum
import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

_SEPARATORS = "\t :=>_"
_MAX_STRING = 289
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


class ParamType(enum.Enum):
    INT = "int"
    REAL = "real"
    STRING = "string"


@dataclass(frozen=True)
class ParamSpec:
    """A known parameter: its name, type, whether it is mandatory and its default."""

    name: str
    type: ParamType
    necessary: bool = False
    default: str = ""


class ParameterError(Exception):
    """Raised for missing or inconsistent parameters."""


def _leading_float(text: str) -> float | None:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else None


def _first_word(text: str) -> str:
    words = text.split()
    return words[0][:_MAX_STRING] if words else ""


def _truncate(number: float) -> int:
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number)


def _convert(ptype: ParamType, number: float, word: str) -> Any:
    if ptype is ParamType.INT:
        return _truncate(number)
    if ptype is ParamType.REAL:
        return number
    return word


def parse_line(line: str) -> tuple[str, str] | None:
    """Split a parameter line into its upper-case name and value text.

    Returns None for blank lines and comments (lines whose first word
    begins with '#').
    """
    words = line.split()
    if not words or words[0].startswith("#"):
        return None
    name = words[0]
    rest = line[len(name):].lstrip(_SEPARATORS)
    return name.upper(), rest


class Parameters:
    """Values read from a parameter file, over the defaults of known specs."""

    def __init__(self, specs: Iterable[ParamSpec]) -> None:
        self._specs: dict[str, ParamSpec] = {}
        self.values: dict[str, Any] = {}
        self.read: set[str] = set()
        self.warnings: list[str] = []
        self.omitted: list[tuple[str, Any]] = []
        for spec in specs:
            self._specs[spec.name] = spec
            if spec.necessary:
                self.values[spec.name] = None
            else:
                number = _leading_float(spec.default)
                self.values[spec.name] = _convert(
                    spec.type, 0.0 if number is None else number, spec.default
                )

    @classmethod
    def from_text(cls, text: str, specs: Iterable[ParamSpec]) -> Parameters:
        params = cls(specs)
        for line in text.splitlines():
            parsed = parse_line(line)
            if parsed is not None:
                params._assign(*parsed)
        params._finish()
        return params

    @classmethod
    def from_file(cls, path: str | os.PathLike, specs: Iterable[ParamSpec]) -> Parameters:
        try:
            text = Path(path).read_text()
        except OSError as exc:
            raise ParameterError(f"Unable to read '{path}'") from exc
        return cls.from_text(text, specs)

    def _assign(self, name: str, rest: str) -> None:
        spec = self._specs.get(name)
        if spec is None:
            self.warnings.append(f"Warning : variable {name} defined but non-existent in code.")
            return
        if name in self.read:
            self.warnings.append(f"Warning : {name} defined more than once.")
        self.read.add(name)
        number = _leading_float(rest)
        self.values[name] = _convert(
            spec.type, 0.0 if number is None else number, _first_word(rest)
        )

    def _finish(self) -> None:
        missing = [
            name for name, spec in self._specs.items()
            if spec.necessary and name not in self.read
        ]
        if missing:
            raise ParameterError("undefined mandatory variable(s): " + ", ".join(missing))
        self.omitted = [
            (name, self.values[name]) for name in self._specs if name not in self.read
        ]

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


@dataclass
class Flags:
    """Run switches derived from the first letters of string parameters."""

    advecte_label: bool = False
    outer_source_mass: bool = False
    fast_transport: bool = True
    open_inner: bool = False
    non_reflecting: bool = False
    evanescent: bool = False
    mixed_bc: bool = False
    acc_boundary: bool = False
    kn_open: bool = False
    open_inner_dust: bool = False
    bc1d_ss_zero_vel: bool = False
    bc1d_ss_non_zero_vel: bool = False
    bc1d_zero_dens: bool = True
    tail_off_gauss: bool = False
    tail_off_sareh: bool = False
    exponential_cutoff: bool = False
    tail_off_aurelien: bool = False
    tail_off_stype: bool = False
    tail_off_gi: bool = False
    tail_off_in: bool = False
    centrifugal_balance: bool = False
    dont_apply_sub_keplerian: bool = False
    log_grid: bool = False
    is_disk: bool = True
    corotating: bool = False
    guiding_center: bool = False
    binary_center: bool = False
    retrograde_binary: bool = False
    write_velocity: bool = True
    write_density: bool = True
    write_energy: bool = False
    write_temperature: bool = False
    write_divv: bool = False
    write_visc_heat: bool = False
    write_ther_diff: bool = False
    write_rad_diff: bool = False
    write_ther_cool: bool = False
    write_potential: bool = False
    write_test: bool = False
    write_gr: bool = False
    write_gtheta: bool = False
    write_jacobi: bool = False
    write_dust_system: bool = True
    write_stokes_number: bool = False
    write_rad_fb_acc: bool = False
    write_azi_fb_acc: bool = False
    write_dust_density: bool = False
    dust_fluid: bool = False
    restart_with_new_dust: bool = False
    dust_diffusion: bool = False
    soft_writing: bool = False
    dust_growth: bool = False
    dust_feel_disk: bool = True
    remove_dust_from_planets_hill_radius: bool = True
    dust_feel_sg: bool = True
    dust_feel_sg_zero_mode: bool = False
    dust_feel_planets: bool = True
    dust_feel_turb: bool = False
    retrograde_planet: bool = False
    add_mass: bool = False
    disc_evaporation: bool = False
    customized_it: bool = False
    add_floors: bool = True
    add_m1: bool = False
    add_m1_boosted: bool = False
    add_m1_to_m10: bool = False
    zz_integrator: bool = False
    photo_evaporation: bool = False
    dec_inner: bool = False
    dust_feedback: bool = False
    ngp_interpolation: bool = False
    cic_interpolation: bool = False
    tsc_interpolation: bool = True
    no_timestep_constraint_by_particles: bool = False
    short_friction_time_approximation: bool = True
    damp_to_ini: bool = False
    damp_to_axi: bool = True
    damp_to_viscous: bool = False
    corotate_with_outer_planet: bool = False
    indirect_term: bool = True
    discard_gas_indirect_term: bool = False
    self_gravity: bool = False
    sg_zero_mode: bool = False
    zm_plus: bool = False
    add_noise: bool = False
    energy_equation: bool = False
    entropy_diffusion: bool = False
    radiative_diffusion: bool = False
    implicit_radiative_diffusion: bool = False
    thermal_cooling: bool = False
    stellar_irradiation: bool = False
    imposed_stellar_luminosity: bool = False
    set_constant_opacity: bool = False
    viscous_heating: bool = True
    temp_presc: bool = False
    beta_cooling: bool = False
    mhd_lsa: bool = False
    high_m_cutoff: bool = False
    bm08: bool = False
    cavity_torque: bool = False
    compare_sg_and_summation_torques: bool = False
    imposed_density: bool = False
    exclude_hill: bool = False
    cic_planet: bool = False
    forced_circular: bool = False
    forced_inner_circular: bool = False
    compute_cpd_mass: bool = False
    read_planet_file_at_restart: bool = True
    viscosity_alpha: bool = False
    roche_smoothing: bool = False
    wkzrmin: float = 0.0
    wkzrmax: float = 0.0
    outputdir: str = "./"
    notes: list[str] = field(default_factory=list)

    @classmethod
    def from_parameters(cls, params: Parameters) -> Flags:
        """Derive switches from ``params`` and check their consistency."""
        flags = cls()

        def letter(name: str) -> str:
            value = params.get(name)
            return value[0].upper() if isinstance(value, str) and value else ""

        def num(name: str) -> float:
            value = params.get(name)
            return float(value) if isinstance(value, (int, float)) else 0.0

        def when(name: str, letters: str, **changes: Any) -> bool:
            c = letter(name)
            if c and c in letters:
                for key, value in changes.items():
                    setattr(flags, key, value)
                return True
            return False

        tail = {"centrifugal_balance": True, "dont_apply_sub_keplerian": True}

        when("ADVLABEL", "Y", advecte_label=True)
        when("OUTERSOURCEMASS", "Y", outer_source_mass=True)
        when("TRANSPORT", "S", fast_transport=False)
        when("OPENINNERBOUNDARY", "O", open_inner=True)
        when("OPENINNERBOUNDARY", "N", non_reflecting=True)
        when("OPENINNERBOUNDARY", "E", evanescent=True)
        when("OPENINNERBOUNDARY", "M", mixed_bc=True)
        when("OPENINNERBOUNDARY", "A", acc_boundary=True)
        when("OPENINNERBOUNDARY", "K", kn_open=True, open_inner=True)
        when("OPENINNERBOUNDARYDUST", "O", open_inner_dust=True)
        when("BOUNDARY1DGRID", "Z", bc1d_ss_zero_vel=True, bc1d_zero_dens=False)
        when("BOUNDARY1DGRID", "D", bc1d_ss_non_zero_vel=True, bc1d_zero_dens=False)
        when("TAILOFF", "G", tail_off_gauss=True, **tail)
        when("TAILOFF", "H", tail_off_sareh=True, **tail)
        when("TAILOFF", "E", exponential_cutoff=True, **tail)
        when("TAILOFF", "A", tail_off_aurelien=True, **tail)
        when("TAILOFF", "B", tail_off_stype=True, **tail)
        when("TAILOFF", "S", tail_off_gi=True, **tail)
        when("TAILOFF", "I", tail_off_in=True, **tail)
        when("GRIDSPACING", "L", log_grid=True)
        when("DISK", "N", is_disk=False)
        when("FRAME", "C", corotating=True)
        when("FRAME", "G", corotating=True, guiding_center=True)
        when("FRAME", "B", corotating=True, binary_center=True)
        when("RETROGRADEBINARY", "Y", retrograde_binary=True)
        when("WRITEVELOCITY", "N", write_velocity=False)
        when("WRITEDENSITY", "N", write_density=False)
        when("WRITEENERGY", "Y", write_energy=True)
        when("WRITETEMPERATURE", "Y", write_temperature=True)
        when("WRITEDIVV", "Y", write_divv=True)
        when("WRITEVISCHEAT", "Y", write_visc_heat=True)
        when("WRITETHERDIFF", "Y", write_ther_diff=True)
        when("WRITERADDIFF", "Y", write_rad_diff=True)
        when("WRITETHERCOOL", "Y", write_ther_cool=True)
        when("WRITEPOTENTIAL", "Y", write_potential=True)
        when("WRITETEST", "Y", write_test=True)
        when("WRITEGR", "Y", write_gr=True)
        when("WRITEGTHETA", "Y", write_gtheta=True)
        when("WRITEJACOBI", "Y", write_jacobi=True)
        when("WRITEDUSTSYSTEM", "N", write_dust_system=False)
        when("WRITEDUSTSTOKES", "Y", write_stokes_number=True)
        when("WRITERADFBACC", "Y", write_rad_fb_acc=True)
        when("WRITEAZIFBACC", "Y", write_azi_fb_acc=True)
        when("DUSTFLUID", "Y", dust_fluid=True)
        if flags.dust_fluid:
            flags.write_dust_density = True
        if num("NBPART") != 0 or flags.dust_fluid:
            flags.write_dust_density = True
            when("WRITEDUSTDENSITY", "N", write_dust_density=False)
            when("RESTARTWITHNEWDUST", "Y", restart_with_new_dust=True)
        when("DUSTDIFFUSION", "Y", dust_diffusion=True)
        when("SOFTWRITING", "Y", soft_writing=True)
        when("DUSTGROWTH", "Y", dust_growth=True)
        when("DUSTFEELDISK", "N", dust_feel_disk=False)
        when("REMOVEDUSTFROMPLANETSHILLRADIUS", "N",
             remove_dust_from_planets_hill_radius=False)
        when("DUSTFEELSG", "N", dust_feel_sg=False)
        when("DUSTFEELSG", "Z", dust_feel_sg=True, dust_feel_sg_zero_mode=True)
        when("DUSTFEELPLANETS", "N", dust_feel_planets=False)
        when("DUSTFEELTURB", "YC", dust_feel_turb=True)
        when("RETROGRADEPLANET", "Y", retrograde_planet=True)
        when("ADDMASS", "Y", add_mass=True)
        if when("DISCEVAPORATION", "Y", disc_evaporation=True):
            flags.notes.append(
                "Disc evaporation included, with characteristic timescale = %g" % num("TEVAP")
            )
        when("CUSTIT", "Y", customized_it=True)
        when("ADDFLOORS", "N", add_floors=False)
        when("ADDM1", "Y", add_m1=True)
        when("ADDM1", "B", add_m1_boosted=True)
        when("ADDM1TOM10", "Y", add_m1_to_m10=True)
        when("ZZINTEGRATOR", "Y", zz_integrator=True)
        when("PHOTOEVAPORATION", "Y", photo_evaporation=True)
        if flags.photo_evaporation and num("LX") == 0.0:
            raise ParameterError(
                "You should set the star X-ray luminosity in erg/s for photoevaporation."
            )
        when("DECINNER", "Y", dec_inner=True)
        when("DUSTFEEDBACK", "Y", dust_feedback=True)
        when("INTERPOLATION", "N", ngp_interpolation=True,
             cic_interpolation=False, tsc_interpolation=False)
        when("INTERPOLATION", "C", ngp_interpolation=False,
             cic_interpolation=True, tsc_interpolation=False)
        when("INTERPOLATION", "T", ngp_interpolation=False,
             cic_interpolation=False, tsc_interpolation=True)
        when("NODTCONSTRAINTBYPCS", "Y", no_timestep_constraint_by_particles=True)
        when("SFTAPPROX", "N", short_friction_time_approximation=False)
        when("DAMPTOINI", "Y", damp_to_ini=True, damp_to_axi=False, damp_to_viscous=False)
        when("DAMPTOAXI", "N", damp_to_axi=False, damp_to_ini=True, damp_to_viscous=False)
        when("DAMPTOVISCOUS", "Y", damp_to_viscous=True, damp_to_ini=False, damp_to_axi=False)
        when("COROTATEWITHOUTERPLANET", "Y", corotate_with_outer_planet=True)
        when("INDIRECTTERM", "N", indirect_term=False)
        when("DISCARDGASINDIRECTTERM", "Y", discard_gas_indirect_term=True)
        when("SELFGRAVITY", "Y", self_gravity=True)
        when("SELFGRAVITY", "Z", self_gravity=True, sg_zero_mode=True)
        when("ZMPLUS", "Y", zm_plus=True)
        if flags.zm_plus and not flags.sg_zero_mode:
            flags.notes.append(
                "ZMPlus needs the axisymmetric component of self-gravity; ZMPlus set to No."
            )
            flags.zm_plus = False
        when("ADDNOISE", "Y", add_noise=True)
        when("ENERGYEQUATION", "Y", energy_equation=True, write_temperature=True)
        when("ENTROPYDIFFUSION", "Y", entropy_diffusion=True)
        when("RADIATIVEDIFFUSION", "E", radiative_diffusion=True)
        when("RADIATIVEDIFFUSION", "I", radiative_diffusion=True,
             implicit_radiative_diffusion=True)
        when("THERMALCOOLING", "Y", thermal_cooling=True)
        when("STELLARIRRADIATION", "Y", stellar_irradiation=True)
        when("STELLARIRRADIATION", "L", stellar_irradiation=True,
             imposed_stellar_luminosity=True)
        when("SETCONSTANTOPACITY", "Y", set_constant_opacity=True)
        when("VISCOUSHEATING", "N", viscous_heating=False)
        when("TEMPPRESC", "Y", temp_presc=True)
        when("BETACOOLING", "Y", beta_cooling=True)
        if flags.energy_equation and num("ADIABATICINDEX") == 1:
            flags.notes.append(
                "EnergyEquation = Yes needs AdiabaticIndex != 1; "
                "EnergyEquation set to No (locally isothermal)."
            )
            flags.energy_equation = False
        when("WRITEENERGY", "N", write_energy=False)
        when("MHD", "L", mhd_lsa=True)
        when("HIGHMCUTOFF", "Y", high_m_cutoff=True)
        when("BM08TRICK", "Y", bm08=True)
        when("CAVITYTORQUE", "Y", cavity_torque=True, **tail)
        when("COMPARESGANDSUMMATIONTORQUES", "Y", compare_sg_and_summation_torques=True)
        when("IMPOSEDDENSITY", "Y", imposed_density=True)
        when("EXCLUDEHILL", "Y", exclude_hill=True)
        when("CICPLANET", "Y", cic_planet=True)
        when("FORCEDCIRCULAR", "Y", forced_circular=True)
        when("FORCEDINNERCIRCULAR", "Y", forced_inner_circular=True)
        when("COMPUTECPDMASS", "Y", compute_cpd_mass=True)
        when("READPLANETFILEATRESTART", "N", read_planet_file_at_restart=False)
        if when("DONTAPPLYSUBKEPLERIAN", "Y", dont_apply_sub_keplerian=True):
            flags.notes.append("I will not apply subkeplerian boundary on vtheta")
        if flags.evanescent:
            flags.notes.append(
                "Evanescent wave-killing zones boundary condition is applied; "
                "no subKeplerian boundary condition on vtheta."
            )
            flags.dont_apply_sub_keplerian = True

        exclude = num("EXCLUDEHILLFACTOR")
        if exclude < 0.0 or exclude > 1.0:
            raise ParameterError("EXCLUDEHILLFACTOR must range between 0 and 1.")
        if num("ALPHAVISCOSITY") != 0.0 and num("VISCOSITY") != 0.0:
            raise ParameterError("You cannot use at the same time VISCOSITY and ALPHAVISCOSITY.")
        if num("ALPHAVISCOSITY") != 0.0:
            flags.viscosity_alpha = True
            flags.notes.append("Viscosity is of alpha type")
        if flags.self_gravity and num("SGTHICKNESSSMOOTHING") == 0.0:
            raise ParameterError(
                "You cannot have a vanishing smoothing length for the self-gravitating kernel."
            )
        if num("ROCHESMOOTHING") != 0.0:
            flags.roche_smoothing = True
            flags.notes.append("Planet potential smoothing scales with their Hill sphere.")

        flags.wkzrmin = num("WKZRMIN")
        flags.wkzrmax = num("WKZRMAX")
        if flags.evanescent and (flags.wkzrmin == 0.0 or flags.wkzrmax == 0.0):
            raise ParameterError(
                "Evanescent boundary assumed but WKZRMIN and WKZRMAX are not set."
            )
        if flags.mixed_bc:
            flags.wkzrmin = 0.0
            if flags.wkzrmax == 0.0:
                raise ParameterError(
                    "Evanescent outer boundary assumed but WKZRMAX is not set."
                )

        outputdir = params.get("OUTPUTDIR")
        outputdir = outputdir if isinstance(outputdir, str) else ""
        flags.outputdir = outputdir if outputdir.endswith("/") else outputdir + "/"
        return flags


def usage(execname: str) -> str:
    """Command-line usage text."""
    return "\n".join([
        f"Usage : {execname} [-abcdeimnptvz] [-(0-9)] [-s number] [-f scaling] parameters file",
        "",
        "-a : Monitor mass and angular momentum at each timestep",
        "-b : Adjust azimuthal velocity to impose strict centrifugal balance at t=0",
        "-c : Sloppy CFL condition (checked at each DT, not at each timestep)",
        "-d : Print some debugging information on 'stdout' at each timestep",
        "-e : Activate EU test problem torque file output",
        "-f : Scale density array by 'scaling'. Useful to increase/decrease",
        "     disk surface density after a restart, for instance.",
        "-i : tabulate Sigma profile as given by restart files",
        "-m : Merge output files from different CPUs",
        "-n : Disable simulation. The program just reads parameters file",
        "-o : Overrides output directory of input file.",
        "-p : Give profiling information at each time step",
        "-s : Restart simulation, taking #'number' files as initial conditions",
        "-t : Monitor CPU time usage at each time step",
        "-v : Verbose mode. Tells everything about parameters file",
        "-z : fake sequential built when evaluating sums on HD meshes",
        "-(0-9) : only write initial (or restart) HD meshes,",
        "     proceed to the next nth output and exit",
        "     This option must stand alone on one switch (-va -4 is legal, -v4a is not)",
        "",
    ])
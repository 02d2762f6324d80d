"""
Temperature and driving-frequency sweeps.

``run_sweep`` solves the athermal ground state, then walks the temperatures
in the given order, seeding each variational solve with the previous
solution, and evaluates the DC mobility, the diagnostic quantities and the
response at every driving frequency.  All outputs are written into arrays
pre-sized from the sweep inputs, so index ``i`` always belongs to
``temperatures[i]`` and index ``k`` to ``frequencies[k]``.

Driving frequencies of one temperature are independent; with
``config.threads`` they are spread over a process pool and stored by index
as they complete.
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from contextlib import nullcontext
from dataclasses import fields

import numpy as np

from polaronsuite.core.config import DEFAULT_CONFIG, SolverConfig
from polaronsuite.core.constants import CODATA, PhysicalConstants, twopi
from polaronsuite.core.typepolaron import CouplingSet, PolaronResult, ThermodynamicPoint
from polaronsuite.frohlich.coupling import reduce_coupling, single_mode_coupling
from polaronsuite.frohlich.diagnostics import PolaronDiagnostics, polaron_diagnostics
from polaronsuite.frohlich.hellwarth import effective_coupling
from polaronsuite.frohlich.progress import LoggingObserver, NullObserver
from polaronsuite.frohlich.response import evaluate_response, polaron_mobility
from polaronsuite.frohlich.variational import solve_variational
from polaronsuite.libpolaron.logger import get_logger
from polaronsuite.libpolaron.materialproperties import Material, load_material

log = get_logger(__name__)

DIAGNOSTIC_FIELDS = tuple(f.name for f in fields(PolaronDiagnostics))


def _sweep_axis(values, name, allow_zero=True):
    arr = np.atleast_1d(np.asarray(values, dtype=np.float64))
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"{name} must be a non-empty 1-D sequence")
    for i, x in enumerate(arr):
        if not np.isfinite(x) or x < 0.0 or (x == 0.0 and not allow_zero):
            raise ValueError(f"{name}[{i}] must be finite and >= 0, got {x}")
    return arr


def _response_row(result, i, solution, coupling, point, config, observer, executor):
    nW = result.frequencies.size
    T = float(result.temperatures[i])
    if executor is None:
        for k, Omega in enumerate(result.frequencies):
            sample = evaluate_response(solution, coupling, point, float(Omega), config)
            result.store_sample(i, k, sample)
            observer.point_completed("response", k, nW, T=T, Omega=float(Omega),
                                     conductivity=sample.conductivity)
        return

    futures = {}
    for k, Omega in enumerate(result.frequencies):
        future = executor.submit(evaluate_response, solution, coupling, point,
                                 float(Omega), config)
        futures[future] = k
    for future in as_completed(futures):
        k = futures[future]
        sample = future.result()
        result.store_sample(i, k, sample)
        observer.point_completed("response", k, nW, T=T, Omega=sample.frequency,
                                 conductivity=sample.conductivity)


def run_sweep(coupling: CouplingSet, temperatures, frequencies=(0.0,),
              config: SolverConfig = DEFAULT_CONFIG, observer=None,
              constants: PhysicalConstants = CODATA) -> PolaronResult:
    """
    Solve a polaron over a temperature sweep and a driving-frequency sweep.

    Parameters
    ----------
    coupling : CouplingSet
        Phonon branches.
    temperatures : array_like
        Temperatures (K), any order; 0 selects the athermal solution.
    frequencies : array_like
        Driving angular frequencies (rad/ps); 0 is the DC limit.
    config : SolverConfig
        Numerical settings.
    observer : SweepObserver, optional
        Progress events; defaults to a LoggingObserver when
        ``config.verbose`` and to silence otherwise.
    constants : PhysicalConstants
        SI constants used for beta and the diagnostic unit conversions.

    Returns
    -------
    PolaronResult
        Mobilities are stored in units of e / (m_b omega_unit); the
        diagnostics dictionary holds one array per PolaronDiagnostics field.
    """
    temperatures = _sweep_axis(temperatures, "temperatures")
    frequencies = _sweep_axis(frequencies, "frequencies")
    if observer is None:
        observer = LoggingObserver() if config.verbose else NullObserver()

    nT, nW = temperatures.size, frequencies.size
    result = PolaronResult.allocate(coupling, temperatures, frequencies)
    result.diagnostics = {name: np.full(nT, np.nan) for name in DIAGNOSTIC_FIELDS}
    log.info("Polaron sweep: %d mode(s), alpha_total=%.6f, %d temperature(s), %d frequency(ies)",
             coupling.n_modes, coupling.alpha_total, nT, nW)

    observer.stage_entered("ground state", 1)
    ground = solve_variational(coupling, None, config=config)
    result.ground_state = ground
    observer.point_completed("ground state", 0, 1, v=ground.v, w=ground.w, F=ground.F)

    v_prev, w_prev = ground.v, ground.w
    use_pool = config.threads and nW > 1
    pool = ProcessPoolExecutor(max_workers=config.max_workers) if use_pool else nullcontext()
    with pool as executor:
        observer.stage_entered("temperature", nT)
        for i, T in enumerate(temperatures):
            point = ThermodynamicPoint.from_temperature(float(T), coupling, constants)
            result.betas[i] = point.beta_array(coupling.n_modes)
            if point.is_athermal:
                solution = ground
            else:
                solution = solve_variational(coupling, point, v_prev, w_prev, config=config)
            result.store_solution(i, solution)
            if solution.converged:
                v_prev, w_prev = solution.v, solution.w

            result.mobility[i] = polaron_mobility(solution, coupling, point, config)
            diag = polaron_diagnostics(solution, coupling, point, constants)
            for name in DIAGNOSTIC_FIELDS:
                result.diagnostics[name][i] = getattr(diag, name)

            observer.stage_entered("response", nW)
            _response_row(result, i, solution, coupling, point, config, observer,
                          executor if use_pool else None)
            observer.point_completed("temperature", i, nT, T=float(T), v=solution.v,
                                     w=solution.w, F=solution.F,
                                     mobility=float(result.mobility[i]))
    return result


def make_polaron(eps_optic, eps_static, phonon_freq, m_eff, temperatures,
                 frequencies=(0.0,), ir_activity=None, volume=None, effective_mode=False,
                 config: SolverConfig = DEFAULT_CONFIG, observer=None,
                 constants: PhysicalConstants = CODATA) -> PolaronResult:
    """
    Build a coupling set from dielectric data and run a sweep.

    Parameters
    ----------
    eps_optic, eps_static : float
        High-frequency and static dielectric constants.
    phonon_freq : float or array_like
        Phonon frequencies (THz).
    m_eff : float
        Band effective mass (electron masses).
    temperatures : array_like
        Temperatures (K).
    frequencies : array_like
        Driving frequencies (THz); converted to rad/ps.
    ir_activity : array_like, optional
        Infrared activities, one per phonon frequency.  Required for more
        than one mode.
    volume : float, optional
        Unit-cell volume (m^3); required with ``ir_activity`` unless
        ``effective_mode`` is set.
    effective_mode : bool
        Collapse the spectrum onto its Hellwarth B effective mode instead of
        solving the full multi-mode problem.
    """
    freqs = np.atleast_1d(np.asarray(phonon_freq, dtype=np.float64))
    if ir_activity is None:
        if freqs.size != 1:
            raise ValueError(
                f"{freqs.size} phonon frequencies given without infrared activities"
            )
        coupling = single_mode_coupling(eps_optic, eps_static, float(freqs[0]), m_eff, constants)
    else:
        table = np.column_stack([freqs, np.atleast_1d(np.asarray(ir_activity, dtype=np.float64))])
        if effective_mode:
            coupling = effective_coupling(table, eps_optic, eps_static, m_eff, constants)
        else:
            if volume is None:
                raise ValueError("A unit-cell volume is needed for a multi-mode coupling set")
            coupling = reduce_coupling(table, eps_optic, eps_static, volume, m_eff, constants)

    omegas = twopi * _sweep_axis(frequencies, "frequencies")
    return run_sweep(coupling, temperatures, omegas, config, observer, constants)


def material_polaron(material, temperatures, frequencies=(0.0,), effective_mode=False,
                     config: SolverConfig = DEFAULT_CONFIG, observer=None,
                     constants: PhysicalConstants = CODATA) -> PolaronResult:
    """``make_polaron`` for a :class:`Material` or a materials-database name."""
    if not isinstance(material, Material):
        material = load_material(material)
    return make_polaron(
        material.eps_optic, material.eps_static, material.phonon_freq, material.m_eff,
        temperatures, frequencies, ir_activity=material.ir_activity, volume=material.volume,
        effective_mode=effective_mode, config=config, observer=observer, constants=constants,
    )

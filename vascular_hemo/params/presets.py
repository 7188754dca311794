"""Named simulation configurations.

Units: SI (m, m/s, Pa, Pa s) unless ``TEST_PARAM`` is set, in which case the
physical scalars are read as already dimensionless.  Boundary values and the
reference pressures ``P0`` / ``P_T0`` are always dimensionless.
"""

from .config import SimulationConfig


def _solver_defaults() -> dict:
    return {
        "COMPLIANT_VESSELS": 0,
        "LINEAR_LYMPHATIC_DRAINAGE": 1,
        "CURVE_PROBLEM": 0,
        "VISCOSITY_MODEL": "vivo",
        "PHASE_SEPARATION": 0,
        "THETA": 1.0,  # artificial diffusion factor
        "BETA_H": 0.0,  # Robin coefficient at hematocrit inflow boundaries
        "H_START": 0.45,
        "P0": 0.0,  # reference pressure at unregistered boundary ends
        "P_T0": 0.0,  # pressure on the tissue block boundary
        "epsSol": 1.0e-6,
        "epsCM": 1.0e-4,
        "epsH": 1.0e-6,
        "underRelax": 1.0,
        "underH": 1.0,
        "Max_it": 100,
        "Save_it": 0,  # checkpoint period, 0 disables
        "MAX_CONDITION": 1.0e16,
        "OutputDir": "./vtk",
    }


def microcirculation() -> SimulationConfig:
    """
    Rigid capillary-scale network in interstitial tissue.

    Characteristics:
    - Reference length 100 um, velocity 1 mm/s, pressure 1 mmHg
    - Pries in-vivo viscosity, linear lymphatic drainage
    - Rigid walls
    """
    values = _solver_defaults()
    values.update(
        TEST_PARAM=0,
        d=1.0e-4,  # characteristic length [m]
        U=1.0e-3,  # characteristic velocity [m/s]
        P=133.32,  # characteristic pressure [Pa]
        k=1.0e-18,  # tissue permeability [m^2]
        mu_t=1.2e-3,  # interstitial fluid viscosity [Pa s]
        mu_v=3.0e-3,  # reference blood viscosity [Pa s]
        mu_plasma=1.2e-3,  # plasma viscosity [Pa s]
        Lp=1.0e-12,  # wall hydraulic conductivity [m^2 s/kg]
        Lp_LF=1.0e-7,  # lymphatic conductivity [1/(Pa s)]
        PL=0.0,  # lymphatic pressure [Pa]
        A_LF=1.0e-6,  # sigmoid drainage plateau [1/s]
        B_LF=1.0e-6,  # sigmoid drainage amplitude [1/s]
        C_LF=500.0,  # sigmoid drainage width [Pa]
        D_LF=0.0,  # sigmoid drainage midpoint [Pa]
        Pi_t=666.6,  # interstitial oncotic pressure [Pa]
        Pi_v=3333.0,  # plasma oncotic pressure [Pa]
        sigma=0.95,  # reflection coefficient
        Gamma=2.0,  # velocity profile exponent
        E=1.0e5,  # wall Young modulus [Pa]
        nu=0.49,  # wall Poisson ratio
        RADIUS=4.0e-6,  # vessel radius when none is imported [m]
    )
    return SimulationConfig(values)


def compliant_microcirculation() -> SimulationConfig:
    """
    Microcirculation with deformable walls.

    Characteristics:
    - Compliant vessels (thick wall arterioles, buckling venules)
    - Under-relaxed flow update for the geometric feedback
    """
    config = microcirculation()
    return config.with_overrides(COMPLIANT_VESSELS=1, underRelax=0.5)


def dimensionless_test() -> SimulationConfig:
    """
    Dimensionless setup used for tests and quick checks.

    Characteristics:
    - Physical scalars read as dimensionless (``TEST_PARAM = 1``)
    - Unit tissue permeability, weak wall leakage
    - Tight tolerances
    """
    values = _solver_defaults()
    values.update(
        TEST_PARAM=1,
        d=1.0e-4,  # still used for the viscosity law (um diameters)
        mu_v=3.0e-3,
        mu_plasma=1.2e-3,
        Kt=1.0,
        Q=1.0e-3,
        Kv=1.0,
        Q_LF=0.0,
        QLF_A=0.0,
        QLF_B=0.0,
        QLF_C=1.0,
        QLF_D=0.0,
        PL=0.0,
        pi_t_adim=0.0,
        pi_v_adim=0.0,
        sigma=0.0,
        Gamma=2.0,
        E=100.0,
        nu=0.49,
        RADIUS=0.1,
        epsCM=1.0e-6,
        Max_it=50,
    )
    return SimulationConfig(values)


PRESETS = {
    "microcirculation": microcirculation,
    "compliant_microcirculation": compliant_microcirculation,
    "dimensionless_test": dimensionless_test,
}


def get_preset(name: str) -> SimulationConfig:
    """
    Get a configuration preset by name.

    Parameters
    ----------
    name : str
        Preset name (e.g., "microcirculation", "dimensionless_test")

    Returns
    -------
    SimulationConfig
        Configuration

    Raises
    ------
    ValueError
        If preset name is not recognized
    """
    if name not in PRESETS:
        available = ", ".join(PRESETS.keys())
        raise ValueError(f"Unknown preset '{name}'. Available: {available}")

    return PRESETS[name]()


def list_presets() -> list:
    """List all available preset names."""
    return list(PRESETS.keys())

"""Physical, biological and numerical constants for network dynamics.

This module centralizes the default values used throughout ecodyn,
so that model builders, the dynamics and the simulation driver
agree on the same numbers.
"""

# ============================================================================
# PHYSICAL CONSTANTS
# ============================================================================

BOLTZMANN = 8.617e-5  # Boltzmann constant (eV/K)
DEFAULT_TEMPERATURE = 293.15  # Default environment temperature (K)
DEFAULT_T0 = 293.15  # Normalization temperature for Boltzmann-Arrhenius rates (K)

# ============================================================================
# METABOLIC CLASSES
# ============================================================================

PRODUCER = "producer"
INVERTEBRATE = "invertebrate"
ECTOTHERM = "ectotherm vertebrate"
METABOLIC_CLASSES = (PRODUCER, INVERTEBRATE, ECTOTHERM)

# ============================================================================
# ALLOMETRIC DEFAULTS
# ============================================================================

# Coefficients are given as (producer, invertebrate, ectotherm vertebrate).
GROWTH_RATE_A = (1.0, 0.0, 0.0)
GROWTH_RATE_B = (-0.25, 0.0, 0.0)

METABOLIC_RATE_A = (0.0, 0.314, 0.88)
METABOLIC_RATE_B = (0.0, -0.25, -0.25)

MAX_CONSUMPTION_A = (0.0, 8.0, 4.0)
MAX_CONSUMPTION_B = (0.0, 0.0, 0.0)

MORTALITY_A = (0.0138, 0.0314, 0.0314)
MORTALITY_B = (-0.25, -0.25, -0.25)

# Activation energies (eV) for Boltzmann-Arrhenius temperature dependence.
GROWTH_ACTIVATION_ENERGY = -0.84
METABOLIC_ACTIVATION_ENERGY = -0.69
MAX_CONSUMPTION_ACTIVATION_ENERGY = -0.69

# ============================================================================
# FUNCTIONAL RESPONSE DEFAULTS
# ============================================================================

DEFAULT_HALF_SATURATION = 0.5  # Bioenergetic half-saturation density B0
DEFAULT_HILL_EXPONENT = 2.0
DEFAULT_INTERFERENCE = 0.0  # Intraspecific predator interference c
EFFICIENCY_HERBIVORY = 0.45  # Assimilation efficiency on producers
EFFICIENCY_CARNIVORY = 0.85  # Assimilation efficiency on consumers

# Allometric handling time: a * M_pred^b_pred * M_prey^b_prey
HANDLING_TIME_A = 0.3
HANDLING_TIME_B_PREDATOR = -0.48
HANDLING_TIME_B_PREY = -0.66

# Allometric attack rate: a * M_pred^b_pred * M_prey^b_prey
ATTACK_RATE_A = 50.0
ATTACK_RATE_B_PREDATOR = 0.45
ATTACK_RATE_B_PREY = 0.15

# ============================================================================
# PRODUCER GROWTH DEFAULTS
# ============================================================================

DEFAULT_CARRYING_CAPACITY = 1.0
DEFAULT_N_NUTRIENTS = 2
DEFAULT_TURNOVER = 0.25  # Nutrient turnover rate, must lie in (0, 1]
DEFAULT_SUPPLY = 10.0  # Nutrient supply concentration
DEFAULT_NUTRIENT_HALF_SATURATION = 1.0
DEFAULT_CONCENTRATION_RANGE = (1.0, 0.5)  # Producers nutrient content

# ============================================================================
# NON-TROPHIC INTERACTIONS
# ============================================================================

DEFAULT_NTI_INTENSITY = 1.0

# ============================================================================
# SIMULATION PARAMETERS
# ============================================================================

DEFAULT_T0_SIMULATION = 0.0
DEFAULT_TMAX = 500.0
DEFAULT_EXTINCTION_THRESHOLD = 1e-5
DEFAULT_ALGORITHM = "LSODA"

# ============================================================================
# CONVERGENCE AND TOLERANCE
# ============================================================================

EPSILON = 1e-10  # Small value for floating point comparisons

# Integration tolerances
INTEGRATION_RTOL = 1e-6  # Relative tolerance
INTEGRATION_ATOL = 1e-9  # Absolute tolerance

# Steady state detection
STEADY_STATE_ABSTOL = 1e-6
STEADY_STATE_RELTOL = 1e-4

# Domain rejection: smallest step size before giving up
MIN_STEP_SIZE = 1e-12

from typing import TypeAlias


_Tolerance: TypeAlias = float
_Factor: TypeAlias = float

# Primary tolerance hierarchy
NUMERICAL_ZERO: _Tolerance = 1e-14  # accumulated floating point error
COORDINATE_PRECISION: _Tolerance = 1e-12  # normalized mesh coordinates

ZERO_TOLERANCE: _Tolerance = NUMERICAL_ZERO
"""Tolerance for considering floating point values as zero."""

MESH_TOLERANCE: _Tolerance = COORDINATE_PRECISION
"""Minimum spacing required between mesh points."""

MESH_ENDPOINT_TOLERANCE: _Tolerance = 1e-15
"""Tolerance on the first (0) and last (1) mesh fractions."""

# Collocation defaults
DEFAULT_POLYNOMIAL_DEGREE: int = 3
MAX_POLYNOMIAL_DEGREE: int = 50
DEFAULT_LRU_CACHE_SIZE: int = 64

# NLP solver defaults
DEFAULT_NLP_SOLVER: str = "ipopt"

# Random iterate generation
DEFAULT_RANDOM_SEED: int = 0
UNBOUNDED_RANDOM_HALF_WIDTH: _Factor = 1.0

import logging
from dataclasses import dataclass, field
from typing import Any

from .dc_types import FloatArray, Iterate, NumericArrayLike, ProblemProtocol, Solution
from .exceptions import ConfigurationError
from .input_validation import validate_polynomial_degree
from .transcription import TRANSCRIPTION_SCHEMES, build_mesh, create_transcription
from .utils.constants import DEFAULT_NLP_SOLVER, DEFAULT_POLYNOMIAL_DEGREE


logger = logging.getLogger(__name__)

# Default solver options
DEFAULT_NLP_OPTIONS: dict[str, object] = {
    "ipopt.print_level": 0,
    "ipopt.sb": "yes",
    "print_time": 0,
}


@dataclass
class Solver:
    """
    Discretization and NLP settings.

    Args:
        mesh: Normalized mesh fractions (first 0, last 1, strictly increasing),
            or the number of uniform mesh intervals.
        transcription_scheme: One of "trapezoidal", "hermite-simpson",
            "legendre-gauss", "legendre-gauss-radau".
        polynomial_degree: Interior collocation points per mesh interval for
            the Gauss and Radau schemes.
        scale_variables_using_bounds: Scale every variable to its bound range.
        interpolate_control_midpoints: Constrain controls between mesh points
            to the linear interpolation of the mesh-point controls.
        enforce_path_constraint_midpoints: Evaluate path constraints at every
            point instead of at mesh points only.
        optim_solver: CasADi `nlpsol` plugin.
        solver_options: Options passed to `nlpsol`.
    """

    mesh: NumericArrayLike | int | FloatArray = 10
    transcription_scheme: str = "hermite-simpson"
    polynomial_degree: int = DEFAULT_POLYNOMIAL_DEGREE
    scale_variables_using_bounds: bool = False
    interpolate_control_midpoints: bool = True
    enforce_path_constraint_midpoints: bool = False
    optim_solver: str = DEFAULT_NLP_SOLVER
    solver_options: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_NLP_OPTIONS))

    def __post_init__(self) -> None:
        self.mesh = build_mesh(self.mesh)
        if self.transcription_scheme not in TRANSCRIPTION_SCHEMES:
            raise ConfigurationError(
                f"Unknown transcription scheme '{self.transcription_scheme}'",
                f"Available schemes: {sorted(TRANSCRIPTION_SCHEMES)}",
            )
        validate_polynomial_degree(self.polynomial_degree)
        if not isinstance(self.solver_options, dict):
            raise ConfigurationError(
                f"solver_options must be a dict, got {type(self.solver_options)}"
            )


def solve(problem: ProblemProtocol, solver: Solver, guess: Iterate | None = None) -> Solution:
    """
    Transcribe and solve an optimal control problem.

    Args:
        problem: Problem with dynamics, bounds, constraints and costs.
        solver: Discretization and NLP settings.
        guess: Optional initial iterate; categories it omits are guessed from
            the variable bounds.

    Returns:
        Solution with unscaled variables, absolute times, objective breakdown
        and expanded constraint values. `success` is False when the NLP
        solver did not converge.

    Raises:
        dircol.ConfigurationError: If the problem or solver settings cannot
            be transcribed.

    Examples:
        >>> problem = Problem("Double Integrator")
        >>> t = problem.time(initial=0.0, final=1.0)
        >>> x = problem.state("x", initial=0.0, final=1.0)
        >>> v = problem.state("v", initial=0.0, final=0.0)
        >>> F = problem.control("F", boundary=(-10.0, 10.0))
        >>> problem.dynamics({x: v, v: F})
        >>> problem.minimize(integrand=F * F)
        >>> solution = solve(problem, Solver(mesh=10))
    """
    logger.info(
        "Starting solve: problem='%s', scheme=%s",
        getattr(problem, "name", "unnamed"),
        solver.transcription_scheme,
    )
    logger.debug("NLP solver options: %s", solver.solver_options)

    transcription = create_transcription(solver, problem)
    solution = transcription.solve(guess)

    if solution.success:
        logger.info("Solve completed successfully: objective=%.6e", solution.objective or 0.0)
    else:
        logger.info("Solve finished without success: %s", solution.message)
    return solution

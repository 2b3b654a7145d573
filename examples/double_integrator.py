import numpy as np

import dircol as dc


# Problem setup
problem = dc.Problem("Minimum Effort Double Integrator")

# Variables
t = problem.time(initial=0.0, final=1.0)
x = problem.state("x", initial=0.0, final=1.0)
v = problem.state("v", initial=0.0, final=0.0)
F = problem.control("F", boundary=(-10.0, 10.0))

# Dynamics
problem.dynamics({x: v, v: F})

# Objective
problem.minimize(integrand=F * F)

# Solve with every scheme on the same mesh
for scheme in dc.transcription.TRANSCRIPTION_SCHEMES:
    solver = dc.Solver(mesh=10, transcription_scheme=scheme, polynomial_degree=3)
    solution = dc.solve(problem, solver)

    if solution.success:
        times = solution.point_times
        controls = solution.variables[dc.Var.CONTROLS][0]
        error = np.max(np.abs(controls[1:] - (6.0 - 12.0 * times[1:])))
        print(f"{scheme:>22s}: objective = {solution.objective:.9f} (exact 12), "
              f"max control error = {error:.2e}")
    else:
        print(f"{scheme:>22s}: failed - {solution.message}")

# Results of the last solve
if solution.success:
    dc.print_solution_summary(solution)
    dc.plot_solution(solution)

import dircol as dc


# Problem setup
problem = dc.Problem("Minimum Time Double Integrator")

# Variables
t = problem.time(initial=0.0, final=(0.5, 5.0))
x = problem.state("x", initial=0.0, final=1.0, boundary=(-1.0, 2.0))
v = problem.state("v", initial=0.0, final=0.0, boundary=(-2.0, 2.0))
u = problem.control("u", boundary=(-1.0, 1.0))

# Dynamics
problem.dynamics({x: v, v: u})

# Path constraint: limit the speed below the unconstrained peak of 1
problem.path_constraint("speed_limit", v, bounds=(None, 0.8))

# Objective
problem.minimize(t.final)

# Solve
solver = dc.Solver(
    mesh=20,
    transcription_scheme="legendre-gauss-radau",
    polynomial_degree=3,
    scale_variables_using_bounds=True,
    interpolate_control_midpoints=False,
    enforce_path_constraint_midpoints=True,
    solver_options={"ipopt.print_level": 0, "ipopt.max_iter": 500, "print_time": 0},
)
solution = dc.solve(problem, solver)

# Results
if solution.success:
    # Accelerate to 0.8, cruise, decelerate: 2 * 0.8 + (1 - 0.64) / 0.8
    print(f"Final time: {solution.times[-1]:.6f} (exact 2.05)")
    dc.print_solution_summary(solution)
    dc.plot_solution(solution)
else:
    print(f"Failed: {solution.message}")

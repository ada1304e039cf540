"""Sequential minimal optimization solver."""

from .quadratic_problem import QuadraticProblem
from .pair_subproblem import (pair_step_bounds,
                              simple_solve,
                              simple_solve_single)
from .kkt import (bound_status,
                  kkt_violations,
                  variable_multipliers,
                  calc_lambda_eq)
from .smo import (CONVERGED,
                  ITERATION_LIMIT,
                  STUCK,
                  STOPPED,
                  SMOSolver,
                  QuadraticProblemSMO,
                  smo_solve)

__all__ = ["QuadraticProblem", "QuadraticProblemSMO", "SMOSolver",
           "smo_solve", "CONVERGED", "ITERATION_LIMIT", "STUCK", "STOPPED",
           "pair_step_bounds", "simple_solve", "simple_solve_single",
           "bound_status", "kkt_violations", "variable_multipliers",
           "calc_lambda_eq"]

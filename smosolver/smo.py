"""Sequential minimal optimization (SMO) for box-constrained QPs."""

import logging

import numpy as np
from scipy.optimize import OptimizeResult

from .kkt import (bound_status, calc_lambda_eq, kkt_violations,
                  variable_multipliers)
from .pair_subproblem import simple_solve, simple_solve_single
from .quadratic_problem import QuadraticProblem

__all__ = [
    'CONVERGED',
    'ITERATION_LIMIT',
    'STUCK',
    'STOPPED',
    'TERMINATION_MESSAGES',
    'SMOSolver',
    'QuadraticProblemSMO',
    'smo_solve',
]

logger = logging.getLogger(__name__)

CONVERGED = 0
ITERATION_LIMIT = 1
STUCK = 2
STOPPED = 3

TERMINATION_MESSAGES = {
    CONVERGED: "The largest KKT violation is below `max_allowed_error`.",
    ITERATION_LIMIT: "The maximum number of iterations is exceeded.",
    STUCK: "No pair of variables could be moved in `n` consecutive "
           "iterations.",
    STOPPED: "`stop_criteria` returned True.",
}


class _SMOState:
    """Loop variables of a single ``SMOSolver.solve`` call."""

    def __init__(self, problem, is_zero):
        self.n = problem.get_n()
        self.is_zero = is_zero
        self.H = problem.hessian()
        self.c = problem.c
        self.A = problem.A
        self.l = problem.l
        self.u = problem.u
        self.x = problem.x
        # Gradient cache: sum = H x.
        self.sum = self.H.dot(self.x)
        self.lambda_eq = 0.0
        # Number of consecutive iterations without any pivot.
        self.error = 0
        self.max_i = 0
        self.min_i = 0
        self.old_max_i = -1
        self.old_min_i = -1
        self.niter = 0
        self.npivots = 0
        self.allvecs = None

    def grad(self):
        return self.c + self.sum

    def violations(self):
        return kkt_violations(self.grad(), self.x, self.A, self.l, self.u,
                              self.lambda_eq, self.is_zero)

    def update_lambda_eq(self):
        # A lone variable has no partner to keep ``A.T x`` fixed with,
        # so its equality constraint does not restrict it.
        if self.n < 2:
            self.lambda_eq = 0.0
        else:
            self.lambda_eq = calc_lambda_eq(self.grad(), self.x, self.A,
                                            self.l, self.u, self.is_zero)


def _argmax_excluding(values, excluded, threshold):
    i = int(np.argmax(values))
    if i != excluded or len(values) < 2:
        return i
    masked = values.copy()
    masked[excluded] = -np.inf
    j = int(np.argmax(masked))
    # Only switch when the alternative also needs to move.
    return j if masked[j] > threshold else i


def _argmin_excluding(values, excluded):
    i = int(np.argmin(values))
    if i != excluded or len(values) < 2:
        return i
    masked = values.copy()
    masked[excluded] = np.inf
    return int(np.argmin(masked))


class SMOSolver:
    """Sequential minimal optimization solver.

    Solve problems of the form:

        minimize c.T x + 1/2 x.T H x
        subject to: A.T x = constant
                    l <= x <= u

    described by a ``QuadraticProblem``, starting from its current
    iterate ``x``, which must be feasible. At each iteration the variable
    violating the KKT conditions the most is optimized jointly with a
    partner, keeping ``A.T x`` unchanged.

    Parameters
    ----------
    is_zero : float, optional
        Numerical zero used in every comparison against zero.
        By default uses 1e-10.
    max_allowed_error : float, optional
        Tolerance on the largest KKT violation. By default uses the
        ``max_allowed_error`` of the problem being solved.
    max_iteration : int, optional
        Maximum number of outer iterations. By default uses
        ``max(50000, 10*n*n)``.
    check_input : bool, optional
        When ``True`` (default) the problem is validated before solving
        and ``ValueError`` is raised on inconsistent data.

    Notes
    -----
    The solver keeps no state between calls: one instance can be used to
    solve distinct problems from different threads.
    """

    def __init__(self, is_zero=1e-10, max_allowed_error=None,
                 max_iteration=None, check_input=True):
        self.is_zero = is_zero
        self.max_allowed_error = max_allowed_error
        self.max_iteration = max_iteration
        self.check_input = check_input

    def solve(self, problem, stop_criteria=None, return_all=False):
        """Solve ``problem`` in place.

        Parameters
        ----------
        problem : QuadraticProblem
            Problem to be solved. Its ``x`` and ``lambda_eq`` are updated.
        stop_criteria : callable, optional
            Called once per iteration as ``stop_criteria(info)``, where
            ``info`` is a dictionary with keys ``niter``, ``npivots``,
            ``max_error``, ``lambda_eq`` and ``x``. The solver stops when
            it returns ``True``.
        return_all : bool, optional
            When ``True`` the iterate after every pivot is recorded.

        Returns
        -------
        result : OptimizeResult
            With the following fields:

                - x : Copy of the final iterate.
                - fun : Objective at ``x``.
                - status : One of ``CONVERGED``, ``ITERATION_LIMIT``,
                  ``STUCK`` or ``STOPPED``.
                - message : Description of ``status``.
                - success : ``True`` when ``status`` is ``CONVERGED``.
                - error : 0 on convergence, positive otherwise.
                - nstuck : Consecutive iterations without a pivot.
                - niter : Number of iterations.
                - npivots : Number of accepted pivots.
                - max_error : Largest KKT violation at ``x``.
                - lambda_eq : Multiplier of the equality constraint.
                - allvecs : Iterates after each pivot (optional).
        """
        if self.check_input:
            problem.validate(self.is_zero)
        tolerance = self.max_allowed_error
        if tolerance is None:
            tolerance = problem.max_allowed_error
        n = problem.get_n()
        max_iteration = self.max_iteration
        if max_iteration is None:
            max_iteration = max(50000, 10*n*n)

        state = _SMOState(problem, self.is_zero)
        if return_all:
            state.allvecs = [state.x.copy()]
        state.update_lambda_eq()

        while True:
            violations = state.violations()
            max_error = float(violations.max()) if n > 0 else 0.0
            if max_error <= tolerance:
                status = CONVERGED
                break
            if stop_criteria is not None:
                info = {'niter': state.niter, 'npivots': state.npivots,
                        'max_error': max_error, 'lambda_eq': state.lambda_eq,
                        'x': state.x}
                if stop_criteria(info):
                    status = STOPPED
                    break
            if state.niter >= max_iteration:
                status = ITERATION_LIMIT
                break
            state.niter += 1

            self._select(state, violations, tolerance)
            if self._pivot(state):
                state.error = 0
            else:
                state.error += 1
                logger.debug("No pivot for variable %d (%d consecutive).",
                             state.max_i, state.error)
                if state.error >= n:
                    status = STUCK
                    break
            if n > 1:
                self._sweep_bounds(state, tolerance)

        problem.lambda_eq = state.lambda_eq
        if status == CONVERGED:
            error = 0
        elif status == STUCK:
            error = state.error
        else:
            error = state.error + 1
        logger.debug("SMO finished after %d iterations and %d pivots: %s",
                     state.niter, state.npivots, TERMINATION_MESSAGES[status])

        result = OptimizeResult(
            x=state.x.copy(),
            fun=problem.objective(),
            status=status,
            message=TERMINATION_MESSAGES[status],
            success=status == CONVERGED,
            error=error,
            nstuck=state.error,
            niter=state.niter,
            npivots=state.npivots,
            max_error=max_error,
            lambda_eq=state.lambda_eq)
        if return_all:
            result.allvecs = state.allvecs
        return result

    def _select(self, state, violations, tolerance):
        """Choose ``max_i`` and ``min_i`` for the current iteration."""
        if state.error >= 1:
            # The last scan led nowhere: walk through the variables.
            state.max_i = (state.max_i + 1) % state.n
        else:
            state.max_i = _argmax_excluding(violations, state.old_max_i,
                                            tolerance)
        state.min_i = _argmin_excluding(violations, state.old_min_i)
        state.old_max_i = state.max_i
        state.old_min_i = state.min_i

    def _partner(self, state, i):
        """Returns the best variable to optimize jointly with ``i``.

        The partner is the variable giving the steepest descent of the
        objective when moved together with ``i``, that is, the one whose
        stationary multiplier is farthest from the one of ``i`` on the
        descent side. Returns ``None`` if no partner gives a descent.
        """
        x, A, l, u = state.x, state.A, state.l, state.u
        is_zero = state.is_zero
        grad = state.grad()
        d_i = grad[i] + state.lambda_eq*A[i]
        direction = -1.0 if d_i > 0 else 1.0
        if direction > 0 and x[i] >= u[i] - is_zero:
            return None
        if direction < 0 and x[i] <= l[i] + is_zero:
            return None

        q = -A[i] / A
        step = direction*q
        rate = direction*(grad[i] + q*grad)
        movable = (((step > 0) & (x < u - is_zero)) |
                   ((step < 0) & (x > l + is_zero)))
        movable[i] = False
        rate = np.where(movable, rate, np.inf)
        j = int(np.argmin(rate))
        if rate[j] >= -is_zero:
            return None
        return j

    def _pivot(self, state):
        """Optimize ``max_i`` against its partners until one pair moves."""
        i = state.max_i
        if state.n == 1:
            return self._minimize_single(state, i)

        tried = set([i])
        for j in (self._partner(state, i), state.min_i):
            if j is None or j in tried:
                continue
            tried.add(j)
            if self._minimize_pair(state, i, j):
                return True
        for k in range(1, state.n):
            j = (i + k) % state.n
            if j in tried:
                continue
            if self._minimize_pair(state, i, j):
                return True
        return False

    def _sweep_bounds(self, state, tolerance):
        """Re-optimize variables at a bound which still violate the KKT
        conditions, against ``min_i`` or ``max_i``.

        The violation of each candidate is measured again before its
        pivot, since earlier pivots of the sweep move the gradient and
        the multiplier estimate.
        """
        violations = state.violations()
        at_lower, at_upper = bound_status(state.x, state.l, state.u,
                                          state.is_zero)
        pinned = np.flatnonzero((at_lower ^ at_upper) &
                                (violations > tolerance))
        for k in pinned:
            if state.violations()[k] <= tolerance:
                continue
            multipliers = variable_multipliers(state.grad(), state.A)
            lambda_max = multipliers[state.max_i]
            lambda_min = multipliers[state.min_i]
            if abs(multipliers[k] - lambda_min) <= abs(multipliers[k] -
                                                       lambda_max):
                references = (state.min_i, state.max_i)
            else:
                references = (state.max_i, state.min_i)
            for j in references:
                if j != k and self._minimize_pair(state, k, j):
                    break

    def _minimize_pair(self, state, i, j):
        """Optimize variables ``i`` and ``j`` jointly.

        Returns ``True`` when the pair moved. The gradient cache and the
        multiplier estimate are updated accordingly.
        """
        H, x = state.H, state.x
        xi, xj = x[i], x[j]
        Hi = H[i, i] / 2
        Hj = H[j, j] / 2
        Hij = H[i, j]
        # Linear terms: gradient contribution of the variables outside
        # the pair.
        ci = state.c[i] + state.sum[i] - H[i, i]*xi - H[i, j]*xj
        cj = state.c[j] + state.sum[j] - H[j, i]*xi - H[j, j]*xj

        xi_new, xj_new = simple_solve(
            xi, xj, Hi, Hij, Hj, ci, cj, state.A[i], state.A[j],
            state.l[i], state.u[i], state.l[j], state.u[j], state.is_zero)
        delta_i = xi_new - xi
        delta_j = xj_new - xj
        if abs(delta_i) < state.is_zero and abs(delta_j) < state.is_zero:
            return False

        # Reject steps that increase the objective.
        increase = (Hi*(xi_new*xi_new - xi*xi) +
                    Hij*(xi_new*xj_new - xi*xj) +
                    Hj*(xj_new*xj_new - xj*xj) +
                    ci*delta_i + cj*delta_j)
        if increase > state.is_zero:
            return False

        x[i] = xi_new
        x[j] = xj_new
        state.sum += delta_i*H[:, i] + delta_j*H[:, j]
        self._accept(state)
        return True

    def _minimize_single(self, state, i):
        H, x = state.H, state.x
        xi = x[i]
        Hi = H[i, i] / 2
        ci = state.c[i] + state.sum[i] - H[i, i]*xi
        xi_new = simple_solve_single(xi, Hi, ci, state.l[i], state.u[i],
                                     state.is_zero)
        delta_i = xi_new - xi
        if abs(delta_i) < state.is_zero:
            return False
        if Hi*(xi_new*xi_new - xi*xi) + ci*delta_i > state.is_zero:
            return False
        x[i] = xi_new
        state.sum += delta_i*H[:, i]
        self._accept(state)
        return True

    def _accept(self, state):
        state.npivots += 1
        state.update_lambda_eq()
        if state.allvecs is not None:
            state.allvecs.append(state.x.copy())


class QuadraticProblemSMO(QuadraticProblem):
    """Quadratic problem solved in place by sequential minimal optimization.

    Parameters
    ----------
    is_zero : float, optional
        Numerical zero. By default uses 1e-10.
    max_allowed_error : float, optional
        Tolerance on the largest KKT violation. By default uses 1e-3.
    max_iteration : int, optional
        Maximum number of iterations. By default uses
        ``max(50000, 10*n*n)``.
    n : int, optional
        Number of variables.

    Attributes
    ----------
    result : OptimizeResult
        Outcome of the last call to ``solve``, ``None`` before it.
    """

    def __init__(self, is_zero=1e-10, max_allowed_error=1e-3,
                 max_iteration=None, n=0):
        QuadraticProblem.__init__(self, n, max_allowed_error)
        self.is_zero = is_zero
        self.max_iteration = max_iteration
        self.result = None

    def solve(self, stop_criteria=None):
        """Solve the problem, returning 0 on convergence and a positive
        error count otherwise."""
        solver = SMOSolver(self.is_zero, self.max_allowed_error,
                           self.max_iteration)
        self.result = solver.solve(self, stop_criteria)
        return self.result.error


def smo_solve(H, c, A, lb, ub, x0=None, is_zero=1e-10,
              max_allowed_error=1e-3, max_iteration=None,
              stop_criteria=None, return_all=False):
    """Solve a box-constrained QP with one equality constraint using SMO.

    Solve problem:

        minimize c.T x + 1/2 x.T H x
        subject to: A.T x = A.T x0
                    lb <= x <= ub

    Parameters
    ----------
    H : array_like, shape (n, n)
        Symmetric quadratic term.
    c : array_like, shape (n,)
        Linear term.
    A : array_like, shape (n,)
        Equality constraint coefficients, all nonzero.
    lb, ub : array_like, shape (n,)
        Bounds. May contain infinite values.
    x0 : array_like, shape (n,), optional
        Feasible starting point. It also fixes the right-hand side of
        the equality constraint. By default uses zeros.
    is_zero : float, optional
        Numerical zero. By default uses 1e-10.
    max_allowed_error : float, optional
        Tolerance on the largest KKT violation. By default uses 1e-3.
    max_iteration : int, optional
        Maximum number of iterations. By default uses
        ``max(50000, 10*n*n)``.
    stop_criteria : callable, optional
        Cooperative stop test, see ``SMOSolver.solve``.
    return_all : bool, optional
        When ``True`` return the list of iterates after each pivot.

    Returns
    -------
    x : ndarray, shape (n,)
        Solution found.
    info : OptimizeResult
        Description of the run, see ``SMOSolver.solve``.
    """
    c = np.asarray(c, dtype=float)
    n, = np.shape(c)
    problem = QuadraticProblem(n, max_allowed_error)
    problem.c = c
    problem.H = np.asarray(H, dtype=float)
    problem.A = np.asarray(A, dtype=float)
    problem.l = np.asarray(lb, dtype=float)
    problem.u = np.asarray(ub, dtype=float)
    if x0 is not None:
        problem.x = np.array(x0, dtype=float)
    problem.b = problem.constraint_value()

    solver = SMOSolver(is_zero, max_allowed_error, max_iteration)
    info = solver.solve(problem, stop_criteria, return_all)
    return info.x, info

"""
Closed-form solution of the SMO sub-problems.
"""

import numpy as np

__all__ = [
    'pair_step_bounds',
    'simple_solve',
    'simple_solve_single',
]


def pair_step_bounds(xi, xj, q, li, ui, lj, uj):
    """Find the steps for which a joint move stays inside the box.

    Find the interval of ``t`` such that ``xi + t`` lies in ``[li, ui]``
    and ``xj + q*t`` lies in ``[lj, uj]``.

    Parameters
    ----------
    xi, xj : float
        Current values of the two variables.
    q : float
        Ratio between the moves of ``xj`` and ``xi``.
    li, ui, lj, uj : float
        Bounds of the two variables. May be infinite.

    Returns
    -------
    lo, up : float
        The move is feasible for ``lo <= t <= up``. When ``lo > up``
        there is no feasible move.
    """
    lo = li - xi
    up = ui - xi
    if q > 0:
        lo = max(lo, (lj - xj) / q)
        up = min(up, (uj - xj) / q)
    elif q < 0:
        lo = max(lo, (uj - xj) / q)
        up = min(up, (lj - xj) / q)
    return lo, up


def _snap(value, lb, ub, is_zero):
    # Values closer than ``is_zero`` to a bound are put on the bound.
    if value - lb < is_zero:
        return lb
    if ub - value < is_zero:
        return ub
    return value


def _line_minimizer(slope, curvature, lo, up, is_zero):
    """Minimize ``slope*t + curvature*t**2/2`` for ``lo <= t <= up``.

    Returns ``None`` when the minimum is not attained at a finite step.
    """
    if curvature > is_zero:
        t = min(max(-slope / curvature, lo), up)
    elif curvature < -is_zero:
        # Concave along the line: the minimum is at one of the ends.
        if not (np.isfinite(lo) and np.isfinite(up)):
            return None
        f_lo = slope*lo + 0.5*curvature*lo*lo
        f_up = slope*up + 0.5*curvature*up*up
        t = lo if f_lo <= f_up else up
    elif slope < 0:
        t = up
    elif slope > 0:
        t = lo
    else:
        t = 0.0
    if not np.isfinite(t):
        return None
    return t


def simple_solve(xi, xj, Hi, Hij, Hj, ci, cj, Ai, Aj,
                 li, ui, lj, uj, is_zero):
    """Solve the two-variable SMO sub-problem.

    Solve:

        minimize Hi xi**2 + Hij xi xj + Hj xj**2 + ci xi + cj xj
        subject to: Ai xi + Aj xj = constant
                    li <= xi <= ui
                    lj <= xj <= uj

    starting from the feasible pair ``(xi, xj)``.

    Parameters
    ----------
    xi, xj : float
        Current values of the pair.
    Hi, Hj : float
        Half of the diagonal entries ``H[i, i]`` and ``H[j, j]``.
    Hij : float
        Cross term ``H[i, j]``.
    ci, cj : float
        Linear terms. They hold the gradient contribution of all the
        variables outside the pair.
    Ai, Aj : float
        Equality constraint coefficients of the pair. Must be nonzero.
    li, ui, lj, uj : float
        Bounds of the pair.
    is_zero : float
        Numerical zero. Used to detect a vanishing curvature and to put
        the results exactly on bounds they nearly reach.

    Returns
    -------
    xi_new, xj_new : float
        Minimizer of the sub-problem. The input pair is returned
        unchanged when no finite move improves the objective.

    Notes
    -----
    The constraint is used to eliminate ``xj``: a step ``t`` on ``xi``
    comes with a step ``q*t``, ``q = -Ai/Aj``, on ``xj``. The problem
    becomes the minimization of a one-dimensional quadratic over the
    interval given by ``pair_step_bounds``.
    """
    q = -Ai / Aj
    gi = 2*Hi*xi + Hij*xj + ci
    gj = 2*Hj*xj + Hij*xi + cj
    slope = gi + q*gj
    curvature = 2*(Hi + q*Hij + q*q*Hj)

    lo, up = pair_step_bounds(xi, xj, q, li, ui, lj, uj)
    if lo > up:
        return xi, xj
    t = _line_minimizer(slope, curvature, lo, up, is_zero)
    if t is None:
        return xi, xj

    xi_new = min(max(_snap(xi + t, li, ui, is_zero), li), ui)
    xj_new = min(max(_snap(xj + q*t, lj, uj, is_zero), lj), uj)
    return xi_new, xj_new


def simple_solve_single(xi, Hi, ci, li, ui, is_zero):
    """Solve ``minimize Hi xi**2 + ci xi`` subject to ``li <= xi <= ui``.

    Counterpart of ``simple_solve`` for a variable without partner.
    Returns ``xi`` unchanged when the problem is unbounded below.
    """
    slope = 2*Hi*xi + ci
    t = _line_minimizer(slope, 2*Hi, li - xi, ui - xi, is_zero)
    if t is None:
        return xi
    return min(max(_snap(xi + t, li, ui, is_zero), li), ui)

"""KKT optimality measures for box-constrained problems with one equality."""

import numpy as np

__all__ = [
    'bound_status',
    'kkt_violations',
    'variable_multipliers',
    'calc_lambda_eq',
]


def bound_status(x, l, u, is_zero):
    """Returns the masks of variables at their lower and upper bounds."""
    at_lower = x <= l + is_zero
    at_upper = x >= u - is_zero
    return at_lower, at_upper


def kkt_violations(grad, x, A, l, u, lambda_eq, is_zero):
    """Measure how far each variable is from satisfying the KKT conditions.

    Using the derivative of the Lagrangian ``d = grad + lambda_eq*A``,
    the optimality conditions are ``d >= 0`` at the lower bound,
    ``d <= 0`` at the upper bound and ``d = 0`` between the bounds.

    Parameters
    ----------
    grad : ndarray, shape (n,)
        Gradient of the objective at ``x``.
    x, A, l, u : ndarray, shape (n,)
        Iterate, equality coefficients and bounds.
    lambda_eq : float
        Lagrange multiplier of the equality constraint.
    is_zero : float
        Tolerance used to decide whether a variable is at a bound.

    Returns
    -------
    violations : ndarray, shape (n,)
        ``-d`` at the lower bound, ``d`` at the upper bound and ``|d|``
        between the bounds. Positive values violate the conditions.
        Variables whose bounds coincide never violate them.
    """
    d = grad + lambda_eq*A
    at_lower, at_upper = bound_status(x, l, u, is_zero)
    violations = np.abs(d)
    violations = np.where(at_upper, d, violations)
    violations = np.where(at_lower, -d, violations)
    violations[at_lower & at_upper] = 0
    return violations


def variable_multipliers(grad, A):
    """Returns, for each variable, the multiplier that makes it stationary."""
    return -grad / A


def calc_lambda_eq(grad, x, A, l, u, is_zero):
    """Estimate the Lagrange multiplier of the equality constraint.

    When some variables lie strictly inside their bounds, the estimate is
    the mean of their stationary multipliers. Otherwise each variable at
    a bound restricts the multiplier to a half line and the estimate is
    taken from the intersection ``[lambda_min, lambda_max]`` of those:
    its midpoint when bounded, its finite end otherwise.

    Parameters
    ----------
    grad : ndarray, shape (n,)
        Gradient of the objective at ``x``.
    x, A, l, u : ndarray, shape (n,)
        Iterate, equality coefficients and bounds.
    is_zero : float
        Tolerance used to decide whether a variable is at a bound.

    Returns
    -------
    lambda_eq : float
        Estimated multiplier.
    """
    if len(x) == 0:
        return 0.0
    multipliers = variable_multipliers(grad, A)
    at_lower, at_upper = bound_status(x, l, u, is_zero)
    free = ~(at_lower | at_upper)
    if free.any():
        return float(np.mean(multipliers[free]))

    # ``d >= 0`` at the lower bound and ``d <= 0`` at the upper bound,
    # which bounds the multiplier from below or from above depending on
    # the sign of ``A``.
    pinned = at_lower ^ at_upper
    from_below = pinned & (at_lower == (A > 0))
    from_above = pinned & ~from_below
    lambda_min = multipliers[from_below].max() if from_below.any() else -np.inf
    lambda_max = multipliers[from_above].min() if from_above.any() else np.inf

    if np.isfinite(lambda_min) and np.isfinite(lambda_max):
        return float(0.5*(lambda_min + lambda_max))
    if np.isfinite(lambda_min):
        return float(lambda_min)
    if np.isfinite(lambda_max):
        return float(lambda_max)
    return 0.0

"""Quadratic problem with box constraints and one equality constraint."""

import numpy as np

__all__ = ['QuadraticProblem']


class QuadraticProblem:
    """Box-constrained quadratic problem with a single linear equality.

    Problem of the form:

        minimize c.T x + 1/2 x.T H x
        subject to: A.T x = b
                    l <= x <= u

    The arrays are allocated by ``resize`` and filled in place by the
    caller. ``H`` is stored row-major as a flat array of length ``n*n``,
    that is, ``H[i*n + j]`` is the entry on row ``i`` and column ``j``.

    Parameters
    ----------
    n : int, optional
        Number of variables. By default the problem is empty.
    max_allowed_error : float, optional
        Tolerance on the largest KKT violation accepted as optimal.
        By default uses 1e-3.

    Attributes
    ----------
    c : ndarray, shape (n,)
        Linear term.
    H : ndarray, shape (n*n,)
        Quadratic term, stored row-major.
    A : ndarray, shape (n,)
        Equality constraint coefficients. All entries must be nonzero.
    b : float
        Right-hand side of the equality constraint.
    l, u : ndarray, shape (n,)
        Lower and upper bounds. Infinite values are allowed.
    x : ndarray, shape (n,)
        Current iterate.
    lambda_eq : float
        Estimate of the Lagrange multiplier of the equality constraint.
    """

    def __init__(self, n=0, max_allowed_error=1e-3):
        self.max_allowed_error = max_allowed_error
        self.n = None
        self.b = 0.0
        self.resize(n)

    def resize(self, n):
        """Allocate the problem arrays for ``n`` variables.

        ``x`` is reset to zero. When ``n`` equals the current size the
        remaining arrays are kept as they are.
        """
        if n < 0:
            raise ValueError("Number of variables must be non-negative.")
        n = int(n)
        if n != self.n:
            self.n = n
            self.c = np.zeros(n)
            self.H = np.zeros(n*n)
            self.A = np.ones(n)
            self.l = np.zeros(n)
            self.u = np.full(n, np.inf)
        self.x = np.zeros(n)
        self.lambda_eq = 0.0

    def get_n(self):
        return self.n

    def get_lambda_eq(self):
        return self.lambda_eq

    def hessian(self):
        """Returns ``H`` as an (n, n) array (a view whenever possible)."""
        return np.reshape(self.H, (self.n, self.n))

    def objective(self, x=None):
        """Returns ``c.T x + 1/2 x.T H x``, at ``x`` or the current iterate."""
        x = self.x if x is None else np.asarray(x, dtype=float)
        return float(np.dot(self.c, x) + 0.5*np.dot(x, self.hessian().dot(x)))

    def gradient(self, x=None):
        x = self.x if x is None else np.asarray(x, dtype=float)
        return self.c + self.hessian().dot(x)

    def constraint_value(self, x=None):
        x = self.x if x is None else np.asarray(x, dtype=float)
        return float(np.dot(self.A, x))

    def validate(self, is_zero=1e-10):
        """Check the problem data, raising ``ValueError`` on bad input.

        Array fields are converted to float ndarrays, so that callers
        may fill them with lists. The iterate ``x`` must lie inside the
        box up to ``is_zero``.
        """
        n = self.n
        for name in ('c', 'A', 'l', 'u', 'x'):
            arr = np.asarray(getattr(self, name), dtype=float)
            if arr.shape != (n,):
                raise ValueError("`{0}` must have shape ({1},), got {2}."
                                 .format(name, n, arr.shape))
            setattr(self, name, arr)

        H = np.asarray(self.H, dtype=float)
        if H.shape == (n, n):
            H = H.ravel()
        if H.shape != (n*n,):
            raise ValueError("`H` must be a square matrix with {0} rows."
                             .format(n))
        self.H = H

        for name in ('c', 'H', 'A', 'x'):
            if not np.all(np.isfinite(getattr(self, name))):
                raise ValueError("`{0}` contains non-finite values."
                                 .format(name))
        if np.isnan(self.l).any() or np.isnan(self.u).any():
            raise ValueError("Bounds contain NaN values.")
        if not np.allclose(self.hessian(), self.hessian().T):
            raise ValueError("`H` must be symmetric.")
        if np.any(self.A == 0):
            raise ValueError("All entries of `A` must be nonzero.")
        if np.any(self.l > self.u):
            raise ValueError("Lower bounds must not exceed upper bounds.")
        if (np.any(self.x < self.l - is_zero) or
                np.any(self.x > self.u + is_zero)):
            raise ValueError("`x` must lie within the bounds `l` and `u`.")

    def project_to_constraint(self):
        """Move ``x`` towards ``A.T x = b`` without leaving the box.

        The residual ``b - A.T x`` is spread evenly over the variables
        strictly inside their bounds (over every variable that is not
        fixed when none is inside) and the result is clipped to the box.

        Returns
        -------
        residual : float
            Residual ``b - A.T x`` after the projection.
        """
        residual = self.b - self.constraint_value()
        free = (self.x > self.l) & (self.x < self.u)
        if not free.any():
            free = self.l < self.u
        n_free = np.count_nonzero(free)
        if n_free > 0 and residual != 0:
            self.x[free] += residual / (n_free*self.A[free])
            np.clip(self.x, self.l, self.u, out=self.x)
        return self.b - self.constraint_value()

"""Box-constrained quadratic problems with one equality constraint"""

import numpy as np
from scipy.spatial.distance import cdist

from .quadratic_problem import QuadraticProblem

__all__ = ['linear_kernel',
           'rbf_kernel',
           'SimplexProjection',
           'SVMClassificationDual',
           'SVMRegressionDual']


def linear_kernel(X, Y=None):
    X = np.atleast_2d(np.asarray(X, dtype=float))
    Y = X if Y is None else np.atleast_2d(np.asarray(Y, dtype=float))
    return np.dot(X, Y.T)


def rbf_kernel(X, Y=None, gamma=1.0):
    """Gaussian kernel ``exp(-gamma*||x - y||**2)``."""
    X = np.atleast_2d(np.asarray(X, dtype=float))
    Y = X if Y is None else np.atleast_2d(np.asarray(Y, dtype=float))
    return np.exp(-gamma*cdist(X, Y, 'sqeuclidean'))


class BoxEqualityInterface:
    """Interface of the problems in this module.

    Problem of the form:

        minimize c.T x + 1/2 x.T H x
        subject to: A.T x = b
                    lb <= x <= ub

    with a feasible starting point ``x0``.
    """
    H = None
    c = None
    A = None
    b = 0.0
    lb = None
    ub = None
    x0 = None
    x_opt = None

    def quadratic_problem(self, max_allowed_error=1e-3, problem=None):
        """Fill ``problem`` (a new ``QuadraticProblem`` by default)."""
        if problem is None:
            problem = QuadraticProblem(max_allowed_error=max_allowed_error)
        else:
            problem.max_allowed_error = max_allowed_error
        n, = np.shape(self.c)
        problem.resize(n)
        problem.c[:] = self.c
        problem.H[:] = np.ravel(self.H)
        problem.A[:] = self.A
        problem.l[:] = self.lb
        problem.u[:] = self.ub
        problem.x[:] = self.x0
        problem.b = self.b
        return problem

    def fun(self, x):
        return np.dot(self.c, x) + 0.5*np.dot(x, np.dot(self.H, x))


class SimplexProjection(BoxEqualityInterface):
    """Euclidean projection onto the probability simplex.

        minimize 1/2 ||x - z||**2
        subject to: sum(x) = 1
                    x >= 0

    The solution is ``max(z - theta, 0)`` with ``theta`` found by sorting
    ``z``.
    """

    def __init__(self, z):
        z = np.asarray(z, dtype=float)
        n, = np.shape(z)
        self.z = z
        self.H = np.eye(n)
        self.c = -z
        self.A = np.ones(n)
        self.b = 1.0
        self.lb = np.zeros(n)
        self.ub = np.full(n, np.inf)
        self.x0 = np.full(n, 1.0/n)

        z_sorted = np.sort(z)[::-1]
        cumsum = np.cumsum(z_sorted) - 1
        k = np.arange(1, n+1)
        rho = np.flatnonzero(z_sorted - cumsum/k > 0)[-1]
        theta = cumsum[rho] / (rho + 1)
        self.x_opt = np.maximum(z - theta, 0)


class SVMClassificationDual(BoxEqualityInterface):
    """Dual of the soft-margin support vector classifier.

        minimize 1/2 x.T (y y.T * K) x - sum(x)
        subject to: y.T x = 0
                    0 <= x <= C

    Parameters
    ----------
    K : array_like, shape (n, n)
        Kernel matrix of the training examples.
    y : array_like, shape (n,)
        Labels, +1 or -1.
    C : float or array_like, shape (n,)
        Upper bound of the dual variables.
    """

    def __init__(self, K, y, C=1.0):
        K = np.asarray(K, dtype=float)
        y = np.asarray(y, dtype=float)
        n, = np.shape(y)
        if np.any(np.abs(y) != 1):
            raise ValueError("Labels must be +1 or -1.")
        self.K = K
        self.y = y
        self.H = np.outer(y, y) * K
        self.c = -np.ones(n)
        self.A = y.copy()
        self.b = 0.0
        self.lb = np.zeros(n)
        self.ub = np.broadcast_to(np.asarray(C, dtype=float), (n,)).copy()
        self.x0 = np.zeros(n)

    def decision_function(self, K_test, x, lambda_eq):
        """Decision values for examples with kernel rows ``K_test``.

        The multiplier of the equality constraint is the bias of the
        classifier.
        """
        K_test = np.atleast_2d(np.asarray(K_test, dtype=float))
        return np.dot(K_test, x*self.y) + lambda_eq


class SVMRegressionDual(BoxEqualityInterface):
    """Dual of the epsilon-insensitive support vector regression.

    The variables are ``x = [alpha, alpha_star]``:

        minimize 1/2 (alpha - alpha_star).T K (alpha - alpha_star)
                 + epsilon*sum(alpha + alpha_star)
                 - y.T (alpha - alpha_star)
        subject to: sum(alpha) - sum(alpha_star) = 0
                    0 <= alpha, alpha_star <= C
    """

    def __init__(self, K, y, C=1.0, epsilon=0.1):
        K = np.asarray(K, dtype=float)
        y = np.asarray(y, dtype=float)
        n, = np.shape(y)
        self.K = K
        self.y = y
        self.H = np.block([[K, -K], [-K, K]])
        self.c = np.hstack((epsilon - y, epsilon + y))
        self.A = np.hstack((np.ones(n), -np.ones(n)))
        self.b = 0.0
        self.lb = np.zeros(2*n)
        self.ub = np.full(2*n, float(C))
        self.x0 = np.zeros(2*n)

    def coefficients(self, x):
        """Returns ``alpha - alpha_star``."""
        n, = np.shape(self.y)
        return x[:n] - x[n:]

    def predict(self, K_test, x, lambda_eq):
        K_test = np.atleast_2d(np.asarray(K_test, dtype=float))
        return np.dot(K_test, self.coefficients(x)) + lambda_eq

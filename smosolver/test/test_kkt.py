import numpy as np
from unittest import TestCase
from numpy.testing import (assert_array_almost_equal, assert_array_equal,
                           assert_equal, assert_allclose)
from smosolver import (bound_status, kkt_violations, variable_multipliers,
                       calc_lambda_eq)


class TestBoundStatus(TestCase):

    def test_tolerance(self):
        x = np.array([1e-12, 0.5, 1 - 1e-12, -np.inf])
        l = np.array([0, 0, 0, -np.inf])
        u = np.array([1, 1, 1, np.inf])
        at_lower, at_upper = bound_status(x, l, u, 1e-10)
        assert_array_equal(at_lower, [True, False, False, True])
        assert_array_equal(at_upper, [False, False, True, False])


class TestKKTViolations(TestCase):

    def test_lower_interior_upper(self):
        grad = np.array([1, 0.2, -0.3])
        x = np.array([0, 0.5, 1])
        A = np.array([1, 1, -1])
        l = np.zeros(3)
        u = np.ones(3)
        violations = kkt_violations(grad, x, A, l, u, 0.1, 1e-10)
        # d = grad + 0.1*A = [1.1, 0.3, -0.4]
        assert_array_almost_equal(violations, [-1.1, 0.3, -0.4])

    def test_violating_bounds(self):
        grad = np.array([-2, 2])
        x = np.array([0, 1])
        violations = kkt_violations(grad, x, np.ones(2), np.zeros(2),
                                    np.ones(2), 0, 1e-10)
        assert_array_almost_equal(violations, [2, 2])

    def test_fixed_variable(self):
        grad = np.array([5.0, -5.0])
        x = np.array([0.5, 0.5])
        l = np.array([0.5, 0])
        u = np.array([0.5, 1])
        violations = kkt_violations(grad, x, np.ones(2), l, u, 0, 1e-10)
        assert_array_almost_equal(violations, [0, 5])


class TestLambdaEq(TestCase):

    def test_variable_multipliers(self):
        assert_array_almost_equal(
            variable_multipliers(np.array([1, 0.2, -0.3]),
                                 np.array([1, 2, -1])),
            [-1, -0.1, -0.3])

    def test_interior_mean(self):
        grad = np.array([1, 0.2, -0.3])
        x = np.array([0, 0.5, 0.5])
        A = np.array([1, 1, -1])
        lambda_eq = calc_lambda_eq(grad, x, A, np.zeros(3), np.ones(3), 1e-10)
        assert_allclose(lambda_eq, -0.25)

    def test_vertex_midpoint(self):
        grad = np.array([-1, -3])
        x = np.array([0, 1])
        A = np.ones(2)
        l = np.zeros(2)
        u = np.ones(2)
        lambda_eq = calc_lambda_eq(grad, x, A, l, u, 1e-10)
        assert_allclose(lambda_eq, 2)
        # The estimate satisfies the KKT conditions of the vertex.
        violations = kkt_violations(grad, x, A, l, u, lambda_eq, 1e-10)
        assert_array_almost_equal(violations, [-1, -1])

    def test_vertex_one_sided(self):
        grad = np.array([-1, -3])
        x = np.zeros(2)
        lambda_eq = calc_lambda_eq(grad, x, np.ones(2), np.zeros(2),
                                   np.ones(2), 1e-10)
        assert_allclose(lambda_eq, 3)
        # Same with opposite signs in A: bounded from above.
        lambda_eq = calc_lambda_eq(grad, x, -np.ones(2), np.zeros(2),
                                   np.ones(2), 1e-10)
        assert_allclose(lambda_eq, -3)

    def test_degenerate(self):
        assert_equal(calc_lambda_eq(np.zeros(0), np.zeros(0), np.zeros(0),
                                    np.zeros(0), np.zeros(0), 1e-10), 0)
        # Only fixed variables
        assert_equal(calc_lambda_eq(np.array([1.0]), np.array([2.0]),
                                    np.array([1.0]), np.array([2.0]),
                                    np.array([2.0]), 1e-10), 0)

import numpy as np
from unittest import TestCase
from numpy.testing import (assert_array_equal, assert_equal, assert_raises,
                           assert_allclose, assert_)
from smosolver import QuadraticProblem


class TestResize(TestCase):

    def test_allocation(self):
        problem = QuadraticProblem()
        assert_equal(problem.get_n(), 0)
        problem.resize(3)
        assert_equal(problem.get_n(), 3)
        assert_equal(problem.H.shape, (9,))
        for name in ('c', 'A', 'l', 'u', 'x'):
            assert_equal(getattr(problem, name).shape, (3,))
        assert_array_equal(problem.x, 0)
        assert_equal(problem.get_lambda_eq(), 0)

    def test_same_size_keeps_data(self):
        problem = QuadraticProblem(2)
        problem.c[:] = [1, 2]
        problem.x[:] = [0.5, 0.5]
        problem.lambda_eq = 3.0
        problem.resize(2)
        assert_array_equal(problem.c, [1, 2])
        assert_array_equal(problem.x, 0)
        assert_equal(problem.lambda_eq, 0)
        problem.resize(2)
        assert_array_equal(problem.c, [1, 2])

    def test_new_size_reallocates(self):
        problem = QuadraticProblem(2)
        problem.c[:] = [1, 2]
        problem.resize(4)
        assert_array_equal(problem.c, np.zeros(4))
        assert_equal(problem.H.shape, (16,))

    def test_negative_size(self):
        assert_raises(ValueError, QuadraticProblem, -1)


class TestEvaluation(TestCase):

    def setUp(self):
        self.problem = QuadraticProblem(2)
        self.problem.H[:] = [2, 1,
                             1, 4]
        self.problem.c[:] = [-1, 1]
        self.problem.A[:] = [1, -1]
        self.problem.x[:] = [1, 2]

    def test_hessian_view(self):
        H = self.problem.hessian()
        assert_array_equal(H, [[2, 1], [1, 4]])
        H[0, 1] = 5
        assert_equal(self.problem.H[1], 5)

    def test_objective_gradient_constraint(self):
        # 1/2 x.T H x = 1/2 (2 + 4 + 16) = 11, c.T x = 1
        assert_allclose(self.problem.objective(), 12)
        assert_allclose(self.problem.gradient(), [3, 10])
        assert_allclose(self.problem.constraint_value(), -1)
        assert_allclose(self.problem.objective([0, 0]), 0)


class TestValidate(TestCase):

    def make_problem(self):
        problem = QuadraticProblem(2)
        problem.H[:] = [1, 0, 0, 1]
        problem.u[:] = 1
        return problem

    def test_valid(self):
        problem = self.make_problem()
        problem.c = [1, 2]
        problem.H = np.eye(2)
        problem.validate()
        assert_(isinstance(problem.c, np.ndarray))
        assert_equal(problem.H.shape, (4,))

    def test_wrong_length(self):
        problem = self.make_problem()
        problem.c = np.zeros(3)
        assert_raises(ValueError, problem.validate)

    def test_non_square_hessian(self):
        problem = self.make_problem()
        problem.H = np.zeros(5)
        assert_raises(ValueError, problem.validate)

    def test_asymmetric_hessian(self):
        problem = self.make_problem()
        problem.H[:] = [1, 2, 0, 1]
        assert_raises(ValueError, problem.validate)

    def test_zero_constraint_coefficient(self):
        problem = self.make_problem()
        problem.A[1] = 0
        assert_raises(ValueError, problem.validate)

    def test_crossed_bounds(self):
        problem = self.make_problem()
        problem.l[0] = 2
        assert_raises(ValueError, problem.validate)

    def test_iterate_outside_bounds(self):
        problem = self.make_problem()
        problem.x[:] = [1 + 1e-12, -1e-12]
        problem.validate()
        problem.x[:] = [0.5, -1e-6]
        assert_raises(ValueError, problem.validate)
        problem.x[:] = [1.5, 0.5]
        assert_raises(ValueError, problem.validate)
        problem.validate(is_zero=1)

    def test_nan(self):
        problem = self.make_problem()
        problem.c[0] = np.nan
        assert_raises(ValueError, problem.validate)


class TestProjectToConstraint(TestCase):

    def test_spread_over_free_variables(self):
        problem = QuadraticProblem(3)
        problem.u[:] = 1
        problem.x[:] = [0.5, 0.5, 0]
        problem.b = 1.5
        residual = problem.project_to_constraint()
        assert_allclose(residual, 0, atol=1e-15)
        assert_allclose(problem.x, [0.75, 0.75, 0])

    def test_no_free_variable(self):
        problem = QuadraticProblem(2)
        problem.u[:] = 1
        problem.A[:] = [1, -1]
        problem.b = 0.5
        residual = problem.project_to_constraint()
        # The move of the second variable is cut by its lower bound.
        assert_allclose(problem.x, [0.25, 0])
        assert_allclose(residual, 0.25)

    def test_clipped(self):
        problem = QuadraticProblem(2)
        problem.u[:] = 1
        problem.b = 3
        residual = problem.project_to_constraint()
        assert_allclose(problem.x, [1, 1])
        assert_allclose(residual, 1)

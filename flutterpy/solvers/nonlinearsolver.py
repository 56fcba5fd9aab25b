"""Nonlinear and linear system solves

Capabilities injected into the time integrator. They are not flow solvers and therefore not registered with
``@solver``.
"""
import numpy as np
import scipy.linalg as sclalg
import scipy.optimize as scopt
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions

methods = ['newton', 'hybr', 'lm']


class LinearSolver(object):
    """
    Dense direct solve of :math:`\\mathbf{A}\\mathbf{x}=\\mathbf{b}` with :func:`scipy.linalg.solve`
    """
    def solve(self, mat, rhs):
        try:
            return sclalg.solve(np.asarray(mat), rhs)
        except (sclalg.LinAlgError, ValueError) as e:
            raise exceptions.NotConvergedSolver('LinearSolver', message=str(e))


class NonlinearSolver(object):
    """
    Root finding of a residual with its Jacobian

    The ``newton`` method iterates :math:`\\mathbf{J}\\Delta\\mathbf{x} = -\\mathbf{R}` with the linear solver until
    either the residual, relative to the residual at the initial guess, or the increment, relative to the solution,
    falls below ``tolerance``. The ``hybr`` and ``lm`` methods wrap :func:`scipy.optimize.root` and their result is
    also accepted when the residual has converged even if the root finder reports otherwise.

    The residual function passed to :meth:`solve` must return the tuple ``(residual, jacobian)``.

    Args:
        method (str): ``newton``, or the :func:`scipy.optimize.root` method ``hybr`` or ``lm``
        tolerance (float): Relative tolerance on the residual and on the increment
        max_iterations (int): Maximum number of iterations (residual evaluations for ``hybr``)
        print_info (bool): Print the number of residual evaluations after each solve
        linear_solver (LinearSolver): Solver of the Newton iterations
    """
    def __init__(self, method='newton', tolerance=1e-10, max_iterations=100, print_info=False, linear_solver=None):
        if method not in methods:
            raise exceptions.NotValidSetting('nonlinear_method', method, methods)
        self.method = method
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.print_info = print_info
        if linear_solver is None:
            linear_solver = LinearSolver()
        self.linear_solver = linear_solver
        self.n_evaluations = 0

    def solve(self, fun, x0):
        """
        Args:
            fun (callable): ``fun(x) -> (residual, jacobian)``
            x0 (np.ndarray): Initial guess

        Returns:
            np.ndarray: converged solution

        Raises:
            exceptions.NotConvergedSolver: if the residual does not converge
        """
        if self.method == 'newton':
            x = self.newton(fun, x0)
        else:
            x = self.root(fun, x0)
        if self.print_info:
            cout.cout_wrap('\tNonlinear solve converged in %d residual evaluations' % self.n_evaluations, 1)
        return x

    def newton(self, fun, x0):
        x = np.array(x0, dtype=float)
        residual, jacobian = fun(x)
        self.n_evaluations = 1
        reference = np.linalg.norm(residual)
        res_norm = reference

        for iteration in range(self.max_iterations):
            if res_norm <= self.tolerance * reference:
                return x

            dx = self.linear_solver.solve(jacobian, -np.asarray(residual))
            x = x + dx
            residual, jacobian = fun(x)
            self.n_evaluations += 1
            res_norm = np.linalg.norm(residual)
            if not np.isfinite(res_norm):
                raise exceptions.NotConvergedSolver('NonlinearSolver', n_iter=iteration + 1,
                                                    message='Residual is not finite')

            if np.linalg.norm(dx) <= self.tolerance * np.linalg.norm(x):
                return x

        if res_norm <= self.tolerance * reference:
            return x
        raise exceptions.NotConvergedSolver('NonlinearSolver', n_iter=self.max_iterations,
                                            message='res = %e, initial res = %e' % (res_norm, reference))

    def root(self, fun, x0):
        if self.method == 'hybr':
            options = {'maxfev': self.max_iterations}
        else:
            options = {'maxiter': self.max_iterations}

        reference = np.linalg.norm(fun(np.array(x0, dtype=float))[0])
        sol = scopt.root(fun, x0, jac=True, method=self.method, tol=self.tolerance, options=options)
        self.n_evaluations = sol.nfev + 1
        # the root finders test the step size only
        if not sol.success and not np.linalg.norm(sol.fun) <= self.tolerance * reference:
            raise exceptions.NotConvergedSolver('NonlinearSolver', n_iter=sol.nfev, message=sol.message)
        return sol.x

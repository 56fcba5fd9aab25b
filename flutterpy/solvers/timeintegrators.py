import numpy as np

import flutterpy.utils.settings as settings_utils
import flutterpy.utils.exceptions as exceptions
from flutterpy.utils.solver_interface import solver
from flutterpy.solvers.nonlinearsolver import NonlinearSolver, LinearSolver, methods


@solver
class _BaseTimeIntegrator():
    """
    Base structure for time integrators

    The integrator owns the history of the solution and its time derivatives. Index ``0`` is the current step and
    index ``1`` the previous accepted step, and so on up to :meth:`_n_iters_to_store`.
    """

    solver_id = '_BaseTimeIntegrator'
    solver_classification = 'time_integrator'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()
    settings_options = dict()

    settings_types['dt'] = 'float'
    settings_default['dt'] = None
    settings_description['dt'] = 'Time step'

    settings_types['nonlinear_method'] = 'str'
    settings_default['nonlinear_method'] = 'newton'
    settings_description['nonlinear_method'] = 'Newton iterations (``newton``) or method of ``scipy.optimize.root`` ' \
                                               'used in the step solve'
    settings_options['nonlinear_method'] = methods

    settings_types['nonlinear_tolerance'] = 'float'
    settings_default['nonlinear_tolerance'] = 1e-10
    settings_description['nonlinear_tolerance'] = 'Relative tolerance on the residual and increment of the step solve'

    settings_types['max_iterations'] = 'int'
    settings_default['max_iterations'] = 100
    settings_description['max_iterations'] = 'Maximum number of iterations of the step solve'

    def __init__(self):
        self.settings = None
        self.dt = None
        self.time = 0.

        self.assembly = None
        self.nonlinear_solver = None
        self.linear_solver = None

        self._solutions = []
        self._velocities = []
        self._accelerations = []
        self._delta_solutions = []
        self._delta_velocities = []
        self._delta_accelerations = []

        # per element storage of local (incompatible mode) solutions for the current step
        self._incompatible_sol = dict()

    def initialise(self, data, custom_settings=None, restart=False):
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings
        settings_utils.to_custom_types(self.settings,
                                       self.settings_types,
                                       self.settings_default,
                                       self.settings_options,
                                       no_ctype=True)

        self.dt = self.settings['dt']
        if self.dt <= 0.:
            raise exceptions.NotValidSetting('dt', self.dt, 'positive values')
        self.time = 0.

        if self.linear_solver is None:
            self.linear_solver = LinearSolver()
        if self.nonlinear_solver is None:
            self.nonlinear_solver = NonlinearSolver(method=self.settings['nonlinear_method'],
                                                    tolerance=self.settings['nonlinear_tolerance'],
                                                    max_iterations=self.settings['max_iterations'],
                                                    linear_solver=self.linear_solver)

    def attach_assembly(self, assembly):
        self.assembly = assembly

    def clear_assembly(self):
        self.assembly = None

    def set_nonlinear_solver(self, nonlinear_solver):
        self.nonlinear_solver = nonlinear_solver

    def set_linear_solver(self, linear_solver):
        self.linear_solver = linear_solver
        if self.nonlinear_solver is not None:
            self.nonlinear_solver.linear_solver = linear_solver

    def ode_order(self):
        raise NotImplementedError

    def _n_iters_to_store(self):
        raise NotImplementedError

    def set_initial_conditions(self, q, dqdt, dqddt=None):
        """
        Sets every stored step to the given state so that the first :meth:`solve` starts from it
        """
        q = np.array(q, dtype=float)
        dqdt = np.array(dqdt, dtype=float)
        if dqddt is None:
            dqddt = np.zeros_like(q)
        dqddt = np.array(dqddt, dtype=float)
        n_store = self._n_iters_to_store()
        self._solutions = [q.copy() for _ in range(n_store)]
        self._velocities = [dqdt.copy() for _ in range(n_store)]
        self._accelerations = [dqddt.copy() for _ in range(n_store)]
        self.set_initial_perturbations(np.zeros_like(q), np.zeros_like(q), np.zeros_like(q))

    def set_initial_perturbations(self, delta_q, delta_dqdt, delta_dqddt=None):
        delta_q = np.array(delta_q, dtype=float)
        delta_dqdt = np.array(delta_dqdt, dtype=float)
        if delta_dqddt is None:
            delta_dqddt = np.zeros_like(delta_q)
        delta_dqddt = np.array(delta_dqddt, dtype=float)
        n_store = self._n_iters_to_store()
        self._delta_solutions = [delta_q.copy() for _ in range(n_store)]
        self._delta_velocities = [delta_dqdt.copy() for _ in range(n_store)]
        self._delta_accelerations = [delta_dqddt.copy() for _ in range(n_store)]

    def solution(self, prev_iter=0):
        return self._solutions[prev_iter]

    def velocity(self, prev_iter=0):
        return self._velocities[prev_iter]

    def acceleration(self, prev_iter=0):
        return self._accelerations[prev_iter]

    def delta_solution(self, prev_iter=0):
        return self._delta_solutions[prev_iter]

    def delta_velocity(self, prev_iter=0):
        return self._delta_velocities[prev_iter]

    def delta_acceleration(self, prev_iter=0):
        return self._delta_accelerations[prev_iter]

    def set_incompatible_solution(self, elem, sol):
        self._incompatible_sol[elem] = sol

    def incompatible_solution(self, elem):
        return self._incompatible_sol.get(elem, None)

    def advance_time_step(self):
        """
        Copies the current step into the previous ones and advances the time. The current step keeps its values as
        the starting point of the next step.
        """
        for history in [self._solutions, self._velocities, self._accelerations,
                        self._delta_solutions, self._delta_velocities, self._delta_accelerations]:
            for i_iter in range(len(history) - 1, 0, -1):
                history[i_iter] = history[i_iter - 1].copy()

        self.time += self.dt
        self._incompatible_sol.clear()

    def _check_initialised(self):
        if self.dt is None or not self._solutions:
            raise exceptions.PreconditionFailure('Time integrator %s used before setting its time step and initial '
                                                 'conditions' % self.solver_id)
        if self.assembly is None:
            raise exceptions.PreconditionFailure('No transient assembly attached to %s' % self.solver_id)


@solver
class SecondOrderNewmark(_BaseTimeIntegrator):
    r"""
    Time integration of second order nonlinear systems according to the Newmark-beta scheme

    The displacement :math:`\mathbf{x}` at the new step is the unknown of the residual
    :math:`\mathbf{R}(\mathbf{x}, \dot{\mathbf{x}}, \ddot{\mathbf{x}}) = 0` supplied by a transient assembly, with the
    velocity and acceleration given by the Newmark relations

    .. math::
        \ddot{\mathbf{x}} &= \frac{\mathbf{x} - \mathbf{x}_0}{\beta\Delta t^2} - \frac{\dot{\mathbf{x}}_0}{\beta\Delta t}
        - \left(\frac{1}{2\beta} - 1\right)\ddot{\mathbf{x}}_0 \\
        \dot{\mathbf{x}} &= \dot{\mathbf{x}}_0 + \Delta t\left((1 - \gamma)\ddot{\mathbf{x}}_0 +
        \gamma\ddot{\mathbf{x}}\right)

    so that the Jacobian of the step is

    .. math:: \mathbf{J} = \frac{\partial\mathbf{R}}{\partial\mathbf{x}} +
        \frac{\gamma}{\beta\Delta t}\frac{\partial\mathbf{R}}{\partial\dot{\mathbf{x}}} +
        \frac{1}{\beta\Delta t^2}\frac{\partial\mathbf{R}}{\partial\ddot{\mathbf{x}}}

    The same relations applied to the perturbation fields march the first order sensitivity of the response.

    If ``newmark_damp`` is non-zero it overrides ``beta`` and ``gamma`` with
    :math:`\gamma = 1/2 + \alpha` and :math:`\beta = (\gamma + 1/2)^2/4`.
    """

    solver_id = 'SecondOrderNewmark'
    solver_classification = 'time_integrator'

    settings_types = _BaseTimeIntegrator.settings_types.copy()
    settings_default = _BaseTimeIntegrator.settings_default.copy()
    settings_description = _BaseTimeIntegrator.settings_description.copy()
    settings_options = _BaseTimeIntegrator.settings_options.copy()

    settings_types['beta'] = 'float'
    settings_default['beta'] = 0.25
    settings_description['beta'] = 'Newmark beta coefficient'

    settings_types['gamma'] = 'float'
    settings_default['gamma'] = 0.5
    settings_description['gamma'] = 'Newmark gamma coefficient'

    settings_types['newmark_damp'] = 'float'
    settings_default['newmark_damp'] = 0.
    settings_description['newmark_damp'] = 'Newmark damping coefficient. Overrides ``beta`` and ``gamma`` if ' \
                                           'not zero'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description, settings_options)

    def __init__(self):
        super().__init__()
        self.beta = None
        self.gamma = None

    def initialise(self, data, custom_settings=None, restart=False):
        super().initialise(data, custom_settings, restart)

        if self.settings['newmark_damp'] != 0.:
            self.gamma = 0.5 + self.settings['newmark_damp']
            self.beta = 0.25*(self.gamma + 0.5)*(self.gamma + 0.5)
        else:
            self.beta = self.settings['beta']
            self.gamma = self.settings['gamma']

        if self.beta <= 0.:
            raise exceptions.NotValidSetting('beta', self.beta, 'positive values')

    def ode_order(self):
        return 2

    def _n_iters_to_store(self):
        return 2

    def predictor(self):
        """Displacement at the new step assuming constant acceleration, used as initial guess"""
        dt = self.dt
        return self.solution(1) + dt*self.velocity(1) + (0.5 - self.beta)*dt*dt*self.acceleration(1)

    def _acceleration_from(self, sol, prev_sol, prev_vel, prev_acc):
        dt = self.dt
        beta = self.beta
        return (sol - prev_sol)/(beta*dt*dt) - prev_vel/(beta*dt) - (0.5/beta - 1.)*prev_acc

    def _velocity_from(self, acc, prev_vel, prev_acc):
        return prev_vel + self.dt*((1. - self.gamma)*prev_acc + self.gamma*acc)

    def update_acceleration(self, acc, sol):
        acc[:] = self._acceleration_from(sol, self.solution(1), self.velocity(1), self.acceleration(1))

    def update_velocity(self, vel, sol):
        acc = self._acceleration_from(sol, self.solution(1), self.velocity(1), self.acceleration(1))
        vel[:] = self._velocity_from(acc, self.velocity(1), self.acceleration(1))

    def update_delta_acceleration(self, acc, sol):
        acc[:] = self._acceleration_from(sol, self.delta_solution(1), self.delta_velocity(1),
                                         self.delta_acceleration(1))

    def update_delta_velocity(self, vel, sol):
        acc = self._acceleration_from(sol, self.delta_solution(1), self.delta_velocity(1),
                                      self.delta_acceleration(1))
        vel[:] = self._velocity_from(acc, self.delta_velocity(1), self.delta_acceleration(1))

    def jacobian(self, jac_xddot, jac_xdot, jac_x):
        dt = self.dt
        return jac_x + self.gamma/(self.beta*dt)*jac_xdot + 1./(self.beta*dt*dt)*jac_xddot

    def residual_and_jacobian(self, sol):
        """
        Residual of the step and its Jacobian with respect to the displacement at the new step
        """
        acc = np.zeros_like(sol)
        vel = np.zeros_like(sol)
        self.update_acceleration(acc, sol)
        self.update_velocity(vel, sol)
        residual, jac_xddot, jac_xdot, jac_x = self.assembly.residual_and_jacobian(sol, vel, acc,
                                                                                   self.time + self.dt)
        return residual, self.jacobian(jac_xddot, jac_xdot, jac_x)

    def solve(self):
        """
        Solves the current time step for the displacement, velocity and acceleration

        Raises:
            exceptions.NotConvergedSolver: propagated from the nonlinear solver
        """
        self._check_initialised()

        sol = self.nonlinear_solver.solve(self.residual_and_jacobian, self.predictor())

        self._solutions[0] = np.array(sol, dtype=float)
        self.update_acceleration(self._accelerations[0], self._solutions[0])
        self.update_velocity(self._velocities[0], self._solutions[0])
        return self._solutions[0]

    def sensitivity_solve(self, parameter):
        """
        Solves the perturbation of the current step with respect to ``parameter`` about the converged solution

        The linearised residual is

        .. math:: \\mathbf{J}\\delta\\mathbf{x} = -\\left(\\frac{\\partial\\mathbf{R}}{\\partial p} +
            \\frac{\\partial\\mathbf{R}}{\\partial\\ddot{\\mathbf{x}}}\\delta\\ddot{\\mathbf{x}}_p +
            \\frac{\\partial\\mathbf{R}}{\\partial\\dot{\\mathbf{x}}}\\delta\\dot{\\mathbf{x}}_p\\right)

        where :math:`\\delta\\ddot{\\mathbf{x}}_p` and :math:`\\delta\\dot{\\mathbf{x}}_p` are the parts of the
        perturbed acceleration and velocity that depend on the previous step only.
        """
        self._check_initialised()

        sol = self.solution(0)
        vel = self.velocity(0)
        acc = self.acceleration(0)
        t = self.time + self.dt

        _, jac_xddot, jac_xdot, jac_x = self.assembly.residual_and_jacobian(sol, vel, acc, t)
        dres_dp = self.assembly.sensitivity_residual(parameter, sol, vel, acc, t)

        zero = np.zeros_like(sol)
        delta_acc_prev = np.zeros_like(sol)
        delta_vel_prev = np.zeros_like(sol)
        self.update_delta_acceleration(delta_acc_prev, zero)
        self.update_delta_velocity(delta_vel_prev, zero)

        rhs = -(dres_dp + jac_xddot.dot(delta_acc_prev) + jac_xdot.dot(delta_vel_prev))
        delta_sol = self.linear_solver.solve(self.jacobian(jac_xddot, jac_xdot, jac_x), rhs)

        self._delta_solutions[0] = np.array(delta_sol, dtype=float)
        self.update_delta_acceleration(self._delta_accelerations[0], self._delta_solutions[0])
        self.update_delta_velocity(self._delta_velocities[0], self._delta_solutions[0])
        return self._delta_solutions[0]

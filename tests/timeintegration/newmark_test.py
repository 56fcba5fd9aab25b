import unittest
import numpy as np

import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
from flutterpy.utils.assembly_interface import TransientAssembly
from flutterpy.utils.parameters import Parameter
from flutterpy.structure.discipline import StructuralDiscipline
from flutterpy.solvers.nonlinearsolver import NonlinearSolver, LinearSolver
from flutterpy.solvers.timeintegrators import SecondOrderNewmark


class OscillatorAssembly(TransientAssembly):
    r"""
    Single degree of freedom oscillator :math:`m\ddot{x} + c\dot{x} + kx + k_3x^3 = 0`
    """
    assembly_id = 'OscillatorAssembly'

    def __init__(self, stiffness, mass=1., damping=0., cubic=0., discipline=None):
        super().__init__(discipline)
        self.stiffness = stiffness
        self.mass = mass
        self.damping = damping
        self.cubic = cubic

    @property
    def n_dof(self):
        return 1

    def initial_conditions(self):
        x0 = np.array([0.])
        v0 = np.array([1.])
        a0 = -(self.damping * v0 + self.stiffness.value * x0) / self.mass
        return x0, v0, a0

    def residual_and_jacobian(self, x, v, a, time):
        k = self.stiffness.value
        residual = self.mass * a + self.damping * v + k * x + self.cubic * x ** 3
        return (residual,
                np.array([[self.mass]]),
                np.array([[self.damping]]),
                np.array([[k + 3. * self.cubic * x[0] ** 2]]))

    def sensitivity_residual(self, parameter, x, v, a, time):
        self.check_tracked(parameter)
        if parameter is self.stiffness:
            return x.copy()
        return np.zeros_like(x)


class NoRootAssembly(OscillatorAssembly):
    """Residual :math:`x^2 + 1` without real roots"""
    def residual_and_jacobian(self, x, v, a, time):
        return x ** 2 + 1., np.zeros((1, 1)), np.zeros((1, 1)), np.array([[2. * x[0]]])


def newmark(dt, **kwargs):
    settings = {'dt': dt}
    settings.update(kwargs)
    integrator = SecondOrderNewmark()
    integrator.initialise(None, custom_settings=settings)
    return integrator


class TestSecondOrderNewmark(unittest.TestCase):

    def setUp(self):
        cout.cout_wrap.cout_quiet()
        self.stiffness = Parameter('k', 4.)
        self.discipline = StructuralDiscipline()

    def march(self, integrator, assembly, n_steps, parameter=None):
        x0, v0, a0 = assembly.initial_conditions()
        integrator.attach_assembly(assembly)
        integrator.set_initial_conditions(x0, v0, a0)
        for i_step in range(n_steps):
            integrator.solve()
            if parameter is not None:
                integrator.sensitivity_solve(parameter)
            integrator.advance_time_step()

    def test_order_and_history(self):
        integrator = newmark(0.1)
        self.assertEqual(integrator.ode_order(), 2)
        self.assertEqual(integrator._n_iters_to_store(), 2)
        self.assertEqual(integrator.beta, 0.25)
        self.assertEqual(integrator.gamma, 0.5)

    def test_newmark_damping(self):
        integrator = newmark(0.1, newmark_damp=0.1)
        self.assertAlmostEqual(integrator.gamma, 0.6)
        self.assertAlmostEqual(integrator.beta, 0.3025)

    def test_invalid_time_step(self):
        with self.assertRaises(exceptions.NotValidSetting):
            newmark(0.)

    def test_affine_updates(self):
        dt = 0.1
        beta = 0.3
        gamma = 0.6
        integrator = newmark(dt, beta=beta, gamma=gamma)
        x0 = np.array([1., -2.])
        v0 = np.array([0.5, 0.25])
        a0 = np.array([-1., 3.])
        integrator.set_initial_conditions(x0, v0, a0)

        sol = np.array([1.2, -1.5])
        acc = np.zeros(2)
        vel = np.zeros(2)
        integrator.update_acceleration(acc, sol)
        integrator.update_velocity(vel, sol)

        expected_acc = (sol - x0) / (beta * dt ** 2) - v0 / (beta * dt) - (0.5 / beta - 1.) * a0
        expected_vel = v0 + dt * ((1. - gamma) * a0 + gamma * expected_acc)
        np.testing.assert_allclose(acc, expected_acc)
        np.testing.assert_allclose(vel, expected_vel)

        # same relations on the perturbation fields
        integrator.set_initial_perturbations(x0, v0, a0)
        delta_acc = np.zeros(2)
        delta_vel = np.zeros(2)
        integrator.update_delta_acceleration(delta_acc, sol)
        integrator.update_delta_velocity(delta_vel, sol)
        np.testing.assert_allclose(delta_acc, expected_acc)
        np.testing.assert_allclose(delta_vel, expected_vel)

    def test_zero_fields_round_trip(self):
        integrator = newmark(0.1)
        x0 = np.array([0.3, -1.2])
        integrator.set_initial_conditions(x0, np.zeros(2), np.zeros(2))
        sol = integrator.solution(1)

        acc = np.ones(2)
        vel = np.ones(2)
        integrator.update_acceleration(acc, sol)
        integrator.update_velocity(vel, sol)
        np.testing.assert_array_equal(acc, np.zeros(2))
        np.testing.assert_array_equal(vel, np.zeros(2))

    def test_delta_updates_linear(self):
        integrator = newmark(0.1, beta=0.3, gamma=0.6)
        integrator.set_initial_conditions([1., -2.], [0.5, 0.25], [-1., 3.])
        integrator.set_initial_perturbations(np.zeros(2), np.zeros(2), np.zeros(2))

        sol = np.array([0.7, -0.4])
        scale = 3.5
        delta_acc = np.zeros(2)
        delta_vel = np.zeros(2)
        integrator.update_delta_acceleration(delta_acc, sol)
        integrator.update_delta_velocity(delta_vel, sol)

        scaled_acc = np.zeros(2)
        scaled_vel = np.zeros(2)
        integrator.update_delta_acceleration(scaled_acc, scale * sol)
        integrator.update_delta_velocity(scaled_vel, scale * sol)
        np.testing.assert_allclose(scaled_acc, scale * delta_acc, rtol=1e-14)
        np.testing.assert_allclose(scaled_vel, scale * delta_vel, rtol=1e-14)

    def test_linear_step_converges(self):
        # unit mass on a spring of stiffness 4
        dt = np.pi / 200.
        for method in ['newton', 'hybr']:
            with self.subTest(method=method):
                integrator = newmark(dt, nonlinear_method=method)
                assembly = OscillatorAssembly(self.stiffness)
                integrator.attach_assembly(assembly)
                integrator.set_initial_conditions(*assembly.initial_conditions())

                sol = integrator.solve()
                acc = np.zeros(1)
                vel = np.zeros(1)
                integrator.update_acceleration(acc, sol)
                integrator.update_velocity(vel, sol)
                residual = assembly.residual_and_jacobian(sol, vel, acc, dt)[0]
                np.testing.assert_allclose(residual, [0.], atol=1e-10)
                np.testing.assert_array_equal(integrator.solution(0), sol)

    def test_predictor(self):
        dt = 0.1
        integrator = newmark(dt)
        integrator.set_initial_conditions([1.], [2.], [4.])
        np.testing.assert_allclose(integrator.predictor(), [1. + dt * 2. + 0.25 * dt ** 2 * 4.])

    def test_advance_time_step(self):
        integrator = newmark(0.1)
        assembly = OscillatorAssembly(self.stiffness)
        integrator.attach_assembly(assembly)
        integrator.set_initial_conditions(*assembly.initial_conditions())
        integrator.set_incompatible_solution(0, np.ones(3))

        sol = integrator.solve().copy()
        np.testing.assert_array_equal(integrator.solution(1), [0.])
        integrator.advance_time_step()

        self.assertAlmostEqual(integrator.time, 0.1)
        np.testing.assert_array_equal(integrator.solution(1), sol)
        np.testing.assert_array_equal(integrator.solution(0), sol)
        self.assertIsNone(integrator.incompatible_solution(0))

    def test_harmonic_oscillator(self):
        omega = np.sqrt(self.stiffness.value)
        period = 2. * np.pi / omega
        dt = period / 200.
        n_steps = 100
        integrator = newmark(dt)
        assembly = OscillatorAssembly(self.stiffness)

        x0, v0, a0 = assembly.initial_conditions()
        integrator.attach_assembly(assembly)
        integrator.set_initial_conditions(x0, v0, a0)
        energy0 = 0.5 * v0[0] ** 2 + 0.5 * self.stiffness.value * x0[0] ** 2
        for i_step in range(n_steps):
            integrator.solve()
            integrator.advance_time_step()
            energy = 0.5 * integrator.velocity()[0] ** 2 + 0.5 * self.stiffness.value * integrator.solution()[0] ** 2
            # the average acceleration scheme conserves the energy of linear systems
            self.assertAlmostEqual(energy, energy0, delta=1e-7)

        t = integrator.time
        self.assertAlmostEqual(integrator.solution()[0], np.sin(omega * t) / omega, delta=2e-3)
        self.assertAlmostEqual(integrator.velocity()[0], np.cos(omega * t), delta=2e-3)

    def test_nonlinear_step(self):
        integrator = newmark(0.05)
        assembly = OscillatorAssembly(self.stiffness, damping=0.1, cubic=50.)
        self.march(integrator, assembly, 20)

        residual = assembly.residual_and_jacobian(integrator.solution(), integrator.velocity(),
                                                  integrator.acceleration(), integrator.time)[0]
        np.testing.assert_allclose(residual, [0.], atol=1e-8)

    def test_not_converged_propagates(self):
        integrator = newmark(0.1)
        assembly = NoRootAssembly(self.stiffness)
        integrator.attach_assembly(assembly)
        integrator.set_initial_conditions([1.], [0.], [0.])

        with self.assertRaises(exceptions.NotConvergedSolver):
            integrator.solve()
        # no partial update of the state
        np.testing.assert_array_equal(integrator.solution(0), [1.])

    def test_injected_nonlinear_solver(self):
        integrator = newmark(0.1)
        solver = NonlinearSolver(method='lm', tolerance=1e-12)
        linear_solver = LinearSolver()
        integrator.set_nonlinear_solver(solver)
        integrator.set_linear_solver(linear_solver)
        assembly = OscillatorAssembly(self.stiffness, cubic=10., discipline=self.discipline)
        self.discipline.add_parameter(self.stiffness)
        try:
            self.march(integrator, assembly, 5, parameter=self.stiffness)
        finally:
            self.discipline.remove_parameter(self.stiffness)
        self.assertIs(integrator.nonlinear_solver, solver)
        self.assertIs(integrator.linear_solver, linear_solver)
        self.assertGreater(solver.n_evaluations, 0)

    def test_not_initialised(self):
        integrator = newmark(0.1)
        with self.assertRaises(exceptions.PreconditionFailure):
            integrator.solve()

        integrator.set_initial_conditions([0.], [1.])
        with self.assertRaises(exceptions.PreconditionFailure):
            integrator.solve()

    def test_sensitivity_finite_difference(self):
        dt = 0.05
        n_steps = 20
        step = 1e-6
        k = self.stiffness.value
        assembly = OscillatorAssembly(self.stiffness, damping=0.1, cubic=5., discipline=self.discipline)

        self.discipline.add_parameter(self.stiffness)
        try:
            integrator = newmark(dt, nonlinear_tolerance=1e-13)
            self.march(integrator, assembly, n_steps, parameter=self.stiffness)
        finally:
            self.discipline.remove_parameter(self.stiffness)
        delta_sol = integrator.delta_solution()[0]
        delta_vel = integrator.delta_velocity()[0]

        solutions = []
        velocities = []
        for value in [k + step, k - step]:
            self.stiffness.value = value
            integrator_fd = newmark(dt, nonlinear_tolerance=1e-13)
            self.march(integrator_fd, assembly, n_steps)
            solutions.append(integrator_fd.solution()[0])
            velocities.append(integrator_fd.velocity()[0])
        self.stiffness.value = k

        self.assertNotEqual(delta_sol, 0.)
        self.assertAlmostEqual(delta_sol, (solutions[0] - solutions[1]) / (2. * step), delta=1e-5)
        self.assertAlmostEqual(delta_vel, (velocities[0] - velocities[1]) / (2. * step), delta=1e-5)

    def test_sensitivity_needs_tracked_parameter(self):
        integrator = newmark(0.1)
        assembly = OscillatorAssembly(self.stiffness, discipline=self.discipline)
        integrator.attach_assembly(assembly)
        integrator.set_initial_conditions(*assembly.initial_conditions())
        integrator.solve()
        with self.assertRaises(exceptions.ParameterNotTracked):
            integrator.sensitivity_solve(self.stiffness)


if __name__ == '__main__':
    unittest.main()

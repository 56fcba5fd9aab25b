import unittest
import numpy as np

import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
from flutterpy.utils.assembly_interface import FluidStructureAssembly
from flutterpy.utils.parameters import Parameter
from flutterpy.structure.discipline import StructuralDiscipline
from flutterpy.structure.basis import ReducedBasis
from flutterpy.solvers.timedomainflutter import TimeDomainFlutter
from flutterpy.solvers.fluttersensitivity import sensitivity_solve


class CoalescenceAssembly(FluidStructureAssembly):
    r"""
    Two modes of natural frequencies 10 and 20 rad/s with uniform damping :math:`\mu` coupled by the flow:

    .. math:: \mathbf{K} = \mathrm{diag}(100, 400) + \kappa V^2\begin{bmatrix} 0 & -1 \\ 1 & 0\end{bmatrix}

    The system flutters when :math:`\kappa V^2 = \sqrt{150^2 + 250\mu^2}`.
    """
    assembly_id = 'CoalescenceAssembly'

    def __init__(self, velocity, damping, kappa=0.0149, discipline=None):
        super().__init__(discipline)
        self.velocity = velocity
        self.damping = damping
        self.kappa = kappa
        self.coupling = np.array([[0., -1.],
                                  [1., 0.]])

    def reduced_matrices(self, basis):
        mass = np.eye(2)
        damping = self.damping.value * np.eye(2)
        stiffness = np.diag([100., 400.]) + self.kappa * self.velocity.value ** 2 * self.coupling
        return basis.project(mass), basis.project(damping), basis.project(stiffness)

    def reduced_matrices_sensitivity(self, parameter, basis):
        self.check_tracked(parameter)
        dmass = np.zeros((2, 2))
        ddamping = np.zeros((2, 2))
        dstiffness = np.zeros((2, 2))
        if parameter is self.damping:
            ddamping = np.eye(2)
        if parameter is self.velocity:
            dstiffness = 2. * self.kappa * self.velocity.value * self.coupling
        return basis.project(dmass), basis.project(ddamping), basis.project(dstiffness)


def critical_velocity(mu, kappa=0.0149):
    return np.sqrt(np.sqrt(150. ** 2 + 250. * mu ** 2) / kappa)


class TestTwoModeFlutter(unittest.TestCase):
    """
    Flutter search on a two-mode system with a closed form critical velocity
    """

    def setUp(self):
        cout.cout_wrap.cout_quiet()
        self.velocity = Parameter('V', 7.)
        self.damping = Parameter('mu', 1.)
        self.discipline = StructuralDiscipline()
        self.assembly = CoalescenceAssembly(self.velocity, self.damping, discipline=self.discipline)
        self.basis = ReducedBasis(np.eye(2))

        self.engine = TimeDomainFlutter()
        self.engine.initialise(None, custom_settings={'print_info': False,
                                                     'output_file': ''})
        self.engine.attach_assembly(self.assembly)

    def search(self, velocity_lower=50., velocity_upper=150., n_divisions=10, tolerance=1e-8, max_iterations=100,
               basis=None):
        if basis is None:
            basis = self.basis
        self.engine.initialize(self.velocity, velocity_lower, velocity_upper, n_divisions, basis)
        return self.engine.analyze_and_find_critical_root(tolerance, max_iterations)

    def test_critical_velocity(self):
        converged, root = self.search()

        self.assertTrue(converged)
        self.assertEqual(self.engine.state, 'converged')
        self.assertEqual(self.engine.result.stage, 'converged')
        self.assertAlmostEqual(root.velocity, critical_velocity(1.), delta=1e-5)
        self.assertLess(abs(root.damping), 1e-6)
        # flutter frequency of the coalesced pair
        self.assertAlmostEqual(root.frequency, np.sqrt(250.), delta=1e-3)

        self.assertLessEqual(self.engine.bracket.velocity_lo, root.velocity)
        self.assertGreaterEqual(self.engine.bracket.velocity_hi, root.velocity)
        self.assertEqual(self.engine.bracket.velocity_lo, 100.)
        self.assertEqual(self.engine.bracket.velocity_hi, 110.)

    def test_bracket_history_decreases(self):
        result = self.search()
        history = result.bracket_history
        self.assertEqual(history[0], 10.)
        self.assertEqual(len(history), result.n_iterations + 1)
        for i_iter in range(1, len(history)):
            self.assertLess(history[i_iter], history[i_iter - 1])

    def test_root_table(self):
        result = self.search()
        n_solutions = 11 + result.n_iterations
        self.assertEqual(len(self.engine.roots), 2 * n_solutions)

        velocities = [root.velocity for root in self.engine.sorted_roots()]
        self.assertEqual(velocities, sorted(velocities))

        # a new search discards the roots of the previous one
        result = self.search()
        self.assertEqual(len(self.engine.roots), 2 * (11 + result.n_iterations))

    def test_clear(self):
        self.search()
        self.engine.clear()
        self.assertEqual(self.engine.state, 'idle')
        self.assertEqual(self.engine.roots, [])
        self.assertIsNone(self.engine.critical_root)
        with self.assertRaises(exceptions.PreconditionFailure):
            self.engine.analyze_and_find_critical_root(1e-8, 100)

    def test_velocity_restored(self):
        self.search()
        self.assertEqual(self.velocity.value, 7.)

    def test_no_crossing(self):
        converged, root = self.search(velocity_lower=50., velocity_upper=90.)
        self.assertFalse(converged)
        self.assertIsNone(root)
        self.assertEqual(self.engine.result.stage, 'bracket')
        self.assertEqual(self.engine.state, 'failed')
        self.assertEqual(self.velocity.value, 7.)

    def test_unstable_over_whole_sweep(self):
        converged, root = self.search(velocity_lower=110., velocity_upper=150.)
        self.assertFalse(converged)
        self.assertEqual(self.engine.result.stage, 'bracket')

    def test_empty_basis(self):
        converged, root = self.search(basis=ReducedBasis())
        self.assertFalse(converged)
        self.assertIsNone(root)
        self.assertEqual(self.engine.result.stage, 'sweep')
        self.assertEqual(self.engine.roots, [])

    def test_bisection_not_converged(self):
        converged, root = self.search(tolerance=1e-12, max_iterations=3)
        self.assertFalse(converged)
        self.assertIsNone(root)
        self.assertEqual(self.engine.result.stage, 'bisection')
        self.assertEqual(self.engine.result.n_iterations, 3)
        self.assertEqual(len(self.engine.result.bracket_history), 4)

    def test_damping_ratio_indicator(self):
        self.engine.settings['damping_indicator'] = 'damping_ratio'
        converged, root = self.search()
        self.assertTrue(converged)
        self.assertEqual(root.indicator, 'damping_ratio')
        self.assertAlmostEqual(root.velocity, critical_velocity(1.), delta=1e-5)

    def test_invalid_sweep(self):
        with self.assertRaises(exceptions.PreconditionFailure):
            self.engine.initialize(self.velocity, 150., 50., 10, self.basis)
        with self.assertRaises(exceptions.PreconditionFailure):
            self.engine.initialize(self.velocity, 50., 150., 0, self.basis)


class TestTwoModeFlutterSensitivity(unittest.TestCase):

    def setUp(self):
        cout.cout_wrap.cout_quiet()
        self.velocity = Parameter('V', 0.)
        self.damping = Parameter('mu', 1.)
        self.discipline = StructuralDiscipline()
        self.assembly = CoalescenceAssembly(self.velocity, self.damping, discipline=self.discipline)
        self.basis = ReducedBasis(np.eye(2))

        self.engine = TimeDomainFlutter()
        self.engine.initialise(None, custom_settings={'print_info': False,
                                                     'output_file': ''})
        self.engine.attach_assembly(self.assembly)

    def test_velocity_sensitivity(self):
        self.engine.initialize(self.velocity, 50., 150., 10, self.basis)
        converged, root = self.engine.analyze_and_find_critical_root(1e-10, 100)
        self.assertTrue(converged)

        mu = self.damping.value
        kappa = self.assembly.kappa
        v_crit = critical_velocity(mu)
        k_crit = kappa * v_crit ** 2
        expected = 250. * mu / (2. * kappa * v_crit * k_crit)

        sensitivity = sensitivity_solve(self.engine, self.discipline, root, self.damping)
        self.assertAlmostEqual(sensitivity, expected, delta=1e-3 * abs(expected))
        self.assertEqual(root.velocity_sensitivity['mu'], sensitivity)
        self.assertIn('mu', root.eigenvalue_sensitivity)
        self.assertEqual(root.V_sens, sensitivity)

        # both parameters released and the velocity left untouched
        self.assertEqual(self.discipline.tracked_names(), [])
        self.assertEqual(self.velocity.value, 0.)

    def test_sensitivity_against_finite_difference(self):
        self.engine.initialize(self.velocity, 50., 150., 10, self.basis)
        converged, root = self.engine.analyze_and_find_critical_root(1e-10, 100)
        sensitivity = sensitivity_solve(self.engine, self.discipline, root, self.damping)

        step = 1e-3
        self.damping.value = 1. + step
        converged_perturbed, root_perturbed = self.engine.analyze_and_find_critical_root(1e-10, 100)
        self.damping.value = 1.
        self.assertTrue(converged_perturbed)
        self.assertAlmostEqual(sensitivity, (root_perturbed.velocity - root.velocity) / step,
                               delta=1e-2 * abs(sensitivity))

    def test_parameters_released_on_failure(self):
        self.engine.initialize(self.velocity, 50., 150., 10, self.basis)
        converged, root = self.engine.analyze_and_find_critical_root(1e-10, 100)

        with self.assertRaises(exceptions.PreconditionFailure):
            sensitivity_solve(self.engine, self.discipline, root, self.velocity)
        self.assertEqual(self.discipline.tracked_names(), [])

    def test_untracked_parameter(self):
        self.engine.initialize(self.velocity, 50., 150., 10, self.basis)
        converged, root = self.engine.analyze_and_find_critical_root(1e-10, 100)
        with self.assertRaises(exceptions.ParameterNotTracked):
            self.engine.calculate_sensitivity(root, self.damping)

    def test_sensitivity_without_converged_root(self):
        with self.assertRaises(exceptions.PreconditionFailure):
            self.engine.calculate_sensitivity(None, self.damping)

        self.engine.initialize(self.velocity, 50., 90., 4, self.basis)
        converged, root = self.engine.analyze_and_find_critical_root(1e-10, 100)
        self.assertFalse(converged)
        with self.assertRaises(exceptions.PreconditionFailure):
            sensitivity_solve(self.engine, self.discipline, root, self.damping)
        self.assertEqual(self.discipline.tracked_names(), [])


if __name__ == '__main__':
    unittest.main()

import os
import shutil
import tempfile
import unittest
import numpy as np

import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
import flutterpy.solvers
import flutterpy.structure.modalutils as modalutils
from flutterpy.preflutter.preflutter import PreFlutter
from flutterpy.solvers.beamloader import PistonTheoryBeamLoader
from flutterpy.solvers.modal import Modal
from flutterpy.solvers.timedomainflutter import TimeDomainFlutter
from flutterpy.solvers.fluttersensitivity import FlutterSensitivity, sensitivity_solve
from flutterpy.cases.hangar.piston_theory_beam import StructuralFluidInteractionAssembly, \
    StructuralModalEigenproblemAssembly, PistonTheoryBeamModel


class TestPistonTheoryBeamModel(unittest.TestCase):

    def setUp(self):
        cout.cout_wrap.cout_quiet()
        self.model = PistonTheoryBeamModel(num_elem=10)

    def test_pinned_dofs(self):
        # transverse displacement constrained at both ends
        self.assertEqual(self.model.num_dof, 2 * 11 - 2)
        self.assertNotIn(0, self.model.free_dofs)
        self.assertNotIn(20, self.model.free_dofs)

    def test_get_parameter(self):
        self.assertIs(self.model.get_parameter('V'), self.model.velocity)
        self.assertIs(self.model.get_sensitivity_parameter('thy'), self.model.thy)
        with self.assertRaises(exceptions.ParameterNotFound):
            self.model.get_parameter('chord')
        # the velocity is not a design parameter
        with self.assertRaises(exceptions.ParameterNotFound):
            self.model.get_sensitivity_parameter('V')

    def test_parameter_change_reaches_operators(self):
        mass, stiffness = self.model.structural_matrices()
        self.model.E.value = 2. * self.model.E.value
        np.testing.assert_allclose(self.model.structural_matrices()[1], 2. * stiffness)
        np.testing.assert_allclose(self.model.structural_matrices()[0], mass)

    def test_structural_derivatives(self):
        assembly = StructuralModalEigenproblemAssembly(self.model, self.model.discipline)
        with self.assertRaises(exceptions.ParameterNotTracked):
            assembly.assemble_sensitivity(self.model.thy)

        self.model.discipline.add_parameter(self.model.thy)
        try:
            dstiffness, dmass = assembly.assemble_sensitivity(self.model.thy)
        finally:
            self.model.discipline.remove_parameter(self.model.thy)

        stiffness, mass = assembly.assemble()
        thy = self.model.thy.value
        step = 1e-6 * thy
        self.model.thy.value = thy + step
        stiffness_perturbed, mass_perturbed = assembly.assemble()
        self.model.thy.value = thy

        np.testing.assert_allclose(dstiffness, (stiffness_perturbed - stiffness) / step,
                                   rtol=1e-4, atol=1e-6 * np.max(np.abs(dstiffness)))
        np.testing.assert_allclose(dmass, (mass_perturbed - mass) / step,
                                   rtol=1e-4, atol=1e-6 * np.max(np.abs(dmass)))

    def test_aerodynamic_velocity_derivative(self):
        self.model.velocity.value = 1100.
        aero_damping, aero_stiffness = self.model.aerodynamic_matrices()
        self.model.discipline.add_parameter(self.model.velocity)
        try:
            daero_damping, daero_stiffness = self.model.aerodynamic_matrices_sensitivity(self.model.velocity)
        finally:
            self.model.discipline.remove_parameter(self.model.velocity)

        np.testing.assert_allclose(daero_stiffness, 2. * aero_stiffness / 1100.)
        np.testing.assert_allclose(daero_damping, aero_damping / 1100.)


class TestPistonTheoryBeamFlutter(unittest.TestCase):
    """
    Flutter of a pinned aluminium strip in a Mach 3 flow, reduced to its first three modes
    """

    @classmethod
    def setUpClass(cls):
        cls.route_test_dir = tempfile.mkdtemp()
        settings = dict()
        settings['FlutterPy'] = {'case': 'beam_flutter',
                                 'route': cls.route_test_dir,
                                 'flow': ['PistonTheoryBeamLoader', 'Modal', 'TimeDomainFlutter',
                                          'FlutterSensitivity'],
                                 'write_screen': 'off',
                                 'log_folder': cls.route_test_dir + '/output/'}
        cls.data = PreFlutter(settings)
        cout.cout_wrap.cout_quiet()

        cls.solvers = dict()
        loader = PistonTheoryBeamLoader()
        loader.initialise(cls.data, custom_settings={'num_elem': 50})
        cls.data = loader.run()

        modal = Modal()
        modal.initialise(cls.data, custom_settings={'NumLambda': 3, 'print_info': False})
        cls.data = modal.run()

        cls.flutter = TimeDomainFlutter()
        cls.flutter.initialise(cls.data, custom_settings={'print_info': False,
                                                         'velocity_lower': 1000.,
                                                         'velocity_upper': 1200.,
                                                         'n_divisions': 10,
                                                         'tolerance': 1e-3})
        cls.solvers['TimeDomainFlutter'] = cls.flutter
        cls.data = cls.flutter.run(solvers=cls.solvers)

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(cls.route_test_dir)

    def setUp(self):
        cout.cout_wrap.cout_quiet()

    def test_natural_frequencies(self):
        model = self.data.model
        bending_stiffness = model.p_card.bending_stiffness()
        mass_per_length = model.p_card.mass_per_length()
        expected = np.array([(n * np.pi / model.length) ** 2 * np.sqrt(bending_stiffness / mass_per_length)
                             for n in range(1, 4)])
        np.testing.assert_allclose(modalutils.natural_frequencies(self.data.structural_eigenvalues), expected,
                                   rtol=1e-4)

    def test_basis_mass_normalised(self):
        mass = self.data.model.structural_matrices()[0]
        self.assertEqual(self.data.basis.size, 3)
        modalutils.assert_modes_mass_normalised(self.data.basis.matrix, mass, 1e-8, raise_error=True)

    def test_critical_velocity(self):
        result = self.data.flutter['result']
        root = self.data.flutter['critical_root']
        self.assertTrue(result.converged)
        self.assertEqual(self.flutter.state, 'converged')
        self.assertGreater(root.velocity, 1100.)
        self.assertLess(root.velocity, 1200.)
        self.assertLessEqual(result.bracket.velocity_lo, root.velocity)
        self.assertGreaterEqual(result.bracket.velocity_hi, root.velocity)

        # a single change of stability in the sweep
        self.assertEqual(len(self.flutter.crossings), 1)
        crossing = self.flutter.crossings[0]
        self.assertEqual(crossing.mode_number, 1)
        self.assertAlmostEqual(crossing.velocity_lo, 1140.)
        self.assertAlmostEqual(crossing.velocity_hi, 1160.)
        self.assertEqual(root.mode_number, crossing.mode_number)

        # coalescence of the first two modes
        omega = modalutils.natural_frequencies(self.data.structural_eigenvalues)
        self.assertGreater(root.frequency, omega[0])
        self.assertLess(root.frequency, omega[1])

        self.assertEqual(self.data.model.velocity.value, 0.)
        self.assertEqual(len(self.data.flutter['roots']), 3 * (11 + result.n_iterations))
        self.assertTrue(os.path.isfile(self.data.output_folder + '/flutter/flutter_output.txt'))

    def test_sensitivities(self):
        sensitivity = FlutterSensitivity()
        sensitivity.initialise(self.data, custom_settings={'print_info': False,
                                                           'parameters': ['thy', 'thz', 'E', 'nu']})
        sensitivity.run(solvers=self.solvers)
        sensitivities = self.data.flutter['sensitivities']
        model = self.data.model
        velocity = self.data.flutter['critical_root'].velocity

        self.assertEqual(model.discipline.tracked_names(), [])

        # the bending stiffness grows with the cube of the thickness and the mass linearly
        self.assertGreater(sensitivities['thy'], 0.)
        self.assertAlmostEqual(sensitivities['thy'] * model.thy.value / velocity, 1.5, delta=0.15)
        self.assertAlmostEqual(sensitivities['E'] * model.E.value / velocity, 0.5, delta=0.05)
        # the width scales every operator alike
        self.assertAlmostEqual(sensitivities['thz'] * model.thz.value / velocity, 0., delta=1e-6)
        self.assertEqual(sensitivities['nu'], 0.)

    def test_thickness_sensitivity_finite_difference(self):
        model = self.data.model
        fsi_assembly = StructuralFluidInteractionAssembly(model, model.discipline)
        engine = TimeDomainFlutter()
        engine.initialise(None, custom_settings={'print_info': False, 'output_file': ''})
        engine.attach_assembly(fsi_assembly)

        engine.initialize(model.velocity, 1000., 1200., 10, self.data.basis)
        converged, root = engine.analyze_and_find_critical_root(1e-8, 100)
        self.assertTrue(converged)
        sensitivity = sensitivity_solve(engine, model.discipline, root, model.thy)

        thy = model.thy.value
        step = 1e-5 * thy
        model.thy.value = thy + step
        try:
            converged, root_perturbed = engine.analyze_and_find_critical_root(1e-8, 100)
        finally:
            model.thy.value = thy
        self.assertTrue(converged)
        self.assertAlmostEqual(sensitivity, (root_perturbed.velocity - root.velocity) / step,
                               delta=1e-2 * abs(sensitivity))

    def test_sensitivity_of_unknown_parameter(self):
        sensitivity = FlutterSensitivity()
        sensitivity.initialise(self.data, custom_settings={'print_info': False,
                                                           'parameters': ['chord']})
        with self.assertRaises(exceptions.ParameterNotFound):
            sensitivity.run(solvers=self.solvers)
        self.assertEqual(self.data.model.discipline.tracked_names(), [])

    def test_sensitivity_needs_flutter_solver(self):
        sensitivity = FlutterSensitivity()
        sensitivity.initialise(self.data, custom_settings={'print_info': False})
        with self.assertRaises(exceptions.PreconditionFailure):
            sensitivity.run(solvers=dict())


if __name__ == '__main__':
    unittest.main()

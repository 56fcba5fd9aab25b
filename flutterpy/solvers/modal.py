import os
import numpy as np
from flutterpy.utils.solver_interface import solver, BaseSolver
import flutterpy.utils.settings as settings_utils
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.assembly_interface as assembly_interface
import flutterpy.structure.modalutils as modalutils
from flutterpy.linear.eigensolver import GeneralisedEigenSolver, orderings


@solver
class Modal(BaseSolver):
    """
    ``Modal`` solver class, inherited from ``BaseSolver``

    Solves the zero-flow structural eigenproblem assembled by a modal eigenproblem assembly and stores the mode shapes
    in the reduced basis of the problem data (``data.basis``). Only the eigenvectors are used by the flutter solvers;
    the natural frequencies are printed and optionally saved.

    By default the ``A`` and ``B`` operators are exchanged and the largest magnitude eigenvalues requested, which
    results in the lowest natural frequencies of the structure.

    If the basis already holds vectors, the new solve must produce the same number of them.
    """
    solver_id = 'Modal'
    solver_classification = 'Linear'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()
    settings_options = dict()

    settings_types['print_info'] = 'bool'
    settings_default['print_info'] = True
    settings_description['print_info'] = 'Write status to screen'

    settings_types['assembly'] = 'str'
    settings_default['assembly'] = 'StructuralModalEigenproblemAssembly'
    settings_description['assembly'] = 'Name of the registered modal eigenproblem assembly'

    settings_types['NumLambda'] = 'int'
    settings_default['NumLambda'] = 3
    settings_description['NumLambda'] = 'Number of modes to retain'

    settings_types['which'] = 'str'
    settings_default['which'] = 'largest_magnitude'
    settings_description['which'] = 'Position of the spectrum of the eigenvalues requested'
    settings_options['which'] = orderings

    settings_types['exchange_A_and_B'] = 'bool'
    settings_default['exchange_A_and_B'] = True
    settings_description['exchange_A_and_B'] = 'Solve the eigenproblem with the A and B operators exchanged'

    settings_types['hermitian'] = 'bool'
    settings_default['hermitian'] = True
    settings_description['hermitian'] = 'The operators are symmetric and the B operator positive definite'

    settings_types['mass_normalise'] = 'bool'
    settings_default['mass_normalise'] = True
    settings_description['mass_normalise'] = 'Scale the modes to unit modal mass'

    settings_types['save_data'] = 'bool'
    settings_default['save_data'] = False
    settings_description['save_data'] = 'Write mode shapes and frequencies to file'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description, settings_options)

    def __init__(self):
        self.data = None
        self.settings = None

        self.folder = None
        self.eigensolver = None
        self.assembly = None

    def initialise(self, data, custom_settings=None, restart=False):
        self.data = data
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings
        settings_utils.to_custom_types(self.settings,
                                       self.settings_types,
                                       self.settings_default,
                                       self.settings_options)

        self.eigensolver = GeneralisedEigenSolver(which=self.settings['which'],
                                                  exchange_A_and_B=self.settings['exchange_A_and_B'],
                                                  hermitian=self.settings['hermitian'])

        self.assembly = assembly_interface.initialise_assembly(self.settings['assembly'], self.data.model,
                                                               print_info=self.settings['print_info'])

        self.folder = data.output_folder + '/beam_modal_analysis/'
        if self.settings['save_data'] and data.writes_output() and not os.path.exists(self.folder):
            os.makedirs(self.folder)

    def run(self, **kwargs):
        self.assembly.attach_discipline(self.data.model.discipline)
        try:
            mat_a, mat_b = self.assembly.assemble()
        finally:
            self.assembly.clear_discipline()

        eigensolution = self.eigensolver.solve(mat_a, mat_b, n_requested=self.settings['NumLambda'])
        n_converged = min(eigensolution.n_converged, self.settings['NumLambda'])
        if n_converged < self.settings['NumLambda']:
            cout.cout_wrap('Only %d of the %d requested modes converged' % (n_converged, self.settings['NumLambda']),
                           3)

        eigenvalues = eigensolution.eigenvalues[:n_converged]
        eigenvectors = np.real(eigensolution.right[:, :n_converged])
        if self.settings['mass_normalise'] and n_converged > 0:
            eigenvectors = modalutils.scale_mass_normalised_modes(eigenvectors, mat_b)
        eigenvectors = self.mode_sign_convention(eigenvectors)

        self.data.basis.update(eigenvectors)
        self.data.structural_eigenvalues = eigenvalues

        omega = modalutils.natural_frequencies(eigenvalues)
        if self.settings['print_info']:
            cout.cout_wrap('Structural eigenvalues')
            eigenvalue_table = modalutils.EigenvalueTable()
            eigenvalue_table.print_header(eigenvalue_table.headers)
            eigenvalue_table.print_evals(1j * omega)
            eigenvalue_table.print_divider_line()

        if self.settings['save_data'] and self.data.writes_output():
            np.savetxt(self.folder + 'frequencies.dat', omega / 2 / np.pi)
            np.savetxt(self.folder + 'modal_shapes.dat', eigenvectors)

        return self.data

    @staticmethod
    def mode_sign_convention(eigenvectors):
        """
        Sets the sign of each mode such that its largest component is positive
        """
        for i_mode in range(eigenvectors.shape[1]):
            index_max = np.argmax(np.abs(eigenvectors[:, i_mode]))
            if eigenvectors[index_max, i_mode] < 0:
                eigenvectors[:, i_mode] *= -1
        return eigenvectors

import os
import numpy as np

from flutterpy.utils.solver_interface import solver, BaseSolver
import flutterpy.utils.settings as settings_utils
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
import flutterpy.utils.assembly_interface as assembly_interface
import flutterpy.structure.modalutils as modalutils
from flutterpy.utils.parameters import ExecutionContext
from flutterpy.utils.datastructures import FlutterRoot, FlutterSolution, RootBracket, FlutterSearchResult, \
    damping_indicators
from flutterpy.linear.eigensolver import GeneralisedEigenSolver

search_states = ['idle', 'sweeping', 'bracketed', 'bisecting', 'converged', 'failed']


@solver
class TimeDomainFlutter(BaseSolver):
    r"""
    Flutter search with the time domain formulation of the reduced aeroelastic system

    The fluid-structure assembly provides the reduced mass, damping and stiffness matrices at the current value of
    the velocity parameter. The roots of the system are the eigenvalues of

    .. math::
        \begin{bmatrix} \mathbf{0} & \mathbf{I} \\ -\mathbf{K}_r & -\mathbf{C}_r \end{bmatrix} \mathbf{x} =
        \lambda \begin{bmatrix} \mathbf{I} & \mathbf{0} \\ \mathbf{0} & \mathbf{M}_r \end{bmatrix} \mathbf{x}

    of which one of each complex conjugate pair is kept.

    The search goes through the following states:

    1. ``sweeping``: the system is solved at ``n_divisions + 1`` equally spaced velocities between
       ``velocity_lower`` and ``velocity_upper``. The modes of each velocity are matched to those of the previous
       velocity by their shape and eigenvalue.

    2. ``bracketed``: the velocity interval and mode with the lowest velocity change from stable to unstable is
       selected. If two modes become unstable in the same interval, the one with the lowest mode number is selected.

    3. ``bisecting``: the interval is halved, keeping the stable and unstable ends, until either the damping
       indicator at the midpoint or the interval width are below ``tolerance``.

    4. ``converged``: the last midpoint root is the critical flutter root.

    Failure to find a stability change or exceeding ``max_bisection_iters`` finish the search in the ``failed`` state
    with a :class:`~flutterpy.utils.datastructures.FlutterSearchResult` that is not converged. No root is returned
    in that case.

    Every root evaluated during the search is kept and printed sorted by velocity by :meth:`print_sorted_roots`.
    """
    solver_id = 'TimeDomainFlutter'
    solver_classification = 'flutter'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()
    settings_options = dict()

    settings_types['print_info'] = 'bool'
    settings_default['print_info'] = True
    settings_description['print_info'] = 'Print information to screen'

    settings_types['assembly'] = 'str'
    settings_default['assembly'] = 'StructuralFluidInteractionAssembly'
    settings_description['assembly'] = 'Name of the registered fluid-structure assembly'

    settings_types['velocity_parameter'] = 'str'
    settings_default['velocity_parameter'] = 'V'
    settings_description['velocity_parameter'] = 'Name of the flow velocity parameter of the case'

    settings_types['velocity_lower'] = 'float'
    settings_default['velocity_lower'] = 1e3
    settings_description['velocity_lower'] = 'Lower velocity of the sweep'

    settings_types['velocity_upper'] = 'float'
    settings_default['velocity_upper'] = 1200.
    settings_description['velocity_upper'] = 'Upper velocity of the sweep'

    settings_types['n_divisions'] = 'int'
    settings_default['n_divisions'] = 10
    settings_description['n_divisions'] = 'Number of divisions of the velocity sweep'

    settings_types['tolerance'] = 'float'
    settings_default['tolerance'] = 1e-3
    settings_description['tolerance'] = 'Bisection tolerance on the damping indicator and the velocity interval'

    settings_types['max_bisection_iters'] = 'int'
    settings_default['max_bisection_iters'] = 100
    settings_description['max_bisection_iters'] = 'Maximum number of bisection iterations'

    settings_types['damping_indicator'] = 'str'
    settings_default['damping_indicator'] = 'real_part'
    settings_description['damping_indicator'] = 'Measure of the stability of a root: its real part or its damping ' \
                                                'ratio'
    settings_options['damping_indicator'] = damping_indicators

    settings_types['damping_tolerance'] = 'float'
    settings_default['damping_tolerance'] = 0.
    settings_description['damping_tolerance'] = 'Roots with a damping indicator below this value are stable'

    settings_types['output_file'] = 'str'
    settings_default['output_file'] = 'flutter_output.txt'
    settings_description['output_file'] = 'File, in the case output folder, where the sorted roots are written. ' \
                                          'No file is written if empty'

    settings_types['plot_vg'] = 'bool'
    settings_default['plot_vg'] = False
    settings_description['plot_vg'] = 'Save the velocity-damping and velocity-frequency diagrams of the sweep'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description, settings_options)

    def __init__(self):
        self.data = None
        self.settings = None
        self.context = ExecutionContext()
        self.folder = None

        self.assembly = None
        self.eigensolver = GeneralisedEigenSolver(which='smallest_magnitude')

        self.velocity = None
        self.velocity_lower = None
        self.velocity_upper = None
        self.n_divisions = None
        self.basis = None
        self._initialized = False

        self.state = 'idle'
        self.solutions = []
        self.bisection_solutions = []
        self.roots = []
        self.bracket = None
        self.crossings = []
        self.result = None

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

        if data is not None:
            self.context = data.context
            self.folder = data.output_folder + '/flutter/'
            if self.context.is_root and not os.path.exists(self.folder):
                os.makedirs(self.folder)

    def run(self, **kwargs):
        model = self.data.model
        fsi_assembly = assembly_interface.initialise_assembly(self.settings['assembly'], model,
                                                              print_info=self.settings['print_info'])
        fsi_assembly.attach_discipline(model.discipline)
        self.attach_assembly(fsi_assembly)

        try:
            self.initialize(model.get_parameter(self.settings['velocity_parameter']),
                            self.settings['velocity_lower'],
                            self.settings['velocity_upper'],
                            self.settings['n_divisions'],
                            self.data.basis)
            result = self.analyze_and_find_critical_root(self.settings['tolerance'],
                                                         self.settings['max_bisection_iters'])
            self.print_sorted_roots()
        finally:
            fsi_assembly.clear_discipline()
            self.clear_assembly_object()

        if result.converged:
            cout.cout_wrap('Critical flutter root: mode %d, V = %.6f, eigenvalue = %s' %
                           (result.root.mode_number, result.root.velocity, result.root.eigenvalue), 2)
        else:
            cout.cout_wrap('Flutter search failed at the %s stage: %s' % (result.stage, result.message), 4)

        if self.settings['plot_vg'] and self.context.is_root:
            self.plot_vg(self.folder + 'vg.png')

        self.data.flutter['result'] = result
        self.data.flutter['critical_root'] = result.root
        self.data.flutter['roots'] = self.sorted_roots()
        return self.data

    def attach_assembly(self, fsi_assembly):
        self.assembly = fsi_assembly

    def clear_assembly_object(self):
        self.assembly = None

    def initialize(self, velocity, velocity_lower, velocity_upper, n_divisions, basis):
        """
        Sets the inputs of the search and resets any previous search

        Args:
            velocity (flutterpy.utils.parameters.Parameter): Flow velocity parameter
            velocity_lower (float): Lower velocity of the sweep
            velocity_upper (float): Upper velocity of the sweep
            n_divisions (int): Number of sweep intervals
            basis (flutterpy.structure.basis.ReducedBasis): Reduced basis
        """
        if velocity_upper <= velocity_lower:
            raise exceptions.PreconditionFailure('The upper sweep velocity %g is not greater than the lower %g'
                                                 % (velocity_upper, velocity_lower))
        if n_divisions < 1:
            raise exceptions.PreconditionFailure('The velocity sweep needs at least one division')
        self.clear()
        self.velocity = velocity
        self.velocity_lower = velocity_lower
        self.velocity_upper = velocity_upper
        self.n_divisions = n_divisions
        self.basis = basis
        self._initialized = True

    def clear(self):
        """Discards the inputs and every root of the last search"""
        self._initialized = False
        self.velocity = None
        self.basis = None
        self._clear_roots()

    def _clear_roots(self):
        self.state = 'idle'
        self.solutions = []
        self.bisection_solutions = []
        self.roots = []
        self.bracket = None
        self.crossings = []
        self.result = None

    @property
    def damping_tolerance(self):
        return self.settings['damping_tolerance']

    @property
    def critical_root(self):
        if self.result is None:
            return None
        return self.result.root

    @staticmethod
    def first_order_operators(mass, damping, stiffness):
        n_modes = mass.shape[0]
        mat_a = np.block([[np.zeros((n_modes, n_modes)), np.eye(n_modes)],
                          [-stiffness, -damping]])
        mat_b = np.block([[np.eye(n_modes), np.zeros((n_modes, n_modes))],
                          [np.zeros((n_modes, n_modes)), mass]])
        return mat_a, mat_b

    def solve_at(self, velocity, reference=None):
        """
        Roots of the aeroelastic system at ``velocity``

        Args:
            velocity (float): Flow velocity
            reference (FlutterSolution): If given, the roots are ordered to match the modes of this solution.
                Otherwise they are ordered by frequency.

        Returns:
            FlutterSolution: roots in mode order
        """
        self.velocity.value = velocity
        n_modes = self.basis.size
        mass, damping, stiffness = self.assembly.reduced_matrices(self.basis)
        mat_a, mat_b = self.first_order_operators(mass, damping, stiffness)
        eigensolution = self.eigensolver.solve(mat_a, mat_b, left=True)

        selected = self.select_roots(eigensolution.eigenvalues, n_modes)
        eigenvalues = eigensolution.eigenvalues[selected]
        right = eigensolution.right[:, selected]
        left = eigensolution.left[:, selected]

        if reference is None:
            order = np.argsort(eigenvalues.imag, kind='stable')
        else:
            reference_shapes = np.array([root.eigenvector_right[:n_modes] for root in reference.roots]).T
            order = modalutils.match_modes(reference.eigenvalues(), reference_shapes,
                                           eigenvalues, right[:n_modes, :])

        roots = []
        for i_mode, i_eig in enumerate(order):
            roots.append(FlutterRoot(velocity, eigenvalues[i_eig], right[:, i_eig], left[:, i_eig],
                                     mode_number=i_mode, indicator=self.settings['damping_indicator']))
        self.roots.extend(roots)

        return FlutterSolution(velocity, roots, (mass, damping, stiffness))

    @staticmethod
    def select_roots(eigenvalues, n_modes):
        """
        Indices of one root per mode: the eigenvalues with positive imaginary part and, if these are not enough, the
        real eigenvalues with the largest real part
        """
        threshold = 1e-10 * max(np.max(np.abs(eigenvalues)), 1.)
        oscillatory = np.where(eigenvalues.imag > threshold)[0]
        real = np.where(np.abs(eigenvalues.imag) <= threshold)[0]
        real = real[np.argsort(-eigenvalues[real].real, kind='stable')]

        selected = np.concatenate((oscillatory, real))[:n_modes]
        if len(selected) < n_modes:
            raise exceptions.EigenSolverFailure('Only %d roots found for %d modes' % (len(selected), n_modes))
        return selected

    def analyze_and_find_critical_root(self, tolerance, max_iterations):
        """
        Runs the sweep, bracketing and bisection

        Args:
            tolerance (float): Bisection tolerance on the damping indicator and the velocity interval
            max_iterations (int): Maximum number of bisection iterations

        Returns:
            FlutterSearchResult: result of the search. Unpacks as ``(converged, root)``.

        Raises:
            exceptions.PreconditionFailure: if the search has not been initialised or has no assembly attached
        """
        if not self._initialized:
            raise exceptions.PreconditionFailure('The flutter search has not been initialised')
        if self.assembly is None:
            raise exceptions.PreconditionFailure('No fluid-structure assembly attached to the flutter search')
        self._clear_roots()

        if self.basis is None or self.basis.size == 0:
            return self._fail('sweep', 'The reduced basis is empty')

        initial_velocity = self.velocity.value
        try:
            self.state = 'sweeping'
            velocities = np.linspace(self.velocity_lower, self.velocity_upper, self.n_divisions + 1)
            previous = None
            for velocity in velocities:
                previous = self.solve_at(velocity, reference=previous)
                self.solutions.append(previous)

            self.bracket = self.find_bracket()
            if self.bracket is None:
                return self._fail('bracket', 'No mode changes from stable to unstable between V = %g and V = %g'
                                  % (self.velocity_lower, self.velocity_upper))
            self.state = 'bracketed'
            if self.settings['print_info']:
                cout.cout_wrap('Mode %d becomes unstable between V = %g and V = %g' % (self.bracket.mode_number,
                                                                                     self.bracket.velocity_lo,
                                                                                     self.bracket.velocity_hi), 1)

            self.state = 'bisecting'
            self.result = self.bisection(self.bracket, tolerance, max_iterations)
        except Exception:
            self.state = 'failed'
            raise
        finally:
            self.velocity.value = initial_velocity

        if self.result.converged:
            self.state = 'converged'
        else:
            self.state = 'failed'
            cout.cout_wrap(self.result.message, 3)
        return self.result

    def find_bracket(self):
        """
        Lowest velocity interval where a mode changes from stable to unstable. Within an interval, the lowest mode
        number is selected. All the changes found are stored in ``crossings``.

        Returns:
            RootBracket: bracket, or ``None`` if there is no change of stability in the sweep
        """
        self.crossings = []
        n_modes = self.basis.size
        for i_vel in range(len(self.solutions) - 1):
            for i_mode in range(n_modes):
                bracket = RootBracket(self.solutions[i_vel], self.solutions[i_vel + 1], i_mode,
                                      self.damping_tolerance)
                if bracket.is_valid():
                    self.crossings.append(bracket)

        if not self.crossings:
            return None

        bracket = self.crossings[0]
        for other in self.crossings[1:]:
            if other.velocity_lo == bracket.velocity_lo:
                cout.cout_wrap('Modes %d and %d become unstable in the same velocity interval [%g, %g]. '
                               'Following mode %d' % (bracket.mode_number, other.mode_number,
                                                      bracket.velocity_lo, bracket.velocity_hi,
                                                      bracket.mode_number), 3)
        return bracket

    def bisection(self, bracket, tolerance, max_iterations):
        solution_lo = bracket.solution_lo
        solution_hi = bracket.solution_hi
        mode = bracket.mode_number
        bracket_history = [bracket.width]

        for i_iter in range(1, max_iterations + 1):
            velocity_mid = 0.5 * (solution_lo.velocity + solution_hi.velocity)
            solution_mid = self.solve_at(velocity_mid, reference=solution_hi)
            self.bisection_solutions.append(solution_mid)
            root = solution_mid[mode]

            if root.is_stable(self.damping_tolerance):
                solution_lo = solution_mid
            else:
                solution_hi = solution_mid
            bracket = RootBracket(solution_lo, solution_hi, mode, self.damping_tolerance)
            bracket_history.append(bracket.width)

            if abs(root.damping - self.damping_tolerance) < tolerance or bracket.width < tolerance:
                return FlutterSearchResult(True, root, stage='converged',
                                           message='Converged in %d bisection iterations' % i_iter,
                                           bracket=bracket, bracket_history=bracket_history, n_iterations=i_iter)

        return FlutterSearchResult(False, None, stage='bisection',
                                   message='Bisection did not converge in %d iterations. Last interval '
                                           '[%g, %g]' % (max_iterations, bracket.velocity_lo, bracket.velocity_hi),
                                   bracket=bracket, bracket_history=bracket_history, n_iterations=max_iterations)

    def _fail(self, stage, message):
        self.state = 'failed'
        self.result = FlutterSearchResult(False, None, stage=stage, message=message, bracket=self.bracket)
        cout.cout_wrap('Flutter search failed at the %s stage: %s' % (stage, message), 3)
        return self.result

    def sorted_roots(self):
        """Every evaluated root sorted by velocity and mode number"""
        return sorted(self.roots, key=lambda root: (root.velocity, root.mode_number))

    def print_sorted_roots(self):
        """
        Prints the table of sorted roots to screen and, on the root process, to ``output_file``
        """
        filename = None
        if self.folder is not None and self.settings['output_file'] and self.context.is_root:
            filename = self.folder + self.settings['output_file']
            if os.path.isfile(filename):
                os.remove(filename)

        root_table = modalutils.FlutterRootTable(filename)
        root_table.print_header(root_table.headers)
        root_table.print_roots(self.sorted_roots())
        root_table.print_divider_line()
        root_table.close_file()

    def calculate_sensitivity(self, root, parameter):
        r"""
        Sensitivity of a converged flutter root with respect to ``parameter``

        The eigenvalue sensitivity follows from the left and right eigenvectors

        .. math:: \frac{d\lambda}{dp} = \frac{\mathbf{v}_L^H\left(\frac{\partial\mathbf{A}}{\partial p} - \lambda
            \frac{\partial\mathbf{B}}{\partial p}\right)\mathbf{v}_R}{\mathbf{v}_L^H\mathbf{B}\mathbf{v}_R}

        and the velocity sensitivity from keeping the damping indicator :math:`g` at its critical value

        .. math:: \frac{dV}{dp} = -\frac{\partial g/\partial p}{\partial g/\partial V}

        Both ``parameter`` and the velocity parameter need to be tracked by the discipline of the assembly.

        Args:
            root (FlutterRoot): Converged critical root
            parameter (flutterpy.utils.parameters.Parameter): Parameter

        Returns:
            float: velocity sensitivity

        Raises:
            exceptions.PreconditionFailure: if there is no converged search or ``parameter`` is the velocity
        """
        if root is None or self.result is None or not self.result.converged:
            raise exceptions.PreconditionFailure('Flutter sensitivity requested without a converged flutter root')
        if self.assembly is None:
            raise exceptions.PreconditionFailure('No fluid-structure assembly attached to the flutter search')
        if parameter is self.velocity:
            raise exceptions.PreconditionFailure('The sensitivity parameter cannot be the velocity parameter')

        initial_velocity = self.velocity.value
        try:
            self.velocity.value = root.velocity
            mass, damping, stiffness = self.assembly.reduced_matrices(self.basis)
            mat_b = self.first_order_operators(mass, damping, stiffness)[1]

            deig_dp = self.eigenvalue_sensitivity(root, mat_b,
                                                  *self.assembly.reduced_matrices_sensitivity(parameter, self.basis))
            deig_dv = self.eigenvalue_sensitivity(root, mat_b,
                                                  *self.assembly.reduced_matrices_sensitivity(self.velocity,
                                                                                              self.basis))
        finally:
            self.velocity.value = initial_velocity

        dg_dp = self.damping_indicator_derivative(root, deig_dp)
        dg_dv = self.damping_indicator_derivative(root, deig_dv)
        if dg_dv == 0.:
            cout.cout_wrap('The damping indicator of the root does not vary with the velocity', 3)
            velocity_sensitivity = np.inf
        else:
            velocity_sensitivity = -dg_dp / dg_dv

        root.eigenvalue_sensitivity[parameter.name] = deig_dp
        root.velocity_sensitivity[parameter.name] = velocity_sensitivity
        return velocity_sensitivity

    @staticmethod
    def eigenvalue_sensitivity(root, mat_b, dmass, ddamping, dstiffness):
        n_modes = dmass.shape[0]
        zeros = np.zeros((n_modes, n_modes))
        dmat_a = np.block([[zeros, zeros],
                           [-dstiffness, -ddamping]])
        dmat_b = np.block([[zeros, zeros],
                           [zeros, dmass]])
        vl = root.eigenvector_left
        vr = root.eigenvector_right
        numerator = vl.conj().dot((dmat_a - root.eigenvalue * dmat_b).dot(vr))
        denominator = vl.conj().dot(mat_b.dot(vr))
        return numerator / denominator

    @staticmethod
    def damping_indicator_derivative(root, deigenvalue):
        if root.indicator == 'damping_ratio':
            magnitude = np.abs(root.eigenvalue)
            dmagnitude = np.real(root.eigenvalue.conjugate() * deigenvalue) / magnitude
            return (deigenvalue.real * magnitude - root.eigenvalue.real * dmagnitude) / magnitude ** 2
        return deigenvalue.real

    def plot_vg(self, filename):
        """
        Saves the velocity-damping and velocity-frequency diagrams of the sweep to ``filename``
        """
        from matplotlib.figure import Figure

        fig = Figure(figsize=(8, 6))
        ax_damping = fig.add_subplot(2, 1, 1)
        ax_frequency = fig.add_subplot(2, 1, 2, sharex=ax_damping)
        velocities = np.array([solution.velocity for solution in self.solutions])
        for i_mode in range(self.basis.size):
            ax_damping.plot(velocities, [solution[i_mode].damping for solution in self.solutions],
                            marker='o', label='Mode %d' % i_mode)
            ax_frequency.plot(velocities, [solution[i_mode].frequency_hz for solution in self.solutions],
                              marker='o')
        if self.critical_root is not None:
            ax_damping.axvline(self.critical_root.velocity, color='k', linestyle='--')
        ax_damping.axhline(self.damping_tolerance, color='k', linewidth=0.5)
        ax_damping.set_ylabel('Damping indicator')
        ax_frequency.set_ylabel('Frequency [Hz]')
        ax_frequency.set_xlabel('Velocity')
        ax_damping.legend()
        ax_damping.grid(True)
        ax_frequency.grid(True)
        fig.savefig(filename)

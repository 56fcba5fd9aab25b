import numpy as np

from flutterpy.utils.solver_interface import solver, BaseSolver
import flutterpy.utils.settings as settings_utils
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
import flutterpy.utils.assembly_interface as assembly_interface


def sensitivity_solve(flutter_solver, discipline, root, parameter):
    """
    Velocity sensitivity of a flutter root with respect to ``parameter``

    The velocity parameter of the flutter solver and ``parameter`` are tracked by the discipline only for the
    duration of the call. They are removed from the discipline also when the evaluation fails.

    Args:
        flutter_solver (flutterpy.solvers.timedomainflutter.TimeDomainFlutter): Flutter solver with a converged search
            and a fluid-structure assembly attached
        discipline (flutterpy.structure.discipline.StructuralDiscipline): Discipline of the assembly
        root (flutterpy.utils.datastructures.FlutterRoot): Critical root
        parameter (flutterpy.utils.parameters.Parameter): Parameter

    Returns:
        float: velocity sensitivity
    """
    if flutter_solver.velocity is None:
        raise exceptions.PreconditionFailure('The flutter solver has not been initialised')

    discipline.add_parameter(flutter_solver.velocity)
    try:
        discipline.add_parameter(parameter)
        try:
            return flutter_solver.calculate_sensitivity(root, parameter)
        finally:
            discipline.remove_parameter(parameter)
    finally:
        discipline.remove_parameter(flutter_solver.velocity)


class SensitivityTable(cout.TablePrinter):
    def __init__(self, filename=None):
        super().__init__(4, 14, ['s', 'e', 'e', 'e'], filename)
        self.headers = ['parameter', 'dV/dp', 'Re(deig/dp)', 'Im(deig/dp)']

    def print_sensitivities(self, root):
        for name, velocity_sensitivity in root.velocity_sensitivity.items():
            eigenvalue_sensitivity = root.eigenvalue_sensitivity[name]
            self.print_line([name, velocity_sensitivity, eigenvalue_sensitivity.real, eigenvalue_sensitivity.imag])


@solver
class FlutterSensitivity(BaseSolver):
    """
    Sensitivity of the critical flutter velocity with respect to the parameters of the case

    Uses the converged search of the ``TimeDomainFlutter`` solver that ran earlier in the flow. The results are
    stored in ``data.flutter['sensitivities']`` as a dictionary of velocity sensitivities keyed by parameter name.

    Requesting the sensitivity when the flutter search has not converged is an error.
    """
    solver_id = 'FlutterSensitivity'
    solver_classification = 'flutter'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()

    settings_types['print_info'] = 'bool'
    settings_default['print_info'] = True
    settings_description['print_info'] = 'Print the sensitivities to screen'

    settings_types['assembly'] = 'str'
    settings_default['assembly'] = 'StructuralFluidInteractionAssembly'
    settings_description['assembly'] = 'Name of the registered fluid-structure assembly'

    settings_types['parameters'] = 'list(str)'
    settings_default['parameters'] = ['thy']
    settings_description['parameters'] = 'Names of the parameters to compute the flutter velocity sensitivity for'

    settings_types['flutter_solver'] = 'str'
    settings_default['flutter_solver'] = 'TimeDomainFlutter'
    settings_description['flutter_solver'] = 'Name of the flutter solver in the flow holding the critical root'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description)

    def __init__(self):
        self.data = None
        self.settings = None
        self.sensitivities = dict()

    def initialise(self, data, custom_settings=None, restart=False):
        self.data = data
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings
        settings_utils.to_custom_types(self.settings,
                                       self.settings_types,
                                       self.settings_default)

    def run(self, **kwargs):
        solvers = settings_utils.set_value_or_default(kwargs, 'solvers', dict())
        try:
            flutter_solver = solvers[self.settings['flutter_solver']]
        except KeyError:
            raise exceptions.PreconditionFailure('The %s solver needs to run before %s'
                                                 % (self.settings['flutter_solver'], self.solver_id))
        root = flutter_solver.critical_root
        if root is None:
            raise exceptions.PreconditionFailure('Flutter sensitivity requested without a converged flutter root')

        model = self.data.model
        fsi_assembly = assembly_interface.initialise_assembly(self.settings['assembly'], model,
                                                              print_info=self.settings['print_info'])
        fsi_assembly.attach_discipline(model.discipline)
        flutter_solver.attach_assembly(fsi_assembly)

        self.sensitivities = dict()
        try:
            for name in self.settings['parameters']:
                parameter = model.get_sensitivity_parameter(name)
                self.sensitivities[name] = sensitivity_solve(flutter_solver, model.discipline, root, parameter)
        finally:
            fsi_assembly.clear_discipline()
            flutter_solver.clear_assembly_object()

        if self.settings['print_info']:
            cout.cout_wrap('Flutter velocity sensitivities at V = %f' % root.velocity)
            table = SensitivityTable()
            table.print_header(table.headers)
            table.print_sensitivities(root)
            table.print_divider_line()

        for name, value in self.sensitivities.items():
            if not np.isfinite(value):
                cout.cout_wrap('The velocity sensitivity with respect to %s is not finite' % name, 3)

        self.data.flutter['sensitivities'] = self.sensitivities
        return self.data

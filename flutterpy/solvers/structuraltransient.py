import numpy as np

from flutterpy.utils.solver_interface import solver, BaseSolver, initialise_solver
import flutterpy.utils.settings as settings_utils
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.assembly_interface as assembly_interface
from flutterpy.utils.datastructures import TransientStepInfo


class TransientTable(cout.TablePrinter):
    def __init__(self, filename=None):
        super().__init__(4, 14, ['g', 'f', 'e', 'e'], filename)
        self.headers = ['ts', 't', 'max |q|', 'max |dq/dp|']


@solver
class StructuralTransient(BaseSolver):
    """
    Transient response of the structure integrated in time with a second order time integrator

    The transient assembly provides the initial state and the residual of the structure. At each of the
    ``num_steps`` steps the time integrator solves the step and, if a ``sensitivity_parameter`` is given, the
    perturbation of the step with respect to that parameter. The state of every step, including the initial one,
    is stored in ``data.transient`` as a list of :class:`~flutterpy.utils.datastructures.TransientStepInfo`.

    A failure of the step solve stops the analysis and is propagated.
    """
    solver_id = 'StructuralTransient'
    solver_classification = 'structural'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()

    settings_types['print_info'] = 'bool'
    settings_default['print_info'] = True
    settings_description['print_info'] = 'Print the step information to screen'

    settings_types['assembly'] = 'str'
    settings_default['assembly'] = 'StructuralTransientAssembly'
    settings_description['assembly'] = 'Name of the registered transient assembly'

    settings_types['time_integrator'] = 'str'
    settings_default['time_integrator'] = 'SecondOrderNewmark'
    settings_description['time_integrator'] = 'Time integrator'

    settings_types['time_integrator_settings'] = 'dict'
    settings_default['time_integrator_settings'] = dict()
    settings_description['time_integrator_settings'] = 'Settings of the time integrator'

    settings_types['num_steps'] = 'int'
    settings_default['num_steps'] = 10
    settings_description['num_steps'] = 'Number of time steps'

    settings_types['sensitivity_parameter'] = 'str'
    settings_default['sensitivity_parameter'] = ''
    settings_description['sensitivity_parameter'] = 'Name of the parameter the response perturbation is computed ' \
                                                    'for. No perturbation is computed if empty'

    settings_types['consistent_initial_acceleration'] = 'bool'
    settings_default['consistent_initial_acceleration'] = True
    settings_description['consistent_initial_acceleration'] = 'Compute the initial acceleration from the ' \
                                                              'residual at the initial displacement and velocity'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description)

    def __init__(self):
        self.data = None
        self.settings = None

        self.time_integrator = None
        self.assembly = None
        self.parameter = None

    def initialise(self, data, custom_settings=None, restart=False):
        self.data = data
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings
        settings_utils.to_custom_types(self.settings, self.settings_types, self.settings_default)

        self.time_integrator = initialise_solver(self.settings['time_integrator'],
                                                 print_info=self.settings['print_info'])
        self.time_integrator.initialise(data, custom_settings=self.settings['time_integrator_settings'])

        self.assembly = assembly_interface.initialise_assembly(self.settings['assembly'], self.data.model,
                                                               print_info=self.settings['print_info'])
        if self.settings['sensitivity_parameter']:
            self.parameter = self.data.model.get_parameter(self.settings['sensitivity_parameter'])
        else:
            self.parameter = None

    def run(self, **kwargs):
        discipline = self.data.model.discipline
        self.assembly.attach_discipline(discipline)
        self.time_integrator.attach_assembly(self.assembly)
        if self.parameter is not None:
            discipline.add_parameter(self.parameter)

        try:
            self.set_initial_state()
            if self.settings['print_info']:
                table = TransientTable()
                table.print_header(table.headers)
                self.print_step(table, 0)

            for i_step in range(1, self.settings['num_steps'] + 1):
                self.time_integrator.solve()
                if self.parameter is not None:
                    self.time_integrator.sensitivity_solve(self.parameter)
                self.time_integrator.advance_time_step()
                self.data.transient.append(self.step_info())
                if self.settings['print_info']:
                    self.print_step(table, i_step)

            if self.settings['print_info']:
                table.print_divider_line()
        finally:
            if self.parameter is not None:
                discipline.remove_parameter(self.parameter)
            self.time_integrator.clear_assembly()
            self.assembly.clear_discipline()

        return self.data

    def set_initial_state(self):
        """
        Sets the initial state of the time integrator and stores it as the first step of ``data.transient``

        For a residual that is linear in the acceleration, the consistent initial acceleration and its perturbation
        are

        .. math:: \\ddot{\\mathbf{x}}_0 = -\\mathbf{J}_{\\ddot{x}}^{-1}\\mathbf{R}(\\mathbf{x}_0,
            \\dot{\\mathbf{x}}_0, \\mathbf{0}), \\quad
            \\delta\\ddot{\\mathbf{x}}_0 = -\\mathbf{J}_{\\ddot{x}}^{-1}\\frac{\\partial\\mathbf{R}}{\\partial p}
        """
        x0, v0, a0 = self.assembly.initial_conditions()
        time = self.time_integrator.time
        delta_a0 = np.zeros_like(x0)
        if self.settings['consistent_initial_acceleration']:
            residual, jac_xddot = self.assembly.residual_and_jacobian(x0, v0, np.zeros_like(x0), time)[:2]
            a0 = self.time_integrator.linear_solver.solve(jac_xddot, -residual)
            if self.parameter is not None:
                dres_dp = self.assembly.sensitivity_residual(self.parameter, x0, v0, a0, time)
                delta_a0 = self.time_integrator.linear_solver.solve(jac_xddot, -dres_dp)

        self.time_integrator.set_initial_conditions(x0, v0, a0)
        self.time_integrator.set_initial_perturbations(np.zeros_like(x0), np.zeros_like(x0), delta_a0)

        self.data.transient = [self.step_info()]

    def step_info(self):
        step = TransientStepInfo(self.assembly.n_dof, self.time_integrator.time)
        step.q[:] = self.time_integrator.solution()
        step.dqdt[:] = self.time_integrator.velocity()
        step.dqddt[:] = self.time_integrator.acceleration()
        step.delta_q[:] = self.time_integrator.delta_solution()
        step.delta_dqdt[:] = self.time_integrator.delta_velocity()
        step.delta_dqddt[:] = self.time_integrator.delta_acceleration()
        return step

    def print_step(self, table, i_step):
        step = self.data.transient[i_step]
        table.print_line([i_step, step.time, np.max(np.abs(step.q)), np.max(np.abs(step.delta_q))])

import os
import h5py
import numpy as np

import flutterpy.utils.cout_utils as cout
from flutterpy.utils.solver_interface import solver, BaseSolver
import flutterpy.utils.settings as settings_utils


@solver
class SaveData(BaseSolver):
    """
    The ``SaveData`` postprocessor writes the FlutterPy results into an ``hdf5`` file,
    ``<log_folder>/<case>/savedata/<case>.data.h5``, with the groups:

        * ``basis``: the reduced basis vectors by columns and the structural eigenvalues

        * ``flutter``: the roots evaluated by the flutter search, the critical root and its sensitivities

        * ``transient``: the state of every time step of the transient analysis

    Only the root process of the execution context writes the file.
    """
    solver_id = 'SaveData'
    solver_classification = 'post-processor'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()

    settings_types['save_basis'] = 'bool'
    settings_default['save_basis'] = True
    settings_description['save_basis'] = 'Save the reduced basis and structural eigenvalues'

    settings_types['save_flutter'] = 'bool'
    settings_default['save_flutter'] = True
    settings_description['save_flutter'] = 'Save the flutter roots and sensitivities'

    settings_types['save_transient'] = 'bool'
    settings_default['save_transient'] = True
    settings_description['save_transient'] = 'Save the transient time steps'

    settings_types['compress_float'] = 'bool'
    settings_default['compress_float'] = False
    settings_description['compress_float'] = 'Compress the float arrays with gzip'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description)

    def __init__(self):
        self.settings = None
        self.data = None

        self.folder = ''
        self.filename = ''

    def initialise(self, data, custom_settings=None, restart=False):
        self.data = data
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings

        settings_utils.to_custom_types(self.settings,
                                       self.settings_types,
                                       self.settings_default)

        self.folder = data.output_folder + '/savedata/'
        self.filename = self.folder + data.case_name + '.data.h5'
        if not data.writes_output():
            return

        if not os.path.exists(self.folder):
            os.makedirs(self.folder)
        self.remove_file_if_exist(self.filename)

    @staticmethod
    def remove_file_if_exist(filepath):
        if os.path.isfile(filepath):
            os.remove(filepath)

    def add_array(self, group, name, value):
        value = np.asarray(value)
        if self.settings['compress_float'] and value.dtype.kind in 'fc' and value.ndim > 0:
            group.create_dataset(name, data=value, compression='gzip', compression_opts=6)
        else:
            group.create_dataset(name, data=value)

    def run(self, **kwargs):
        if not self.data.writes_output():
            return self.data

        with h5py.File(self.filename, 'a') as hdfile:
            if self.settings['save_basis']:
                self.save_basis(hdfile.create_group('basis'))
            if self.settings['save_flutter'] and self.data.flutter:
                self.save_flutter(hdfile.create_group('flutter'))
            if self.settings['save_transient'] and self.data.transient:
                self.save_transient(hdfile.create_group('transient'))

        cout.cout_wrap('Results saved to %s' % self.filename, 1)
        return self.data

    def save_basis(self, group):
        group.attrs['n_modes'] = self.data.basis.size
        if self.data.basis.size > 0:
            self.add_array(group, 'vectors', self.data.basis.matrix)
        if self.data.structural_eigenvalues is not None:
            self.add_array(group, 'structural_eigenvalues', self.data.structural_eigenvalues)

    def save_flutter(self, group):
        result = self.data.flutter.get('result', None)
        if result is not None:
            group.attrs['converged'] = result.converged
            group.attrs['stage'] = result.stage
            group.attrs['message'] = result.message
            group.attrs['n_iterations'] = result.n_iterations
            if result.bracket_history is not None:
                self.add_array(group, 'bracket_history', result.bracket_history)

        roots = self.data.flutter.get('roots', [])
        if roots:
            roots_group = group.create_group('roots')
            self.add_array(roots_group, 'mode_number', [root.mode_number for root in roots])
            self.add_array(roots_group, 'velocity', [root.velocity for root in roots])
            self.add_array(roots_group, 'eigenvalue', [root.eigenvalue for root in roots])
            self.add_array(roots_group, 'damping', [root.damping for root in roots])

        critical_root = self.data.flutter.get('critical_root', None)
        if critical_root is not None:
            root_group = group.create_group('critical_root')
            root_group.attrs['mode_number'] = critical_root.mode_number
            root_group.attrs['velocity'] = critical_root.velocity
            root_group.attrs['indicator'] = critical_root.indicator
            self.add_array(root_group, 'eigenvalue', critical_root.eigenvalue)
            self.add_array(root_group, 'eigenvector_right', critical_root.eigenvector_right)
            if critical_root.eigenvector_left is not None:
                self.add_array(root_group, 'eigenvector_left', critical_root.eigenvector_left)

            if critical_root.velocity_sensitivity:
                sens_group = root_group.create_group('sensitivities')
                for name, value in critical_root.velocity_sensitivity.items():
                    param_group = sens_group.create_group(name)
                    param_group.attrs['velocity_sensitivity'] = value
                    self.add_array(param_group, 'eigenvalue_sensitivity',
                                   critical_root.eigenvalue_sensitivity[name])

    def save_transient(self, group):
        group.attrs['n_steps'] = len(self.data.transient)
        self.add_array(group, 'time', [step.time for step in self.data.transient])
        for name in ['q', 'dqdt', 'dqddt', 'delta_q', 'delta_dqdt', 'delta_dqddt']:
            self.add_array(group, name, np.array([getattr(step, name) for step in self.data.transient]))

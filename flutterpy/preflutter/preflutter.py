import os
import configobj
import flutterpy.utils.cout_utils as cout
from flutterpy.utils.solver_interface import solver, dict_of_solvers
import flutterpy.utils.settings as settings
import flutterpy.utils.exceptions as exceptions
from flutterpy.utils.parameters import ExecutionContext
from flutterpy.structure.basis import ReducedBasis


@solver
class PreFlutter(object):
    """
    The PreFlutter solver is the main loader of FlutterPy and the problem data object shared by every solver in the
    flow. It takes the admin-like settings for the simulation, including the case name, case route and the list of
    solvers to run and in which order to run them (the ``flow`` setting).

    This is a mandatory solver for all simulations so it is never included in the ``flow`` setting.

    The settings for this solver are given in the configuration file under the header ``FlutterPy``:

    .. code-block:: python

        import configobj
        filename = '<case_route>/<case_name>.flutterpy'
        config = configobj.ConfigObj()
        config.filename = filename
        config['FlutterPy'] = {'case': '<your case name>',
                               'flow': ['PistonTheoryBeamLoader', 'Modal', 'TimeDomainFlutter'],
                               # Rest of your settings for the PreFlutter class
                               }

    Once the flow runs, the object holds:

    Attributes:
        context (ExecutionContext): rank and size of the run. Only rank ``0`` writes report files.
        model: Case model owning the parameters, property cards, boundary conditions and loads. Set by a loader.
        basis (ReducedBasis): Reduced basis computed by the ``Modal`` solver
        structural_eigenvalues (np.ndarray): Zero-flow structural eigenvalues from the ``Modal`` solver
        flutter (dict): Results of the ``TimeDomainFlutter`` and ``FlutterSensitivity`` solvers
        transient (list): Time step information of the ``StructuralTransient`` solver
    """
    solver_id = 'PreFlutter'
    solver_classification = 'loader'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()

    settings_types['flow'] = 'list(str)'
    settings_default['flow'] = None
    settings_description['flow'] = "List of the desired solvers' ``solver_id`` to run in sequential order."

    settings_types['case'] = 'str'
    settings_default['case'] = 'default_case_name'
    settings_description['case'] = 'Case name'

    settings_types['route'] = 'str'
    settings_default['route'] = './'
    settings_description['route'] = 'Route to case files'

    settings_types['write_screen'] = 'bool'
    settings_default['write_screen'] = True
    settings_description['write_screen'] = 'Display output on terminal screen'

    settings_types['write_log'] = 'bool'
    settings_default['write_log'] = False
    settings_description['write_log'] = 'Write log file'

    settings_types['log_folder'] = 'str'
    settings_default['log_folder'] = './output/'
    settings_description['log_folder'] = 'A folder with the case name will be created at this directory ' \
                                         'containing the FlutterPy log and output folders'

    settings_types['log_file'] = 'str'
    settings_default['log_file'] = 'log'
    settings_description['log_file'] = 'Name of the log file'

    settings_types['save_settings'] = 'bool'
    settings_default['save_settings'] = False
    settings_description['save_settings'] = 'Save a copy of the settings to a ``.flutterpy`` file in the output ' \
                                            'directory specified in ``log_folder``'

    settings_table = settings.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description,
                                       header_line='The following are the settings that the PreFlutter class takes:')

    def __init__(self, in_settings=None, context=None):
        self._settings = True
        if in_settings is None:
            # call for documentation only
            self._settings = False

        if context is None:
            context = ExecutionContext()
        self.context = context

        self.model = None
        self.basis = ReducedBasis()
        self.structural_eigenvalues = None
        self.flutter = dict()
        self.transient = []

        if self._settings:
            self.settings = in_settings
            settings.to_custom_types(self.settings['FlutterPy'], self.settings_types, self.settings_default)
            self.output_folder = self.settings['FlutterPy']['log_folder'] + '/' + \
                self.settings['FlutterPy']['case'] + '/'
            if self.context.is_root and not os.path.isdir(self.output_folder):
                os.makedirs(self.output_folder)

            cout.cout_wrap.initialise(self.settings['FlutterPy']['write_screen'],
                                      self.settings['FlutterPy']['write_log'] and self.context.is_root,
                                      self.output_folder,
                                      self.settings['FlutterPy']['log_file'])

            self.case_route = self.settings['FlutterPy']['route'] + '/'
            self.case_name = self.settings['FlutterPy']['case']
            for solver_name in self.settings['FlutterPy']['flow']:
                try:
                    dict_of_solvers[solver_name]
                except KeyError:
                    raise exceptions.NotImplementedSolver(solver_name)

            cout.cout_wrap('FlutterPy output folder set')
            cout.cout_wrap('\t' + self.output_folder, 1)

            if self.settings['FlutterPy']['save_settings'] and self.context.is_root:
                self.save_settings()

    def initialise(self):
        pass

    def save_settings(self):
        """
        Saves the settings to a ``.flutterpy`` config obj file in the output directory.
        """
        out_settings = configobj.ConfigObj()
        for k, v in self.settings.items():
            out_settings[k] = v
        out_settings.filename = self.output_folder + self.settings['FlutterPy']['case'] + '.flutterpy'
        out_settings.write()

    def writes_output(self):
        return self.context.is_root

from flutterpy.utils.solver_interface import solver, BaseSolver
import flutterpy.utils.settings as settings_utils
import flutterpy.utils.cout_utils as cout
from flutterpy.cases.hangar.piston_theory_beam import PistonTheoryBeamModel


@solver
class PistonTheoryBeamLoader(BaseSolver):
    """
    ``PistonTheoryBeamLoader`` class, inherited from ``BaseSolver``

    Creates the model of a pinned beam in supersonic flow,
    :class:`~flutterpy.cases.hangar.piston_theory_beam.PistonTheoryBeamModel`, and stores it in ``data.model``.
    Loading the model also registers the structural and fluid-structure assemblies of the case.

    It is usually the first solver of the flow.
    """
    solver_id = 'PistonTheoryBeamLoader'
    solver_classification = 'loader'

    settings_types = dict()
    settings_default = dict()
    settings_description = dict()

    settings_types['length'] = 'float'
    settings_default['length'] = 10.
    settings_description['length'] = 'Beam length'

    settings_types['num_elem'] = 'int'
    settings_default['num_elem'] = 50
    settings_description['num_elem'] = 'Number of beam elements'

    settings_types['thy'] = 'float'
    settings_default['thy'] = 0.06
    settings_description['thy'] = 'Section thickness'

    settings_types['thz'] = 'float'
    settings_default['thz'] = 1.
    settings_description['thz'] = 'Section width'

    settings_types['rho'] = 'float'
    settings_default['rho'] = 2.8e3
    settings_description['rho'] = 'Material density'

    settings_types['E'] = 'float'
    settings_default['E'] = 72.e9
    settings_description['E'] = 'Young\'s modulus'

    settings_types['nu'] = 'float'
    settings_default['nu'] = 0.33
    settings_description['nu'] = 'Poisson\'s ratio'

    settings_types['mach'] = 'float'
    settings_default['mach'] = 3.
    settings_description['mach'] = 'Free stream Mach number'

    settings_types['rho_air'] = 'float'
    settings_default['rho_air'] = 1.05
    settings_description['rho_air'] = 'Free stream air density'

    settings_types['gamma_air'] = 'float'
    settings_default['gamma_air'] = 1.4
    settings_description['gamma_air'] = 'Ratio of specific heats of air'

    settings_types['k_nl'] = 'float'
    settings_default['k_nl'] = 0.
    settings_description['k_nl'] = 'Cubic stiffness of the elastic foundation in transient analyses'

    settings_types['load_amplitude'] = 'float'
    settings_default['load_amplitude'] = 0.
    settings_description['load_amplitude'] = 'Amplitude of the uniform harmonic pressure in transient analyses'

    settings_types['load_frequency'] = 'float'
    settings_default['load_frequency'] = 0.
    settings_description['load_frequency'] = 'Circular frequency of the uniform harmonic pressure in transient ' \
                                             'analyses'

    settings_types['initial_amplitude'] = 'float'
    settings_default['initial_amplitude'] = 0.
    settings_description['initial_amplitude'] = 'Amplitude of the half-sine initial displacement in transient ' \
                                                'analyses'

    settings_table = settings_utils.SettingsTable()
    __doc__ += settings_table.generate(settings_types, settings_default, settings_description)

    def __init__(self):
        self.data = None
        self.settings = None

    def initialise(self, data, custom_settings=None, restart=False):
        self.data = data
        if custom_settings is None:
            self.settings = data.settings[self.solver_id]
        else:
            self.settings = custom_settings
        settings_utils.to_custom_types(self.settings, self.settings_types, self.settings_default)

    def run(self, **kwargs):
        self.data.model = PistonTheoryBeamModel(**self.settings)
        cout.cout_wrap('Beam model with %d elements and %d degrees of freedom' % (self.data.model.num_elem,
                                                                                 self.data.model.num_dof), 1)
        return self.data

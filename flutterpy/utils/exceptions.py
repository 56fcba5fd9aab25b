"""FlutterPy Exception Classes
"""
import flutterpy.utils.cout_utils as cout


def output_message(message, color_id=3):
    if cout.cout_wrap is None:
        print(message)
    else:
        cout.cout_wrap.print_separator(3)
        cout.cout_wrap(message, color_id)
        cout.cout_wrap.print_separator(3)


class DefaultValueBaseException(Exception):
    def __init__(self, variable, value, message=''):
        super().__init__(message)

    def output_message(self, message, color_id=3):
        output_message(message, color_id)


class NoDefaultValueException(DefaultValueBaseException):
    def __init__(self, variable, value=None, message=''):
        message = "The variable " + variable + " has no default value, please indicate one"
        super().__init__(variable, value, message)
        self.output_message(message)


class NotValidInputFile(Exception):
    def __init__(self, message):
        super().__init__(message)


class NotImplementedSolver(Exception):
    def __init__(self, solver_name, message=''):
        message = "The solver " + solver_name + " is not implemented. " \
                  "Check the list of available solvers when starting FlutterPy"
        super().__init__(message)
        cout.cout_wrap(message, 3)


class NotConvergedSolver(Exception):
    """
    To be raised when a delegated numerical solve (the nonlinear step solve of the time integrator, for instance)
    does not converge. No retry is attempted by the caller.
    """
    def __init__(self, solver_name, n_iter=None, message=''):
        full_message = 'The solver ' + solver_name + ' did not converge'
        if n_iter is not None:
            full_message += ' in ' + str(n_iter) + ' iterations'
        if message:
            full_message += ': ' + message
        super().__init__(full_message)
        cout.cout_wrap(full_message, 3)


class EigenSolverFailure(Exception):
    """
    The eigen-decomposition capability did not return the requested eigenpairs
    """
    def __init__(self, message):
        super().__init__(message)
        cout.cout_wrap('Eigen-decomposition failure: ' + message, 4)


class PreconditionFailure(Exception):
    """
    Fatal misuse of an analysis component, e.g. requesting the sensitivity of a flutter root before a successful
    search or reusing a basis whose size does not match a new modal solve. These are never recovered from.
    """
    def __init__(self, message):
        super().__init__(message)
        output_message('Precondition failure: ' + message, 4)


class ParameterNotFound(Exception):
    def __init__(self, name, valid_names=None):
        message = 'Parameter not found by name: %s' % name
        if valid_names is not None:
            message += '. Valid names are: ' + ', '.join(valid_names)
        super().__init__(message)
        cout.cout_wrap(message, 3)


class ParameterNotTracked(Exception):
    """
    Raised by assemblies when the sensitivity with respect to a parameter is requested and the parameter has not
    been registered with the discipline.
    """
    def __init__(self, name, tracked_names=()):
        message = 'Parameter %s is not among the tracked sensitivity parameters [%s]' % \
                  (name, ', '.join(tracked_names))
        super().__init__(message)
        cout.cout_wrap(message, 3)


class NotValidSetting(DefaultValueBaseException):
    """
    Raised when a user gives a setting an invalid value
    """

    def __init__(self, setting, variable, options, value=None, message=''):
        message = 'The setting %s with entry %s is not one of the valid options: %s' % (setting, variable, options)
        super().__init__(variable, value, message=message)
        self.output_message(message, color_id=4)


class NotValidSettingType(DefaultValueBaseException):
    """
    Raised when a user gives a setting with an invalid type
    """

    def __init__(self, setting, variable, data_types, value=None, message=''):
        message = 'The setting %s with entry %s is not one of the valid types: %s' % (setting, variable, data_types)
        super().__init__(variable, value, message=message)
        self.output_message(message, color_id=4)


class SolverNotFound(Exception):
    def __init__(self, solver_name):
        message = 'The solver %s cannot be found in the list of solvers. Ensure you have spelt the solver name ' \
                  'correctly.' % solver_name
        super().__init__(message)


class AssemblyNotFound(Exception):
    def __init__(self, assembly_name):
        message = 'The assembly %s cannot be found in the list of assemblies.' % assembly_name
        super().__init__(message)


class NotRecognisedSetting(DefaultValueBaseException):
    """
    Raised when a setting is not recognised
    """
    def __init__(self, setting, value=None, message=''):
        message = 'Unrecognised setting {:s}. Please check input file and/or documentation'.format(setting)
        super().__init__(variable=None, value=None, message=message)
        self.output_message(message, color_id=4)

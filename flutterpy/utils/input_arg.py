import os
import flutterpy.utils.exceptions as exceptions
import flutterpy.utils.cout_utils as cout


def read_settings(args):
    case_settings = args.input_filename
    cout.cout_wrap('Running FlutterPy using the settings file: %s' % case_settings)

    settings = parse_settings(case_settings)
    return settings


def parse_settings(file):
    from flutterpy.utils.settings import load_config_file
    if not os.path.isfile(file):
        raise exceptions.NotValidInputFile('The input file %s does not exist.' % file)
    settings = load_config_file(os.path.realpath(file))
    check_settings(settings)
    return settings


def check_settings(settings):
    """
    Checks that the input contains a ``FlutterPy`` header with a ``flow``, that the solvers in the flow exist and
    that each one of them has a settings section.
    """
    try:
        flow = settings['FlutterPy']['flow']
    except KeyError:
        raise exceptions.NotValidInputFile('The solver file does not contain a FlutterPy header.')

    from flutterpy.utils.solver_interface import dict_of_solvers

    if isinstance(flow, str):
        flow = [flow]
        settings['FlutterPy']['flow'] = flow

    for solver in flow:
        try:
            dict_of_solvers[solver]
        except KeyError:
            raise exceptions.SolverNotFound(solver)

        try:
            settings[solver]
        except KeyError:
            raise exceptions.NotValidInputFile('The settings for the solver %s have not been given.' % solver)
    return settings

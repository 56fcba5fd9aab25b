"""flutterpy_main: Where it all starts

"""
import warnings
import sys
import flutterpy.utils.cout_utils as cout
from .version import __version__


def main(args=None, flutterpy_input_dict=None):
    """
    Main ``FlutterPy`` routine

    This is the main ``FlutterPy`` routine.
    It starts the solution process by reading the settings that are
    included in the ``.flutterpy`` file that is parsed
    as an argument, or an equivalent dictionary given as ``flutterpy_input_dict``.
    It reads the solvers specific settings and runs them in order

    Args:
        args (str): ``.flutterpy`` file with the problem information and settings
        flutterpy_input_dict (dict): ``dict`` with the same contents as the
            ``.flutterpy`` file would have.

    Returns:
        flutterpy.preflutter.preflutter.PreFlutter: object containing the simulation results.

    """
    import time
    import argparse

    import flutterpy.utils.input_arg as input_arg
    import flutterpy.utils.solver_interface as solver_interface
    from flutterpy.preflutter.preflutter import PreFlutter
    from flutterpy.utils.cout_utils import start_writer, finish_writer
    import logging
    import os

    # Loading solvers and postprocessors
    import flutterpy.solvers
    import flutterpy.postproc
    # ------------

    try:
        # output writer
        start_writer()
        # timing
        t = time.process_time()
        t0_wall = time.perf_counter()

        if flutterpy_input_dict is None:
            parser = argparse.ArgumentParser(prog='FlutterPy', description=
            """This is the executable for flutter stability, sensitivity and transient analyses.""")
            parser.add_argument('input_filename', help='path to the *.flutterpy input file', type=str, default='')
            parser.add_argument('-v', '--version', action='version',
                version='Running %(prog)s version {version}'.format(version=__version__))
            if args is not None:
                args = parser.parse_args(args[1:])
            else:
                args = parser.parse_args()

            if args.input_filename == '':
                parser.error('input_filename is a required argument of FlutterPy.')
            settings = input_arg.read_settings(args)
        else:
            settings = input_arg.check_settings(flutterpy_input_dict)

        # run preFlutterPy
        data = PreFlutter(settings)
        solvers = dict()

        # Loop for the solvers specified in *.flutterpy['FlutterPy']['flow']
        for solver_name in settings['FlutterPy']['flow']:
            solvers[solver_name] = solver_interface.initialise_solver(solver_name)
            solvers[solver_name].initialise(data)
            data = solvers[solver_name].run(solvers=solvers)
            solvers[solver_name].teardown()

        cpu_time = time.process_time() - t
        wall_time = time.perf_counter() - t0_wall
        cout.cout_wrap('FINISHED - Elapsed time = %f6 seconds' % wall_time, 2)
        cout.cout_wrap('FINISHED - CPU process time = %f6 seconds' % cpu_time, 2)
        finish_writer()

    except Exception as e:
        try:
            logdir = settings['FlutterPy']['log_folder'] + '/' + settings['FlutterPy']['case']
        except KeyError:
            logdir = './'
        except NameError:
            logdir = './'
        logdir = os.path.abspath(logdir)
        if not os.path.isdir(logdir):
            logdir = os.path.abspath('./')
        cout.cout_wrap(('Exception raised, writing error log in %s/error.log' % logdir), 4)
        logging.basicConfig(filename='%s/error.log' % logdir,
                            filemode='w',
                            format='%(asctime)s-%(levelname)s-%(message)s',
                            datefmt='%d-%b-%y %H:%M:%S',
                            level=logging.INFO)
        logging.info('FlutterPy Error Log')
        logging.error("Exception occurred", exc_info=True)
        raise e

    return data


def flutterpy_run():
    """
    This is a wrapper function for the console command "flutterpy"
    """
    data = None
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        data = main(sys.argv)

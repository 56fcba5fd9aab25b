"""Design and physical parameters

Parameters are named scalars shared by reference between the case model, the discipline, the field functions and the
flutter solvers. Field functions never store the value of the parameter they wrap, so changing a parameter value is
seen by every consumer the next time it evaluates.
"""
import numpy as np


class Parameter(object):
    """
    Named scalar with a mutable value

    Two parameters are the same parameter only if they are the same object; the name is used for lookup and output.

    Args:
        name (str): Parameter name
        value (float): Initial value

    Examples:

        >>> thickness = Parameter('thy', 0.06)
        >>> thickness.value = 0.07
        >>> float(thickness)
        0.07

    """
    def __init__(self, name, value=0.):
        self._name = name
        self._value = float(value)

    @property
    def name(self):
        return self._name

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, new_value):
        self._value = float(new_value)

    def __float__(self):
        return self._value

    def __repr__(self):
        return 'Parameter(%s = %g)' % (self._name, self._value)


class ConstantFieldFunction(object):
    """
    Spatially constant field that evaluates to the current value of a parameter

    Args:
        name (str): Name of the field, e.g. ``hy`` for a section thickness
        parameter (Parameter): Wrapped parameter
    """
    def __init__(self, name, parameter):
        self.name = name
        self.parameter = parameter

    def __call__(self, point=None, time=0.):
        return self.parameter.value

    def derivative(self, parameter, point=None, time=0.):
        """
        Derivative of the field with respect to ``parameter``. Only the wrapped parameter has a non-zero derivative.
        """
        if parameter is self.parameter:
            return 1.
        return 0.

    def depends_on(self, parameter):
        return parameter is self.parameter


class ExecutionContext(object):
    """
    Handle on the parallel environment the analysis runs in

    The context is passed to the components that need to know the process rank (e.g. those writing report files, which
    only rank ``0`` does). A serial run uses the default ``rank=0, size=1``.

    Args:
        rank (int): Rank of this process
        size (int): Number of processes
    """
    def __init__(self, rank=0, size=1):
        if size < 1 or not 0 <= rank < size:
            raise ValueError('Invalid execution context: rank %d of %d processes' % (rank, size))
        self.rank = rank
        self.size = size

    @property
    def is_root(self):
        return self.rank == 0


def find_parameter(parameters, name):
    """
    Returns the parameter called ``name`` from an iterable of parameters, or ``None`` if not present
    """
    for p in parameters:
        if p.name == name:
            return p
    return None


def parameter_values(parameters):
    return np.array([p.value for p in parameters])

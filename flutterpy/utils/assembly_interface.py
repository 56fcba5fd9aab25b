"""Assembly capabilities

The solvers do not assemble matrices themselves. They are given an assembly object implementing one of the interfaces
in this module:

* :class:`ModalEigenproblemAssembly`: full-order operators of the structural eigenproblem at zero flow.
* :class:`FluidStructureAssembly`: reduced mass, damping and stiffness of the coupled aeroelastic system.
* :class:`TransientAssembly`: residual and Jacobian contributions of the nonlinear second-order system.

Assemblies are registered with the ``@assembly`` decorator, in the same way solvers are, so that they can be chosen
by name from the input file.
"""
from abc import ABCMeta, abstractmethod
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions

dict_of_assemblies = {}


# decorator
def assembly(arg):
    global dict_of_assemblies
    try:
        arg.assembly_id
    except AttributeError:
        raise AttributeError('Class defined as assembly has no assembly_id attribute')
    dict_of_assemblies[arg.assembly_id] = arg
    return arg


def assembly_from_string(string):
    try:
        cls_type = dict_of_assemblies[string]
    except KeyError:
        raise exceptions.AssemblyNotFound(string)
    return cls_type


def initialise_assembly(assembly_name, *args, print_info=True, **kwargs):
    if print_info:
        cout.cout_wrap('Generating an instance of assembly %s' % assembly_name, 2)
    cls_type = assembly_from_string(assembly_name)
    return cls_type(*args, **kwargs)


class BaseAssembly(metaclass=ABCMeta):
    """
    Common behaviour of the assemblies: they operate on a discipline, and the derivatives with respect to a parameter
    can only be requested while the parameter is tracked by that discipline.
    """
    @property
    def assembly_id(self):
        raise NotImplementedError

    def __init__(self, discipline=None):
        self.discipline = discipline

    def attach_discipline(self, discipline):
        self.discipline = discipline

    def clear_discipline(self):
        self.discipline = None

    def check_tracked(self, parameter):
        if self.discipline is None:
            raise exceptions.PreconditionFailure('No discipline attached to assembly %s' % self.assembly_id)
        if not self.discipline.is_tracked(parameter):
            raise exceptions.ParameterNotTracked(parameter.name, self.discipline.tracked_names())


class ModalEigenproblemAssembly(BaseAssembly):
    r"""
    Structural eigenproblem :math:`\mathbf{A}\mathbf{x} = \lambda \mathbf{B}\mathbf{x}` with
    :math:`\mathbf{A}=\mathbf{K}` and :math:`\mathbf{B}=\mathbf{M}` assembled at the current parameter values.
    """
    @abstractmethod
    def assemble(self):
        """
        Returns:
            tuple: ``(A, B)`` full-order matrices
        """
        pass

    @abstractmethod
    def assemble_sensitivity(self, parameter):
        """
        Returns:
            tuple: ``(dA, dB)`` derivatives of the operators with respect to ``parameter``
        """
        pass


class FluidStructureAssembly(BaseAssembly):
    r"""
    Reduced-order operators of the aeroelastic system

    .. math:: \mathbf{M}_r\ddot{\mathbf{q}} + \mathbf{C}_r\dot{\mathbf{q}} + \mathbf{K}_r\mathbf{q} = 0

    evaluated at the current parameter values (flow velocity included) and projected on the given basis.
    """
    @abstractmethod
    def reduced_matrices(self, basis):
        """
        Returns:
            tuple: ``(M_r, C_r, K_r)``
        """
        pass

    @abstractmethod
    def reduced_matrices_sensitivity(self, parameter, basis):
        """
        Partial derivatives of the reduced operators with respect to ``parameter`` with the basis held fixed

        Returns:
            tuple: ``(dM_r, dC_r, dK_r)``
        """
        pass


class TransientAssembly(BaseAssembly):
    r"""
    Nonlinear second-order system in residual form

    .. math:: \mathbf{R}(\mathbf{x}, \dot{\mathbf{x}}, \ddot{\mathbf{x}}, t) =
              \mathbf{f}_m(\mathbf{x}, \ddot{\mathbf{x}}) + \mathbf{f}_x(\mathbf{x}, \dot{\mathbf{x}}, t) = 0
    """
    @property
    @abstractmethod
    def n_dof(self):
        pass

    @abstractmethod
    def initial_conditions(self):
        """
        Returns:
            tuple: ``(x0, v0, a0)`` full-order initial state
        """
        pass

    @abstractmethod
    def residual_and_jacobian(self, x, v, a, time):
        """
        Returns:
            tuple: ``(residual, jac_xddot, jac_xdot, jac_x)`` where the Jacobians are the partial derivatives of the
            residual with respect to the acceleration, velocity and displacement
        """
        pass

    @abstractmethod
    def sensitivity_residual(self, parameter, x, v, a, time):
        """
        Partial derivative of the residual with respect to ``parameter`` at a fixed state
        """
        pass

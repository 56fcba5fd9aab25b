r"""Beam in supersonic flow

Euler-Bernoulli beam of length :math:`L` discretised with Hermite elements (transverse displacement :math:`w` and
rotation :math:`\theta` at each node) and loaded by first order piston theory on one of its faces:

.. math:: p = \rho_\infty a_\infty \left(\frac{\partial w}{\partial t} + V\frac{\partial w}{\partial x}\right),
          \quad a_\infty = V / M_\infty

The case model owns every object of the analysis: the parameters, the field functions that wrap them, the material
and section cards, the boundary conditions and the piston theory load. The assemblies in this module evaluate the
operators of the beam at the current parameter values and their derivatives through the field functions.

The default values describe an aluminium strip ``10 m`` long, ``0.06 m`` thick and ``1 m`` wide, pinned at both
ends in a Mach 3 flow.
"""
import numpy as np

import flutterpy.utils.exceptions as exceptions
from flutterpy.utils.assembly_interface import assembly, ModalEigenproblemAssembly, FluidStructureAssembly, \
    TransientAssembly
from flutterpy.utils.parameters import Parameter, ConstantFieldFunction, find_parameter
from flutterpy.structure.discipline import StructuralDiscipline

n_dof_node = 2
node_variables = ['w', 'ty']


class PropertyCard(object):
    """
    Collection of field functions by name
    """
    def __init__(self):
        self._functions = dict()

    def add(self, field_function):
        self._functions[field_function.name] = field_function

    def get(self, name):
        try:
            return self._functions[name]
        except KeyError:
            raise exceptions.PreconditionFailure('Property card has no field function %s' % name)

    def value(self, name):
        return self.get(name)()

    def derivative(self, name, parameter):
        return self.get(name).derivative(parameter)


class IsotropicMaterialPropertyCard(PropertyCard):
    """Density ``rho``, Young's modulus ``E`` and Poisson's ratio ``nu``"""
    pass


class Solid1DSectionElementPropertyCard(PropertyCard):
    r"""
    Rectangular section of thickness ``hy`` and width ``hz`` with offsets ``hy_off`` and ``hz_off`` of the
    reference axis

    Bending takes place in the thickness direction. The offset of the reference axis adds
    :math:`EA\,h_{y,off}^2` to the bending stiffness.
    """
    def __init__(self):
        super().__init__()
        self.material = None

    def set_material(self, material):
        self.material = material

    def bending_stiffness(self):
        e = self.material.value('E')
        hy = self.value('hy')
        hz = self.value('hz')
        off = self.value('hy_off')
        return e * hz * hy ** 3 / 12. + e * hz * hy * off ** 2

    def bending_stiffness_derivative(self, parameter):
        e = self.material.value('E')
        hy = self.value('hy')
        hz = self.value('hz')
        off = self.value('hy_off')

        de = self.material.derivative('E', parameter)
        dhy = self.derivative('hy', parameter)
        dhz = self.derivative('hz', parameter)
        doff = self.derivative('hy_off', parameter)

        return (de * (hz * hy ** 3 / 12. + hz * hy * off ** 2)
                + dhz * (e * hy ** 3 / 12. + e * hy * off ** 2)
                + dhy * (e * hz * hy ** 2 / 4. + e * hz * off ** 2)
                + doff * 2. * e * hz * hy * off)

    def mass_per_length(self):
        return self.material.value('rho') * self.value('hy') * self.value('hz')

    def mass_per_length_derivative(self, parameter):
        rho = self.material.value('rho')
        hy = self.value('hy')
        hz = self.value('hz')
        return (self.material.derivative('rho', parameter) * hy * hz
                + self.derivative('hy', parameter) * rho * hz
                + self.derivative('hz', parameter) * rho * hy)


class DirichletBoundaryCondition(object):
    """
    Constrains the ``constrained_vars`` of the node at ``boundary`` (``0`` left end, ``1`` right end)
    """
    def __init__(self, boundary, constrained_vars):
        for var in constrained_vars:
            if var not in node_variables:
                raise exceptions.NotValidSetting('constrained_vars', var, node_variables)
        self.boundary = boundary
        self.constrained_vars = constrained_vars


class PistonTheoryBoundaryCondition(PropertyCard):
    r"""
    First order piston theory on the beam face of width ``hz``

    The load per unit length is :math:`-c_s w_x - c_d w_t` with

    .. math:: c_s = \frac{\rho_\infty h_z V^2}{M_\infty}, \quad c_d = \frac{\rho_\infty h_z V}{M_\infty}

    Needs the field functions ``V``, ``mach``, ``rho`` (air density) and ``gamma``.
    """
    def __init__(self, order, flow_direction, section=None):
        super().__init__()
        if order != 1:
            raise exceptions.NotValidSetting('piston_theory_order', order, [1])
        self.order = order
        self.flow_direction = np.array(flow_direction, dtype=float)
        self.section = section

    def _direction(self):
        return np.sign(self.flow_direction[0]) if self.flow_direction[0] != 0 else 0.

    def coefficients(self):
        """Returns ``(c_s, c_d)``"""
        v = self.value('V')
        mach = self.value('mach')
        rho = self.value('rho')
        hz = self.section.value('hz')
        return self._direction() * rho * hz * v * v / mach, rho * hz * v / mach

    def coefficients_derivative(self, parameter):
        v = self.value('V')
        mach = self.value('mach')
        rho = self.value('rho')
        hz = self.section.value('hz')

        dv = self.derivative('V', parameter)
        dmach = self.derivative('mach', parameter)
        drho = self.derivative('rho', parameter)
        dhz = self.section.derivative('hz', parameter)

        dc_s = (drho * hz * v * v / mach
                + dhz * rho * v * v / mach
                + dv * 2. * rho * hz * v / mach
                - dmach * rho * hz * v * v / mach ** 2)
        dc_d = (drho * hz * v / mach
                + dhz * rho * v / mach
                + dv * rho * hz / mach
                - dmach * rho * hz * v / mach ** 2)
        return self._direction() * dc_s, dc_d


def element_stiffness(le):
    return 1. / le ** 3 * np.array([[12., 6. * le, -12., 6. * le],
                                    [6. * le, 4. * le ** 2, -6. * le, 2. * le ** 2],
                                    [-12., -6. * le, 12., -6. * le],
                                    [6. * le, 2. * le ** 2, -6. * le, 4. * le ** 2]])


def element_mass(le):
    return le / 420. * np.array([[156., 22. * le, 54., -13. * le],
                                 [22. * le, 4. * le ** 2, 13. * le, -3. * le ** 2],
                                 [54., 13. * le, 156., -22. * le],
                                 [-13. * le, -3. * le ** 2, -22. * le, 4. * le ** 2]])


def element_slope(le):
    r"""Hermite element :math:`\int N^\top N_{,x} dx`"""
    return 1. / 60. * np.array([[-30., 6. * le, 30., -6. * le],
                                [-6. * le, 0., 6. * le, -le ** 2],
                                [-30., -6. * le, 30., 6. * le],
                                [6. * le, le ** 2, -6. * le, 0.]])


class PistonTheoryBeamModel(object):
    """
    Case model of the beam in supersonic flow

    Args:
        length (float): Beam length
        num_elem (int): Number of elements
        thy (float): Thickness
        thz (float): Width
        rho (float): Material density
        E (float): Young's modulus
        nu (float): Poisson's ratio
        mach (float): Mach number
        rho_air (float): Air density
        gamma_air (float): Ratio of specific heats of air
        k_nl (float): Cubic stiffness of an elastic foundation, used by the transient assembly
        load_amplitude (float): Amplitude of the uniform harmonic pressure of the transient assembly
        load_frequency (float): Circular frequency of the uniform harmonic pressure of the transient assembly
        initial_amplitude (float): Amplitude of the half-sine initial displacement of the transient assembly
    """
    def __init__(self, length=10., num_elem=50, thy=0.06, thz=1., rho=2.8e3, E=72.e9, nu=0.33,
                 mach=3., rho_air=1.05, gamma_air=1.4, k_nl=0., load_amplitude=0., load_frequency=0.,
                 initial_amplitude=0.):
        self.length = length
        self.num_elem = num_elem
        self.num_node = num_elem + 1
        self.coordinates = np.linspace(0., length, self.num_node)

        self.load_amplitude = load_amplitude
        self.load_frequency = load_frequency
        self.initial_amplitude = initial_amplitude

        self.thy = Parameter('thy', thy)
        self.thz = Parameter('thz', thz)
        self.rho = Parameter('rho', rho)
        self.E = Parameter('E', E)
        self.nu = Parameter('nu', nu)
        self.zero = Parameter('zero', 0.)
        self.velocity = Parameter('V', 0.)
        self.mach = Parameter('mach', mach)
        self.rho_air = Parameter('rho_air', rho_air)
        self.gamma_air = Parameter('gamma', gamma_air)
        self.k_nl = Parameter('k_nl', k_nl)

        self.parameters = [self.thy, self.thz, self.rho, self.E, self.nu, self.zero, self.velocity,
                           self.mach, self.rho_air, self.gamma_air, self.k_nl]
        self.parameters_for_sensitivity = [self.E, self.nu, self.thy, self.thz]

        self.thy_f = ConstantFieldFunction('hy', self.thy)
        self.thz_f = ConstantFieldFunction('hz', self.thz)
        self.rho_f = ConstantFieldFunction('rho', self.rho)
        self.E_f = ConstantFieldFunction('E', self.E)
        self.nu_f = ConstantFieldFunction('nu', self.nu)
        self.hyoff_f = ConstantFieldFunction('hy_off', self.zero)
        self.hzoff_f = ConstantFieldFunction('hz_off', self.zero)
        self.velocity_f = ConstantFieldFunction('V', self.velocity)
        self.mach_f = ConstantFieldFunction('mach', self.mach)
        self.rho_air_f = ConstantFieldFunction('rho', self.rho_air)
        self.gamma_air_f = ConstantFieldFunction('gamma', self.gamma_air)
        self.k_nl_f = ConstantFieldFunction('k_nl', self.k_nl)

        self.m_card = IsotropicMaterialPropertyCard()
        for field in [self.rho_f, self.E_f, self.nu_f]:
            self.m_card.add(field)

        self.p_card = Solid1DSectionElementPropertyCard()
        for field in [self.thy_f, self.thz_f, self.hyoff_f, self.hzoff_f]:
            self.p_card.add(field)
        self.p_card.set_material(self.m_card)

        # pinned at both ends
        self.dirichlet_left = DirichletBoundaryCondition(0, ['w'])
        self.dirichlet_right = DirichletBoundaryCondition(1, ['w'])

        # flow along the x-axis
        self.piston_bc = PistonTheoryBoundaryCondition(1, [1., 0., 0.], section=self.p_card)
        for field in [self.velocity_f, self.mach_f, self.rho_air_f, self.gamma_air_f]:
            self.piston_bc.add(field)

        self.discipline = StructuralDiscipline()
        self.discipline.set_property_for_subdomain(0, self.p_card)
        self.discipline.add_dirichlet_bc(0, self.dirichlet_left)
        self.discipline.add_dirichlet_bc(1, self.dirichlet_right)
        self.discipline.add_volume_load(0, self.piston_bc)

        self.free_dofs = self._free_dofs()

        # unit operators, scaled by the section and load coefficients
        self._unit_stiffness, self._unit_mass, self._unit_slope = self._assemble_unit_operators()

    def get_parameter(self, name):
        parameter = find_parameter(self.parameters, name)
        if parameter is None:
            raise exceptions.ParameterNotFound(name, [p.name for p in self.parameters])
        return parameter

    def get_sensitivity_parameter(self, name):
        parameter = find_parameter(self.parameters_for_sensitivity, name)
        if parameter is None:
            raise exceptions.ParameterNotFound(name, [p.name for p in self.parameters_for_sensitivity])
        return parameter

    @property
    def num_dof(self):
        return len(self.free_dofs)

    def _free_dofs(self):
        constrained = []
        for bc in self.discipline.dirichlet_bcs.values():
            node = 0 if bc.boundary == 0 else self.num_node - 1
            for var in bc.constrained_vars:
                constrained.append(node * n_dof_node + node_variables.index(var))
        return np.array([i_dof for i_dof in range(self.num_node * n_dof_node) if i_dof not in constrained])

    def _assemble_unit_operators(self):
        n_total = self.num_node * n_dof_node
        stiffness = np.zeros((n_total, n_total))
        mass = np.zeros((n_total, n_total))
        slope = np.zeros((n_total, n_total))
        for i_elem in range(self.num_elem):
            le = self.coordinates[i_elem + 1] - self.coordinates[i_elem]
            dofs = np.arange(i_elem * n_dof_node, (i_elem + 2) * n_dof_node)
            stiffness[np.ix_(dofs, dofs)] += element_stiffness(le)
            mass[np.ix_(dofs, dofs)] += element_mass(le)
            slope[np.ix_(dofs, dofs)] += element_slope(le)

        free = np.ix_(self.free_dofs, self.free_dofs)
        return stiffness[free], mass[free], slope[free]

    def structural_matrices(self):
        """Returns the mass and stiffness matrices ``(M, K)``"""
        return self.p_card.mass_per_length() * self._unit_mass, self.p_card.bending_stiffness() * self._unit_stiffness

    def structural_matrices_sensitivity(self, parameter):
        return (self.p_card.mass_per_length_derivative(parameter) * self._unit_mass,
                self.p_card.bending_stiffness_derivative(parameter) * self._unit_stiffness)

    def aerodynamic_matrices(self):
        """Returns the aerodynamic damping and stiffness matrices ``(C_a, K_a)``"""
        c_s, c_d = self.piston_bc.coefficients()
        return c_d * self._unit_mass, c_s * self._unit_slope

    def aerodynamic_matrices_sensitivity(self, parameter):
        dc_s, dc_d = self.piston_bc.coefficients_derivative(parameter)
        return dc_d * self._unit_mass, dc_s * self._unit_slope

    def nodal_displacements(self, vector):
        """Transverse displacement at the nodes of a vector of free degrees of freedom"""
        full = np.zeros((self.num_node * n_dof_node,), dtype=vector.dtype)
        full[self.free_dofs] = vector
        return full[::n_dof_node]

    def half_sine(self, amplitude):
        """Vector of free degrees of freedom of the shape :math:`A\\sin(\\pi x/L)`"""
        full = np.zeros((self.num_node * n_dof_node,))
        full[0::n_dof_node] = amplitude * np.sin(np.pi * self.coordinates / self.length)
        full[1::n_dof_node] = amplitude * np.pi / self.length * np.cos(np.pi * self.coordinates / self.length)
        return full[self.free_dofs]

    def lumped_mass_weights(self):
        r"""Vector of :math:`\int N dx` over the free degrees of freedom"""
        full = np.zeros((self.num_node * n_dof_node,))
        for i_elem in range(self.num_elem):
            le = self.coordinates[i_elem + 1] - self.coordinates[i_elem]
            dofs = np.arange(i_elem * n_dof_node, (i_elem + 2) * n_dof_node)
            full[dofs] += np.array([le / 2., le ** 2 / 12., le / 2., -le ** 2 / 12.])
        return full[self.free_dofs]


@assembly
class StructuralModalEigenproblemAssembly(ModalEigenproblemAssembly):
    """
    Stiffness and mass of the beam as the ``A`` and ``B`` operators of the modal eigenproblem
    """
    assembly_id = 'StructuralModalEigenproblemAssembly'

    def __init__(self, model, discipline=None):
        super().__init__(discipline)
        self.model = model

    def assemble(self):
        mass, stiffness = self.model.structural_matrices()
        return stiffness, mass

    def assemble_sensitivity(self, parameter):
        self.check_tracked(parameter)
        dmass, dstiffness = self.model.structural_matrices_sensitivity(parameter)
        return dstiffness, dmass


@assembly
class StructuralFluidInteractionAssembly(FluidStructureAssembly):
    """
    Reduced mass, damping and stiffness of the beam with piston theory loads
    """
    assembly_id = 'StructuralFluidInteractionAssembly'

    def __init__(self, model, discipline=None):
        super().__init__(discipline)
        self.model = model

    def reduced_matrices(self, basis):
        mass, stiffness = self.model.structural_matrices()
        aero_damping, aero_stiffness = self.model.aerodynamic_matrices()
        return basis.project(mass), basis.project(aero_damping), basis.project(stiffness + aero_stiffness)

    def reduced_matrices_sensitivity(self, parameter, basis):
        self.check_tracked(parameter)
        dmass, dstiffness = self.model.structural_matrices_sensitivity(parameter)
        daero_damping, daero_stiffness = self.model.aerodynamic_matrices_sensitivity(parameter)
        return basis.project(dmass), basis.project(daero_damping), basis.project(dstiffness + daero_stiffness)


@assembly
class StructuralTransientAssembly(TransientAssembly):
    r"""
    Transient response of the beam

    .. math:: \mathbf{R} = \mathbf{M}\ddot{\mathbf{x}} + \mathbf{C}_a\dot{\mathbf{x}} +
        (\mathbf{K} + \mathbf{K}_a)\mathbf{x} + k_{nl}\,\mathbf{W}\mathbf{x}^3 - \mathbf{f}(t)

    where the cubic term is an elastic foundation acting on the transverse displacements, lumped with the weights
    :math:`\mathbf{W} = \int N dx`, and :math:`\mathbf{f}(t)` a uniform harmonic pressure.
    The initial state is a half-sine displacement at rest.
    """
    assembly_id = 'StructuralTransientAssembly'

    def __init__(self, model, discipline=None):
        super().__init__(discipline)
        self.model = model
        self._weights = model.lumped_mass_weights()
        self._is_translation = np.zeros((model.num_node * n_dof_node,), dtype=bool)
        self._is_translation[0::n_dof_node] = True
        self._is_translation = self._is_translation[model.free_dofs]

    @property
    def n_dof(self):
        return self.model.num_dof

    def initial_conditions(self):
        x0 = self.model.half_sine(self.model.initial_amplitude)
        return x0, np.zeros_like(x0), np.zeros_like(x0)

    def _external_force(self, time):
        return self.model.load_amplitude * np.sin(self.model.load_frequency * time) * self._weights

    def _foundation(self, x):
        w = np.where(self._is_translation, x, 0.)
        force = self._weights * np.where(self._is_translation, w ** 3, 0.)
        jac = np.diag(3. * self._weights * np.where(self._is_translation, w ** 2, 0.))
        return force, jac

    def residual_and_jacobian(self, x, v, a, time):
        mass, stiffness = self.model.structural_matrices()
        aero_damping, aero_stiffness = self.model.aerodynamic_matrices()
        k_nl = self.model.k_nl_f()
        foundation, foundation_jac = self._foundation(x)

        stiffness = stiffness + aero_stiffness
        residual = mass.dot(a) + aero_damping.dot(v) + stiffness.dot(x) + k_nl * foundation \
            - self._external_force(time)
        return residual, mass, aero_damping, stiffness + k_nl * foundation_jac

    def sensitivity_residual(self, parameter, x, v, a, time):
        self.check_tracked(parameter)
        dmass, dstiffness = self.model.structural_matrices_sensitivity(parameter)
        daero_damping, daero_stiffness = self.model.aerodynamic_matrices_sensitivity(parameter)
        foundation = self._foundation(x)[0]
        return dmass.dot(a) + daero_damping.dot(v) + (dstiffness + daero_stiffness).dot(x) \
            + self.model.k_nl_f.derivative(parameter) * foundation

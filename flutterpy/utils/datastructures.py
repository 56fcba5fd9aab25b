"""Data Management Structures

These classes store the flutter roots found by the stability analysis and the structural time step information of
the transient analysis.

"""
import numpy as np

damping_indicators = ['real_part', 'damping_ratio']


class FlutterRoot(object):
    r"""
    Eigenpair of the reduced aeroelastic system at one flow velocity

    Attributes:
        velocity (float): Flow velocity the root was evaluated at
        eigenvalue (complex): Continuous time eigenvalue :math:`\lambda`
        eigenvector_right (np.ndarray): Right eigenvector of the first order system
        eigenvector_left (np.ndarray): Left eigenvector of the first order system
        mode_number (int): Index of the tracked mode
        indicator (str): Damping indicator, ``real_part`` (:math:`\Re\lambda`) or ``damping_ratio``
            (:math:`\Re\lambda/|\lambda|`)
        eigenvalue_sensitivity (dict): :math:`d\lambda/dp` for each parameter name. Populated on request.
        velocity_sensitivity (dict): :math:`dV/dp` for each parameter name. Populated on request.
    """
    def __init__(self, velocity, eigenvalue, eigenvector_right, eigenvector_left=None, mode_number=0,
                 indicator='real_part'):
        self.velocity = velocity
        self.eigenvalue = complex(eigenvalue)
        self.eigenvector_right = eigenvector_right
        self.eigenvector_left = eigenvector_left
        self.mode_number = mode_number
        self.indicator = indicator

        self.eigenvalue_sensitivity = dict()
        self.velocity_sensitivity = dict()

    @property
    def damping(self):
        """Damping indicator. Positive when the mode is unstable."""
        if self.indicator == 'damping_ratio':
            return self.damping_ratio
        return self.eigenvalue.real

    @property
    def damping_ratio(self):
        magnitude = np.abs(self.eigenvalue)
        if magnitude == 0.:
            return 0.
        return self.eigenvalue.real / magnitude

    @property
    def frequency(self):
        """Damped frequency in rad/s"""
        return self.eigenvalue.imag

    @property
    def frequency_hz(self):
        return self.eigenvalue.imag / 2 / np.pi

    def is_stable(self, tolerance=0.):
        return self.damping <= tolerance

    @property
    def V(self):
        return self.velocity

    @property
    def V_sens(self):
        """Velocity sensitivity of the last parameter it has been computed for"""
        if not self.velocity_sensitivity:
            return None
        return list(self.velocity_sensitivity.values())[-1]

    def __repr__(self):
        return 'FlutterRoot(mode=%d, V=%g, eig=%s)' % (self.mode_number, self.velocity, self.eigenvalue)


class FlutterSolution(object):
    """
    Roots of the reduced aeroelastic system at one flow velocity, in mode number order

    Args:
        velocity (float): Flow velocity
        roots (list(FlutterRoot)): Roots in mode order
        reduced_matrices (tuple): ``(M_r, C_r, K_r)`` the roots were computed with
    """
    def __init__(self, velocity, roots, reduced_matrices=None):
        self.velocity = velocity
        self.roots = roots
        self.reduced_matrices = reduced_matrices

    def __getitem__(self, mode_number):
        return self.roots[mode_number]

    def __iter__(self):
        return iter(self.roots)

    def __len__(self):
        return len(self.roots)

    def eigenvalues(self):
        return np.array([root.eigenvalue for root in self.roots])


class RootBracket(object):
    """
    Velocity interval where the damping indicator of one mode changes from stable to unstable

    Attributes:
        velocity_lo (float): Velocity at the stable end
        velocity_hi (float): Velocity at the unstable end
        damping_lo (float): Damping indicator at the stable end
        damping_hi (float): Damping indicator at the unstable end
        mode_number (int): Mode that changes stability
        solution_lo (FlutterSolution): Solution at the stable end
        solution_hi (FlutterSolution): Solution at the unstable end
    """
    def __init__(self, solution_lo, solution_hi, mode_number, damping_tolerance=0.):
        self.solution_lo = solution_lo
        self.solution_hi = solution_hi
        self.mode_number = mode_number
        self.damping_tolerance = damping_tolerance

    @property
    def velocity_lo(self):
        return self.solution_lo.velocity

    @property
    def velocity_hi(self):
        return self.solution_hi.velocity

    @property
    def damping_lo(self):
        return self.solution_lo[self.mode_number].damping

    @property
    def damping_hi(self):
        return self.solution_hi[self.mode_number].damping

    @property
    def width(self):
        return self.velocity_hi - self.velocity_lo

    def is_valid(self):
        return self.damping_lo <= self.damping_tolerance < self.damping_hi

    def __repr__(self):
        return 'RootBracket(mode=%d, [%g, %g], damping [%g, %g])' % (self.mode_number, self.velocity_lo,
                                                                     self.velocity_hi, self.damping_lo,
                                                                     self.damping_hi)


class FlutterSearchResult(object):
    """
    Outcome of a flutter search

    Unpacks as the pair ``(converged, root)``:

        >>> converged, root = result

    Attributes:
        converged (bool): ``True`` if a critical root was found
        root (FlutterRoot or None): Critical root
        stage (str): Stage the search finished at, ``converged`` or the stage that failed (``sweep``, ``bracket``,
            ``bisection``)
        message (str): Diagnostic
        bracket (RootBracket): Final bracket
        bracket_history (list(float)): Bracket width at the start and after each bisection iteration
        n_iterations (int): Number of bisection iterations performed
    """
    def __init__(self, converged, root=None, stage='converged', message='', bracket=None, bracket_history=None,
                 n_iterations=0):
        self.converged = converged
        self.root = root
        self.stage = stage
        self.message = message
        self.bracket = bracket
        self.bracket_history = bracket_history if bracket_history is not None else []
        self.n_iterations = n_iterations

    def __iter__(self):
        return iter((self.converged, self.root))

    def __bool__(self):
        return self.converged


class TransientStepInfo(object):
    """
    Structural state at one accepted time step

    Attributes:
        time (float): Time
        q (np.ndarray): Displacement
        dqdt (np.ndarray): Velocity
        dqddt (np.ndarray): Acceleration
        delta_q (np.ndarray): Displacement perturbation
        delta_dqdt (np.ndarray): Velocity perturbation
        delta_dqddt (np.ndarray): Acceleration perturbation
    """
    def __init__(self, num_dof, time=0.):
        self.time = time
        self.q = np.zeros((num_dof,))
        self.dqdt = np.zeros((num_dof,))
        self.dqddt = np.zeros((num_dof,))

        self.delta_q = np.zeros((num_dof,))
        self.delta_dqdt = np.zeros((num_dof,))
        self.delta_dqddt = np.zeros((num_dof,))

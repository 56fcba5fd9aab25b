import numpy as np
import scipy.optimize as scopt
import flutterpy.utils.cout_utils as cout


def frequency_damping(eigenvalue):
    omega_n = np.abs(eigenvalue)
    omega_d = np.abs(eigenvalue.imag)
    f_n = omega_n / 2 / np.pi
    f_d = omega_d / 2 / np.pi
    if f_d < 1e-8:
        damping_ratio = 1.
        period = np.inf
    else:
        damping_ratio = -eigenvalue.real / omega_n
        period = 1 / f_d

    return omega_n, omega_d, damping_ratio, f_n, f_d, period


class EigenvalueTable(cout.TablePrinter):
    def __init__(self, filename=None):
        super().__init__(7, 12, ['g', 'f', 'f', 'f', 'f', 'f', 'f'], filename)

        self.headers = ['mode', 'eval_real', 'eval_imag', 'freq_n (Hz)', 'freq_d (Hz)',
                        'damping', 'period (s)']

    def print_evals(self, eigenvalues):
        for i in range(len(eigenvalues)):
            omega_n, omega_d, damping_ratio, f_n, f_d, period = frequency_damping(eigenvalues[i])
            self.print_line([i, eigenvalues[i].real, eigenvalues[i].imag, f_n, f_d,
                             damping_ratio, period])


class FlutterRootTable(cout.TablePrinter):
    """
    Table of flutter roots: mode, velocity, eigenvalue, damping indicator and frequency
    """
    def __init__(self, filename=None):
        super().__init__(6, 14, ['g', 'f', 'e', 'e', 'e', 'f'], filename)

        self.headers = ['mode', 'velocity', 'eval_real', 'eval_imag', 'damping', 'freq_d (Hz)']

    def print_roots(self, roots):
        for root in roots:
            self.print_line([root.mode_number, root.velocity, root.eigenvalue.real, root.eigenvalue.imag,
                             root.damping, root.frequency_hz])


def natural_frequencies(eigenvalues):
    r"""
    Natural frequencies in rad/s from the eigenvalues :math:`\omega^2` of the undamped structural problem
    """
    return np.sqrt(np.abs(np.real(eigenvalues)))


def scale_mass_normalised_modes(eigenvectors, mass_matrix):
    r"""
    Scales eigenvector matrix such that the modes are mass normalised:

    .. math:: \phi^\top\boldsymbol{M}\phi = \boldsymbol{I}

    and

    .. math:: \phi^\top\boldsymbol{K}\phi = \mathrm{diag}(\omega^2)

    Args:
        eigenvectors (np.array): Eigenvector matrix.
        mass_matrix (np.array): Mass matrix.

    Returns:
        np.array: Mass-normalised eigenvectors.
    """
    dfact = np.diag(np.dot(eigenvectors.T, mass_matrix.dot(eigenvectors)))
    eigenvectors = (1./np.sqrt(dfact))*eigenvectors

    return eigenvectors


def assert_modes_mass_normalised(phi, m, tolerance, raise_error=False):
    """
    Asserts the eigenvectors result in an identity modal mass matrix.

    Args:
        phi (np.ndarray): Eigenvector matrix
        m (np.ndarray): Mass matrix
        tolerance (float): Absolute tolerance.
        raise_error (bool): Raise ``AssertionError`` if modes not mass normalised.

    Raises:
        AssertionError: if ``raise_error == True`` it raises an error.

    """
    modal_mass = phi.T.dot(m.dot(phi))

    try:
        np.testing.assert_allclose(modal_mass - np.eye(modal_mass.shape[0]), np.zeros_like(modal_mass),
                                   atol=tolerance, err_msg='Eigenvectors are not mass normalised')
    except AssertionError as e:
        if raise_error:
            raise e
        else:
            cout.cout_wrap('Eigenvectors are not mass normalised', 3)


def modal_assurance_criterion(phi_a, phi_b):
    r"""
    Modal assurance criterion between the columns of two (complex) mode shape matrices

    .. math:: \mathrm{MAC}_{ij} = \frac{|\phi_{a,i}^H\phi_{b,j}|^2}{(\phi_{a,i}^H\phi_{a,i})(\phi_{b,j}^H\phi_{b,j})}

    Returns:
        np.ndarray: ``MAC`` matrix of size ``(n_a, n_b)``
    """
    cross = np.abs(phi_a.conj().T.dot(phi_b)) ** 2
    norm_a = np.real(np.sum(phi_a.conj() * phi_a, axis=0))
    norm_b = np.real(np.sum(phi_b.conj() * phi_b, axis=0))
    denominator = np.outer(norm_a, norm_b)
    denominator[denominator == 0] = 1.
    return cross / denominator


def match_modes(eigenvalues_ref, shapes_ref, eigenvalues, shapes):
    """
    Order of the new modes that best matches the reference ones

    The cost of pairing two modes combines the lack of correlation of their shapes (``1 - MAC``) and the distance
    between their eigenvalues, normalised by the largest reference eigenvalue. The pairing minimising the total cost
    is found with :func:`scipy.optimize.linear_sum_assignment`.

    Args:
        eigenvalues_ref (np.ndarray): Reference eigenvalues
        shapes_ref (np.ndarray): Reference mode shapes by columns
        eigenvalues (np.ndarray): New eigenvalues
        shapes (np.ndarray): New mode shapes by columns

    Returns:
        np.ndarray: ``order`` such that ``eigenvalues[order][i]`` is the continuation of ``eigenvalues_ref[i]``
    """
    mac = modal_assurance_criterion(shapes_ref, shapes)
    scale = np.max(np.abs(eigenvalues_ref))
    if scale == 0:
        scale = 1.
    distance = np.abs(eigenvalues_ref[:, None] - eigenvalues[None, :]) / scale
    cost = (1. - mac) + distance
    row_ind, col_ind = scopt.linear_sum_assignment(cost)
    order = np.zeros(len(eigenvalues_ref), dtype=int)
    order[row_ind] = col_ind
    return order

"""Generalised eigenvalue problems

Thin capability layer over :mod:`scipy.linalg` so that the modal and flutter solvers request eigenpairs with an
ordering criterion and obtain the number of eigenpairs actually available.
"""
import numpy as np
import scipy.linalg as sclalg
import flutterpy.utils.exceptions as exceptions

orderings = ['largest_magnitude', 'smallest_magnitude', 'largest_real', 'smallest_real']


class EigenSolution(object):
    """
    Result of a generalised eigenvalue problem

    Attributes:
        eigenvalues (np.ndarray): Eigenvalues in the requested order
        right (np.ndarray): Right eigenvectors arranged by columns
        left (np.ndarray or None): Left eigenvectors arranged by columns, if requested
        n_converged (int): Number of eigenpairs returned. Can be lower than the number requested.
    """
    def __init__(self, eigenvalues, right, left=None):
        self.eigenvalues = eigenvalues
        self.right = right
        self.left = left

    @property
    def n_converged(self):
        return len(self.eigenvalues)


class GeneralisedEigenSolver(object):
    r"""
    Solves :math:`\mathbf{A}\mathbf{x} = \lambda \mathbf{B}\mathbf{x}`

    With ``exchange_A_and_B`` the problem :math:`\mathbf{B}\mathbf{x} = \mu \mathbf{A}\mathbf{x}` is solved instead
    and the ordering applies to :math:`\mu`. The eigenvalues returned are always those of the original problem,
    :math:`\lambda = 1/\mu`. This is used by the modal solver to obtain the lowest natural frequencies as the
    largest magnitude eigenvalues.

    Args:
        which (str): Ordering criterion, one of ``largest_magnitude``, ``smallest_magnitude``, ``largest_real``,
            ``smallest_real``
        exchange_A_and_B (bool): Swap the operators before solving
        hermitian (bool): The operators are symmetric and ``B`` positive definite, use :func:`scipy.linalg.eigh`
    """
    def __init__(self, which='largest_magnitude', exchange_A_and_B=False, hermitian=False):
        if which not in orderings:
            raise exceptions.NotValidSetting('which', which, orderings)
        self.which = which
        self.exchange_A_and_B = exchange_A_and_B
        self.hermitian = hermitian

    def solve(self, mat_a, mat_b, n_requested=None, left=False):
        """
        Args:
            mat_a (np.ndarray): Operator ``A``
            mat_b (np.ndarray): Operator ``B``
            n_requested (int): Number of eigenpairs requested. All finite eigenpairs if ``None``.
            left (bool): Compute left eigenvectors

        Returns:
            EigenSolution: requested eigenpairs

        Raises:
            exceptions.EigenSolverFailure: if the decomposition fails
        """
        mat_a = np.asarray(mat_a)
        mat_b = np.asarray(mat_b)
        if self.exchange_A_and_B:
            mat_a, mat_b = mat_b, mat_a

        try:
            if self.hermitian:
                eigenvalues, right = sclalg.eigh(mat_a, mat_b)
                left_vectors = right.copy() if left else None
            elif left:
                eigenvalues, left_vectors, right = sclalg.eig(mat_a, mat_b, left=True, right=True)
            else:
                eigenvalues, right = sclalg.eig(mat_a, mat_b)
                left_vectors = None
        except (sclalg.LinAlgError, ValueError) as e:
            raise exceptions.EigenSolverFailure(str(e))

        # infinite eigenvalues from a singular B are not converged eigenpairs
        finite = np.isfinite(eigenvalues)
        if self.exchange_A_and_B:
            finite &= eigenvalues != 0
        eigenvalues = eigenvalues[finite]
        right = right[:, finite]
        if left_vectors is not None:
            left_vectors = left_vectors[:, finite]

        order = self.sort_order(eigenvalues)
        if n_requested is not None:
            order = order[:n_requested]

        eigenvalues = eigenvalues[order]
        right = right[:, order]
        if left_vectors is not None:
            left_vectors = left_vectors[:, order]

        if self.exchange_A_and_B:
            eigenvalues = 1. / eigenvalues

        return EigenSolution(eigenvalues, right, left_vectors)

    def sort_order(self, eigenvalues):
        if self.which == 'largest_magnitude':
            return np.argsort(-np.abs(eigenvalues), kind='stable')
        elif self.which == 'smallest_magnitude':
            return np.argsort(np.abs(eigenvalues), kind='stable')
        elif self.which == 'largest_real':
            return np.argsort(-np.real(eigenvalues), kind='stable')
        else:
            return np.argsort(np.real(eigenvalues), kind='stable')

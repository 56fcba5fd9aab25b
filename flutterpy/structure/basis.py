import numpy as np
import flutterpy.utils.exceptions as exceptions


class ReducedBasis(object):
    """
    Ordered set of full-order vectors used to project the structural system onto generalised coordinates

    The index of a vector is its mode number. The number of vectors is fixed once the basis has been populated: a
    later :meth:`update` must provide the same number of vectors.

    Args:
        vectors (np.ndarray): Optional initial vectors, arranged by columns ``(n_dof, n_modes)``
    """
    def __init__(self, vectors=None):
        self._vectors = None
        if vectors is not None:
            self.update(vectors)

    def update(self, vectors):
        vectors = np.array(vectors, dtype=float)
        if vectors.ndim == 1:
            # a single vector is one column
            vectors = vectors.reshape((-1, 1))
        if vectors.ndim != 2:
            raise exceptions.PreconditionFailure('Basis vectors must be arranged in a 2D array by columns')
        if self._vectors is not None and self._vectors.shape[1] > 0 and vectors.shape[1] != self.size:
            raise exceptions.PreconditionFailure('The modal solve returned %d vectors but the existing basis holds %d'
                                                 % (vectors.shape[1], self.size))
        self._vectors = vectors

    @property
    def size(self):
        if self._vectors is None:
            return 0
        return self._vectors.shape[1]

    def __len__(self):
        return self.size

    def __getitem__(self, i_mode):
        return self._vectors[:, i_mode]

    def __iter__(self):
        for i_mode in range(self.size):
            yield self._vectors[:, i_mode]

    @property
    def matrix(self):
        """Basis vectors arranged by columns ``(n_dof, n_modes)``"""
        return self._vectors

    @property
    def n_dof(self):
        if self._vectors is None:
            return 0
        return self._vectors.shape[0]

    def project(self, matrix):
        r"""Returns :math:`\Phi^\top \mathbf{A} \Phi`"""
        return self._vectors.T.dot(matrix.dot(self._vectors))

    def expand(self, generalised_coordinates):
        """Full-order vector from generalised coordinates"""
        return self._vectors.dot(generalised_coordinates)

    def clear(self):
        self._vectors = None

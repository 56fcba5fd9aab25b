import unittest
import numpy as np

import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions
from flutterpy.linear.eigensolver import GeneralisedEigenSolver


class TestGeneralisedEigenSolver(unittest.TestCase):

    def setUp(self):
        cout.cout_wrap.cout_quiet()

    def test_lowest_modes_with_exchanged_operators(self):
        stiffness = np.diag([9., 1., 4.])
        mass = np.eye(3)
        eigensolver = GeneralisedEigenSolver(which='largest_magnitude', exchange_A_and_B=True, hermitian=True)
        solution = eigensolver.solve(stiffness, mass, n_requested=2)

        self.assertEqual(solution.n_converged, 2)
        np.testing.assert_allclose(solution.eigenvalues, [1., 4.])
        for i_eig in range(2):
            np.testing.assert_allclose(stiffness.dot(solution.right[:, i_eig]),
                                       solution.eigenvalues[i_eig] * mass.dot(solution.right[:, i_eig]),
                                       atol=1e-12)

    def test_left_and_right_vectors(self):
        mat_a = np.array([[0., 1.],
                          [-4., -0.3]])
        mat_b = np.array([[1., 0.],
                          [0., 2.]])
        eigensolver = GeneralisedEigenSolver(which='smallest_magnitude')
        solution = eigensolver.solve(mat_a, mat_b, left=True)

        self.assertEqual(solution.n_converged, 2)
        for i_eig in range(2):
            eig = solution.eigenvalues[i_eig]
            vr = solution.right[:, i_eig]
            vl = solution.left[:, i_eig]
            np.testing.assert_allclose(mat_a.dot(vr), eig * mat_b.dot(vr), atol=1e-12)
            np.testing.assert_allclose(vl.conj().dot(mat_a), eig * vl.conj().dot(mat_b), atol=1e-12)

    def test_infinite_eigenvalues_discarded(self):
        eigensolver = GeneralisedEigenSolver(which='smallest_real')
        solution = eigensolver.solve(np.diag([1., 2.]), np.diag([1., 0.]))
        self.assertEqual(solution.n_converged, 1)
        np.testing.assert_allclose(solution.eigenvalues, [1.])

    def test_invalid_ordering(self):
        with self.assertRaises(exceptions.NotValidSetting):
            GeneralisedEigenSolver(which='largest_imaginary')


if __name__ == '__main__':
    unittest.main()

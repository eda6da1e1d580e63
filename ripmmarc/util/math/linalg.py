# ##############################################################################
# linalg.py
# =========
# ##############################################################################

"""
Linear algebra routines.
"""

import numpy as np
import scipy.linalg as linalg

import ripmmarc.util.argcheck as chk


@chk.check('A', chk.has_reals)
def svd(A):
    """
    Thin singular value decomposition.

    :param A: [:py:class:`~numpy.ndarray`] (M, N) real matrix.
    :return: Tuple (U, S, Vh) where:

        * U: [:py:class:`~numpy.ndarray`] (M, K) left singular vectors;
        * S: [:py:class:`~numpy.ndarray`] (K,) singular values in descending
          order;
        * Vh: [:py:class:`~numpy.ndarray`] (K, N) right singular vectors (as
          rows),

        with :math:`K = \\min(M, N)`.
    """
    A = np.asarray(A, dtype=float)
    if A.ndim != 2:
        raise ValueError('Parameter[A] must be 2D.')

    # gesdd occasionally fails to converge on ill-conditioned inputs.
    try:
        U, S, Vh = linalg.svd(A, full_matrices=False, lapack_driver='gesdd')
    except linalg.LinAlgError:
        U, S, Vh = linalg.svd(A, full_matrices=False, lapack_driver='gesvd')
    return U, S, Vh


def rank_tolerance(S, shape):
    """
    Threshold below which singular values are considered zero.

    :param S: [:py:class:`~numpy.ndarray`] (K,) singular values.
    :param shape: (M, N) shape of the decomposed matrix.
    :return: [:py:class:`float`] tolerance.
    """
    if len(S) == 0:
        return 0.0

    return float(np.max(S) * max(shape) * np.finfo(float).eps)


def matrix_rank(S, shape):
    """
    Numerical rank from singular values.

    :param S: [:py:class:`~numpy.ndarray`] (K,) singular values.
    :param shape: (M, N) shape of the decomposed matrix.
    :return: [:py:class:`int`] number of singular values above
        :py:func:`~ripmmarc.util.math.linalg.rank_tolerance`.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.math.linalg import matrix_rank

       >>> matrix_rank(np.r_[3, 1, 0], (3, 3))
       2
    """
    S = np.asarray(S)
    return int(np.sum(S > rank_tolerance(S, shape)))


@chk.check(dict(C=chk.has_reals,
                N=chk.is_integer))
def dominant_axes(C, N):
    """
    Principal directions of a symmetric matrix.

    :param C: [:py:class:`~numpy.ndarray`] (D, D) real symmetric matrix.
    :param N: [:py:class:`int`] number of axes to return.
    :return: [:py:class:`~numpy.ndarray`] (D, N) eigenvectors associated with the
        `N` largest eigenvalues, in descending order.

        Eigenvectors are only defined up to sign: each output column is flipped so
        that its largest-magnitude entry is positive.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.math.linalg import dominant_axes

       >>> dominant_axes(np.diag([1., 5.]), 1)
       array([[0.],
              [1.]])
    """
    C = np.asarray(C, dtype=float)
    D = len(C)
    if not (chk.has_shape([D, D])(C) and np.allclose(C, C.T)):
        raise ValueError('Parameter[C] must be symmetric.')
    if not (1 <= N <= D):
        raise ValueError(f'Parameter[N] must be in {{1, ..., {D}}}.')

    _, V = linalg.eigh(C)  # ascending eigenvalues
    V = V[:, ::-1][:, :N]

    pivot = np.argmax(np.abs(V), axis=0)
    sign = np.sign(V[pivot, np.arange(N)])
    sign[sign == 0] = 1
    return V * sign


@chk.check(dict(W=chk.has_reals,
                V=chk.has_reals))
def kabsch(W, V):
    r"""
    Optimal rotation between two sets of corresponding directions.

    Solve Wahba's problem with the Kabsch algorithm: let :math:`B = \sum_{k} w_{k} v_{k}^{T}`
    be the cross-covariance of the direction pairs and :math:`B = U S V^{T}` its SVD.
    Then

    .. math:: Q = V M U^{T}, \qquad M = \text{diag}(1, \ldots, 1, \det(V U^{T}))

    is the proper rotation which maps the fixed directions :math:`w_{k}` onto the moving
    directions :math:`v_{k}` in the least-squares sense.

    :param W: [:py:class:`~numpy.ndarray`] (D, K) fixed directions (as columns).
    :param V: [:py:class:`~numpy.ndarray`] (D, K) moving directions (as columns).
    :return: [:py:class:`~numpy.ndarray`] (D, D) rotation matrix.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.math.linalg import kabsch

       >>> Q = kabsch([[1], [0]], [[0], [1]])
       >>> np.around(Q, 2) + 0
       array([[ 0., -1.],
              [ 1.,  0.]])
    """
    W = np.asarray(W, dtype=float)
    V = np.asarray(V, dtype=float)
    if not ((W.ndim == 2) and (W.shape == V.shape)):
        raise ValueError('Parameters[W, V] must be (D, K) arrays of identical shape.')

    B = W @ V.T
    U_B, _, Vh_B = linalg.svd(B)
    V_B = Vh_B.T

    M = np.ones(len(B))
    M[-1] = np.sign(linalg.det(V_B @ U_B.T))
    Q = (V_B * M) @ U_B.T
    return Q


@chk.check('D', chk.is_integer)
def flip_matrix(D):
    """
    Half-turn used to resolve the sign ambiguity of principal axes.

    :param D: [:py:class:`int`] dimension (2 or 3).
    :return: [:py:class:`~numpy.ndarray`] (D, D) matrix
        :math:`\\text{diag}(-1, -1)` in 2D, :math:`\\text{diag}(1, -1, -1)` in 3D.
    """
    if D == 2:
        return np.diag([-1.0, -1.0])
    elif D == 3:
        return np.diag([1.0, -1.0, -1.0])
    else:
        raise ValueError('Parameter[D] must be 2 or 3.')


@chk.check(dict(A=chk.has_reals,
                B=chk.has_reals))
def pinv_solve(A, B):
    """
    Least-squares solution of :math:`A X = B` through the SVD of `A`.

    Singular values below :py:func:`~ripmmarc.util.math.linalg.rank_tolerance` are
    treated as zero, so rank-deficient systems return the minimum-norm solution.

    :param A: [:py:class:`~numpy.ndarray`] (M, K) system matrix.
    :param B: [:py:class:`~numpy.ndarray`] (M,) or (M, N) right-hand side(s).
    :return: [:py:class:`~numpy.ndarray`] (K,) or (K, N) solution(s).

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.math.linalg import pinv_solve

       >>> A = np.eye(3)[:, :2]
       >>> pinv_solve(A, [1., 2., 3.])
       array([1., 2.])
    """
    A = np.asarray(A, dtype=float)
    B = np.asarray(B, dtype=float)
    if B.shape[0] != A.shape[0]:
        raise ValueError('Parameters[A, B] are inconsistent.')

    U, S, Vh = svd(A)
    S_inv = np.zeros_like(S)
    idx = S > rank_tolerance(S, A.shape)
    S_inv[idx] = 1 / S[idx]

    X = (Vh.T * S_inv) @ (U.T @ B)
    return X

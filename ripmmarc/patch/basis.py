# #############################################################################
# basis.py
# ========
# #############################################################################

"""
Eigen-basis learning.
"""

import logging

import numpy as np
import pandas as pd

import ripmmarc
import ripmmarc.core as core
import ripmmarc.patch.sampler as sampler
import ripmmarc.util.argcheck as chk
import ripmmarc.util.array as array
import ripmmarc.util.math.linalg as pylinalg

logger = logging.getLogger(__name__)


class EigenBasis(array.LabeledMatrix):
    """
    Orthonormal patch basis (eigenpatches as columns).
    """

    @chk.check(dict(data=chk.has_reals,
                    offset_idx=chk.is_instance(pd.Index),
                    variance_explained=chk.is_real,
                    singular_values=chk.allow_None(chk.has_reals)))
    def __init__(self, data, offset_idx, variance_explained=1.0, singular_values=None):
        """
        Parameters
        ----------
        data : array-like(float)
            (N_offset, N_eig) eigenpatches.
        offset_idx : :py:class:`~pandas.Index`
            (N_offset,) index named OFFSET_ID.
        variance_explained : float
            Fraction of singular-value mass captured by the basis.
        singular_values : array-like(float)
            (K,) all singular values of the matrix the basis was learned from.
        """
        if offset_idx.name != 'OFFSET_ID':
            raise ValueError('Parameter[offset_idx] must be named OFFSET_ID.')

        data = np.array(data, dtype=float)
        if data.ndim == 1:
            data = data[:, np.newaxis]
        eig_idx = pd.RangeIndex(data.shape[1], name='EIGENPATCH_ID')
        super().__init__(data, offset_idx, eig_idx)

        self._variance_explained = float(variance_explained)
        if singular_values is not None:
            singular_values = np.asarray(singular_values, dtype=float)
        self._singular_values = singular_values

    @property
    def N_eig(self):
        return self.shape[1]

    @property
    def variance_explained(self):
        return self._variance_explained

    @property
    def singular_values(self):
        return self._singular_values

    def eigenpatch(self, k):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N_offset,) `k`-th basis column.
        """
        return self.data[:, k].copy()


@chk.check('S', chk.has_reals)
def variance_explained(S):
    """
    Cumulative fraction of singular-value mass.

    Parameters
    ----------
    S : array-like(float)
        (K,) singular values in descending order.

    Returns
    -------
    :py:class:`~numpy.ndarray`
        (rank,) fraction captured by the leading 1, 2, ..., rank components.
        Only non-zero singular values are taken into account, hence the last entry is 1.

    Examples
    --------
    .. doctest::

       >>> from ripmmarc.patch.basis import variance_explained

       >>> variance_explained([3., 1., 0.])
       array([0.75, 1.  ])
    """
    S = np.asarray(S, dtype=float)
    rank = pylinalg.matrix_rank(S, (len(S), len(S)))
    if rank == 0:
        raise ValueError('Parameter[S] does not contain non-zero singular values.')

    S = S[:rank]
    return np.cumsum(S) / np.sum(S)


class EigenBasisLearnerBlock(core.Block):
    """
    Learn eigenpatches from a patch matrix.

    The basis is made of the leading right singular vectors of the (N_patch, N_offset) patch matrix.
    Its size is chosen with `target_variance`:

    * if :math:`0 < \\text{target} < 1`, singular values are accumulated (in descending order) until their cumulative fraction strictly exceeds the target;
    * if :math:`\\text{target} \\ge 1`, ``int(target)`` leading components are kept. In particular a target of exactly 1 keeps a single eigenpatch.

    In both cases the basis never exceeds the numerical rank of the patch matrix.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> import pandas as pd
       >>> from ripmmarc.patch.sampler import SamplePatchMatrix
       >>> from ripmmarc.patch.basis import EigenBasisLearnerBlock

       >>> A = SamplePatchMatrix(np.diag([3., 1., 0.]),
       ...                       pd.RangeIndex(3, name='PATCH_ID'),
       ...                       pd.RangeIndex(3, name='OFFSET_ID'))

       >>> basis = EigenBasisLearnerBlock(target_variance=0.7)(A)
       >>> basis.shape, basis.variance_explained
       ((3, 1), 0.75)
    """

    @chk.check('target_variance', chk.allow_None(chk.is_real))
    def __init__(self, target_variance=None):
        """
        Parameters
        ----------
        target_variance : float
            Fraction of variance to explain, or number of eigenpatches if :math:`\\ge 1`.
            (Default: ``config['basis']['target_variance']``.)
        """
        super().__init__()
        if target_variance is None:
            target_variance = ripmmarc.config.getfloat('basis', 'target_variance')
        if target_variance <= 0:
            raise ValueError('Parameter[target_variance] must be positive.')

        self._target = target_variance

    @property
    def target_variance(self):
        return self._target

    def __call__(self, A):
        """
        Learn eigenpatches.

        Parameters
        ----------
        A : :py:class:`~ripmmarc.patch.sampler.SamplePatchMatrix`
            Patch matrix.

        Returns
        -------
        :py:class:`~ripmmarc.patch.basis.EigenBasis`
            (N_offset, N_eig) basis.
        """
        if not chk.is_instance(sampler.SamplePatchMatrix)(A):
            raise ValueError('Parameter[A] must be a patch matrix.')

        # Patches as rows.
        data = A.data if (A.patch_axis == 0) else A.data.T
        offset_idx = A.index[1 - A.patch_axis]

        _, S, Vh = pylinalg.svd(data)
        rank = pylinalg.matrix_rank(S, data.shape)
        if rank == 0:
            raise ValueError('Parameter[A] is a null matrix: no eigenpatch can be learned.')
        curve = variance_explained(S[:rank])

        if self._target < 1:
            N_eig = 0
            while (N_eig < rank) and ((N_eig == 0) or (curve[N_eig - 1] <= self._target)):
                N_eig += 1
            logger.info(f'It took {N_eig} eigenpatches to reach '
                        f'{self._target * 100:.2f}% variance explained.')
        else:
            N_eig = min(int(self._target), rank)
            logger.info(f'With {N_eig} eigenpatches, we have '
                        f'{curve[N_eig - 1] * 100:.2f}% variance explained.')

        return EigenBasis(Vh[:N_eig].T, offset_idx,
                          variance_explained=curve[N_eig - 1],
                          singular_values=S)

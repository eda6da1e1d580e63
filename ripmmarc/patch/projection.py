# #############################################################################
# projection.py
# =============
# #############################################################################

"""
Projection of patches onto an eigen-basis.
"""

import logging

import numpy as np
import scipy.linalg as linalg

import ripmmarc
import ripmmarc.core as core
import ripmmarc.patch.basis as basis
import ripmmarc.patch.sampler as sampler
import ripmmarc.util.argcheck as chk
import ripmmarc.util.array as array
import ripmmarc.util.math.linalg as pylinalg

logger = logging.getLogger(__name__)


class Projection:
    """
    Basis coefficients of a set of patches.
    """

    def __init__(self, coefficients, residual):
        """
        Parameters
        ----------
        coefficients : :py:class:`~ripmmarc.util.array.LabeledMatrix`
            (N_eig, N_voxel) coefficients, with EIGENPATCH_ID rows and VOXEL_ID columns.
        residual : :py:class:`~numpy.ndarray`
            (N_voxel,) relative reconstruction error of each patch.
        """
        self._coefficients = coefficients
        self._residual = residual

    @property
    def coefficients(self):
        return self._coefficients

    @property
    def residual(self):
        return self._residual

    @property
    def mean_residual(self):
        return float(np.mean(self._residual)) if (self._residual.size > 0) else 0.0

    @property
    def max_residual(self):
        return float(np.max(self._residual)) if (self._residual.size > 0) else 0.0


class CoefficientProjectorBlock(core.Block):
    r"""
    Least-squares decomposition of patches onto an eigen-basis.

    Each patch :math:`p` is assigned coefficients

    .. math:: x = \arg\min_{x} \|E x - p\|_{2},

    with :math:`E` the (N_offset, N_eig) basis.
    All patches are solved at once through the pseudo-inverse of :math:`E`, then reconstructed to compute their relative residual

    .. math:: \epsilon = \frac{\|E x - p\|_{2}}{\|p\|_{2} + \text{eps}}.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> import pandas as pd
       >>> from ripmmarc.patch.basis import EigenBasis
       >>> from ripmmarc.patch.sampler import MaskedPatchMatrix
       >>> from ripmmarc.patch.projection import CoefficientProjectorBlock

       >>> E = EigenBasis(np.eye(3)[:, :2], pd.RangeIndex(3, name='OFFSET_ID'))
       >>> P = MaskedPatchMatrix([[1., 0.], [2., 0.], [0., 1.]],
       ...                       pd.RangeIndex(3, name='OFFSET_ID'),
       ...                       pd.RangeIndex(2, name='VOXEL_ID'))

       >>> proj = CoefficientProjectorBlock()(E, P)
       >>> np.around(proj.coefficients.data, 3) + 0
       array([[1., 0.],
              [2., 0.]])
       >>> np.around(proj.residual, 3)
       array([0., 1.])
    """

    @chk.check('eps', chk.allow_None(chk.is_real))
    def __init__(self, eps=None):
        """
        Parameters
        ----------
        eps : float
            Regularizer of the relative residual, guarding against null patches.
            (Default: ``config['projection']['eps']``.)
        """
        super().__init__()
        if eps is None:
            eps = ripmmarc.config.getfloat('projection', 'eps')
        if eps < 0:
            raise ValueError('Parameter[eps] must be non-negative.')

        self._eps = eps

    def __call__(self, E, P):
        """
        Project patches.

        Parameters
        ----------
        E : :py:class:`~ripmmarc.patch.basis.EigenBasis`
            (N_offset, N_eig) basis.
        P : :py:class:`~ripmmarc.patch.sampler.MaskedPatchMatrix`
            (N_offset, N_voxel) patches.

        Returns
        -------
        :py:class:`~ripmmarc.patch.projection.Projection`
        """
        if not chk.is_instance(basis.EigenBasis)(E):
            raise ValueError('Parameter[E] must be an EigenBasis.')
        if not chk.is_instance(sampler.MaskedPatchMatrix)(P):
            raise ValueError('Parameter[P] must be a MaskedPatchMatrix.')
        if not E.is_consistent_with(P, axes=[0, 0]):
            raise ValueError('Parameters[E, P] are inconsistent.')

        logger.info(f'Projecting {P.N_patch} patches onto {E.N_eig} eigenpatches.')
        X = pylinalg.pinv_solve(E.data, P.data)

        recon = E.data @ X
        residual = (linalg.norm(recon - P.data, axis=0) /
                    (linalg.norm(P.data, axis=0) + self._eps))

        coeff = array.LabeledMatrix(X, E.index[1], P.index[1])
        proj = Projection(coeff, residual)
        logger.info(f'Average relative error is {proj.mean_residual * 100:.2f}%, '
                    f'with max of {proj.max_residual * 100:.2f}%.')
        return proj

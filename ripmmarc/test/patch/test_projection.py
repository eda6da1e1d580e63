# #############################################################################
# test_projection.py
# ==================
# #############################################################################

import numpy as np
import pandas as pd
import pytest

from ripmmarc.patch.basis import EigenBasis
from ripmmarc.patch.projection import CoefficientProjectorBlock
from ripmmarc.patch.sampler import MaskedPatchMatrix


def masked_matrix(data):
    N, M = data.shape
    return MaskedPatchMatrix(data,
                             pd.RangeIndex(N, name='OFFSET_ID'),
                             pd.RangeIndex(M, name='VOXEL_ID'))


def random_basis(N=9, k=3, seed=0):
    rng = np.random.default_rng(seed)
    Q, _ = np.linalg.qr(rng.standard_normal((N, k)))
    return EigenBasis(Q, pd.RangeIndex(N, name='OFFSET_ID'))


class TestCoefficientProjectorBlock:
    def test_in_span(self):
        """
        Patches spanned by the basis are recovered exactly.
        """
        E = random_basis()
        rng = np.random.default_rng(1)
        X_gt = rng.standard_normal((3, 20))
        proj = CoefficientProjectorBlock()(E, masked_matrix(E.data @ X_gt))

        assert proj.coefficients.shape == (3, 20)
        assert proj.coefficients.axis('EIGENPATCH_ID') == 0
        assert proj.coefficients.axis('VOXEL_ID') == 1
        assert np.allclose(proj.coefficients.data, X_gt)
        assert proj.max_residual < 1e-8

    def test_least_squares(self):
        E = random_basis()
        rng = np.random.default_rng(2)
        P = rng.standard_normal((9, 15))
        proj = CoefficientProjectorBlock()(E, masked_matrix(P))

        X_gt, *_ = np.linalg.lstsq(E.data, P, rcond=None)
        assert np.allclose(proj.coefficients.data, X_gt)

        res_gt = (np.linalg.norm(E.data @ X_gt - P, axis=0) /
                  (np.linalg.norm(P, axis=0) + 1e-10))
        assert np.allclose(proj.residual, res_gt)
        assert np.isclose(proj.mean_residual, res_gt.mean())
        assert np.isclose(proj.max_residual, res_gt.max())

    def test_null_patch(self):
        E = random_basis()
        proj = CoefficientProjectorBlock()(E, masked_matrix(np.zeros((9, 2))))
        assert np.allclose(proj.coefficients.data, 0)
        assert np.allclose(proj.residual, 0)

    def test_rank_deficient_basis(self):
        """
        Ill-conditioned bases still yield a least-squares answer.
        """
        v = np.ones(4) / 2
        E = EigenBasis(np.c_[v, v], pd.RangeIndex(4, name='OFFSET_ID'))
        P = masked_matrix(np.c_[np.ones(4), np.r_[1., -1., 0., 0.]])
        proj = CoefficientProjectorBlock()(E, P)

        assert np.all(np.isfinite(proj.coefficients.data))
        assert np.allclose(proj.coefficients.data[:, 0], [1., 1.])
        assert np.isclose(proj.residual[0], 0)
        assert np.isclose(proj.residual[1], 1, atol=1e-6)

    def test_fail(self):
        E = random_basis()
        with pytest.raises(ValueError):
            CoefficientProjectorBlock()(E, masked_matrix(np.zeros((8, 2))))
        with pytest.raises(ValueError):
            CoefficientProjectorBlock()(E.data, masked_matrix(np.zeros((9, 2))))
        with pytest.raises(ValueError):
            CoefficientProjectorBlock(eps=-1.)

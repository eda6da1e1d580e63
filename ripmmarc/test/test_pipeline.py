# #############################################################################
# test_pipeline.py
# ================
# #############################################################################

import numpy as np
import pytest

import ripmmarc.exception as exception
from ripmmarc.field import Field
from ripmmarc.patch.basis import EigenBasis
from ripmmarc.patch.sampler import sphere_offsets
from ripmmarc.pipeline import RIPMMARCBlock, RIPMMARCResult, Stage


def edge_image(N=32):
    """
    Sharp vertical edge through the middle of an (N, N) image.
    """
    img = np.zeros((N, N))
    img[:, N // 2:] = 1
    return img


class TestRIPMMARCBlock:
    def test_end_to_end(self):
        img = edge_image()
        mask = np.ones_like(img)
        blk = RIPMMARCBlock(radius=3, N_sample=50, target_variance=0.95, seed=0,
                            progress=False)
        res = blk(img, mask)

        assert isinstance(res, RIPMMARCResult)
        N_eig = res.basis.N_eig
        assert res.coefficients.shape == (N_eig, img.size)
        assert res.basis.shape == (len(sphere_offsets(3, 2)), N_eig)
        assert np.allclose(res.basis.data.T @ res.basis.data, np.eye(N_eig))
        assert res.variance_explained > 0.95 or N_eig == res.basis.shape[0]
        assert res.projection.mean_residual < 0.1

        assert res.canonical_frame.shape == (2 * 3 + 2 * 2 + 1,) * 2
        assert res.seeds.shape == (50, 2)
        assert res.sample_success.shape == (50,)
        assert res.patch_success.shape == (img.size,)
        assert res.stages == list(Stage)

    def test_not_rotation_invariant(self):
        img = edge_image(20)
        blk = RIPMMARCBlock(radius=2, N_sample=60, rotation_invariant=False, seed=1,
                            progress=False)
        res = blk(img, np.ones_like(img))

        assert res.sample_success is None
        assert res.patch_success is None
        assert res.stages == [Stage.SEEDED, Stage.SAMPLE_EXTRACTED,
                              Stage.BASIS_LEARNED, Stage.FRAME_BUILT,
                              Stage.ALL_EXTRACTED, Stage.PROJECTED,
                              Stage.PUBLISHED]

    def test_partial_mask(self):
        img = edge_image(20)
        mask = np.zeros_like(img)
        mask[5:15, 8:12] = 1
        res = RIPMMARCBlock(radius=2, N_sample=20, seed=2, progress=False)(img, mask)

        assert res.coefficients.shape[1] == 40
        assert np.array_equal(res.mask_index, np.argwhere(mask >= 1))

        maps = res.coefficient_fields()
        assert len(maps) == res.basis.N_eig
        for k, m in enumerate(maps):
            assert m.shape == img.shape
            assert np.allclose(m.data[mask == 0], 0)
            assert np.allclose(m.data[mask >= 1], res.coefficients.data[k])

    def test_reproducible(self):
        img = edge_image(20)
        mask = np.ones_like(img)
        res1 = RIPMMARCBlock(radius=2, N_sample=60, seed=3, progress=False)(img, mask)
        res2 = RIPMMARCBlock(radius=2, N_sample=60, seed=3, progress=False)(img, mask)

        assert np.array_equal(res1.seeds, res2.seeds)
        assert np.allclose(res1.coefficients.data, res2.coefficients.data)

    def test_user_basis(self):
        img = edge_image(20)
        so = sphere_offsets(2, 2)
        E = np.eye(len(so))[:, :4]
        blk = RIPMMARCBlock(radius=2, N_sample=10, learn_basis=False, basis=E,
                            rotation_invariant=False, seed=0, progress=False)
        res = blk(img, np.ones_like(img))

        assert isinstance(res.basis, EigenBasis)
        assert np.allclose(res.basis.data, E)
        assert Stage.BASIS_LEARNED not in res.stages
        assert res.coefficients.shape == (4, img.size)

    def test_user_basis_rotation_invariant(self):
        """
        Caller bases are kept as-is after reorientation.
        """
        img = edge_image(20)
        so = sphere_offsets(2, 2)
        learned = RIPMMARCBlock(radius=2, N_sample=60, seed=0, progress=False)(
            img, np.ones_like(img)).basis

        blk = RIPMMARCBlock(radius=2, N_sample=10, learn_basis=False, basis=learned,
                            seed=0, progress=False)
        res = blk(img, np.ones_like(img))

        assert res.basis is learned
        assert Stage.REORIENTED in res.stages
        assert Stage.BASIS_RELEARNED not in res.stages
        assert res.coefficients.shape == (learned.N_eig, img.size)
        assert res.basis.shape[0] == len(so)

    def test_field_input(self):
        img = Field(edge_image(16), spacing=[0.5, 0.5])
        res = RIPMMARCBlock(radius=2, N_sample=60, seed=0, progress=False)(
            img, np.ones(img.shape))
        maps = res.coefficient_fields()
        assert np.allclose(maps[0].spacing, 0.5)

    def test_str(self):
        s = str(RIPMMARCBlock(radius=4, target_variance=0.8, mean_center=False,
                              rotation_invariant=False))
        assert 'Not using rotation-invariant model.' in s
        assert 'Not mean-centering patches.' in s
        assert 'Patch radius: 4' in s
        assert '0.8' in s

    def test_canonical_index(self):
        assert RIPMMARCBlock(mean_center=True).canonical_index == 0
        assert RIPMMARCBlock(mean_center=False).canonical_index == 1

    def test_single_component_basis(self):
        """
        Non-centered patches with a single eigenpatch use that eigenpatch as
        reference.
        """
        img = edge_image(20)
        blk = RIPMMARCBlock(radius=2, N_sample=20, target_variance=1, mean_center=False,
                            seed=0, progress=False)
        res = blk(img, np.ones_like(img))
        assert res.basis.N_eig == 1
        assert np.allclose(res.canonical_frame.data.sum(), res.basis.data.sum())

    def test_single_edge_voxel(self):
        img = edge_image(20)
        mask = np.zeros_like(img)
        mask[0, 10] = 1
        with pytest.raises(exception.InsufficientNeighborhoodError):
            RIPMMARCBlock(radius=3, N_sample=5, seed=0, progress=False)(img, mask)

    def test_fail_configuration(self):
        with pytest.raises(exception.ConfigurationError):
            RIPMMARCBlock(N_sample=0)
        with pytest.raises(exception.ConfigurationError):
            RIPMMARCBlock(radius=-1)
        with pytest.raises(exception.ConfigurationError):
            RIPMMARCBlock(learn_basis=False)
        with pytest.raises(ValueError):
            RIPMMARCBlock(radius=2.5)

        img = edge_image(20)
        blk = RIPMMARCBlock(radius=2, N_sample=10, seed=0, progress=False)
        with pytest.raises(exception.ConfigurationError):
            blk(img, np.zeros_like(img))
        with pytest.raises(exception.ConfigurationError):
            RIPMMARCBlock(radius=15, N_sample=10, progress=False)(img, np.ones_like(img))
        with pytest.raises(ValueError):
            blk(img, np.ones((20, 21)))
        with pytest.raises(exception.ConfigurationError):
            blk(np.zeros((10, 10, 10, 10)), np.ones((10, 10, 10, 10)))

    def test_fail_user_basis_size(self):
        img = edge_image(20)
        blk = RIPMMARCBlock(radius=2, N_sample=10, learn_basis=False,
                            basis=np.eye(20)[:, :3], progress=False)
        with pytest.raises(ValueError):
            blk(img, np.ones_like(img))

# #############################################################################
# test_sampler.py
# ===============
# #############################################################################

import itertools

import numpy as np
import pandas as pd
import pytest

import ripmmarc.exception as exception
from ripmmarc.field import Field
from ripmmarc.patch.sampler import MaskedPatchMatrix, SamplePatchMatrix, \
    extract_all_patches, extract_patch, extract_sample_patches, \
    masked_indices, sample_seed_points, sphere_offsets


class TestSphereOffsets:
    def test_brute_force(self):
        """
        Offsets are exactly the integer points of the closed ball, in
        lexicographic order.
        """
        for radius, dim in itertools.product([0, 1, 2, 3], [1, 2, 3]):
            so = sphere_offsets(radius, dim)

            gt = [o for o in itertools.product(range(-radius, radius + 1), repeat=dim)
                  if np.sum(np.square(o)) <= radius ** 2]
            assert np.array_equal(so.offsets, np.array(gt).reshape(-1, dim))
            assert np.allclose(so.weights, 1)
            assert len(so) == len(gt)
            assert so.dim == dim

    def test_known_sizes(self):
        assert len(sphere_offsets(1, 2)) == 5
        assert len(sphere_offsets(3, 2)) == 29
        assert len(sphere_offsets(1, 3)) == 7

    def test_cached_read_only(self):
        so = sphere_offsets(2, 2)
        assert sphere_offsets(2, 2) is so
        with pytest.raises(ValueError):
            so.offsets[0, 0] = 10

    def test_index(self):
        so = sphere_offsets(1, 2)
        assert so.index.name == 'OFFSET_ID'
        assert len(so.index) == 5

    def test_fail(self):
        with pytest.raises(ValueError):
            sphere_offsets(-1, 2)
        with pytest.raises(ValueError):
            sphere_offsets(1, 0)
        with pytest.raises(ValueError):
            sphere_offsets(1.5, 2)


class TestSampleSeedPoints:
    def test_seeds_valid(self):
        mask = np.zeros((20, 30))
        mask[5:15, 2:10] = 1
        seeds = sample_seed_points(50, mask, radius=2, rng=0)

        assert seeds.shape == (50, 2)
        assert np.all(mask[tuple(seeds.T)] >= 1)
        assert np.all(seeds >= 2)
        assert np.all(seeds <= np.array(mask.shape) - 3)

    def test_reproducible(self):
        mask = np.ones((16, 16))
        s1 = sample_seed_points(10, mask, radius=1, rng=3)
        s2 = sample_seed_points(10, mask, radius=1, rng=3)
        assert np.array_equal(s1, s2)

        rng = np.random.default_rng(3)
        s3 = sample_seed_points(10, mask, radius=1, rng=rng)
        assert np.array_equal(s1, s3)

    def test_accepts_field(self):
        mask = Field(np.ones((8, 8, 8)))
        seeds = sample_seed_points(5, mask, radius=1, rng=0)
        assert seeds.shape == (5, 3)

    def test_fail_configuration(self):
        mask = np.ones((10, 10))
        with pytest.raises(exception.ConfigurationError):
            sample_seed_points(0, mask, radius=1)
        with pytest.raises(exception.ConfigurationError):
            sample_seed_points(5, np.zeros((10, 10)), radius=1)
        with pytest.raises(exception.ConfigurationError):
            sample_seed_points(5, mask, radius=5)
        with pytest.raises(exception.ConfigurationError):
            sample_seed_points(5, mask, radius=1, max_attempts=2)

    def test_single_edge_voxel(self):
        """
        A mask whose only voxel cannot host a full neighborhood fails fast.
        """
        mask = np.zeros((10, 10))
        mask[0, 4] = 1
        with pytest.raises(exception.InsufficientNeighborhoodError) as e:
            sample_seed_points(5, mask, radius=3, rng=0)
        assert e.value.N_requested == 5
        assert e.value.N_found == 0

    def test_attempt_cap(self):
        mask = np.zeros((40, 40))
        mask[20, 20] = 1
        with pytest.raises(exception.InsufficientNeighborhoodError) as e:
            sample_seed_points(3, mask, radius=1, rng=0, max_attempts=10)
        assert e.value.N_attempt == 10
        assert e.value.N_found < 3

        # Errors remain ValueErrors.
        assert isinstance(e.value, ValueError)


class TestExtractPatch:
    def test_values(self):
        data = np.arange(25.).reshape(5, 5)
        so = sphere_offsets(1, 2)
        p = extract_patch(data, [2, 2], so)
        assert np.allclose(p, [7., 11., 12., 13., 17.])

    def test_mean_center(self):
        rng = np.random.default_rng(0)
        data = rng.standard_normal((9, 9, 9))
        so = sphere_offsets(2, 3)
        p = extract_patch(data, [4, 4, 4], so, mean_center=True)
        assert np.isclose(p.mean(), 0)

    def test_fail_outside(self):
        so = sphere_offsets(1, 2)
        with pytest.raises(ValueError):
            extract_patch(np.zeros((5, 5)), [0, 2], so)
        with pytest.raises(ValueError):
            extract_patch(np.zeros((5, 5)), [2, 2, 2], so)


class TestExtractSamplePatches:
    def test_matrix(self):
        data = np.arange(25.).reshape(5, 5)
        so = sphere_offsets(1, 2)
        A = extract_sample_patches(data, [[2, 2], [1, 1]], so)

        assert isinstance(A, SamplePatchMatrix)
        assert A.shape == (2, 5)
        assert A.patch_axis == 0
        assert A.axis('PATCH_ID') == 0
        assert np.allclose(A.patch(1), [1., 5., 6., 7., 11.])

    def test_set_patch(self):
        so = sphere_offsets(1, 2)
        A = extract_sample_patches(np.zeros((5, 5)), [[2, 2], [1, 1]], so)
        A.set_patch(1, np.ones(5))
        assert np.allclose(A.data[1], 1)
        assert np.allclose(A.data[0], 0)

        vectors = dict(A.patches())
        assert set(vectors.keys()) == {0, 1}

    def test_fail_seeds(self):
        so = sphere_offsets(1, 2)
        with pytest.raises(ValueError):
            extract_sample_patches(np.zeros((5, 5)), [[2, 2, 2]], so)


class TestExtractAllPatches:
    def test_interior_matches_single_extraction(self):
        rng = np.random.default_rng(1)
        data = rng.standard_normal((12, 10))
        mask = np.zeros_like(data)
        mask[3:9, 4:7] = 1
        so = sphere_offsets(2, 2)

        P = extract_all_patches(data, mask, so, mean_center=True)
        idx = masked_indices(mask)
        assert isinstance(P, MaskedPatchMatrix)
        assert P.shape == (len(so), 18)
        assert P.patch_axis == 1
        assert P.axis('VOXEL_ID') == 1
        for i, center in enumerate(idx):
            assert np.allclose(P.data[:, i],
                               extract_patch(data, center, so, mean_center=True))
        assert np.allclose(P.data.mean(axis=0), 0)

    def test_lexicographic_order(self):
        mask = np.zeros((4, 4))
        mask[[3, 0, 1], [0, 2, 1]] = 1
        assert np.array_equal(masked_indices(mask), [[0, 2], [1, 1], [3, 0]])

    def test_masked_indices_array_or_field(self):
        mask = np.zeros((5, 6))
        mask[1, 2] = 1
        mask[4, 0] = 2.5
        mask[2, 3] = 0.5
        expected = [[1, 2], [4, 0]]
        assert np.array_equal(masked_indices(mask), expected)
        assert np.array_equal(masked_indices(Field(mask)), expected)

    def test_border_replication(self):
        data = np.arange(9.).reshape(3, 3)
        so = sphere_offsets(1, 2)
        P = extract_all_patches(data, np.ones((3, 3)), so)

        assert P.shape == (5, 9)
        # Corner (0, 0): out-of-grid neighbors replicate the border.
        assert np.allclose(P.data[:, 0], [0., 0., 0., 1., 3.])

    def test_fail_shape(self):
        so = sphere_offsets(1, 2)
        with pytest.raises(ValueError):
            extract_all_patches(np.zeros((3, 3)), np.ones((3, 4)), so)

    def test_labels(self):
        so = sphere_offsets(1, 2)
        P = extract_all_patches(np.zeros((3, 3)), np.ones((3, 3)), so)
        assert P.index[0].equals(pd.RangeIndex(5, name='OFFSET_ID'))
        assert P.index[1].name == 'VOXEL_ID'

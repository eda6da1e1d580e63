# #############################################################################
# test_field.py
# =============
# #############################################################################

import numpy as np
import pytest

from ripmmarc.field import Field, as_field, paint


class TestField:
    def test_default_geometry(self):
        f = Field(np.zeros((4, 5, 6)))
        assert f.shape == (4, 5, 6)
        assert f.ndim == 3
        assert np.allclose(f.spacing, 1)
        assert np.allclose(f.origin, 0)
        assert np.allclose(f.direction, np.eye(3))

    def test_index_point_roundtrip(self):
        theta = np.pi / 6
        R = np.array([[np.cos(theta), -np.sin(theta)],
                      [np.sin(theta), np.cos(theta)]])
        f = Field(np.zeros((10, 10)), spacing=[0.5, 2.], origin=[3., -1.], direction=R)

        idx = np.array([[0, 0], [1, 0], [2.5, 7.25]])
        p = f.index_to_point(idx)
        assert np.allclose(p[0], f.origin)
        assert np.allclose(p[1] - p[0], 0.5 * R[:, 0])
        assert np.allclose(f.point_to_index(p), idx)

    def test_is_inside(self):
        f = Field(np.zeros((3, 4)))
        idx = np.array([[0, 0], [2, 3], [2.5, 0], [-1, 2], [1, 4]])
        assert np.array_equal(f.is_inside(idx), [True, True, False, False, False])

    def test_get_set(self):
        f = Field.zeros((3, 3))
        f[1, 2] = 5
        assert f[1, 2] == 5
        assert f.data.sum() == 5

        g = f.copy()
        g.fill(1)
        assert np.all(g.data == 1)
        assert f.data.sum() == 5

    def test_boolean_data(self):
        f = Field(np.ones((2, 2), dtype=bool))
        assert f.data.dtype == float

    def test_like(self):
        f = Field(np.zeros((3, 3)), spacing=[2., 2.])
        g = f.like(np.ones((3, 3)))
        assert np.allclose(g.spacing, f.spacing)
        with pytest.raises(ValueError):
            f.like(np.ones((2, 3)))

    def test_fail_metadata(self):
        with pytest.raises(ValueError):
            Field(5.)
        with pytest.raises(ValueError):
            Field(np.zeros((3, 3)), spacing=[1., 0.])
        with pytest.raises(ValueError):
            Field(np.zeros((3, 3)), origin=[1., 0., 0.])
        with pytest.raises(ValueError):
            Field(np.zeros((3, 3)), direction=[[1., 1.], [0., 1.]])
        with pytest.raises(ValueError):
            Field(np.zeros((3, 3), dtype=complex))
        with pytest.raises(ValueError):
            Field.zeros((3, 0))


class TestAsField:
    def test_wrap(self):
        f = Field(np.zeros(3))
        assert as_field(f) is f
        assert isinstance(as_field([[1, 2], [3, 4]]), Field)


class TestPaint:
    def test_paint(self):
        like = Field(np.zeros((3, 3)), spacing=[2., 1.])
        g = paint([1., 2.], [[0, 0], [2, 1]], like, background=-1)

        gt = -np.ones((3, 3))
        gt[0, 0], gt[2, 1] = 1, 2
        assert np.array_equal(g.data, gt)
        assert np.allclose(g.spacing, like.spacing)

    def test_fail_inconsistent(self):
        with pytest.raises(ValueError):
            paint([1., 2.], [[0, 0]], Field(np.zeros((3, 3))))

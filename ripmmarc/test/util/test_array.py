# #############################################################################
# test_array.py
# =============
# #############################################################################

import numpy as np
import pandas as pd
import pytest

from ripmmarc.util.array import LabeledMatrix


def _lmtx(N=4, M=3, writeable=False):
    return LabeledMatrix(np.arange(N * M).reshape(N, M),
                         pd.RangeIndex(N, name='PATCH_ID'),
                         pd.RangeIndex(M, name='OFFSET_ID'),
                         writeable=writeable)


class TestLabeledMatrix:
    def test_shape_and_index(self):
        A = _lmtx()
        assert A.shape == (4, 3)
        row_idx, col_idx = A.index
        assert row_idx.name == 'PATCH_ID'
        assert col_idx.name == 'OFFSET_ID'

    def test_axis(self):
        A = _lmtx()
        assert A.axis('PATCH_ID') == 0
        assert A.axis('OFFSET_ID') == 1
        with pytest.raises(ValueError):
            A.axis('VOXEL_ID')

    def test_read_only_by_default(self):
        A = _lmtx()
        with pytest.raises(ValueError):
            A.data[0, 0] = 10

        B = _lmtx(writeable=True)
        B.data[0, 0] = 10
        assert B.data[0, 0] == 10

    def test_fail_inconsistent_index(self):
        with pytest.raises(ValueError):
            LabeledMatrix(np.ones((4, 3)),
                          pd.RangeIndex(5, name='PATCH_ID'),
                          pd.RangeIndex(3, name='OFFSET_ID'))
        with pytest.raises(ValueError):
            LabeledMatrix(np.ones((4, 3)),
                          pd.RangeIndex(4, name='PATCH_ID'),
                          pd.RangeIndex(2, name='OFFSET_ID'))
        with pytest.raises(ValueError):
            LabeledMatrix(np.ones(3),
                          pd.RangeIndex(3, name='PATCH_ID'),
                          pd.RangeIndex(1, name='OFFSET_ID'))
        with pytest.raises(ValueError):
            LabeledMatrix(np.ones((4, 3)), range(4), pd.RangeIndex(3))

    def test_is_consistent_with(self):
        A = _lmtx(4, 3)
        B = LabeledMatrix(np.ones((3, 2)),
                          pd.RangeIndex(3, name='OFFSET_ID'),
                          pd.RangeIndex(2, name='VOXEL_ID'))

        assert A.is_consistent_with(B, axes=[1, 0]) is True
        assert A.is_consistent_with(B, axes=[0, 0]) is False
        assert A.is_consistent_with(B, axes=[1, 1]) is False

        with pytest.raises(ValueError):
            A.is_consistent_with(np.ones((3, 2)), axes=[1, 0])
        with pytest.raises(ValueError):
            A.is_consistent_with(B, axes=[1, 2])

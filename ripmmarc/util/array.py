# #############################################################################
# array.py
# ========
# #############################################################################

"""
Tools and utilities for manipulating arrays.
"""

import numpy as np
import pandas as pd

import ripmmarc.util.argcheck as chk


class LabeledMatrix:
    """
    2D arrays with additional indexing data attached to each axis.

    Patch matrices are stored with different layouts depending on their use (patches as rows or patches as columns).
    Naming each axis makes the layout explicit and lets matrices be checked for consistency before being combined.

    Examples
    ---------
    .. doctest::

       >>> import numpy as np
       >>> import pandas as pd
       >>> from ripmmarc.util.array import LabeledMatrix

       >>> A = LabeledMatrix(np.arange(5 * 3).reshape(5, 3),
       ...                   pd.RangeIndex(5, name='PATCH_ID'),
       ...                   pd.RangeIndex(3, name='OFFSET_ID'))

       >>> A.data
       array([[ 0,  1,  2],
              [ 3,  4,  5],
              [ 6,  7,  8],
              [ 9, 10, 11],
              [12, 13, 14]])

       >>> A.axis('OFFSET_ID')
       1
    """

    @chk.check(dict(data=chk.is_array_like,
                    row_idx=chk.is_instance(pd.Index),
                    col_idx=chk.is_instance(pd.Index),
                    writeable=chk.is_boolean))
    def __init__(self, data, row_idx, col_idx, writeable=False):
        """
        Parameters
        ----------
        data : array-like
            (N, M) dataset (any type).
        row_idx : :py:class:`~pandas.Index`
            Row index.
        col_idx : :py:class:`~pandas.Index`
            Column index.
        writeable : bool
            If :py:obj:`False` (default), `data` is made read-only.
        """
        self.__data = np.asarray(data)
        self.__data.setflags(write=writeable)

        if self.__data.ndim != 2:
            raise ValueError('Parameter[data] must be 2D.')

        N, M = self.__data.shape
        N_row, N_col = len(row_idx), len(col_idx)
        if N_row != N:
            raise ValueError(f'Parameter[row_idx] contains {N_row} entries, '
                             f'but Parameter[data] expected {N}.')
        if N_col != M:
            raise ValueError(f'Parameter[col_idx] contains {N_col} entries, '
                             f'but Parameter[data] expected {M}.')
        self.__index = (row_idx.copy(), col_idx.copy())

    @property
    def data(self):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N, M) dataset.
        """
        return self.__data

    @property
    def index(self):
        """
        Returns
        -------
            row_idx : :py:class:`~pandas.Index`
                (N,) row index.

            col_idx : :py:class:`~pandas.Index`
                (M,) column index.
        """
        return self.__index

    @property
    def shape(self):
        """
        Returns
        -------
        tuple(int)
            (N_row, N_col) shape information.
        """
        return self.__data.shape

    def __str__(self):
        return self.__data.__str__()

    def __repr__(self):
        return self.__data.__repr__()

    @chk.check('name', chk.is_instance(str))
    def axis(self, name):
        """
        Dimension along which an index is attached.

        Parameters
        ----------
        name : str
            Name of a row/column index.

        Returns
        -------
        int
            0 if `name` labels the rows, 1 if it labels the columns.
        """
        for i, idx in enumerate(self.__index):
            if idx.name == name:
                return i

        raise ValueError(f'Parameter[name] does not label any axis: {name}.')

    @chk.check('axes', chk.require_all(chk.has_integers,
                                       chk.has_shape([2, ])))
    def is_consistent_with(self, lmtx, axes):
        """
        Test matrices for consistency along directions.

        Two labeled matrices are considered consistent if their indexes match along the specified dimensions.

        Parameters
        ----------
        lmtx : :py:class:`~ripmmarc.util.array.LabeledMatrix`
            Matrix to compare with.
        axes : tuple(int)
            (2,) tuple with dimensions along which indices of `self` and `lmtx` must match.

        Returns
        -------
        bool
            True if axes are consistent.
        """
        if not chk.is_instance(LabeledMatrix)(lmtx):
            raise ValueError('Parameter[lmtx] must be a LabeledMatrix.')

        axes = np.asarray(axes)
        if not np.all((axes == 0) | (axes == 1)):
            raise ValueError('Parameter[axes] can only contain {0, 1}.')

        idxA = self.index[axes[0]]
        idxB = lmtx.index[axes[1]]

        if tuple(idxA.names) == tuple(idxB.names):
            if len(idxA) == len(idxB):
                if np.all(idxA == idxB):
                    return True

        return False

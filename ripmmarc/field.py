# #############################################################################
# field.py
# ========
# #############################################################################

"""
Scalar fields defined on regular N-D grids.
"""

import numpy as np

import ripmmarc.util.argcheck as chk


class Field:
    """
    Dense N-D scalar grid with physical-space metadata.

    The physical position of voxel index :math:`i` is

    .. math:: p = o + R \\, (s \\odot i),

    with origin :math:`o`, direction cosines :math:`R` and spacing :math:`s`.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.field import Field

       >>> f = Field(np.zeros((3, 4)), spacing=[2, 1], origin=[10, 0])
       >>> f.index_to_point([[1, 1]])
       array([[12.,  1.]])

       >>> f.point_to_index([[12., 1.]])
       array([[1., 1.]])
    """

    @chk.check(dict(data=chk.accept_any(chk.has_reals, chk.has_booleans),
                    spacing=chk.allow_None(chk.has_reals),
                    origin=chk.allow_None(chk.has_reals),
                    direction=chk.allow_None(chk.has_reals)))
    def __init__(self, data, spacing=None, origin=None, direction=None):
        """
        Parameters
        ----------
        data : array-like(float)
            (N_1, ..., N_D) voxel values.
        spacing : array-like(float)
            (D,) positive voxel size along each axis. (Default: 1.)
        origin : array-like(float)
            (D,) physical position of voxel (0, ..., 0). (Default: 0.)
        direction : array-like(float)
            (D, D) orthonormal direction cosines. (Default: identity.)

        Notes
        -----
        For efficiency reasons, `data` is not copied internally.
        """
        data = np.asarray(data)
        if data.ndim == 0:
            raise ValueError('Parameter[data] must have at least 1 dimension.')
        if data.dtype == bool:
            data = data.astype(float)
        self._data = data
        D = data.ndim

        spacing = np.ones(D) if (spacing is None) else np.asarray(spacing, dtype=float)
        if not (chk.has_shape([D])(spacing) and np.all(spacing > 0)):
            raise ValueError(f'Parameter[spacing] must contain {D} positive values.')
        self._spacing = spacing

        origin = np.zeros(D) if (origin is None) else np.asarray(origin, dtype=float)
        if not chk.has_shape([D])(origin):
            raise ValueError(f'Parameter[origin] must contain {D} values.')
        self._origin = origin

        direction = np.eye(D) if (direction is None) else np.asarray(direction, dtype=float)
        if not (chk.has_shape([D, D])(direction) and
                np.allclose(direction.T @ direction, np.eye(D))):
            raise ValueError(f'Parameter[direction] must be a ({D}, {D}) orthonormal matrix.')
        self._direction = direction

    @classmethod
    def zeros(cls, shape, spacing=None, origin=None, direction=None):
        """
        Allocate a zero-filled field.

        Parameters
        ----------
        shape : tuple(int)
            (D,) grid dimensions.
        spacing, origin, direction
            See :py:class:`~ripmmarc.field.Field`.

        Returns
        -------
        :py:class:`~ripmmarc.field.Field`
        """
        if not chk.is_array_shape(shape):
            raise ValueError('Parameter[shape] must be a valid array shape.')

        return cls(np.zeros(tuple(shape)), spacing, origin, direction)

    def like(self, data):
        """
        Field with identical metadata but different voxel values.

        Parameters
        ----------
        data : array-like(float)
            (N_1, ..., N_D) voxel values.

        Returns
        -------
        :py:class:`~ripmmarc.field.Field`
        """
        data = np.asarray(data)
        if data.shape != self.shape:
            raise ValueError('Parameter[data] does not match the field shape.')

        return Field(data, self._spacing, self._origin, self._direction)

    def copy(self):
        """
        Returns
        -------
        :py:class:`~ripmmarc.field.Field`
            Deep copy of the field.
        """
        return self.like(self._data.copy())

    def fill(self, value):
        """
        Set every voxel to `value`.
        """
        self._data[...] = value

    @property
    def data(self):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N_1, ..., N_D) voxel values.
        """
        return self._data

    @property
    def shape(self):
        return self._data.shape

    @property
    def ndim(self):
        return self._data.ndim

    @property
    def spacing(self):
        return self._spacing

    @property
    def origin(self):
        return self._origin

    @property
    def direction(self):
        return self._direction

    def __getitem__(self, idx):
        return self._data[idx]

    def __setitem__(self, idx, value):
        self._data[idx] = value

    def __repr__(self):
        return (f'Field(shape={self.shape}, spacing={self._spacing.tolist()}, '
                f'origin={self._origin.tolist()})')

    def index_to_point(self, idx):
        """
        Physical position of (continuous) voxel indices.

        Parameters
        ----------
        idx : array-like(float)
            (N, D) indices.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N, D) physical points.
        """
        idx = np.asarray(idx, dtype=float)
        return self._origin + (idx * self._spacing) @ self._direction.T

    def point_to_index(self, points):
        """
        Continuous voxel indices of physical points.

        Parameters
        ----------
        points : array-like(float)
            (N, D) physical points.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N, D) continuous indices.
        """
        points = np.asarray(points, dtype=float)
        return ((points - self._origin) @ self._direction) / self._spacing

    def is_inside(self, idx):
        """
        Test if (continuous) indices lie within the grid.

        Parameters
        ----------
        idx : array-like(float)
            (N, D) indices.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N,) boolean mask.
        """
        idx = np.asarray(idx, dtype=float)
        tol = 1e-9
        upper = np.array(self.shape) - 1
        return np.all((idx >= -tol) & (idx <= upper + tol), axis=-1)


def as_field(x):
    """
    Wrap array-like inputs into a :py:class:`~ripmmarc.field.Field`.

    Parameters
    ----------
    x : :py:class:`~ripmmarc.field.Field` or array-like

    Returns
    -------
    :py:class:`~ripmmarc.field.Field`
        `x` itself if already a field.
    """
    if isinstance(x, Field):
        return x

    return Field(x)


@chk.check(dict(vector=chk.has_reals,
                idx=chk.has_integers))
def paint(vector, idx, like, background=0):
    """
    Write values at voxel positions of an otherwise uniform field.

    Parameters
    ----------
    vector : array-like(float)
        (N,) values.
    idx : array-like(int)
        (N, D) voxel indices.
    like : :py:class:`~ripmmarc.field.Field`
        Field providing shape and metadata of the output.
    background : float
        Value of voxels not listed in `idx`.

    Returns
    -------
    :py:class:`~ripmmarc.field.Field`
    """
    vector = np.asarray(vector, dtype=float)
    idx = np.asarray(idx)
    if not chk.has_shape([len(vector), like.ndim])(idx):
        raise ValueError('Parameters[vector, idx] are inconsistent.')

    data = np.full(like.shape, background, dtype=float)
    data[tuple(idx.T)] = vector
    return like.like(data)

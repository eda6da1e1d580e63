# ##############################################################################
# ndimage.py
# ==========
# ##############################################################################

"""
Differentiation and interpolation of :py:class:`~ripmmarc.field.Field` objects.

Both operations are delegated to :py:mod:`scipy.ndimage` and expressed in physical coordinates.
"""

import numpy as np
import scipy.ndimage as ndimage

import ripmmarc.field as field
import ripmmarc.util.argcheck as chk


@chk.check(dict(f=chk.is_instance(field.Field),
                sigma=chk.is_real))
def gaussian_gradient(f, sigma):
    """
    Gradient of a field smoothed by a Gaussian kernel.

    Parameters
    ----------
    f : :py:class:`~ripmmarc.field.Field`
        (N_1, ..., N_D) scalar field.
    sigma : float
        Standard deviation of the Gaussian [physical units].

    Returns
    -------
    grad : :py:class:`~numpy.ndarray`
        (N_1, ..., N_D, D) gradient vectors in physical coordinates.

    Notes
    -----
    Borders are handled by replicating edge voxels (zero-flux Neumann condition).
    """
    if sigma <= 0:
        raise ValueError('Parameter[sigma] must be positive.')

    D = f.ndim
    sigma_idx = sigma / f.spacing

    grad_idx = np.zeros(f.shape + (D,))
    for d in range(D):
        order = [0] * D
        order[d] = 1
        grad_idx[..., d] = ndimage.gaussian_filter(f.data.astype(float),
                                                   sigma=sigma_idx,
                                                   order=order,
                                                   mode='nearest')
        grad_idx[..., d] /= f.spacing[d]

    # index-space derivatives -> physical-space derivatives
    grad = grad_idx @ f.direction.T
    return grad


class LinearInterpolator:
    """
    Evaluate a field at arbitrary physical points.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.field import Field
       >>> from ripmmarc.util.math.ndimage import LinearInterpolator

       >>> f = Field(np.arange(4.).reshape(2, 2))
       >>> interp = LinearInterpolator(f)
       >>> interp.evaluate([[0.5, 0.5]])
       array([1.5])

       >>> interp.is_inside([[0.5, 0.5], [0., 2.]])
       array([ True, False])
    """

    @chk.check(dict(f=chk.is_instance(field.Field),
                    order=chk.is_integer))
    def __init__(self, f, order=1):
        """
        Parameters
        ----------
        f : :py:class:`~ripmmarc.field.Field`
            Field to interpolate.
        order : int
            Spline order in {0, ..., 5} (1: multi-linear interpolation).
        """
        if not (0 <= order <= 5):
            raise ValueError('Parameter[order] must lie in {0, ..., 5}.')

        self._field = f
        self._order = order
        if order > 1:
            self._coeff = ndimage.spline_filter(f.data.astype(float), order=order,
                                                mode='nearest')
        else:
            self._coeff = f.data.astype(float)

    @property
    def field(self):
        """
        Returns
        -------
        :py:class:`~ripmmarc.field.Field`
            Interpolated field.
        """
        return self._field

    def is_inside(self, points):
        """
        Test if points lie inside the sampling range of the field.

        Parameters
        ----------
        points : array-like(float)
            (N, D) physical points.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N,) boolean mask.
        """
        idx = self._field.point_to_index(points)
        return self._field.is_inside(idx)

    def evaluate(self, points):
        """
        Interpolate field values.

        Parameters
        ----------
        points : array-like(float)
            (N, D) physical points.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N,) interpolated values.
            Points outside the field are clamped to the closest border value: test them with :py:meth:`~ripmmarc.util.math.ndimage.LinearInterpolator.is_inside` first.
        """
        idx = self._field.point_to_index(points)
        values = ndimage.map_coordinates(self._coeff, idx.T,
                                         order=self._order,
                                         mode='nearest',
                                         prefilter=False)
        return values

# #############################################################################
# reorient.py
# ===========
# #############################################################################

"""
Rotation normalization of patches.

Patches are brought into a common orientation before learning/projection so that eigenpatches capture local structure rather than the arbitrary orientation under which it appears in the field.

Each (moving) patch is aligned onto a fixed reference patch as follows:

1. Both patches are laid out on a small grid (the *canonical frame*) and their Gaussian-smoothed gradients are sampled at every sphere offset.
2. The dominant orientation axes of each patch are the leading eigenvectors of its gradient covariance matrix: one axis in 2D, two axes in 3D.
3. The rotation mapping fixed axes onto moving axes is obtained from Wahba's problem (see :py:func:`~ripmmarc.util.math.linalg.kabsch`).
4. The moving patch is resampled at rotated positions.
   Since eigenvectors are only defined up to sign, the rotation is composed with a half-turn if the resampled patch is anti-correlated with the fixed patch.
"""

import enum
import logging

import numpy as np
from tqdm import tqdm as ProgressBar

import ripmmarc
import ripmmarc.core as core
import ripmmarc.exception as exception
import ripmmarc.field as field
import ripmmarc.patch.sampler as sampler
import ripmmarc.util.argcheck as chk
import ripmmarc.util.math.linalg as pylinalg
import ripmmarc.util.math.ndimage as pyndimage

logger = logging.getLogger(__name__)


class ReorientationStatus(enum.Enum):
    """
    Outcome of a patch reorientation.

    * OK: every offset was resampled after rotation.
    * DEGRADED: some rotated offsets left the moving field and kept their original value.
    * ABORTED: the patch could not be sampled; no reoriented patch is available.
    """
    OK = 'ok'
    DEGRADED = 'degraded'
    ABORTED = 'aborted'


class ReorientationResult:
    """
    Reoriented patch and associated diagnostics.
    """

    def __init__(self, patch, rotation, status, flipped=False):
        """
        Parameters
        ----------
        patch : :py:class:`~numpy.ndarray` or None
            (N_offset,) reoriented patch (:py:obj:`None` if `status` is ABORTED).
        rotation : :py:class:`~numpy.ndarray` or None
            (D, D) rotation applied to the moving patch (:py:obj:`None` if `status` is ABORTED).
        status : :py:class:`~ripmmarc.patch.reorient.ReorientationStatus`
        flipped : bool
            :py:obj:`True` if the sign-disambiguating half-turn was applied.
        """
        self._patch = patch
        self._rotation = rotation
        self._status = status
        self._flipped = flipped

    @classmethod
    def aborted(cls):
        return cls(None, None, ReorientationStatus.ABORTED)

    @property
    def patch(self):
        return self._patch

    @property
    def rotation(self):
        return self._rotation

    @property
    def status(self):
        return self._status

    @property
    def flipped(self):
        return self._flipped

    @property
    def success(self):
        """
        Returns
        -------
        bool
            :py:obj:`True` if every offset of the patch was resampled.
        """
        return self._status == ReorientationStatus.OK

    def __repr__(self):
        return (f'ReorientationResult(status={self._status.name}, '
                f'flipped={self._flipped})')


class Neighborhood:
    """
    Values, positions and gradients of a field sampled at sphere offsets around a voxel.
    """

    def __init__(self, values, points, gradients):
        """
        Parameters
        ----------
        values : :py:class:`~numpy.ndarray`
            (N_offset,) field values.
        points : :py:class:`~numpy.ndarray`
            (N_offset, D) physical positions of the samples.
        gradients : :py:class:`~numpy.ndarray`
            (N_offset, D) weighted gradients.
        """
        self._values = values
        self._points = points
        self._gradients = gradients

    @classmethod
    def from_field(cls, f, gradient, center, offsets, weights=None):
        """
        Sample a neighborhood.

        Parameters
        ----------
        f : :py:class:`~ripmmarc.field.Field`
            (N_1, ..., N_D) scalar field.
        gradient : :py:class:`~numpy.ndarray`
            (N_1, ..., N_D, D) gradient of `f`.
        center : array-like(int)
            (D,) neighborhood center.
        offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
            Neighborhood geometry.
        weights : :py:class:`~numpy.ndarray`
            (N_offset,) gradient weights. (Default: `offsets.weights`.)

        Returns
        -------
        :py:class:`~ripmmarc.patch.reorient.Neighborhood` or None
            :py:obj:`None` if any offset falls outside `f`.
        """
        if weights is None:
            weights = offsets.weights

        idx = np.asarray(center) + offsets.offsets
        if not np.all(f.is_inside(idx)):
            return None

        idx = tuple(idx.T)
        values = f.data[idx].astype(float)
        points = f.index_to_point(offsets.offsets + np.asarray(center))
        gradients = gradient[idx] * weights[:, np.newaxis]
        return cls(values, points, gradients)

    @property
    def values(self):
        return self._values

    @property
    def points(self):
        return self._points

    @property
    def gradients(self):
        return self._gradients

    @property
    def dim(self):
        return self._points.shape[1]

    @property
    def centroid(self):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (D,) mean physical position of the samples.
        """
        return self._points.mean(axis=0)

    def axes(self):
        """
        Dominant orientation axes of the neighborhood.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (D, D - 1) leading eigenvectors of the gradient covariance matrix.
        """
        C = self._gradients.T @ self._gradients
        return pylinalg.dominant_axes(C, self.dim - 1)


def _resample(moving, interpolator, Q):
    """
    Rotate sample positions of `moving` by `Q` about their centroid and resample.

    Returns
    -------
    values : :py:class:`~numpy.ndarray`
        (N_offset,) resampled values.
    complete : bool
        :py:obj:`False` if some rotated positions left the interpolator's range.
    """
    c = moving.centroid
    points = (moving.points - c) @ Q.T + c

    inside = interpolator.is_inside(points)
    values = moving.values.copy()
    if np.any(inside):
        values[inside] = interpolator.evaluate(points[inside])
    return values, bool(np.all(inside))


def _correlation(x, y):
    return np.dot(x - x.mean(), y - y.mean())


def reorient_patch(fixed, moving, interpolator):
    """
    Align a moving patch onto a fixed patch.

    Parameters
    ----------
    fixed : :py:class:`~ripmmarc.patch.reorient.Neighborhood` or None
        Reference patch.
    moving : :py:class:`~ripmmarc.patch.reorient.Neighborhood` or None
        Patch to align.
    interpolator : :py:class:`~ripmmarc.util.math.ndimage.LinearInterpolator`
        Interpolator over the field `moving` was sampled from.

    Returns
    -------
    :py:class:`~ripmmarc.patch.reorient.ReorientationResult`
        ABORTED if either neighborhood is :py:obj:`None` (i.e. could not be sampled).

    Raises
    ------
    :py:exc:`~ripmmarc.exception.ConfigurationError`
        If patches are neither 2D nor 3D.
    """
    if (fixed is None) or (moving is None):
        return ReorientationResult.aborted()

    D = moving.dim
    if D not in (2, 3):
        raise exception.ConfigurationError(f'Patch reorientation is only defined in 2D/3D, '
                                           f'got {D}D.')
    if fixed.values.shape != moving.values.shape:
        raise ValueError('Parameters[fixed, moving] have different sizes.')

    Q = pylinalg.kabsch(fixed.axes(), moving.axes())
    values, complete = _resample(moving, interpolator, Q)

    flipped = False
    if _correlation(fixed.values, values) < 0:
        Q = Q @ pylinalg.flip_matrix(D)
        # Status describes the returned values: the first pass is discarded.
        values, complete = _resample(moving, interpolator, Q)
        flipped = True

    status = ReorientationStatus.OK if complete else ReorientationStatus.DEGRADED
    return ReorientationResult(values, Q, status, flipped)


@chk.check(dict(vector=chk.has_reals,
                radius=chk.is_integer,
                padding=chk.is_integer))
def canonical_frame(vector, offsets, radius, padding):
    """
    Lay a patch vector out on a small grid.

    Parameters
    ----------
    vector : array-like(float)
        (N_offset,) patch values.
    offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Patch geometry.
    radius : int
        Patch radius [voxels].
    padding : int
        Zero-valued margin around the patch [voxels].

    Returns
    -------
    :py:class:`~ripmmarc.field.Field`
        (2 * radius + 2 * padding + 1,)^D field, zero outside the sphere.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.patch.sampler import sphere_offsets
       >>> from ripmmarc.patch.reorient import canonical_frame

       >>> so = sphere_offsets(1, 2)
       >>> frame = canonical_frame(np.arange(5.), so, radius=1, padding=0)
       >>> frame.data
       array([[0., 0., 0.],
              [1., 2., 3.],
              [0., 4., 0.]])
    """
    vector = np.asarray(vector, dtype=float)
    if len(vector) != len(offsets):
        raise ValueError(f'Parameter[vector] contains {len(vector)} entries, '
                         f'but {len(offsets)} offsets were given.')
    if radius < offsets.radius:
        raise ValueError('Parameter[radius] is smaller than the offsets radius.')
    if padding < 0:
        raise ValueError('Parameter[padding] must be non-negative.')

    N = 2 * (radius + padding) + 1
    center = radius + padding
    like = field.Field.zeros((N,) * offsets.dim)
    return field.paint(vector, offsets.offsets + center, like)


class PatchReorienterBlock(core.Block):
    """
    Align patches onto the orientation of a reference patch.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.patch.sampler import sphere_offsets
       >>> from ripmmarc.patch.reorient import PatchReorienterBlock

       >>> so = sphere_offsets(3, 2)
       >>> ramp = so.offsets[:, 1].astype(float)

       >>> reorienter = PatchReorienterBlock(ramp, so)
       >>> res = reorienter(-ramp)
       >>> res.flipped, res.success
       (True, True)
       >>> np.allclose(res.patch, ramp)
       True
    """

    @chk.check(dict(reference=chk.has_reals,
                    radius=chk.allow_None(chk.is_integer),
                    padding=chk.allow_None(chk.is_integer),
                    sigma=chk.allow_None(chk.is_real)))
    def __init__(self, reference, offsets, radius=None, padding=None, sigma=None):
        """
        Parameters
        ----------
        reference : array-like(float)
            (N_offset,) reference patch (typically an eigenpatch).
        offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
            Patch geometry.
        radius : int
            Patch radius [voxels]. (Default: `offsets.radius`.)
        padding : int
            Margin of the canonical frame [voxels]. (Default: ``config['patch']['padding']``.)
        sigma : float
            Standard deviation of the gradient's Gaussian kernel. (Default: ``config['reorientation']['sigma']``.)
        """
        super().__init__()
        if not chk.is_instance(sampler.SphereOffsets)(offsets):
            raise ValueError('Parameter[offsets] must be a SphereOffsets instance.')
        if offsets.dim not in (2, 3):
            raise exception.ConfigurationError(f'Patch reorientation is only defined in 2D/3D, '
                                               f'got {offsets.dim}D.')

        cfg = ripmmarc.config
        self._offsets = offsets
        self._radius = offsets.radius if (radius is None) else radius
        self._padding = cfg.getint('patch', 'padding') if (padding is None) else padding
        self._sigma = cfg.getfloat('reorientation', 'sigma') if (sigma is None) else sigma
        self._order = cfg.getint('reorientation', 'interpolation_order')
        self._center = np.full(offsets.dim, self._radius + self._padding)

        self._frame = canonical_frame(reference, offsets, self._radius, self._padding)
        self._fixed = self._neighborhood(self._frame)

    def _neighborhood(self, frame):
        grad = pyndimage.gaussian_gradient(frame, self._sigma)
        return Neighborhood.from_field(frame, grad, self._center, self._offsets)

    @property
    def frame(self):
        """
        Returns
        -------
        :py:class:`~ripmmarc.field.Field`
            Canonical frame of the reference patch.
        """
        return self._frame

    def __call__(self, patch):
        """
        Align a patch onto the reference.

        Parameters
        ----------
        patch : array-like(float)
            (N_offset,) patch values.

        Returns
        -------
        :py:class:`~ripmmarc.patch.reorient.ReorientationResult`
        """
        frame = canonical_frame(patch, self._offsets, self._radius, self._padding)
        moving = self._neighborhood(frame)
        interpolator = pyndimage.LinearInterpolator(frame, order=self._order)
        return reorient_patch(self._fixed, moving, interpolator)

    @chk.check('progress', chk.is_boolean)
    def reorient_matrix(self, matrix, progress=True):
        """
        Align every patch of a patch matrix, in place.

        Aborted patches keep their original values.

        Parameters
        ----------
        matrix : :py:class:`~ripmmarc.patch.sampler.SamplePatchMatrix`
            Patches to align (:py:class:`~ripmmarc.patch.sampler.MaskedPatchMatrix` also accepted).
        progress : bool
            Show a progress bar.

        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N_patch,) success flags.
        """
        if not chk.is_instance(sampler.SamplePatchMatrix)(matrix):
            raise ValueError('Parameter[matrix] must be a patch matrix.')
        if matrix.shape[1 - matrix.patch_axis] != len(self._offsets):
            raise ValueError('Parameter[matrix] is inconsistent with the patch geometry.')

        success = np.zeros(matrix.N_patch, dtype=bool)
        N_flipped = 0
        for i, vector in ProgressBar(matrix.patches(), total=matrix.N_patch,
                                     disable=not progress):
            res = self(vector)
            if res.patch is not None:
                matrix.set_patch(i, res.patch)
            if not res.success:
                logger.debug(f'Patch {i} reorientation status: {res.status.name}.')
            success[i] = res.success
            N_flipped += res.flipped

        logger.info(f'Reoriented {np.sum(success)}/{matrix.N_patch} patches '
                    f'({N_flipped} flipped).')
        return success

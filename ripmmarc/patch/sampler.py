# #############################################################################
# sampler.py
# ==========
# #############################################################################

"""
Patch sampling and vectorization.

A patch is the set of voxels lying within Euclidean distance :math:`r` of a center voxel.
Every patch is vectorized over the same ordered set of integer offsets, so that vector entry :math:`j` of any two patches refers to the same relative position.
"""

import functools
import itertools
import logging

import numpy as np
import pandas as pd

import ripmmarc
import ripmmarc.exception as exception
import ripmmarc.field as field
import ripmmarc.util.argcheck as chk
import ripmmarc.util.array as array

logger = logging.getLogger(__name__)


class SphereOffsets:
    """
    Ordered voxel offsets of a spherical neighborhood.

    Examples
    --------
    .. doctest::

       >>> from ripmmarc.patch.sampler import sphere_offsets

       >>> so = sphere_offsets(radius=1, dim=2)
       >>> so.offsets
       array([[-1,  0],
              [ 0, -1],
              [ 0,  0],
              [ 0,  1],
              [ 1,  0]])

       >>> so.weights
       array([1., 1., 1., 1., 1.])
    """

    def __init__(self, radius, offsets, weights):
        """
        Parameters
        ----------
        radius : int
            Neighborhood radius [voxels].
        offsets : :py:class:`~numpy.ndarray`
            (N, D) integer offsets.
        weights : :py:class:`~numpy.ndarray`
            (N,) per-offset weights.
        """
        self._radius = radius
        self._offsets = offsets
        self._weights = weights
        self._offsets.setflags(write=False)
        self._weights.setflags(write=False)

    @property
    def radius(self):
        return self._radius

    @property
    def offsets(self):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N, D) integer offsets in lexicographic order.
        """
        return self._offsets

    @property
    def weights(self):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N,) per-offset weights.
        """
        return self._weights

    @property
    def dim(self):
        return self._offsets.shape[1]

    @property
    def index(self):
        """
        Returns
        -------
        :py:class:`~pandas.Index`
            (N,) offset labels, named OFFSET_ID.
        """
        return pd.RangeIndex(len(self), name='OFFSET_ID')

    def __len__(self):
        return len(self._offsets)


@functools.lru_cache(maxsize=None)
def _sphere_offsets(radius, dim):
    side = range(-radius, radius + 1)
    cube = np.array(list(itertools.product(side, repeat=dim)), dtype=int)

    dist = np.sqrt(np.sum(cube ** 2, axis=1))
    offsets = cube[dist <= radius]
    return SphereOffsets(radius, offsets, np.ones(len(offsets)))


@chk.check(dict(radius=chk.is_integer,
                dim=chk.is_integer))
def sphere_offsets(radius, dim):
    """
    Offsets of all voxels within Euclidean distance `radius` of the origin.

    Results are cached: repeated calls return the same object.

    Parameters
    ----------
    radius : int
        Neighborhood radius [voxels].
    dim : int
        Grid dimension.

    Returns
    -------
    :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Offsets in lexicographic order of the enclosing hypercube (last axis varies fastest), with unit weights.
    """
    if radius < 0:
        raise ValueError('Parameter[radius] must be non-negative.')
    if dim < 1:
        raise ValueError('Parameter[dim] must be positive.')

    return _sphere_offsets(int(radius), int(dim))


class SamplePatchMatrix(array.LabeledMatrix):
    """
    Randomly sampled patches used to learn a basis.

    Patches are stored as rows (PATCH_ID), offsets as columns (OFFSET_ID).
    """

    patch_axis = 0

    @chk.check(dict(data=chk.has_reals,
                    patch_idx=chk.is_instance(pd.Index),
                    offset_idx=chk.is_instance(pd.Index)))
    def __init__(self, data, patch_idx, offset_idx):
        """
        Parameters
        ----------
        data : array-like(float)
            (N_patch, N_offset) patch values.
        patch_idx : :py:class:`~pandas.Index`
            (N_patch,) index named PATCH_ID.
        offset_idx : :py:class:`~pandas.Index`
            (N_offset,) index named OFFSET_ID.
        """
        if patch_idx.name != 'PATCH_ID':
            raise ValueError('Parameter[patch_idx] must be named PATCH_ID.')
        if offset_idx.name != 'OFFSET_ID':
            raise ValueError('Parameter[offset_idx] must be named OFFSET_ID.')

        data = np.array(data, dtype=float)
        super().__init__(data, patch_idx, offset_idx, writeable=True)

    @property
    def N_patch(self):
        return self.shape[self.patch_axis]

    def patch(self, i):
        """
        Returns
        -------
        :py:class:`~numpy.ndarray`
            (N_offset,) copy of the `i`-th patch.
        """
        return np.take(self.data, i, axis=self.patch_axis).copy()

    def set_patch(self, i, vector):
        """
        Overwrite the `i`-th patch in place.
        """
        if self.patch_axis == 0:
            self.data[i, :] = vector
        else:
            self.data[:, i] = vector

    def patches(self):
        """
        Iterate over (position, patch) pairs.
        """
        for i in range(self.N_patch):
            yield i, self.patch(i)


class MaskedPatchMatrix(SamplePatchMatrix):
    """
    Patches of every voxel of a mask, used for projection.

    Offsets are stored as rows (OFFSET_ID), patches as columns (VOXEL_ID).
    """

    patch_axis = 1

    @chk.check(dict(data=chk.has_reals,
                    offset_idx=chk.is_instance(pd.Index),
                    voxel_idx=chk.is_instance(pd.Index)))
    def __init__(self, data, offset_idx, voxel_idx):
        """
        Parameters
        ----------
        data : array-like(float)
            (N_offset, N_voxel) patch values.
        offset_idx : :py:class:`~pandas.Index`
            (N_offset,) index named OFFSET_ID.
        voxel_idx : :py:class:`~pandas.Index`
            (N_voxel,) index named VOXEL_ID.
        """
        if offset_idx.name != 'OFFSET_ID':
            raise ValueError('Parameter[offset_idx] must be named OFFSET_ID.')
        if voxel_idx.name != 'VOXEL_ID':
            raise ValueError('Parameter[voxel_idx] must be named VOXEL_ID.')

        data = np.array(data, dtype=float)
        array.LabeledMatrix.__init__(self, data, offset_idx, voxel_idx, writeable=True)


def masked_indices(mask):
    """
    Voxels selected by a mask.

    Parameters
    ----------
    mask : :py:class:`~ripmmarc.field.Field` or array-like
        Mask; voxels with value :math:`\\ge 1` are selected.

    Returns
    -------
    :py:class:`~numpy.ndarray`
        (N_voxel, D) voxel indices in lexicographic order.
    """
    mask = field.as_field(mask)
    return np.argwhere(mask.data >= 1)


def _fits(idx, radius, shape):
    """
    Test if radius-`radius` neighborhoods of voxels `idx` (N, D) lie inside the grid.
    """
    idx = np.asarray(idx)
    upper = np.array(shape) - 1 - radius
    return np.all((idx >= radius) & (idx <= upper), axis=-1)


def _check_mask(f, mask):
    if f.shape != mask.shape:
        raise ValueError(f'Parameters[field, mask] have different shapes: '
                         f'{f.shape} vs. {mask.shape}.')


@chk.check(dict(N_sample=chk.is_integer,
                radius=chk.is_integer,
                max_attempts=chk.allow_None(chk.is_integer)))
def sample_seed_points(N_sample, mask, radius, rng=None, max_attempts=None):
    """
    Draw random patch centers within a mask.

    Centers are drawn uniformly (with replacement) over the whole grid and accepted when they lie in the mask and their full neighborhood lies inside the grid.

    Parameters
    ----------
    N_sample : int
        Number of centers to draw.
    mask : :py:class:`~ripmmarc.field.Field` or array-like
        Mask; voxels with value :math:`\\ge 1` are valid centers.
    radius : int
        Neighborhood radius [voxels].
    rng : :py:class:`~numpy.random.Generator`, int or None
        Random stream or seed.
    max_attempts : int
        Maximum number of draws. (Default: `N_sample` times ``config['sampling']['attempts_per_sample']``.)

    Returns
    -------
    :py:class:`~numpy.ndarray`
        (N_sample, D) voxel indices.

    Raises
    ------
    :py:exc:`~ripmmarc.exception.ConfigurationError`
        If `N_sample` is not positive, the mask is empty or `radius` is too large for the grid.
    :py:exc:`~ripmmarc.exception.InsufficientNeighborhoodError`
        If no masked voxel admits a full neighborhood, or if `max_attempts` draws were not enough.
    """
    mask = field.as_field(mask)
    shape = np.array(mask.shape)

    if N_sample <= 0:
        raise exception.ConfigurationError('Parameter[N_sample] must be positive.')
    if radius < 0:
        raise exception.ConfigurationError('Parameter[radius] must be non-negative.')
    if np.any(2 * radius + 1 > shape):
        raise exception.ConfigurationError(f'Parameter[radius]={radius} is too large '
                                           f'for a grid of shape {tuple(shape)}.')

    valid = mask.data >= 1
    if not np.any(valid):
        raise exception.ConfigurationError('Parameter[mask] does not select any voxel.')
    if not np.any(_fits(np.argwhere(valid), radius, shape)):
        raise exception.InsufficientNeighborhoodError(
            f'No masked voxel is at least {radius} voxels away from the grid border.',
            N_requested=N_sample, N_found=0)

    if max_attempts is None:
        max_attempts = N_sample * ripmmarc.config.getint('sampling', 'attempts_per_sample')
    if max_attempts < N_sample:
        raise exception.ConfigurationError('Parameter[max_attempts] must be at least N_sample.')

    rng = np.random.default_rng(rng)
    logger.info(f'Looking for {N_sample} seed points out of {np.prod(shape)} possible points.')

    seeds = np.zeros((N_sample, len(shape)), dtype=int)
    N_found, N_attempt = 0, 0
    while N_found < N_sample:
        if N_attempt >= max_attempts:
            raise exception.InsufficientNeighborhoodError(
                f'Found {N_found}/{N_sample} valid neighborhoods in {N_attempt} attempts.',
                N_requested=N_sample, N_found=N_found, N_attempt=N_attempt)

        idx = rng.integers(0, shape)
        N_attempt += 1
        if valid[tuple(idx)] and _fits(idx, radius, shape):
            seeds[N_found] = idx
            N_found += 1

    logger.info(f'Found {N_found} seed points in {N_attempt} attempts.')
    return seeds


@chk.check(dict(center=chk.has_integers,
                mean_center=chk.is_boolean))
def extract_patch(f, center, offsets, mean_center=False):
    """
    Vectorize the patch centered at a voxel.

    Parameters
    ----------
    f : :py:class:`~ripmmarc.field.Field` or array-like
        (N_1, ..., N_D) scalar field.
    center : array-like(int)
        (D,) patch center.
    offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Patch geometry.
    mean_center : bool
        Subtract the patch mean.

    Returns
    -------
    :py:class:`~numpy.ndarray`
        (N_offset,) patch values.
    """
    f = field.as_field(f)
    center = np.asarray(center)
    if not chk.has_shape([f.ndim])(center):
        raise ValueError(f'Parameter[center] must contain {f.ndim} indices.')

    idx = center + offsets.offsets
    if not np.all(f.is_inside(idx)):
        raise ValueError(f'Patch centered at {tuple(center)} extends outside the field.')

    vector = f.data[tuple(idx.T)].astype(float)
    if mean_center:
        vector -= vector.mean()
    return vector


@chk.check(dict(seeds=chk.has_integers,
                mean_center=chk.is_boolean))
def extract_sample_patches(f, seeds, offsets, mean_center=False):
    """
    Vectorize patches centered at seed points.

    Parameters
    ----------
    f : :py:class:`~ripmmarc.field.Field` or array-like
        (N_1, ..., N_D) scalar field.
    seeds : array-like(int)
        (N_patch, D) patch centers.
    offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Patch geometry.
    mean_center : bool
        Subtract each patch's own mean.

    Returns
    -------
    :py:class:`~ripmmarc.patch.sampler.SamplePatchMatrix`
        (N_patch, N_offset) patches.
    """
    f = field.as_field(f)
    seeds = np.asarray(seeds)
    if not ((seeds.ndim == 2) and (seeds.shape[1] == f.ndim)):
        raise ValueError(f'Parameter[seeds] must have shape (N_patch, {f.ndim}).')

    data = np.zeros((len(seeds), len(offsets)))
    for i, center in enumerate(seeds):
        data[i] = extract_patch(f, center, offsets, mean_center)

    logger.info(f'Sample patch matrix is {data.shape[0]}x{data.shape[1]}.')
    return SamplePatchMatrix(data,
                             pd.RangeIndex(len(seeds), name='PATCH_ID'),
                             offsets.index)


@chk.check(dict(mean_center=chk.is_boolean,
                padding_mode=chk.is_instance(str)))
def extract_all_patches(f, mask, offsets, mean_center=False, padding_mode='edge'):
    """
    Vectorize the patch of every masked voxel.

    Parameters
    ----------
    f : :py:class:`~ripmmarc.field.Field` or array-like
        (N_1, ..., N_D) scalar field.
    mask : :py:class:`~ripmmarc.field.Field` or array-like
        (N_1, ..., N_D) mask; voxels with value :math:`\\ge 1` are selected.
    offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Patch geometry.
    mean_center : bool
        Subtract each patch's own mean.
    padding_mode : str
        :py:func:`numpy.pad` mode used to extend the field past its borders, so that voxels close to the border still get a full patch.
        The default replicates border voxels.

    Returns
    -------
    patches : :py:class:`~ripmmarc.patch.sampler.MaskedPatchMatrix`
        (N_offset, N_voxel) patches, one column per masked voxel in lexicographic order.
    """
    f, mask = field.as_field(f), field.as_field(mask)
    _check_mask(f, mask)

    r = offsets.radius
    padded = np.pad(f.data.astype(float), r, mode=padding_mode)

    idx = masked_indices(mask)
    logger.info(f'Number of points within mask is {len(idx)}.')

    # (N_offset, N_voxel, D) absolute positions in the padded field.
    pos = idx[np.newaxis, :, :] + offsets.offsets[:, np.newaxis, :] + r
    data = padded[tuple(np.moveaxis(pos, -1, 0))]
    if mean_center and (data.size > 0):
        data -= data.mean(axis=0, keepdims=True)

    logger.info(f'Masked patch matrix is {data.shape[0]}x{data.shape[1]}.')
    return MaskedPatchMatrix(data,
                             offsets.index,
                             pd.RangeIndex(len(idx), name='VOXEL_ID'))

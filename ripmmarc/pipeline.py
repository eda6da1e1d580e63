# #############################################################################
# pipeline.py
# ===========
# #############################################################################

"""
End-to-end RIPMMARC pipeline.

:py:class:`~ripmmarc.pipeline.RIPMMARCBlock` chains the patch-level blocks:

1. sample patch centers within the mask and vectorize their patches;
2. learn an eigen-basis from the sampled patches (or use a basis given by the caller) and lay one eigenpatch out as the *canonical frame*;
3. vectorize the patch of every masked voxel;
4. optionally reorient every patch onto the canonical frame, then relearn the basis from the reoriented samples;
5. project every masked patch onto the final basis.
"""

import enum
import logging

import numpy as np

import ripmmarc
import ripmmarc.core as core
import ripmmarc.exception as exception
import ripmmarc.field as field
import ripmmarc.patch.basis as eigen
import ripmmarc.patch.projection as projection
import ripmmarc.patch.reorient as reorient
import ripmmarc.patch.sampler as sampler
import ripmmarc.util.argcheck as chk

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    """
    Pipeline stages, in execution order.

    Stages between REORIENTED and FRAME_REBUILT only run for rotation-invariant pipelines.
    BASIS_LEARNED and BASIS_RELEARNED only run when the basis is learned.
    """
    SEEDED = 1
    SAMPLE_EXTRACTED = 2
    BASIS_LEARNED = 3
    FRAME_BUILT = 4
    ALL_EXTRACTED = 5
    REORIENTED = 6
    BASIS_RELEARNED = 7
    FRAME_REBUILT = 8
    PROJECTED = 9
    PUBLISHED = 10


class RIPMMARCResult:
    """
    Outputs of :py:class:`~ripmmarc.pipeline.RIPMMARCBlock`.

    Attributes
    ----------
    canonical_frame : :py:class:`~ripmmarc.field.Field`
        Reference eigenpatch laid out on a small grid (primary output).
    basis : :py:class:`~ripmmarc.patch.basis.EigenBasis`
        (N_offset, N_eig) final basis.
    projection : :py:class:`~ripmmarc.patch.projection.Projection`
        Coefficients and residuals of every masked patch.
    seeds : :py:class:`~numpy.ndarray`
        (N_sample, D) sampled patch centers.
    offsets : :py:class:`~ripmmarc.patch.sampler.SphereOffsets`
        Patch geometry.
    mask_index : :py:class:`~numpy.ndarray`
        (N_voxel, D) voxel of each coefficient column.
    sample_success : :py:class:`~numpy.ndarray` or None
        (N_sample,) reorientation success of sampled patches (:py:obj:`None` if not rotation-invariant).
    patch_success : :py:class:`~numpy.ndarray` or None
        (N_voxel,) reorientation success of masked patches (:py:obj:`None` if not rotation-invariant).
    stages : list(:py:class:`~ripmmarc.pipeline.Stage`)
        Stages run, in order.
    """

    def __init__(self, canonical_frame, basis, projection, seeds, offsets, mask_index,
                 like, sample_success=None, patch_success=None, stages=None):
        self.canonical_frame = canonical_frame
        self.basis = basis
        self.projection = projection
        self.seeds = seeds
        self.offsets = offsets
        self.mask_index = mask_index
        self.sample_success = sample_success
        self.patch_success = patch_success
        self.stages = [] if (stages is None) else stages
        self._like = like

    @property
    def variance_explained(self):
        return self.basis.variance_explained

    @property
    def coefficients(self):
        """
        Returns
        -------
        :py:class:`~ripmmarc.util.array.LabeledMatrix`
            (N_eig, N_voxel) coefficients.
        """
        return self.projection.coefficients

    def coefficient_fields(self):
        """
        Coefficient maps.

        Returns
        -------
        list(:py:class:`~ripmmarc.field.Field`)
            (N_eig,) fields with the same geometry as the input field, holding the coefficient of one eigenpatch at every masked voxel (0 elsewhere).
        """
        return [field.paint(row, self.mask_index, self._like)
                for row in self.coefficients.data]


class RIPMMARCBlock(core.Block):
    """
    Rotation-invariant patch eigen-basis learning and projection.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.pipeline import RIPMMARCBlock

       >>> img = np.zeros((24, 24))
       >>> img[:, 12:] = 1

       >>> blk = RIPMMARCBlock(radius=2, N_sample=100, target_variance=0.9, seed=0,
       ...                     progress=False)
       >>> res = blk(img, np.ones_like(img))
       >>> res.coefficients.shape[1]
       576
       >>> res.stages[-1].name
       'PUBLISHED'
    """

    @chk.check(dict(radius=chk.allow_None(chk.is_integer),
                    N_sample=chk.allow_None(chk.is_integer),
                    target_variance=chk.allow_None(chk.is_real),
                    mean_center=chk.allow_None(chk.is_boolean),
                    rotation_invariant=chk.is_boolean,
                    learn_basis=chk.is_boolean,
                    padding=chk.allow_None(chk.is_integer),
                    sigma=chk.allow_None(chk.is_real),
                    max_attempts=chk.allow_None(chk.is_integer),
                    progress=chk.is_boolean))
    def __init__(self, radius=None, N_sample=None, target_variance=None, mean_center=None,
                 rotation_invariant=True, learn_basis=True, basis=None, padding=None,
                 sigma=None, seed=None, max_attempts=None, progress=True):
        """
        Parameters
        ----------
        radius : int
            Patch radius [voxels]. (Default: ``config['patch']['radius']``.)
        N_sample : int
            Number of patches sampled to learn the basis. (Default: ``config['sampling']['N_sample']``.)
        target_variance : float
            Fraction of variance the basis must explain, or number of eigenpatches if :math:`\\ge 1`.
            (Default: ``config['basis']['target_variance']``.)
        mean_center : bool
            Subtract each patch's mean before learning/projection. (Default: ``config['patch']['mean_center']``.)
        rotation_invariant : bool
            Reorient patches onto the canonical frame before learning/projection.
        learn_basis : bool
            Learn the basis from the data. If :py:obj:`False`, `basis` is used instead.
        basis : :py:class:`~ripmmarc.patch.basis.EigenBasis` or array-like(float)
            (N_offset, N_eig) basis used when `learn_basis` is :py:obj:`False`.
        padding : int
            Margin of the canonical frame [voxels]. (Default: ``config['patch']['padding']``.)
        sigma : float
            Standard deviation of the Gaussian kernel used to compute patch gradients.
            (Default: ``config['reorientation']['sigma']``.)
        seed : int, :py:class:`~numpy.random.Generator` or None
            Random stream used to sample patch centers.
        max_attempts : int
            Maximum number of draws to sample patch centers.
            (Default: `N_sample` times ``config['sampling']['attempts_per_sample']``.)
        progress : bool
            Show progress bars during reorientation.
        """
        super().__init__()
        cfg = ripmmarc.config

        self._radius = cfg.getint('patch', 'radius') if (radius is None) else radius
        self._N_sample = cfg.getint('sampling', 'N_sample') if (N_sample is None) else N_sample
        self._mean_center = (cfg.getboolean('patch', 'mean_center')
                             if (mean_center is None) else mean_center)
        self._padding = cfg.getint('patch', 'padding') if (padding is None) else padding
        self._sigma = sigma
        self._rotation_invariant = rotation_invariant
        self._learn_basis = learn_basis
        self._seed = seed
        self._max_attempts = max_attempts
        self._progress = progress

        if self._radius < 0:
            raise exception.ConfigurationError('Parameter[radius] must be non-negative.')
        if self._N_sample <= 0:
            raise exception.ConfigurationError('Parameter[N_sample] must be positive.')
        if self._padding < 0:
            raise exception.ConfigurationError('Parameter[padding] must be non-negative.')

        self._learner = eigen.EigenBasisLearnerBlock(target_variance)
        self._projector = projection.CoefficientProjectorBlock()

        if (not learn_basis) and (basis is None):
            raise exception.ConfigurationError('Parameter[basis] must be provided '
                                               'when the basis is not learned.')
        self._basis = basis
        self._target = self._learner.target_variance

    def __str__(self):
        lines = [('Using rotation-invariant model.' if self._rotation_invariant else
                  'Not using rotation-invariant model.'),
                 ('Mean-centering patches.' if self._mean_center else
                  'Not mean-centering patches.'),
                 f'Patch radius: {self._radius}',
                 f'Number of samples: {self._N_sample}',
                 f'Target variance explained: {self._target}']
        return '\n'.join(lines)

    @property
    def canonical_index(self):
        """
        Returns
        -------
        int
            Eigenpatch used as canonical frame.
            Without mean-centering, the first eigenpatch is close to a constant patch and hence a poor orientation reference: the second one is used instead.
        """
        return 0 if self._mean_center else 1

    def _user_basis(self, offsets):
        E = self._basis
        N_row = E.shape[0] if chk.is_instance(eigen.EigenBasis)(E) else len(np.asarray(E))
        if N_row != len(offsets):
            raise exception.ConfigurationError(
                f'Parameter[basis] has {N_row} rows, but patches of radius '
                f'{self._radius} in {offsets.dim}D contain {len(offsets)} voxels.')

        if not chk.is_instance(eigen.EigenBasis)(E):
            E = eigen.EigenBasis(E, offsets.index)
        return E

    def _reference(self, E):
        k = min(self.canonical_index, E.N_eig - 1)
        return E.eigenpatch(k)

    def __call__(self, f, mask):
        """
        Run the pipeline.

        Parameters
        ----------
        f : :py:class:`~ripmmarc.field.Field` or array-like(float)
            (N_1, ..., N_D) scalar field.
        mask : :py:class:`~ripmmarc.field.Field` or array-like
            (N_1, ..., N_D) mask; voxels with value :math:`\\ge 1` are processed.

        Returns
        -------
        :py:class:`~ripmmarc.pipeline.RIPMMARCResult`

        Raises
        ------
        :py:exc:`~ripmmarc.exception.ConfigurationError`
            If parameters are inconsistent with the input data.
        :py:exc:`~ripmmarc.exception.InsufficientNeighborhoodError`
            If the mask does not contain enough complete patch neighborhoods.
        """
        f, mask = field.as_field(f), field.as_field(mask)
        if f.shape != mask.shape:
            raise ValueError(f'Parameters[f, mask] have different shapes: '
                             f'{f.shape} vs. {mask.shape}.')
        if self._rotation_invariant and (f.ndim not in (2, 3)):
            raise exception.ConfigurationError(f'Rotation-invariant patches are only '
                                               f'defined in 2D/3D, got {f.ndim}D.')

        stages = []

        def advance(stage):
            logger.info(f'Stage {stage.value}/{len(Stage)}: {stage.name}.')
            stages.append(stage)

        offsets = sampler.sphere_offsets(self._radius, f.ndim)
        logger.info(f'Patches contain {len(offsets)} voxels.')
        E = None if self._learn_basis else self._user_basis(offsets)

        seeds = sampler.sample_seed_points(self._N_sample, mask, self._radius,
                                           rng=self._seed,
                                           max_attempts=self._max_attempts)
        advance(Stage.SEEDED)

        sample = sampler.extract_sample_patches(f, seeds, offsets, self._mean_center)
        advance(Stage.SAMPLE_EXTRACTED)

        if self._learn_basis:
            E = self._learner(sample)
            advance(Stage.BASIS_LEARNED)
        reference = self._reference(E)
        frame = reorient.canonical_frame(reference, offsets, self._radius, self._padding)
        advance(Stage.FRAME_BUILT)

        patches = sampler.extract_all_patches(f, mask, offsets, self._mean_center)
        mask_index = sampler.masked_indices(mask)
        advance(Stage.ALL_EXTRACTED)

        sample_success, patch_success = None, None
        if self._rotation_invariant:
            reorienter = reorient.PatchReorienterBlock(reference, offsets,
                                                       radius=self._radius,
                                                       padding=self._padding,
                                                       sigma=self._sigma)
            sample_success = reorienter.reorient_matrix(sample, progress=self._progress)
            patch_success = reorienter.reorient_matrix(patches, progress=self._progress)
            advance(Stage.REORIENTED)

            if self._learn_basis:
                E = self._learner(sample)
                advance(Stage.BASIS_RELEARNED)
                frame = reorient.canonical_frame(self._reference(E), offsets,
                                                 self._radius, self._padding)
                advance(Stage.FRAME_REBUILT)

        proj = self._projector(E, patches)
        advance(Stage.PROJECTED)

        result = RIPMMARCResult(frame, E, proj, seeds, offsets, mask_index, like=f,
                                sample_success=sample_success,
                                patch_success=patch_success,
                                stages=stages)
        advance(Stage.PUBLISHED)
        return result

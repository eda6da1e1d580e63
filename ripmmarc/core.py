# #############################################################################
# core.py
# =======
# #############################################################################

"""
Foundational constructs.

Every processing step of RIPMMARC is a :py:class:`~ripmmarc.core.Block`: patch reorientation, basis learning, coefficient projection and the end-to-end pipeline.
Parameters are fixed at construction (defaults from :py:data:`ripmmarc.config`), data flows through :py:meth:`~ripmmarc.core.Block.__call__`.
"""

import abc


class Block(abc.ABC):
    """
    Callable processing step.

    Subclasses validate and store their parameters in ``__init__()`` and implement :py:meth:`~ripmmarc.core.Block.__call__`.
    A block is ready to process patches as soon as it is constructed, unless documented otherwise.

    Examples
    --------
    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.core import Block

       >>> class MeanCenter(Block):
       ...     def __call__(self, patch):
       ...         patch = np.asarray(patch, dtype=float)
       ...         return patch - patch.mean()

       >>> MeanCenter()([1., 2., 6.])
       array([-2., -1.,  3.])
    """

    def __init__(self):
        super().__init__()

    @abc.abstractmethod
    def __call__(self, *args, **kwargs):
        """
        Process inputs.

        Returns
        -------
        :py:obj:`~typing.Any`
            Output of the processing step (patch, matrix, basis, ...).
        """
        raise NotImplementedError

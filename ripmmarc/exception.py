# #############################################################################
# exception.py
# ============
# #############################################################################

"""
Errors raised by RIPMMARC.

All errors derive from :py:exc:`ValueError` so that callers validating parameters the usual way keep working.
"""


class RIPMMARCError(ValueError):
    """
    Base class of RIPMMARC errors.
    """
    pass


class ConfigurationError(RIPMMARCError):
    """
    Pipeline parameters are inconsistent with each other or with the input data.

    Raised before any sampling takes place, e.g. for a zero sample count, an empty mask or a patch radius larger than the image.
    """
    pass


class InsufficientNeighborhoodError(RIPMMARCError):
    """
    The mask does not contain enough voxels with a complete patch neighborhood.
    """

    def __init__(self, msg, N_requested, N_found, N_attempt=0):
        """
        Parameters
        ----------
        msg : str
            Error message.
        N_requested : int
            Number of neighborhoods requested.
        N_found : int
            Number of valid neighborhoods found before giving up.
        N_attempt : int
            Number of random draws performed.
        """
        super().__init__(msg)
        self.N_requested = N_requested
        self.N_found = N_found
        self.N_attempt = N_attempt

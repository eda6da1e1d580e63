# #############################################################################
# __init__.py
# ===========
# #############################################################################

"""
Top-level RIPMMARC module.

Rotation-Invariant Patch-based eigen-basis learning: learn a compact basis of local
image neighborhoods restricted to a mask, then express every masked voxel as
coefficients against that basis.

Attributes
----------
config : :py:class:`~configparser.ConfigParser`
    RIPMMARC configuration data.
"""

import configparser
import importlib.resources as resources
import logging
import os
import pathlib

logger = logging.getLogger(__name__)


def ___load_config():
    cfg = configparser.ConfigParser()

    # Load default configuration
    cfg_file = resources.files('ripmmarc').joinpath('data').joinpath('ripmmarc.cfg')
    with cfg_file.open(mode='r') as f:
        cfg.read_file(f)

    running_tests = bool(os.environ.get('RIPMMARC_RUNNING_TESTS', False))
    if not running_tests:
        # Let user override defaults with his config file.
        u_cfg_path = pathlib.Path.home() / '.ripmmarc' / 'ripmmarc.cfg'
        if u_cfg_path.exists():
            cfg.read(u_cfg_path)
            logger.info(f'Loaded user config from {u_cfg_path}.')

    return cfg


config = ___load_config()


def reload_config():
    """
    Reload RIPMMARC's configuration file(s).
    """

    global config

    config = ___load_config()

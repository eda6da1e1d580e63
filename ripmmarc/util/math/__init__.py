# #############################################################################
# __init__.py
# ===========
# #############################################################################

"""
Numerical routines.
"""

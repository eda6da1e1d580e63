# #############################################################################
# __init__.py
# ===========
# #############################################################################

"""
Helper tools.
"""

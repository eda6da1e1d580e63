# #############################################################################
# __init__.py
# ===========
# #############################################################################

"""
Patch-level processing tools.

Local appearance is described by *patches*: the values of a field within a sphere of fixed radius around a voxel, vectorized over a shared set of offsets.
Patches flow through 3 stages:

* **Sampling**: draw patch centers within a mask and vectorize their patches (:py:mod:`~ripmmarc.patch.sampler`).

* **Reorientation**: rotate each patch so that its dominant gradient directions line up with those of a reference patch (:py:mod:`~ripmmarc.patch.reorient`).

* **Learning and projection**: learn an orthonormal basis of *eigenpatches* from sampled patches (:py:mod:`~ripmmarc.patch.basis`), then express every masked patch as coefficients against it (:py:mod:`~ripmmarc.patch.projection`).
"""

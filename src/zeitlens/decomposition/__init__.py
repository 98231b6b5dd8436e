"""Matrix decompositions of discretised mean curves."""

from zeitlens.decomposition.spc import ComponentSet, sparse_components, svd_components

__all__ = ["ComponentSet", "sparse_components", "svd_components"]

"Features Submodule"

from .base import Feature, FeatureRef, RefLike, iter_refs, ref_id

__all__ = [
    "Feature",
    "FeatureRef",
    "RefLike",
    "iter_refs",
    "ref_id",
]

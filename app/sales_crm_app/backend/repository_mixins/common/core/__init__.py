from .frame_utils import RepositoryCoreFrameMixin
from .health import RepositoryCoreHealthMixin

__all__ = [
    "RepositoryCoreFrameMixin",
    "RepositoryCoreHealthMixin",
]

"""tpibox - Turing Pi node image provisioning through the BMC."""

from importlib.metadata import distribution

from .image.models import LocalImageSource, RemoteImageSource
from .provision.models import ProvisionResult


__version__ = distribution(__package__ or "tpibox").version

__all__ = [
    "LocalImageSource",
    "ProvisionResult",
    "RemoteImageSource",
    "__version__",
]

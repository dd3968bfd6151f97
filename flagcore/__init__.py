"""Client-side evaluation core for feature flags and experiments."""
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version


try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    __version__ = "unknown"

"""logrecon - reconciles declared log-collection configs against a managed logging control plane."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("logrecon")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

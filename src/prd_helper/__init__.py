"""
Top-level package for prd_helper.

prd_helper turns staged or branch changes in a Git repository into a
structured pull request description. The command line entry point lives
in :mod:`prd_helper.cli`.
"""

__all__ = ["__version__"]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("prd-helper")
except PackageNotFoundError:
    # Running from a source checkout without an installed distribution
    __version__ = "0.1.0.dev0"

"""
pam - Declarative package manager for editor plugins.

This is the main package that exports the public API: declare a package
tree once, then install, upgrade, clean and inspect it.
"""

__version__ = "0.1.0"

from pam.config import ConfigError, PamConfig
from pam.manager import Pam, PamError, UnknownCommandError
from pam.package.fetch import FetchOutcome, FetchStatus
from pam.package.manifest import PackageSpec
from pam.package.reconciler import ReconcileContext, Reconciler, RunReport

__all__ = [
    "__version__",
    "ConfigError",
    "FetchOutcome",
    "FetchStatus",
    "PackageSpec",
    "Pam",
    "PamConfig",
    "PamError",
    "ReconcileContext",
    "Reconciler",
    "RunReport",
    "UnknownCommandError",
]

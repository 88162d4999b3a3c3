"""Resolve Kubernetes API credentials from kubeconfig files or the pod's
service account.
"""

__all__ = [
    "KubeConfigReader",
    "ResolvedKubeConfig",
    "__version__",
    "load_kube_config",
    "version_info",
]

from importlib.metadata import PackageNotFoundError, version

from .kubeconfig import KubeConfigReader, load_kube_config
from .models import ResolvedKubeConfig

__version__: str
"""The version string of kubecreds (PEP 440 / SemVer compatible)."""

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    __version__ = "0.0.0"

version_info = __version__.split(".")
"""The decomposed version, split across "``.``."

Use this for version comparison.
"""

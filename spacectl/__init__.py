"""
spacectl builds container images on a remote BuildKit daemon and manages namespaces of a development platform.

The interesting piece is :class:`spacectl.buildkit.auth.AuthRelay`, which answers the build daemon's registry
credential requests from two sources: the operator's platform session (for the platform's own registry) and the
local docker credential store (for everything else).
"""

from spacectl.loggers import logger

__version__ = "0.0.0+develop"

__all__ = ["__version__", "logger"]

"""
=====================
Configuration
=====================

spacectl reads its settings from environment variables and an optional ini style config file. Environment variables
always win and follow the pattern ``SPACECTL_<SECTION>_<OPTION>``. The config file is looked up in this order:

1. the ``--config`` option of the CLI
2. the ``SPACECTL_CONFIG`` environment variable
3. ``./spacectl.config``
4. ``~/.spacectl/config``

Example::

    [platform]
    url = https://cloud.example.com
    registry = registry.cloud.example.com
    buildkit = tcp://buildkit.cloud.example.com:1234

    [build]
    buildctl = /usr/local/bin/buildctl
    progress = plain

.. autosummary::

   PlatformConfig
   BuildConfig
   ConfigFile
"""

from __future__ import annotations

import typing
from dataclasses import dataclass

from spacectl.configuration import internal as _internal
from spacectl.configuration.file import ConfigEntry, ConfigFile, get_config_file, set_if_exists

DEFAULT_PLATFORM_URL = "https://cloud.spacectl.dev"


@dataclass(init=True, repr=True, eq=True, frozen=True)
class PlatformConfig(object):
    """
    Settings to talk to the platform API and its registry.

    :param url: Base URL of the platform API
    :param registry: Host of the platform registry, used when no session provides one
    :param buildkit: Address of the BuildKit daemon, used when no session provides one
    :param insecure: Skip TLS verification when talking to the API
    :param timeout: Seconds to wait for an API response
    """

    url: str = DEFAULT_PLATFORM_URL
    registry: typing.Optional[str] = None
    buildkit: typing.Optional[str] = None
    insecure: bool = False
    timeout: int = 30

    @classmethod
    def auto(cls, config_file: typing.Optional[typing.Union[str, ConfigFile]] = None) -> PlatformConfig:
        """
        Reads from Config file, and overrides from Environment variables. Refer to ConfigEntry for details
        """
        config_file = get_config_file(config_file)
        kwargs = {}
        kwargs = set_if_exists(kwargs, "url", _internal.Platform.URL.read(config_file))
        kwargs = set_if_exists(kwargs, "registry", _internal.Platform.REGISTRY.read(config_file))
        kwargs = set_if_exists(kwargs, "buildkit", _internal.Platform.BUILDKIT.read(config_file))
        kwargs = set_if_exists(kwargs, "insecure", _internal.Platform.INSECURE.read(config_file))
        kwargs = set_if_exists(kwargs, "timeout", _internal.Platform.TIMEOUT.read(config_file))
        return PlatformConfig(**kwargs)


@dataclass(init=True, repr=True, eq=True, frozen=True)
class BuildConfig(object):
    """
    Settings for driving the build daemon.

    :param buildctl: buildctl executable
    :param progress: progress output mode passed to buildctl (auto, plain, tty)
    :param relay_workers: threads serving credential requests while a build runs
    """

    buildctl: str = "buildctl"
    progress: str = "plain"
    relay_workers: int = 4

    @classmethod
    def auto(cls, config_file: typing.Optional[typing.Union[str, ConfigFile]] = None) -> BuildConfig:
        config_file = get_config_file(config_file)
        kwargs = {}
        kwargs = set_if_exists(kwargs, "buildctl", _internal.Build.BUILDCTL.read(config_file))
        kwargs = set_if_exists(kwargs, "progress", _internal.Build.PROGRESS.read(config_file))
        kwargs = set_if_exists(kwargs, "relay_workers", _internal.Build.RELAY_WORKERS.read(config_file))
        return BuildConfig(**kwargs)


__all__ = [
    "BuildConfig",
    "ConfigEntry",
    "ConfigFile",
    "PlatformConfig",
    "get_config_file",
    "set_if_exists",
]

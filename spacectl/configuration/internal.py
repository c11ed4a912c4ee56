from spacectl.configuration.file import ConfigEntry, LegacyConfigEntry


class Platform(object):
    SECTION = "platform"
    URL = ConfigEntry(LegacyConfigEntry(SECTION, "url"))
    """
    Base URL of the platform API, e.g. https://cloud.example.com
    """

    REGISTRY = ConfigEntry(LegacyConfigEntry(SECTION, "registry"))
    """
    Host of the platform's own container registry. Images tagged under this host are pushed with the session token.
    """

    BUILDKIT = ConfigEntry(LegacyConfigEntry(SECTION, "buildkit"))
    INSECURE = ConfigEntry(LegacyConfigEntry(SECTION, "insecure", bool))
    TIMEOUT = ConfigEntry(LegacyConfigEntry(SECTION, "timeout", int))


class Build(object):
    SECTION = "build"
    BUILDCTL = ConfigEntry(LegacyConfigEntry(SECTION, "buildctl"))
    """
    Name or path of the buildctl executable used to talk to the build daemon.
    """

    PROGRESS = ConfigEntry(LegacyConfigEntry(SECTION, "progress"))
    RELAY_WORKERS = ConfigEntry(LegacyConfigEntry(SECTION, "relay_workers", int))

import pytest

_ISOLATED_ENV_VARS = [
    "BUILDKIT_HOST",
    "DOCKER_CONFIG",
    "SPACECTL_AUTH_RELAY_ADDR",
    "SPACECTL_CONFIG",
    "SPACECTL_TOKEN",
    "SPACECTL_PLATFORM_URL",
    "SPACECTL_PLATFORM_REGISTRY",
    "SPACECTL_PLATFORM_BUILDKIT",
    "SPACECTL_BUILD_BUILDCTL",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Keeps tests away from the real session, config and docker credentials of the machine running them.
    """
    for name in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("SPACECTL_HOME", str(tmp_path / "spacectl-home"))
    monkeypatch.chdir(tmp_path)
    yield

import json

import pytest

from spacectl.buildkit.docker_config import AuthConfig, DockerConfigFile


@pytest.fixture
def write_docker_config(tmp_path):
    def _write(data, name="config.json") -> str:
        p = tmp_path / "docker" / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(data if isinstance(data, str) else json.dumps(data))
        return str(p)

    return _write


@pytest.fixture
def docker_store():
    return DockerConfigFile(
        auths={
            "india:5000": AuthConfig(username="u", password="p", server_address="india:5000"),
            "https://index.docker.io/v1/": AuthConfig(username="hubuser", password="hubpass"),
            "token.example.com": AuthConfig(username="ignored", password="ignored", identity_token="idtok"),
            "registry.home": AuthConfig(username="localuser", password="localpass", identity_token="localtok"),
        }
    )

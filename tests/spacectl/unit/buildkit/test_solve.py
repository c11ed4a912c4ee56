import dataclasses
import io
import os
import stat
from unittest.mock import MagicMock, patch

import pytest

from spacectl.buildkit.auth import AuthRelay
from spacectl.buildkit.relay_server import RELAY_ADDR_ENV_VAR
from spacectl.buildkit.solve import (
    FRONTEND,
    ExportEntry,
    SolveOpt,
    get_buildkit_host,
    get_home_registry,
    get_solve_opt,
    is_home_registry_image,
    read_digest,
    run_build,
    solve,
)
from spacectl.clients.session import Session
from spacectl.configuration import BuildConfig, PlatformConfig
from spacectl.exceptions.system import BuildError
from spacectl.exceptions.user import BuildContextError, NotLoggedInError

SESSION = Session(
    id="user-id", username="user", url="https://cloud.example.com", registry="registry.home", buildkit="tcp://bk:1234"
)


@pytest.fixture
def build_ctx(tmp_path):
    ctx = tmp_path / "app"
    ctx.mkdir()
    (ctx / "Dockerfile").write_text("FROM alpine\n")
    return str(ctx)


@pytest.fixture
def empty_docker_config(tmp_path):
    p = tmp_path / "empty-docker-config.json"
    p.write_text("{}")
    return str(p)


def test_get_buildkit_host(monkeypatch):
    cfg = PlatformConfig(buildkit="tcp://from-config:1234")
    assert get_buildkit_host(SESSION, cfg) == "tcp://bk:1234"
    assert get_buildkit_host(None, cfg) == "tcp://from-config:1234"

    monkeypatch.setenv("BUILDKIT_HOST", "tcp://from-env:1234")
    assert get_buildkit_host(SESSION, cfg) == "tcp://from-env:1234"


def test_get_buildkit_host_not_set():
    with pytest.raises(NotLoggedInError):
        get_buildkit_host(None, PlatformConfig())


def test_get_home_registry():
    assert get_home_registry(SESSION) == "registry.home"
    assert get_home_registry(SESSION, PlatformConfig()) == "registry.home"
    assert get_home_registry(SESSION, PlatformConfig(registry="registry.other")) == "registry.other"
    assert get_home_registry(dataclasses.replace(SESSION, registry=""), PlatformConfig(registry="r.cfg")) == "r.cfg"
    assert get_home_registry(None) is None


def test_is_home_registry_image():
    assert is_home_registry_image("registry.home/user/app:1", "registry.home")
    assert not is_home_registry_image("docker.io/user/app:1", "registry.home")
    assert not is_home_registry_image("", "registry.home")
    assert not is_home_registry_image("registry.home/user/app:1", None)


def test_get_solve_opt_defaults(build_ctx):
    opt = get_solve_opt(build_ctx, None, None)
    assert opt.local_dirs == {"context": build_ctx, "dockerfile": build_ctx}
    assert opt.frontend == FRONTEND
    assert opt.frontend_attrs == {"filename": "Dockerfile"}
    assert opt.exports == []
    assert opt.cache_exports == []
    assert opt.cache_imports == []
    assert opt.relay is None


def test_get_solve_opt_missing_dockerfile(tmp_path):
    with pytest.raises(BuildContextError):
        get_solve_opt(str(tmp_path), None, None)


def test_get_solve_opt_with_tag(build_ctx, tmp_path):
    other = tmp_path / "other.Dockerfile"
    other.write_text("FROM alpine\n")
    opt = get_solve_opt(build_ctx, str(other), "docker.io/user/app:1", target="prod", no_cache=True, session=SESSION)

    assert opt.local_dirs["dockerfile"] == str(tmp_path)
    assert opt.frontend_attrs == {"filename": "other.Dockerfile", "target": "prod", "no-cache": ""}
    assert opt.exports == [ExportEntry("image", {"name": "docker.io/user/app:1", "push": "true"})]
    assert opt.cache_exports == [ExportEntry("inline")]
    assert opt.cache_imports == [ExportEntry("registry", {"ref": "docker.io/user/app:1"})]
    # not the home registry, the build client uses the local docker credentials
    assert opt.relay is None


@patch("spacectl.buildkit.solve.get_token")
def test_get_solve_opt_home_registry_attaches_relay(mock_get_token, build_ctx, empty_docker_config):
    mock_get_token.return_value = "tok123"
    opt = get_solve_opt(build_ctx, None, "registry.home/user/app:1", session=SESSION, docker_config=empty_docker_config)

    mock_get_token.assert_called_once_with("https://cloud.example.com")
    assert isinstance(opt.relay, AuthRelay)
    assert opt.relay.home_registry == "registry.home"
    creds = opt.relay.resolve_credentials("registry.home")
    assert (creds.username, creds.secret) == ("user-id", "tok123")


@patch("spacectl.buildkit.solve.get_token")
def test_get_solve_opt_registry_from_config(mock_get_token, build_ctx, empty_docker_config):
    mock_get_token.return_value = "tok123"
    session = dataclasses.replace(SESSION, registry="")
    cfg = PlatformConfig(registry="registry.cfg")

    opt = get_solve_opt(build_ctx, None, "registry.cfg/user/app:1", session=session, docker_config=empty_docker_config)
    assert opt.relay is None

    opt = get_solve_opt(
        build_ctx,
        None,
        "registry.cfg/user/app:1",
        session=session,
        docker_config=empty_docker_config,
        platform_cfg=cfg,
    )
    assert opt.relay.home_registry == "registry.cfg"
    creds = opt.relay.resolve_credentials("registry.cfg")
    assert (creds.username, creds.secret) == ("user-id", "tok123")


def test_get_solve_opt_registry_from_config_without_session(build_ctx):
    with pytest.raises(NotLoggedInError):
        get_solve_opt(
            build_ctx, None, "registry.cfg/user/app:1", platform_cfg=PlatformConfig(registry="registry.cfg")
        )


@patch("spacectl.buildkit.solve.get_token")
def test_get_solve_opt_home_registry_without_token(mock_get_token, build_ctx):
    mock_get_token.side_effect = NotLoggedInError("no token")
    with pytest.raises(NotLoggedInError):
        get_solve_opt(build_ctx, None, "registry.home/user/app:1", session=SESSION)


def test_buildctl_args():
    opt = SolveOpt(
        local_dirs={"context": "/src", "dockerfile": "/src"},
        frontend_attrs={"filename": "Dockerfile", "no-cache": ""},
        exports=[ExportEntry("image", {"name": "r/app:1", "push": "true"})],
        cache_exports=[ExportEntry("inline")],
        cache_imports=[ExportEntry("registry", {"ref": "r/app:1"})],
    )
    assert opt.buildctl_args() == [
        "build",
        "--frontend",
        "dockerfile.v0",
        "--local",
        "context=/src",
        "--local",
        "dockerfile=/src",
        "--opt",
        "filename=Dockerfile",
        "--opt",
        "no-cache=",
        "--output",
        "type=image,name=r/app:1,push=true",
        "--export-cache",
        "type=inline",
        "--import-cache",
        "type=registry,ref=r/app:1",
    ]


def _fake_buildctl(tmp_path, exit_code=0, digest="sha256:abc"):
    script = tmp_path / "buildctl"
    script.write_text(
        "#!/bin/sh\n"
        'env_file="$(dirname "$0")/buildctl.env"\n'
        'echo "DOCKER_CONFIG=$DOCKER_CONFIG" > "$env_file"\n'
        "while [ $# -gt 0 ]; do\n"
        '  if [ "$1" = "--metadata-file" ]; then\n'
        f"    echo '{{\"containerimage.digest\": \"{digest}\"}}' > \"$2\"\n"
        "  fi\n"
        "  shift\n"
        "done\n"
        'echo "#1 [internal] load build definition from Dockerfile" >&2\n'
        'echo "#1 DONE 0.0s" >&2\n'
        f"exit {exit_code}\n"
    )
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


def test_solve_returns_digest(tmp_path):
    buildctl = _fake_buildctl(tmp_path)
    console = MagicMock()
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})

    digest = solve("tcp://bk:1234", opt, BuildConfig(buildctl=buildctl), console=console)

    assert digest == "sha256:abc"
    printed = [c.args[0] for c in console.print.call_args_list]
    assert printed == ["#1 [internal] load build definition from Dockerfile", "#1 DONE 0.0s"]


def test_solve_failure(tmp_path):
    buildctl = _fake_buildctl(tmp_path, exit_code=3)
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})
    with pytest.raises(BuildError) as e:
        solve("tcp://bk:1234", opt, BuildConfig(buildctl=buildctl), console=MagicMock())
    assert e.value.returncode == 3


def test_solve_missing_buildctl(tmp_path):
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})
    with pytest.raises(BuildError):
        solve("tcp://bk:1234", opt, BuildConfig(buildctl=str(tmp_path / "nope")), console=MagicMock())


def _script(tmp_path, body):
    script = tmp_path / "buildctl"
    script.write_text("#!/bin/sh\n" + body)
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


def test_solve_progress_with_undecodable_bytes(tmp_path):
    # well over a pipe buffer of output after a byte that is not utf-8
    buildctl = _script(
        tmp_path,
        "printf '\\377' >&2\n"
        "i=0\n"
        "while [ $i -lt 5000 ]; do\n"
        '  echo "#2 RUN make all: compiling module number $i" >&2\n'
        "  i=$((i+1))\n"
        "done\n",
    )
    console = MagicMock()
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})

    assert solve("tcp://bk:1234", opt, BuildConfig(buildctl=buildctl), console=console) == ""

    printed = [c.args[0] for c in console.print.call_args_list]
    assert len(printed) == 5000
    assert printed[0] == "\ufffd#2 RUN make all: compiling module number 0"
    assert printed[-1] == "#2 RUN make all: compiling module number 4999"


def test_solve_stops_build_when_progress_fails(tmp_path):
    buildctl = _script(tmp_path, 'echo "#1 started" >&2\nexec sleep 60\n')
    console = MagicMock()
    console.print.side_effect = RuntimeError("terminal gone")
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})

    with pytest.raises(RuntimeError, match="terminal gone"):
        solve("tcp://bk:1234", opt, BuildConfig(buildctl=buildctl), console=console)


def test_read_digest(tmp_path):
    metadata = tmp_path / "metadata.json"
    assert read_digest(str(metadata)) == ""

    metadata.write_text('{"containerimage.digest": "sha256:abc"}')
    assert read_digest(str(metadata)) == "sha256:abc"

    metadata.write_text("{not json")
    assert read_digest(str(metadata)) == ""

    metadata.write_text('["sha256:abc"]')
    assert read_digest(str(metadata)) == ""


def test_solve_without_relay_keeps_docker_config(tmp_path, monkeypatch):
    monkeypatch.setenv("DOCKER_CONFIG", "/users/own/docker")
    buildctl = _fake_buildctl(tmp_path)
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)})
    solve("tcp://bk:1234", opt, BuildConfig(buildctl=buildctl), console=MagicMock())
    assert (tmp_path / "buildctl.env").read_text().strip() == "DOCKER_CONFIG=/users/own/docker"


@patch("spacectl.buildkit.solve.subprocess.Popen")
def test_solve_with_relay_points_client_at_relay(mock_popen, docker_store, tmp_path):
    proc = mock_popen.return_value
    proc.wait.return_value = 0
    proc.stderr = io.StringIO("#1 DONE\n")

    relay = AuthRelay("registry.home", "homeuser", "tok123", docker_store)
    opt = SolveOpt(local_dirs={"context": str(tmp_path), "dockerfile": str(tmp_path)}, relay=relay)
    assert solve("tcp://bk:1234", opt, BuildConfig(), console=MagicMock()) == ""

    command = mock_popen.call_args.args[0]
    env = mock_popen.call_args.kwargs["env"]
    assert command[:3] == ["buildctl", "--addr", "tcp://bk:1234"]
    assert env[RELAY_ADDR_ENV_VAR].startswith("unix://")
    assert env["DOCKER_CONFIG"] != os.environ.get("DOCKER_CONFIG")


@patch("spacectl.buildkit.solve.solve")
@patch("spacectl.buildkit.solve.load_session")
def test_run_build(mock_load_session, mock_solve, build_ctx):
    mock_load_session.return_value = SESSION
    mock_solve.return_value = "sha256:abc"

    digest = run_build(build_ctx, tag="docker.io/user/app:1", platform_cfg=PlatformConfig(), build_cfg=BuildConfig())

    assert digest == "sha256:abc"
    host, opt, _ = mock_solve.call_args.args
    assert host == "tcp://bk:1234"
    assert opt.exports[0].attrs["name"] == "docker.io/user/app:1"

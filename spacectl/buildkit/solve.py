from __future__ import annotations

import contextlib
import json
import os
import subprocess
import tempfile
import typing
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import click
from rich.console import Console

from spacectl.buildkit.auth import AuthRelay
from spacectl.buildkit.relay_server import serve_relay
from spacectl.clients.session import Session, get_token, load_session
from spacectl.configuration import BuildConfig, PlatformConfig
from spacectl.exceptions.system import BuildError
from spacectl.exceptions.user import BuildContextError, NotLoggedInError
from spacectl.loggers import logger

FRONTEND = "dockerfile.v0"
BUILDKIT_HOST_ENV_VAR = "BUILDKIT_HOST"
DIGEST_KEY = "containerimage.digest"


@dataclass
class ExportEntry(object):
    type: str
    attrs: typing.Dict[str, str] = field(default_factory=dict)

    def to_flag_value(self) -> str:
        return ",".join([f"type={self.type}"] + [f"{k}={v}" for k, v in self.attrs.items()])


@dataclass
class SolveOpt(object):
    """
    What to build and where to send it. ``relay`` is set when the build pushes to the home registry; otherwise the
    build client reads the local docker credentials on its own.
    """

    local_dirs: typing.Dict[str, str]
    frontend: str = FRONTEND
    frontend_attrs: typing.Dict[str, str] = field(default_factory=dict)
    exports: typing.List[ExportEntry] = field(default_factory=list)
    cache_exports: typing.List[ExportEntry] = field(default_factory=list)
    cache_imports: typing.List[ExportEntry] = field(default_factory=list)
    relay: typing.Optional[AuthRelay] = None

    def buildctl_args(self) -> typing.List[str]:
        args = ["build", "--frontend", self.frontend]
        for name, path in self.local_dirs.items():
            args.extend(["--local", f"{name}={path}"])
        for k, v in self.frontend_attrs.items():
            args.extend(["--opt", f"{k}={v}"])
        for e in self.exports:
            args.extend(["--output", e.to_flag_value()])
        for e in self.cache_exports:
            args.extend(["--export-cache", e.to_flag_value()])
        for e in self.cache_imports:
            args.extend(["--import-cache", e.to_flag_value()])
        return args


def get_buildkit_host(session: typing.Optional[Session], cfg: PlatformConfig) -> str:
    """
    Returns the address of the build daemon: ``BUILDKIT_HOST``, then the session, then the config file.
    """
    host = os.environ.get(BUILDKIT_HOST_ENV_VAR)
    if host:
        return host
    if session is not None and session.buildkit:
        return session.buildkit
    if cfg.buildkit:
        return cfg.buildkit
    raise NotLoggedInError(
        f"'{BUILDKIT_HOST_ENV_VAR}' not set. You can run 'spacectl login' to run your builds in the platform"
    )


def get_home_registry(
    session: typing.Optional[Session], cfg: typing.Optional[PlatformConfig] = None
) -> typing.Optional[str]:
    """
    Returns the platform registry: ``[platform] registry`` when configured, otherwise the one the session was issued
    with.
    """
    if cfg is not None and cfg.registry:
        return cfg.registry
    if session is not None and session.registry:
        return session.registry
    return None


def is_home_registry_image(image_tag: typing.Optional[str], home_registry: typing.Optional[str]) -> bool:
    return bool(image_tag and home_registry and image_tag.startswith(home_registry))


def get_solve_opt(
    build_ctx: str,
    file: typing.Optional[str],
    image_tag: typing.Optional[str],
    target: typing.Optional[str] = None,
    no_cache: bool = False,
    session: typing.Optional[Session] = None,
    docker_config: typing.Optional[str] = None,
    platform_cfg: typing.Optional[PlatformConfig] = None,
) -> SolveOpt:
    """
    Builds the solve options for a Dockerfile build of ``build_ctx``.

    :raises BuildContextError: the Dockerfile does not exist
    :raises NotLoggedInError: the image goes to the home registry but no session token is available
    :raises CredentialsLoadError: the local docker credentials could not be read
    """
    if not file:
        file = os.path.join(build_ctx, "Dockerfile")
    if not os.path.exists(file):
        raise BuildContextError(file, "Dockerfile does not exist")

    opt = SolveOpt(
        local_dirs={"context": build_ctx, "dockerfile": os.path.dirname(file) or "."},
        frontend_attrs={"filename": os.path.basename(file)},
    )
    if target:
        opt.frontend_attrs["target"] = target
    if no_cache:
        opt.frontend_attrs["no-cache"] = ""

    home_registry = get_home_registry(session, platform_cfg)
    if is_home_registry_image(image_tag, home_registry):
        if session is None:
            raise NotLoggedInError(f"pushing to {home_registry} needs a session. Did you run 'spacectl login'?")
        try:
            token = get_token(session.url)
        except NotLoggedInError as e:
            raise NotLoggedInError("failed to read the session token. Did you run 'spacectl login'?") from e
        opt.relay = AuthRelay(home_registry, session.id, token, docker_config)

    if image_tag:
        opt.exports.append(ExportEntry("image", {"name": image_tag, "push": "true"}))
        opt.cache_exports.append(ExportEntry("inline"))
        opt.cache_imports.append(ExportEntry("registry", {"ref": image_tag}))

    return opt


def display_progress(stream: typing.IO[str], console: Console):
    for line in stream:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def read_digest(metadata_file: str) -> str:
    """
    Returns the image digest recorded by buildctl, or an empty string when there is none.
    """
    if not os.path.exists(metadata_file):
        return ""
    with open(metadata_file, encoding="utf-8") as fh:
        try:
            metadata = json.load(fh)
        except ValueError as e:
            logger.warning(f"Failed to read the build metadata {metadata_file}: {e}")
            return ""
    if not isinstance(metadata, dict):
        return ""
    return metadata.get(DIGEST_KEY, "")


def solve(
    buildkit_host: str,
    opt: SolveOpt,
    build_cfg: BuildConfig,
    console: typing.Optional[Console] = None,
) -> str:
    """
    Runs ``buildctl`` against ``buildkit_host`` and returns the digest of the pushed image, if any.

    The build result and the progress stream are awaited concurrently. When ``opt.relay`` is set it is served for
    the duration of the build and the build client is pointed at it.
    """
    console = console or Console(stderr=True)
    with tempfile.TemporaryDirectory(prefix="spacectl-build-") as tmp_dir, contextlib.ExitStack() as stack:
        env = dict(os.environ)
        if opt.relay is not None:
            handle = stack.enter_context(serve_relay(opt.relay, max_workers=build_cfg.relay_workers))
            env.update(handle.env())

        metadata_file = os.path.join(tmp_dir, "metadata.json")
        command = [build_cfg.buildctl, "--addr", buildkit_host]
        command.extend(opt.buildctl_args())
        command.extend(["--progress", build_cfg.progress, "--metadata-file", metadata_file])
        logger.debug(f"Run command: {' '.join(command)}")

        try:
            # Build steps print whatever their commands print, undecodable bytes must not stop the progress reader
            proc = subprocess.Popen(command, env=env, stderr=subprocess.PIPE, encoding="utf-8", errors="replace")
        except FileNotFoundError as e:
            raise BuildError(f"'{build_cfg.buildctl}' not found, install buildctl or set [build] buildctl") from e

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="spacectl-build") as pool:
            result = pool.submit(proc.wait)
            progress = pool.submit(display_progress, proc.stderr, console)
            try:
                progress.result()
                returncode = result.result()
            finally:
                # Nothing drains the pipe once the progress reader is gone, buildctl would block on it forever
                if proc.poll() is None:
                    logger.debug("Stopping buildctl")
                    proc.kill()

        if returncode != 0:
            raise BuildError(f"build failed with exit code {returncode}", returncode=returncode)
        return read_digest(metadata_file)


def run_build(
    path: str,
    file: typing.Optional[str] = None,
    tag: typing.Optional[str] = None,
    target: typing.Optional[str] = None,
    no_cache: bool = False,
    platform_cfg: typing.Optional[PlatformConfig] = None,
    build_cfg: typing.Optional[BuildConfig] = None,
) -> str:
    """
    Builds (and, with a tag, pushes) the image for ``path`` and returns its digest.
    """
    platform_cfg = platform_cfg or PlatformConfig.auto()
    build_cfg = build_cfg or BuildConfig.auto()
    session = load_session()

    buildkit_host = get_buildkit_host(session, platform_cfg)
    if session is not None and buildkit_host == session.buildkit:
        click.secho(f"Running your build in {session.url}...", fg="blue")
    else:
        click.secho(f"Running your build in {buildkit_host}...", fg="blue")

    opt = get_solve_opt(path, file, tag, target, no_cache, session=session, platform_cfg=platform_cfg)
    if not tag:
        click.secho("Your image won't be pushed. To push your image specify the flag '-t'.", fg="yellow")

    return solve(buildkit_host, opt, build_cfg)

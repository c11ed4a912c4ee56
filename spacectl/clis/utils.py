import types
import typing
from dataclasses import dataclass

import rich_click as click
from rich.console import Console
from rich.traceback import Traceback

from spacectl.configuration import BuildConfig, PlatformConfig
from spacectl.exceptions.base import SpaceException
from spacectl.exceptions.user import SpaceUserException
from spacectl.loggers import get_level_from_cli_verbosity, logger


@dataclass
class CliContext(object):
    """
    Options of the top level ``spacectl`` command, available to every subcommand as ``ctx.obj``.
    """

    config: typing.Optional[str] = None
    verbose: int = 0

    def platform_config(self) -> PlatformConfig:
        return PlatformConfig.auto(self.config)

    def build_config(self) -> BuildConfig:
        return BuildConfig.auto(self.config)


pass_cli_context = click.make_pass_decorator(CliContext, ensure=True)


def remove_unwanted_traceback_frames(
    tb: types.TracebackType, unwanted_module_names: typing.List[str]
) -> types.TracebackType:
    """
    Custom function to remove certain frames from the traceback.
    """
    frames = []
    while tb is not None:
        frame = tb.tb_frame
        if not any(module_name in frame.f_code.co_filename for module_name in unwanted_module_names):
            frames.append((frame, tb.tb_lasti, tb.tb_lineno))
        tb = tb.tb_next

    # Recreate the traceback without unwanted frames
    tb_next = None
    for frame, tb_lasti, tb_lineno in reversed(frames):
        tb_next = types.TracebackType(tb_next, frame, tb_lasti, tb_lineno)

    return tb_next


def pretty_print_traceback(e: Exception, verbosity: int = 1):
    """
    Print the traceback in a nice formatted way, dropping framework frames unless verbosity is high.
    """
    console = Console(stderr=True)
    unwanted_module_names = ["importlib", "click", "rich_click", "concurrent"]

    if verbosity < 2:
        new_tb = remove_unwanted_traceback_frames(e.__traceback__, unwanted_module_names)
        console.print(Traceback.from_exception(type(e), e, new_tb))
    else:
        console.print(Traceback.from_exception(type(e), e, e.__traceback__))


def pretty_print_exception(e: Exception, verbosity: int = 0):
    """
    User errors are printed as a one line message, everything else with its traceback when verbose.
    """
    if isinstance(e, click.exceptions.Exit):
        raise e

    if isinstance(e, click.ClickException):
        raise e

    if isinstance(e, SpaceException):
        click.secho(str(e), fg="red")
        if verbosity > 0 and not isinstance(e, SpaceUserException):
            pretty_print_traceback(e, verbosity)
        return

    click.secho(f"{type(e).__name__}: {e}", fg="red")
    if verbosity > 0:
        pretty_print_traceback(e, verbosity)


class ErrorHandlingCommand(click.RichGroup):
    """
    Helper class that wraps the invoke method of a click command to catch exceptions and print them in a nice way.
    """

    def invoke(self, ctx: click.Context) -> typing.Any:
        verbosity = ctx.params.get("verbose", 0)
        logger.setLevel(get_level_from_cli_verbosity(verbosity))
        try:
            return super().invoke(ctx)
        except (click.exceptions.Exit, click.ClickException):
            raise
        except Exception as e:
            pretty_print_exception(e, verbosity)
            raise SystemExit(1) from e

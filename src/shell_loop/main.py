"""CLI entrypoint for the loop command."""

from __future__ import annotations

import rich_click as click

from shell_loop import __version__
from shell_loop.config import LoopSettings
from shell_loop.controllers import LoopCliController, LoopRunCommand
from shell_loop.engine.backend import CommandLaunchError
from shell_loop.engine.models import ERROR
from shell_loop.parsing import LoopConfigError

click.rich_click.USE_MARKDOWN = True


@click.command(
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(version=__version__, prog_name="loop")
@click.option("-n", "--num", default=None, help="Number of iterations to execute.")
@click.option(
    "-b",
    "--count-by",
    default="1",
    show_default=True,
    help="Amount to increment the counter by; its decimals set `$COUNT` precision.",
)
@click.option("-o", "--offset", default="0", show_default=True, help="Initial counter offset.")
@click.option("-e", "--every", default=None, help="How often to iterate, e.g. `5s`, `1h1m1s1ms`.")
@click.option(
    "--for",
    "for_items",
    default=None,
    help="Values placed into `$ITEM`, e.g. `red,green,blue`.",
)
@click.option(
    "-d",
    "--for-duration",
    default=None,
    help="Keep going until the duration has elapsed, e.g. `1m30s`.",
)
@click.option("-c", "--until-contains", default=None, help="Stop once output contains this string.")
@click.option("-m", "--until-match", default=None, help="Stop once output matches this regex.")
@click.option(
    "-t",
    "--until-time",
    default=None,
    help="Keep going until a time, e.g. `2018-04-20 04:20:00` (UTC).",
)
@click.option(
    "-r",
    "--until-error",
    is_flag=False,
    flag_value="any",
    default=None,
    help="Stop on a non-zero exit status, or on the given exit code.",
)
@click.option("-s", "--until-success", is_flag=True, help="Stop once the exit status is zero.")
@click.option("-f", "--until-fail", is_flag=True, help="Stop once the exit status is non-zero.")
@click.option("-C", "--until-changes", is_flag=True, help="Stop once the output changes.")
@click.option("-S", "--until-same", is_flag=True, help="Stop once the output repeats.")
@click.option("-l", "--only-last", is_flag=True, help="Only print the last line of the last run.")
@click.option(
    "-i",
    "--stdin",
    "read_stdin",
    is_flag=True,
    help="Append stdin lines to `$ITEM` values (implied when stdin is not a terminal).",
)
@click.option(
    "-D",
    "--error-duration",
    is_flag=True,
    help="Exit with code 124 when `--for-duration` runs out.",
)
@click.option("--summary", is_flag=True, help="Print a run/success/failure summary at exit.")
@click.option(
    "--detach",
    is_flag=True,
    help="Do not wait for each run; dispatch runs to background workers.",
)
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def loop(  # noqa: PLR0913
    ctx: click.Context,
    num: str | None,
    count_by: str,
    offset: str,
    every: str | None,
    for_items: str | None,
    for_duration: str | None,
    until_contains: str | None,
    until_match: str | None,
    until_time: str | None,
    until_error: str | None,
    until_success: bool,
    until_fail: bool,
    until_changes: bool,
    until_same: bool,
    only_last: bool,
    read_stdin: bool,
    error_duration: bool,
    summary: bool,
    detach: bool,
    command: tuple[str, ...],
) -> None:
    """UNIX's missing `loop` command.

    Runs **COMMAND** repeatedly. `$ITEM`, `$COUNT` and `$ACTUALCOUNT` are set
    for every run.
    """

    try:
        settings = LoopSettings.from_env()
    except ValueError as error:
        raise _click_error(str(error), exit_code=2) from error
    settings.configure_logging()

    stdin = click.get_text_stream("stdin")
    # piped input is always read as items, as with --stdin
    read_stdin = read_stdin or not stdin.isatty()
    stdin_lines = stdin if read_stdin else ()
    controller = LoopCliController(settings)
    try:
        outcome = controller.run(
            LoopRunCommand(
                command=command,
                num=num,
                count_by=count_by,
                offset=offset,
                every=every,
                for_items=for_items,
                for_duration=for_duration,
                until_contains=until_contains,
                until_match=until_match,
                until_time=until_time,
                until_error=until_error,
                until_success=until_success,
                until_fail=until_fail,
                until_changes=until_changes,
                until_same=until_same,
                only_last=only_last,
                stdin=read_stdin,
                error_duration=error_duration,
                summary=summary,
                detach=detach,
            ),
            sink=click.echo,
            stdin_lines=stdin_lines,
        )
    except LoopConfigError as error:
        raise _click_error(str(error), exit_code=int(error.exit_code)) from error
    except CommandLaunchError as error:
        raise _click_error(str(error), exit_code=int(ERROR)) from error

    ctx.exit(int(outcome.exit_code))


def _click_error(message: str, *, exit_code: int) -> click.ClickException:
    error = click.ClickException(message)
    error.exit_code = exit_code
    return error


if __name__ == "__main__":  # pragma: no cover
    loop()

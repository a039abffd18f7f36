"""httphist CLI - one HTTP request per call, with a replayable history."""

import logging
from datetime import datetime

import click

from httphist import __version__

logger = logging.getLogger(__name__)

MAX_PRINTED_BODY = 100 * 1024
CONFIG_META_KEY = "httphist.config_file"
ARGS_META_KEY = "httphist.args"
LIST_META_KEY = "httphist.list_options"

HELP_ALIASES = ("-h", "--help")
VERSION_ALIASES = ("-v", "--version")
CONFIG_ALIASES = ("--config",)

TOOL_HELP = """\
httphist — send one HTTP request, keep a browsable history of them.

\b
USAGE
─────
  httphist COMMAND OPTIONS

\b
COMMANDS
────────
  help
  version
  history [list | detail N | replay N | save N OUTPATH] FLAGS
  URL FLAGS
  get URL FLAGS
  head URL FLAGS
  post URL FLAGS
  put URL FLAGS
  patch URL FLAGS
  delete URL FLAGS

  The method defaults to GET when the first word is not an HTTP verb.

\b
HISTORY FLAGS
─────────────
  (-f | --find) GET            Only show records whose file name contains this
  (-i | --insensitive)         Case-insensitive --find
  (-l | --limit) 10            Records per page
  (-s | --skip) 0              Records to pass over before the page starts

  Record numbers never change when filtering; use them with
  detail, replay and save.

\b
HTTP FLAGS
──────────
  (-j | --json)                          Content-Type: application/json
  (-c | --content-type) application/json
  (-a | --accept) application/json       Default: */*
  (-t | --timeout) 60                    Seconds
  (-i | --input) /path/to/input/file.json
  (-o | --output) /path/to/output/file.json
  (-d | --data) '{"key": "value"}'       POST, PATCH and PUT only

  Content-Type: --json, then --content-type, then application/json for
  POST/PATCH/PUT and application/x-www-form-urlencoded otherwise.

\b
CONFIG FILE (.httphist.yaml)
────────────────────────────
  Resolution order:
    1. --config PATH
    2. .httphist.yaml / .httphist.yml / httphist.yaml / httphist.yml in CWD
    3. ~/.httphist/config.yaml

  \b
  defaults:
    history_dir: ~/.httphist/history   # relative paths follow the config file
    base_url: ${API_BASE_URL}          # prefixed onto relative URLs
    timeout: 60
    accept: "*/*"
    env_file: .env
    log_level: WARNING                 # or HTTPHIST_LOG_LEVEL
"""


def determine_mode(args: list[str]) -> str:
    """Pick help, version, history or http from the raw argument list."""
    from httphist.options import flag_is_active

    if not args or flag_is_active(args, HELP_ALIASES) or args[0].lower() == "help":
        return "help"
    if flag_is_active(args, VERSION_ALIASES) or args[0].lower() == "version":
        return "version"
    if args[0].lower() == "history":
        return "history"
    return "http"


class Dispatcher(click.Group):
    """Route the first token to a command, and report errors as exit 1.

    Anything that isn't help, version or history is handed to the
    ``request`` command, which decides whether the first token is a verb
    or a URL.
    """

    def parse_args(self, ctx, args):
        from httphist.options import get_option, strip_option

        ctx.meta[CONFIG_META_KEY] = get_option(args, CONFIG_ALIASES)
        args = strip_option(args, CONFIG_ALIASES)
        ctx.meta[ARGS_META_KEY] = list(args)

        mode = determine_mode(args)
        if mode == "http":
            args = ["request", *args]
        elif mode == "history":
            args = ["history", *args[1:]]
        else:
            args = [mode]
        return super().parse_args(ctx, args)

    def invoke(self, ctx):
        from httphist.core import HttpHistError

        try:
            return super().invoke(ctx)
        except HttpHistError as e:
            click.echo(f"ERROR: {e}", err=True)
            ctx.exit(1)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.group(
    cls=Dispatcher,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.pass_context
def main(ctx):
    """Send HTTP requests and browse their history."""
    from httphist.core import load_settings
    from httphist.log import configure_logging

    config_file = ctx.meta.get(CONFIG_META_KEY)
    settings = load_settings(config_file)
    configure_logging(settings["defaults"].get("log_level"))
    logger.debug("Config dir: %s", settings.get("_config_dir"))
    ctx.obj = settings


@main.command("help")
def help_cmd():
    """Show usage."""
    click.echo(TOOL_HELP.replace("\b\n", ""))


@main.command("version")
def version_cmd():
    """Show version."""
    click.echo(f"httphist version {__version__}")


# ── HTTP ─────────────────────────────────────────────────────────────────


@main.command("request")
@click.argument("target")
@click.argument("url", required=False)
@click.option("-j", "--json", "json_flag", is_flag=True, default=False)
@click.option("-c", "--content-type", "content_type", default=None)
@click.option("-a", "--accept", default=None)
@click.option("-t", "--timeout", default=None)
@click.option("-i", "--input", "input_path", default=None)
@click.option("-o", "--output", "output_path", default=None)
@click.option("-d", "--data", default=None)
@click.pass_context
def request_cmd(
    ctx,
    target,
    url,
    json_flag,
    content_type,
    accept,
    timeout,
    input_path,
    output_path,
    data,
):
    """[METHOD] URL - send one request and record it."""
    from httphist import executor
    from httphist.builder import build_request
    from httphist.core import NetworkError, ensure_dir, resolve_history_dir
    from httphist.history import HistoryRecord, append_record

    settings = ctx.obj
    descriptor, input_used = build_request(
        target,
        url,
        json_flag=json_flag,
        content_type=content_type,
        accept=accept,
        timeout=timeout,
        data=data,
        input_path=input_path,
        defaults=settings["defaults"],
    )
    history_dir = ensure_dir(resolve_history_dir(settings))

    started = datetime.now()
    result = executor.execute_request(
        method=descriptor.method,
        url=descriptor.url,
        headers=descriptor.headers(),
        body=descriptor.body,
        timeout=descriptor.timeout,
    )
    finished = datetime.now()
    if result.error:
        raise NetworkError(result.error)

    if output_path:
        executor.write_output(output_path, result.content)
    _print_result(result, output_path)

    record = HistoryRecord(
        request=descriptor,
        response=result,
        start_time=started,
        end_time=finished,
        mode="http",
        args=_invocation_args(ctx),
        input_file_path=input_used,
        output_file_path=output_path or "",
    )
    path = append_record(history_dir, record)
    click.echo(f"History saved: {path.name}", err=True)


# ── History ──────────────────────────────────────────────────────────────


def _list_options(f):
    f = click.option("-s", "--skip", default=None, help="Records to pass over. Default: 0.")(f)
    f = click.option("-l", "--limit", default=None, help="Records per page. Default: 10.")(f)
    f = click.option(
        "-i", "--insensitive", is_flag=True, default=False, help="Case-insensitive --find."
    )(f)
    f = click.option("-f", "--find", default="", help="Substring to match in file names.")(f)
    return f


@main.group(
    "history",
    invoke_without_command=True,
    context_settings={"token_normalize_func": str.lower},
)
@_list_options
@click.pass_context
def history_group(ctx, find, insensitive, limit, skip):
    """List, inspect, replay and save past requests."""
    if ctx.invoked_subcommand is None:
        _cmd_history_list(ctx.obj, find, insensitive, limit, skip)
        return
    # list flags given before the subcommand name
    ctx.meta[LIST_META_KEY] = {
        "find": find,
        "insensitive": insensitive,
        "limit": limit,
        "skip": skip,
    }


@history_group.command("list")
@_list_options
@click.pass_context
def history_list_cmd(ctx, find, insensitive, limit, skip):
    """List records newest first."""
    outer = ctx.meta.get(LIST_META_KEY, {})
    _cmd_history_list(
        ctx.obj,
        find or outer.get("find", ""),
        insensitive or outer.get("insensitive", False),
        limit if limit is not None else outer.get("limit"),
        skip if skip is not None else outer.get("skip"),
    )


@history_group.command("detail")
@click.argument("index", required=False)
@click.pass_obj
def history_detail_cmd(settings, index):
    """Show everything stored for record N."""
    from httphist.history import load_by_index

    record = load_by_index(_history_dir(settings), _parse_index(index))
    req = record.request
    resp = record.response
    lines = [
        ("File", record.filename),
        ("Mode", record.mode),
        ("Args", " ".join(record.args)),
        ("Start Time", record.start_time.isoformat()),
        ("End Time", record.end_time.isoformat()),
        ("Duration", f"{record.duration_ms:.0f}ms"),
        ("Input File Path", record.input_file_path),
        ("Output File Path", record.output_file_path),
        ("Request Method", req.method),
        ("Request URL", req.url),
        ("Request Timeout", req.timeout),
        ("Request Content Type", req.content_type),
        ("Request Accept", req.accept),
        ("Request Content Length", req.content_length),
        ("Response Status", resp.status_code),
        ("Response Content Type", resp.content_type),
        ("Response Content Length", resp.content_length),
    ]
    for label, value in lines:
        click.echo(f"{label}: {value}")


@history_group.command("replay")
@click.argument("index", required=False)
@click.pass_context
def history_replay_cmd(ctx, index):
    """Send record N's request again and record the new exchange."""
    from httphist import executor
    from httphist.history import replay_record

    _, replayed, path = replay_record(
        _history_dir(ctx.obj),
        _parse_index(index),
        executor.execute_request,
        args=_invocation_args(ctx),
    )
    _print_result(replayed.response, None)
    click.echo(f"History saved: {path.name}", err=True)


@history_group.command("save")
@click.argument("index", required=False)
@click.argument("out_path", required=False)
@click.pass_obj
def history_save_cmd(settings, index, out_path):
    """Write record N's response body to OUTPATH."""
    from httphist.core import ArgumentError
    from httphist.history import save_response_body

    number = _parse_index(index)
    if not out_path:
        raise ArgumentError("Missing output path.")
    path = save_response_body(_history_dir(settings), number, out_path)
    click.echo(f"Saved response body of record {number} to {path}")


def _cmd_history_list(settings, find, insensitive, limit, skip):
    from httphist.history import format_listing, list_history
    from httphist.options import parse_int

    page = list_history(
        _history_dir(settings),
        skip=parse_int(skip, 0, minimum=0),
        limit=parse_int(limit, 10, minimum=1),
        find=find or "",
        case_insensitive=insensitive,
    )
    for line in format_listing(page):
        click.echo(line)


# ── Helpers ──────────────────────────────────────────────────────────────


def _history_dir(settings):
    from httphist.core import ensure_dir, resolve_history_dir

    return ensure_dir(resolve_history_dir(settings))


def _parse_index(value):
    """History record numbers are positive integers from the listing."""
    from httphist.core import ArgumentError

    if value is None:
        raise ArgumentError("Missing history record index.")
    try:
        return int(value)
    except ValueError:
        raise ArgumentError(f"Invalid history record index: {value}") from None


def _invocation_args(ctx):
    """Arguments as typed, without the command names added by the dispatcher."""
    return list(ctx.meta.get(ARGS_META_KEY, []))


def _print_result(result, output_path):
    click.echo(f"STATUS: {result.status_code}")
    click.echo(f"TIME: {int(result.elapsed_ms)}ms")
    click.echo(f"CONTENT-TYPE: {result.content_type}")
    click.echo(f"CONTENT-LENGTH: {result.content_length}")
    if output_path:
        click.echo(f"Saved response body to {output_path}")
        return
    if result.content_length > MAX_PRINTED_BODY:
        click.echo(f"BODY: ({result.content_length} bytes not shown, use -o to save)")
        return
    click.echo("BODY:")
    click.echo(result.content.decode("utf-8", errors="replace"))

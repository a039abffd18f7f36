"""httphist options - position-independent scanning of raw argument lists.

Per-command options are parsed by click. These helpers only cover the
dispatcher's global concerns (help, version, --config), which may appear
anywhere on the command line.
"""

from collections.abc import Iterable, Sequence


def flag_is_active(args: Sequence[str], aliases: Iterable[str]) -> bool:
    """True if any alias appears anywhere in args."""
    names = set(aliases)
    return any(arg in names for arg in args)


def get_option(args: Sequence[str], aliases: Iterable[str], default=None):
    """Return the token following the last occurrence of any alias.

    Falls back to default when no alias is present, or when that last
    occurrence is the final token and so has no value.
    """
    names = set(aliases)
    last = None
    for i, arg in enumerate(args):
        if arg in names:
            last = i
    if last is None or last + 1 >= len(args):
        return default
    return args[last + 1]


def strip_option(args: Sequence[str], aliases: Iterable[str]) -> list[str]:
    """Return args with every alias occurrence and its value removed."""
    names = set(aliases)
    out: list[str] = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg in names:
            skip_next = True
            continue
        out.append(arg)
    return out


def parse_int(value, default: int, minimum: int | None = None) -> int:
    """Parse an integer option, falling back to default.

    Missing, non-numeric and below-minimum values all yield default.
    """
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and number < minimum:
        return default
    return number

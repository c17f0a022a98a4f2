"""POSIX shell quoting for values embedded in crontab command lines."""


def shell_escape(value: str) -> str:
    """Quote a value for a POSIX shell using single quotes.

    Each embedded single quote becomes ``'\\''`` (close the quote, emit an
    escaped quote, reopen the quote), so the shell yields ``value`` exactly.

    Args:
        value: Raw string.

    Returns:
        The quoted string.
    """
    return "'" + value.replace("'", "'\\''") + "'"


def shell_escape_path(path: str) -> str:
    """Quote a filesystem path, leaving a leading ``~`` unquoted.

    Quoting the tilde would stop the shell from expanding it to the home
    directory, so ``~/logs/app.log`` becomes ``~/'logs/app.log'``.

    Args:
        path: Absolute or tilde-relative path.

    Returns:
        The quoted path.
    """
    if path == "~":
        return path
    if path.startswith("~/"):
        return "~/" + shell_escape(path[2:])
    return shell_escape(path)


def shell_unescape(value: str) -> str:
    """Reverse shell quoting produced by :func:`shell_escape`.

    Accepts any sequence of single-quoted segments and literal characters,
    with backslash escapes outside quotes. An unterminated quote takes the
    rest of the input literally instead of failing.

    Args:
        value: Quoted string.

    Returns:
        The unquoted string.
    """
    result: list[str] = []
    i = 0
    length = len(value)

    while i < length:
        char = value[i]
        if char == "'":
            end = value.find("'", i + 1)
            if end == -1:
                result.append(value[i + 1:])
                break
            result.append(value[i + 1:end])
            i = end + 1
        elif char == "\\" and i + 1 < length:
            result.append(value[i + 1])
            i += 2
        else:
            result.append(char)
            i += 1

    return "".join(result)

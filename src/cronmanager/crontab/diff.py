"""Line diff used to compare the current crontab with a backup."""

from cronmanager.crontab.types import DiffKind, DiffLine


def diff_lines(old_text: str, new_text: str) -> list[DiffLine]:
    """Compare two texts line by line, by position.

    This is not a minimal edit diff: line N of one text is only ever
    compared with line N of the other. When they differ, the old line is
    reported as removed and the new line as added.

    Args:
        old_text: Previous text (e.g. a backup).
        new_text: Current text.

    Returns:
        Diff entries with 1-based line numbers.
    """
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")
    diff: list[DiffLine] = []

    for index in range(max(len(old_lines), len(new_lines))):
        old_line = old_lines[index] if index < len(old_lines) else None
        new_line = new_lines[index] if index < len(new_lines) else None
        line_number = index + 1

        if old_line == new_line:
            diff.append(DiffLine(type=DiffKind.SAME, line=old_line, line_number=line_number))
            continue

        if old_line is not None:
            diff.append(DiffLine(type=DiffKind.REMOVE, line=old_line, line_number=line_number))
        if new_line is not None:
            diff.append(DiffLine(type=DiffKind.ADD, line=new_line, line_number=line_number))

    return diff

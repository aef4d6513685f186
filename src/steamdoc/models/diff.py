"""Line and word diffs for previewing proposed changes.

The line/word diffs are a display aid: they tell the user what an edit
does, they are never used to merge content. Both use a classic LCS table,
so the number of matched tokens is the same whichever side is "old"
(additions of a->b always equal deletions of b->a).
"""

import difflib
import re
from typing import Literal

from pydantic import BaseModel, Field


ChangeType = Literal["add", "remove", "unchanged"]

_WORD_TOKEN = re.compile(r"\s+|\S+")


class DiffChange(BaseModel):
    """A run of consecutive tokens sharing the same change type."""

    type: ChangeType
    value: str = Field(..., description="Concatenated token text")
    count: int = Field(default=1, ge=0, description="Number of tokens (lines or words) in the run")

    model_config = {"frozen": True}


class DiffResult(BaseModel):
    """Line diff with per-type line counts."""

    changes: list[DiffChange] = Field(default_factory=list)
    additions: int = Field(default=0, description="Number of added lines")
    deletions: int = Field(default=0, description="Number of removed lines")
    unchanged: int = Field(default=0, description="Number of matched lines")

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return self.additions > 0 or self.deletions > 0


def _lcs_script(old: list[str], new: list[str]) -> list[tuple[ChangeType, str]]:
    """Compute an edit script between two token lists.

    Common prefix and suffix are matched directly; the middle is solved with
    an LCS table. Within a changed region removals come before additions.
    """
    start = 0
    while start < len(old) and start < len(new) and old[start] == new[start]:
        start += 1

    end_old, end_new = len(old), len(new)
    while end_old > start and end_new > start and old[end_old - 1] == new[end_new - 1]:
        end_old -= 1
        end_new -= 1

    a = old[start:end_old]
    b = new[start:end_new]

    # table[i][j] = LCS length of a[i:] and b[j:]
    table = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(len(a) - 1, -1, -1):
        row, below = table[i], table[i + 1]
        for j in range(len(b) - 1, -1, -1):
            if a[i] == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    script: list[tuple[ChangeType, str]] = [("unchanged", tok) for tok in old[:start]]
    removed: list[str] = []
    added: list[str] = []

    def flush() -> None:
        script.extend(("remove", tok) for tok in removed)
        script.extend(("add", tok) for tok in added)
        removed.clear()
        added.clear()

    i = j = 0
    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            flush()
            script.append(("unchanged", a[i]))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            removed.append(a[i])
            i += 1
        else:
            added.append(b[j])
            j += 1
    removed.extend(a[i:])
    added.extend(b[j:])
    flush()

    script.extend(("unchanged", tok) for tok in old[end_old:])
    return script


def _group(script: list[tuple[ChangeType, str]]) -> list[DiffChange]:
    """Merge consecutive same-type tokens into DiffChange runs."""
    changes: list[DiffChange] = []
    run_type: ChangeType | None = None
    run: list[str] = []

    for change_type, token in script:
        if change_type != run_type and run:
            changes.append(DiffChange(type=run_type, value="".join(run), count=len(run)))
            run = []
        run_type = change_type
        run.append(token)

    if run:
        changes.append(DiffChange(type=run_type, value="".join(run), count=len(run)))
    return changes


def generate_diff(old_text: str, new_text: str) -> DiffResult:
    """Generate a line-level diff.

    Lines keep their line endings, so concatenating the values of the
    unchanged and removed runs reproduces old_text (and likewise for new_text).

    Args:
        old_text: Original text
        new_text: Modified text

    Returns:
        DiffResult with changes and added/removed/unchanged line counts

    Examples:
        >>> result = generate_diff("line1\\n", "line1\\nline2\\n")
        >>> result.additions, result.deletions, result.unchanged
        (1, 0, 1)
    """
    changes = _group(_lcs_script(old_text.splitlines(keepends=True),
                                 new_text.splitlines(keepends=True)))

    counts = {"add": 0, "remove": 0, "unchanged": 0}
    for change in changes:
        counts[change.type] += change.count

    return DiffResult(
        changes=changes,
        additions=counts["add"],
        deletions=counts["remove"],
        unchanged=counts["unchanged"],
    )


def generate_word_diff(old_text: str, new_text: str) -> list[DiffChange]:
    """Generate a word-level diff for inline display of small edits.

    Whitespace runs are tokens of their own, so joining the values of a
    side's runs gives back that side's text exactly.

    Args:
        old_text: Original text (typically one block's content)
        new_text: Modified text

    Returns:
        List of DiffChange runs
    """
    return _group(_lcs_script(_WORD_TOKEN.findall(old_text), _WORD_TOKEN.findall(new_text)))


def format_diff_for_display(diff: DiffResult) -> str:
    """Render a line diff as text: '+ ' added, '- ' removed, '  ' unchanged.

    Args:
        diff: Result of generate_diff

    Returns:
        One output line per diffed line, joined with newlines
    """
    prefixes = {"add": "+", "remove": "-", "unchanged": " "}
    lines = []
    for change in diff.changes:
        prefix = prefixes[change.type]
        for line in change.value.splitlines():
            lines.append(f"{prefix} {line}")
    return "\n".join(lines)


def generate_unified_diff(
    original: str,
    modified: str,
    fromfile: str = "original",
    tofile: str = "modified",
    context_lines: int = 3,
) -> str:
    """Generate unified diff between original and modified content.

    Lines that differ only by the presence/absence of a trailing newline
    are treated as identical to avoid showing spurious differences.

    Args:
        original: Original content
        modified: Modified content
        fromfile: Label for original file
        tofile: Label for modified file
        context_lines: Number of context lines to show

    Returns:
        Unified diff as string (empty when the contents match)
    """
    original_lines = [line if line.endswith("\n") else line + "\n"
                      for line in original.splitlines(keepends=True)]
    modified_lines = [line if line.endswith("\n") else line + "\n"
                      for line in modified.splitlines(keepends=True)]

    diff_lines = difflib.unified_diff(
        original_lines,
        modified_lines,
        fromfile=fromfile,
        tofile=tofile,
        n=context_lines,
    )

    # Header lines from unified_diff may lack a trailing newline
    return "".join(line if line.endswith("\n") else line + "\n" for line in diff_lines)

"""
Line classification and conversion for tfc.

A buffer is split into lines, each line keeping the exact terminator bytes
that ended it. Lines are classified by their leading whitespace run and by
their terminator, and can be rewritten with a new leading run and/or a new
terminator.
"""

import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import List, Optional, Tuple

TAB = ord("\t")
TAB_WIDTHS = (2, 4, 8)
DEFAULT_TAB_WIDTH = 4

DOS_EOL = b"\r\n"
UNIX_EOL = b"\n"

# Alternation order matters: "\n\r" is one (malformed) terminator, not LF
# followed by a lone CR.
TERMINATOR_RE = re.compile(rb"\r\n|\n\r|\n|\r")


class TerminatorKind(str, Enum):
    DOS = "dos"
    UNIX = "unix"
    MALFORMED = "malformed"


class LeadingKind(str, Enum):
    SPACE_ONLY = "space"
    TAB_ONLY = "tab"
    NEITHER = "neither"
    BOTH = "both"


class IndentTarget(str, Enum):
    SPACE = "space"
    TAB = "tab"


class LineEnding(str, Enum):
    DOS = "dos"
    UNIX = "unix"


def leading_run(content: bytes) -> bytes:
    """Return the maximal prefix of spaces and tabs."""
    return content[: len(content) - len(content.lstrip(b" \t"))]


def classify_leading(run: bytes) -> LeadingKind:
    has_space = b" " in run
    has_tab = b"\t" in run
    if has_space and has_tab:
        return LeadingKind.BOTH
    if has_space:
        return LeadingKind.SPACE_ONLY
    if has_tab:
        return LeadingKind.TAB_ONLY
    return LeadingKind.NEITHER


def classify_terminator(terminator: bytes) -> TerminatorKind:
    if terminator == DOS_EOL:
        return TerminatorKind.DOS
    if terminator == UNIX_EOL:
        return TerminatorKind.UNIX
    return TerminatorKind.MALFORMED


@dataclass(frozen=True)
class Line:
    """One line of a buffer: content bytes plus the raw terminator."""

    content: bytes
    terminator: bytes = b""  # empty only for an unterminated last line

    @property
    def leading(self) -> bytes:
        return leading_run(self.content)

    @property
    def leading_kind(self) -> LeadingKind:
        return classify_leading(self.leading)

    @property
    def terminator_kind(self) -> TerminatorKind:
        return classify_terminator(self.terminator)


def split_lines(data: bytes) -> List[Line]:
    """
    Split a buffer into lines.

    Every byte of data ends up in exactly one Line, so joining the content
    and terminator of all lines reproduces the buffer.
    """
    lines: List[Line] = []
    pos = 0
    for match in TERMINATOR_RE.finditer(data):
        lines.append(Line(data[pos : match.start()], match.group()))
        pos = match.end()
    if pos < len(data):
        lines.append(Line(data[pos:]))
    return lines


@dataclass
class FileSummary:
    """Per-file totals of leading whitespace and line ending kinds."""

    total: int = 0
    space_only: int = 0
    tab_only: int = 0
    neither: int = 0
    both: int = 0
    dos: int = 0
    unix: int = 0
    malformed: int = 0

    _LEADING_FIELDS = {
        LeadingKind.SPACE_ONLY: "space_only",
        LeadingKind.TAB_ONLY: "tab_only",
        LeadingKind.NEITHER: "neither",
        LeadingKind.BOTH: "both",
    }

    def add(self, line: Line) -> None:
        # TerminatorKind values double as field names.
        for name in (
            self._LEADING_FIELDS[line.leading_kind],
            line.terminator_kind.value,
        ):
            setattr(self, name, getattr(self, name) + 1)
        self.total += 1

    @classmethod
    def from_bytes(cls, data: bytes) -> "FileSummary":
        summary = cls()
        for line in split_lines(data):
            summary.add(line)
        return summary

    def counts(self) -> Tuple[int, ...]:
        """Counts in report order: total, 4 leading kinds, 3 terminator kinds."""
        return tuple(getattr(self, f.name) for f in fields(self))

    def to_lines(self, source: str) -> List[str]:
        """The two-line summary artifact: source path, then the counts."""
        return [source, " ".join(str(count) for count in self.counts())]

    def report(self, source: str) -> List[str]:
        """Human readable version of the summary."""
        return [
            source,
            f"  Total Lines:  {self.total}",
            "Line beginning:",
            f"  Space only:   {self.space_only}",
            f"  Tab only:     {self.tab_only}",
            f"  Neither:      {self.neither}",
            f"  Both:         {self.both}",
            "Line ending:",
            f"  Dos:          {self.dos}",
            f"  Unix:         {self.unix}",
            f"  Malformed:    {self.malformed}",
        ]


@dataclass(frozen=True)
class ConversionConfig:
    """Settings for a single tfc run. A None target leaves that axis alone."""

    indent: Optional[IndentTarget] = None
    tab_width: int = DEFAULT_TAB_WIDTH
    line_ending: Optional[LineEnding] = None

    def __post_init__(self) -> None:
        if self.tab_width not in TAB_WIDTHS:
            raise ValueError(
                f"Unsupported tab width {self.tab_width}, "
                f"expected one of {', '.join(map(str, TAB_WIDTHS))}"
            )

    @property
    def converts(self) -> bool:
        return self.indent is not None or self.line_ending is not None


def leading_columns(run: bytes, tab_width: int) -> int:
    """Display width of a leading run with tab stops every tab_width columns."""
    columns = 0
    for byte in run:
        if byte == TAB:
            columns += tab_width - (columns % tab_width)
        else:
            columns += 1
    return columns


def convert_indent(content: bytes, target: IndentTarget, tab_width: int) -> bytes:
    run = leading_run(content)
    if not run:
        return content

    columns = leading_columns(run, tab_width)
    if target is IndentTarget.TAB:
        tabs, spaces = divmod(columns, tab_width)
        new_run = b"\t" * tabs + b" " * spaces
    else:
        new_run = b" " * columns
    return new_run + content[len(run) :]


def convert_terminator(terminator: bytes, target: Optional[LineEnding]) -> bytes:
    if target is LineEnding.DOS:
        return DOS_EOL
    if target is LineEnding.UNIX:
        return UNIX_EOL
    return terminator


def convert_line(line: Line, config: ConversionConfig) -> bytes:
    content = line.content
    if config.indent is not None:
        content = convert_indent(content, config.indent, config.tab_width)
    return content + convert_terminator(line.terminator, config.line_ending)


def convert_buffer(data: bytes, config: ConversionConfig) -> bytes:
    """Apply config to every line of data and return the new buffer."""
    return b"".join(convert_line(line, config) for line in split_lines(data))

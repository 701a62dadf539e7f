"""Reader/writer for Star Rod script patch files (*.bscr, *.mscr, *.str).

A script is read, optionally rewritten, and saved - usually to a new path in
the build directory. starpkg only understands the coarse structure of the
dialect:

- `%` starts a comment running to the end of the line
- `/%` starts a block comment ending at the next `%/`
- blank lines separate the script into blocks
- a block whose first line is `#string:XX:(name)` defines a named string

Everything else is passed through untouched, apart from the `{Kind:...}`
expressions rewritten by starpkg.package.expressions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from starpkg.logger import TRACE
from starpkg.package.errors import LoadError

logger = logging.getLogger(__name__)

STRING_NAMED = re.compile(r"#string:([^:]*):\((.*)\)")
SECTION_HEX = re.compile(r"[0-9A-Fa-f]{2}")


class ScriptParseError(LoadError):
    """Raised when a script file cannot be read or parsed."""


@dataclass(frozen=True)
class OtherBlock:
    """Any block starpkg does not interpret."""


@dataclass(frozen=True)
class StringNamedBlock:
    """A `#string:XX:(name)` block."""

    section: int
    name: str


BlockKind = Union[OtherBlock, StringNamedBlock]


@dataclass
class Block:
    """A run of non-blank lines, each paired with its source line number."""

    lines: list[tuple[int, str]]
    kind: BlockKind = field(default_factory=OtherBlock)

    @property
    def start_line(self) -> int:
        return self.lines[0][0]

    @property
    def body(self) -> list[str]:
        """Text of every line after the first."""
        return [text for _, text in self.lines[1:]]

    @classmethod
    def classify(cls, lines: list[tuple[int, str]], path: Path) -> Block:
        """Create a block, deciding its kind from its first line.

        Raises:
            ScriptParseError: If a string header has a malformed section
        """
        line_no, header = lines[0]

        match = STRING_NAMED.match(header)
        if match is None:
            return cls(lines, OtherBlock())

        section, name = match.groups()
        if not SECTION_HEX.fullmatch(section):
            raise ScriptParseError(
                path, f"bad string section index '{section}'", line_no
            )

        kind = StringNamedBlock(section=int(section, 16), name=name)
        logger.log(TRACE, "%s:%d: %s", path, line_no, kind)
        return cls(lines, kind)


def strip_comments(source: str) -> list[tuple[int, str]]:
    """Remove comments and split source text into numbered lines.

    Line numbers refer to the line of the original source each output line
    starts on. A line comment at the start of a line removes that line
    entirely; a block comment spanning several lines joins the text around it.
    Carriage returns are dropped.

    Returns:
        List of (line_number, text) pairs, 1-based
    """
    lines: list[tuple[int, str]] = []
    buf: list[str] = []
    line_no = 1
    start = 1
    in_block_comment = False
    in_line_comment = False
    prev = ""

    def end_line() -> None:
        lines.append((start, "".join(buf)))
        buf.clear()

    for ch in source:
        if ch == "\r":
            continue

        if in_block_comment:
            if ch == "/" and prev == "%":
                in_block_comment = False
                ch = ""
        elif in_line_comment:
            if ch == "\n":
                in_line_comment = False
        elif ch == "%":
            if prev == "/":
                buf.pop()
                in_block_comment = True
                ch = ""
            else:
                in_line_comment = True
                if "".join(buf).strip():
                    end_line()
                else:
                    buf.clear()
        elif ch == "\n":
            end_line()
        else:
            if not buf:
                start = line_no
            buf.append(ch)

        if ch == "\n":
            line_no += 1
        prev = ch

    # The final line closes even without a trailing newline.
    end_line()
    return lines


class Script:
    """A script file split into blocks.

    Usage:
        script = Script.load("my_pkg", path)
        script.path = build_dir / "out.bpat"
        script.save()
    """

    def __init__(self, path: Path, blocks: list[Block], source_package: str):
        #: Where save() writes to; defaults to the path the script was read from
        self.path = Path(path)
        self.blocks = blocks
        self.source_package = source_package

    def __repr__(self) -> str:
        return f"Script({str(self.path)!r}, {len(self.blocks)} blocks)"

    @classmethod
    def parse(cls, source: str, path: Path, source_package: str) -> Script:
        """Parse script text.

        Args:
            source: Script text
            path: Path the text came from (used in messages and by save())
            source_package: Package the script belongs to; unqualified
                identifiers inside it refer to this package

        Raises:
            ScriptParseError
        """
        path = Path(path)
        blocks: list[Block] = []
        pending: list[tuple[int, str]] = []

        for line_no, line in strip_comments(source):
            line = line.strip()
            if line:
                pending.append((line_no, line))
            elif pending:
                blocks.append(Block.classify(pending, path))
                pending = []

        if pending:
            blocks.append(Block.classify(pending, path))

        if not blocks:
            logger.warning("'%s' is empty", path.name)

        return cls(path, blocks, source_package)

    @classmethod
    def load(cls, source_package: str, path: Path) -> Script:
        """Read and parse the script at `path`.

        Raises:
            ScriptParseError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            source = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ScriptParseError(path, "script file not found") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ScriptParseError(path, f"unable to read script: {e}") from e

        return cls.parse(source, path, source_package)

    def dumps(self) -> str:
        """Serialize blocks, separated by one blank line."""
        out = []
        for block in self.blocks:
            for _, line in block.lines:
                out.append(f"{line}\n")
            out.append("\n")
        return "".join(out)

    def save(self) -> None:
        """Write the script to `self.path`. To 'save as', set path first."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8", newline="\n") as f:
            f.write(self.dumps())

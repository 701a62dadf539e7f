"""String exports.

Strings are defined in script files under src/string/, one per block:

    #string:01:(my_string)
    Hello[BR]
    world[WAIT][END]

Star Rod calls these 'strings', so externally so do we ({String:...},
src/string/). Each string keeps its section; its index within the section is
assigned at assembly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from starpkg import sanitize
from starpkg.package.errors import LoadError
from starpkg.package.exports import UNASSEMBLED, AssemblyState, Export
from starpkg.package.script import Script, StringNamedBlock

logger = logging.getLogger(__name__)

# Sections 00-FE; the assembler keeps one running index per section
MAX_SECTION = 0xFE
MAX_INDEX = 0xFFFF


class TextLoadError(LoadError):
    """Raised when a strings file cannot be loaded."""

    def __init__(self, path: Path, line: int, message: str):
        super().__init__(path, message, line)


class DisallowedBlockKindError(TextLoadError):
    """A strings file contains a block that is not a named string."""

    def __init__(self, path: Path, line: int):
        super().__init__(
            path,
            line,
            "only `#string:XX:(export_name)` blocks allowed in string files",
        )


class BadTextNameError(TextLoadError):
    """A named string has an invalid export name."""

    def __init__(self, path: Path, line: int, error: sanitize.ExportNameError):
        self.error = error
        super().__init__(path, line, str(error))


@dataclass
class Text(Export):
    """A `#string:XX:(name)` block."""

    kind = "String"

    section: int
    name: str
    string: str
    path: Path | None = None
    state: AssemblyState = field(default=UNASSEMBLED)

    @classmethod
    def load_all(cls, source_package: str, path: Path) -> list[Text]:
        """Load every string defined in a strings file.

        Raises:
            ScriptParseError: If the file cannot be parsed
            TextLoadError: If a block is not a valid named string
        """
        path = Path(path)
        texts = []

        for block in Script.load(source_package, path).blocks:
            if not isinstance(block.kind, StringNamedBlock):
                raise DisallowedBlockKindError(path, block.start_line)

            try:
                sanitize.export_name(block.kind.name)
            except sanitize.ExportNameError as e:
                raise BadTextNameError(path, block.start_line, e) from e

            if block.kind.section > MAX_SECTION:
                raise TextLoadError(
                    path,
                    block.start_line,
                    f"string section {block.kind.section:02X} is out of range "
                    f"(max {MAX_SECTION:02X})",
                )

            texts.append(
                cls(
                    section=block.kind.section,
                    name=block.kind.name,
                    string="\n".join(block.body),
                    path=path,
                )
            )

        logger.debug("%s: %d strings", path, len(texts))
        return texts

    @property
    def hex_id(self) -> str:
        """Combined section and index, as scripts and listings expect it.

        Raises:
            NotAssembledError: If the string has not been assembled
        """
        return f"{self.section:04X}{self.assembled_index:04X}"

    def assemble(self, out_dir: Path, index: int) -> Path:
        """Write this string to `out_dir` with the given index in its section.

        Returns:
            Path of the written file
        """
        out_path = out_dir / f"{self.section:04X}{index:04X}.str"
        out_path.write_text(
            f"#string:{self.section:02X}:{index:03X}\n{self.string}",
            encoding="utf-8",
        )

        self._mark_assembled(index)
        return out_path

"""Export expressions embedded in scripts.

Scripts refer to exports symbolically; once every export has its final index
the expressions are replaced by the values Star Rod expects:

  {Sprite:id}                   sprite index             XX
  {Sprite:id:anim}              sprite + animation       00XX00AA
  {Sprite:id:anim:palette}      sprite + anim + palette  00XXPPAA
  {String:id}                   string section + index   SSSSIIII
  {Actor:id}                    actor index              XX

`id` is identifier text (`name` or `package/name`) relative to the package
the script belongs to. Anything else in braces - including these keywords
with a different number of arguments - belongs to Star Rod and is left alone.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from starpkg.package.actor import Actor
from starpkg.package.errors import AssemblyError
from starpkg.package.id import Identifier, IdentifierError
from starpkg.package.script import Script
from starpkg.package.sprite import Sprite
from starpkg.package.text import Text

logger = logging.getLogger(__name__)

EXPRESSION = re.compile(r"\{(Sprite|String|Actor)((?::[^:{}]*)+)\}")


@dataclass(frozen=True)
class Expression:
    """A parsed `{Kind:arg...}` expression."""

    kind: str
    args: tuple[str, ...]

    @classmethod
    def from_match(cls, match: re.Match) -> Expression:
        kind, rest = match.groups()
        return cls(kind=kind, args=tuple(rest[1:].split(":")))

    def __str__(self) -> str:
        return "{" + ":".join((self.kind,) + self.args) + "}"


# ============================================================================
# Errors
# ============================================================================


class ResolveError(AssemblyError):
    """Raised when an expression in a script cannot be resolved."""

    def __init__(self, path: Path, line_no: int, message: str):
        self.path = path
        self.line_no = line_no
        super().__init__(f"{path}:{line_no}: {message}")


class IdParseError(ResolveError):
    """The identifier inside an expression could not be parsed."""

    def __init__(self, path: Path, line_no: int, id_text: str, error: IdentifierError):
        self.id_text = id_text
        self.error = error
        super().__init__(path, line_no, f"failed to parse id '{id_text}': {error}")


class UnknownSpriteError(ResolveError):
    def __init__(self, path: Path, line_no: int, id: Identifier):
        self.id = id
        super().__init__(path, line_no, f"unknown sprite: {{Sprite:{id.qualified}}}")


class SpriteLacksAnimationError(ResolveError):
    def __init__(self, path: Path, line_no: int, id: Identifier, animation: str):
        self.id = id
        self.animation = animation
        super().__init__(
            path,
            line_no,
            f"sprite {{Sprite:{id.qualified}}} has no animation '{animation}'",
        )


class SpriteLacksPaletteError(ResolveError):
    def __init__(self, path: Path, line_no: int, id: Identifier, palette: str):
        self.id = id
        self.palette = palette
        super().__init__(
            path,
            line_no,
            f"sprite {{Sprite:{id.qualified}}} has no palette '{palette}'",
        )


class UnknownTextError(ResolveError):
    def __init__(self, path: Path, line_no: int, id: Identifier):
        self.id = id
        super().__init__(path, line_no, f"unknown string: {{String:{id.qualified}}}")


class UnknownActorError(ResolveError):
    def __init__(self, path: Path, line_no: int, id: Identifier):
        self.id = id
        super().__init__(path, line_no, f"unknown actor: {{Actor:{id.qualified}}}")


# ============================================================================
# Resolution
# ============================================================================


class ExpressionResolver:
    """Resolves expressions in one script against assembled registries."""

    def __init__(
        self,
        sprites: Mapping[Identifier, Sprite],
        texts: Mapping[Identifier, Text],
        actors: Mapping[Identifier, Actor],
    ):
        self.sprites = sprites
        self.texts = texts
        self.actors = actors

        self._handlers: dict[tuple[str, int], Callable[..., str]] = {
            ("Sprite", 1): self._sprite,
            ("Sprite", 2): self._sprite_animation,
            ("Sprite", 3): self._sprite_animation_palette,
            ("String", 1): self._text,
            ("Actor", 1): self._actor,
        }

        # Location of the line being resolved, for error messages
        self._path = Path()
        self._line_no = 0
        self._source_package = ""

    def resolve_script(self, script: Script) -> None:
        """Rewrite every expression in `script` in place.

        Raises:
            ResolveError: On the first expression that cannot be resolved
        """
        self._path = script.path
        self._source_package = script.source_package

        for block in script.blocks:
            block.lines = [
                (line_no, self.resolve_line(line, line_no))
                for line_no, line in block.lines
            ]

    def resolve_line(self, line: str, line_no: int) -> str:
        """Replace expressions in one line, left to right."""
        self._line_no = line_no
        return EXPRESSION.sub(self._replace, line)

    def _replace(self, match: re.Match) -> str:
        expression = Expression.from_match(match)

        handler = self._handlers.get((expression.kind, len(expression.args)))
        if handler is None:
            logger.debug(
                "%s:%d: leaving %s untouched", self._path, self._line_no, expression
            )
            return match.group(0)

        return handler(*expression.args)

    def _parse_id(self, text: str) -> Identifier:
        try:
            return Identifier.parse(text, self._source_package)
        except IdentifierError as e:
            raise IdParseError(self._path, self._line_no, text, e) from e

    def _lookup_sprite(self, id_text: str) -> tuple[Identifier, Sprite]:
        id = self._parse_id(id_text)
        sprite = id.resolve(self.sprites)
        if sprite is None:
            raise UnknownSpriteError(self._path, self._line_no, id)
        return id, sprite

    def _animation(self, id: Identifier, sprite: Sprite, name: str) -> int:
        index = sprite.animation_index(name)
        if index is None:
            raise SpriteLacksAnimationError(self._path, self._line_no, id, name)
        return index

    def _sprite(self, id_text: str) -> str:
        _, sprite = self._lookup_sprite(id_text)
        return f"{sprite.assembled_index:02X}"

    def _sprite_animation(self, id_text: str, animation: str) -> str:
        id, sprite = self._lookup_sprite(id_text)
        anim = self._animation(id, sprite, animation)
        return f"00{sprite.assembled_index:02X}00{anim:02X}"

    def _sprite_animation_palette(
        self, id_text: str, animation: str, palette: str
    ) -> str:
        id, sprite = self._lookup_sprite(id_text)
        anim = self._animation(id, sprite, animation)

        pal = sprite.palette_index(palette)
        if pal is None:
            raise SpriteLacksPaletteError(self._path, self._line_no, id, palette)

        return f"00{sprite.assembled_index:02X}{pal:02X}{anim:02X}"

    def _text(self, id_text: str) -> str:
        id = self._parse_id(id_text)
        text = id.resolve(self.texts)
        if text is None:
            raise UnknownTextError(self._path, self._line_no, id)
        return text.hex_id

    def _actor(self, id_text: str) -> str:
        id = self._parse_id(id_text)
        actor = id.resolve(self.actors)
        if actor is None:
            raise UnknownActorError(self._path, self._line_no, id)
        return f"{actor.assembled_index:02X}"


def resolve_expressions(
    script: Script,
    sprites: Mapping[Identifier, Sprite],
    texts: Mapping[Identifier, Text],
    actors: Mapping[Identifier, Actor],
) -> Script:
    """Resolve every expression in `script` in place and return it."""
    ExpressionResolver(sprites, texts, actors).resolve_script(script)
    return script

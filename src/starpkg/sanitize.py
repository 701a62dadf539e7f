"""Name validation for packages, exports and dependencies.

Every name that ends up in a build (package names, export names, declared
dependency names) goes through these predicates. They return nothing on
success and raise a NameValidationError subclass describing the first rule
the name breaks.

Generic rules, checked in this order:
  1. at most 40 characters
  2. at least 1 character
  3. only ASCII letters, digits and underscores
  4. does not begin with a digit
  5. is not only underscores
  6. does not end with an underscore
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from starpkg.config import settings
from starpkg.errors import StarpkgError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 40

GOOD_NAME = re.compile(r"[a-zA-Z0-9_]+")
NO_NUMBER_BEGIN = re.compile(r"[_a-zA-Z]")
HAS_ALPHANUMERIC = re.compile(r"[a-zA-Z0-9]")
UPPER_ALPHA_BEGIN = re.compile(r"[A-Z]")


class GenericNameReason(Enum):
    """Generic shape rules, in the order they are checked."""

    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    BAD_INTERNAL_CHARS = "bad_internal_chars"
    BEGIN_NUMBER = "begin_number"
    JUST_UNDERSCORES = "just_underscores"
    END_UNDERSCORE = "end_underscore"


class PackageNameReason(Enum):
    RESERVED = "reserved"
    BEGINS_UNDERSCORE = "begins_underscore"
    GENERIC = "generic"


class ExportNameReason(Enum):
    GENERIC = "generic"


class DependencyNameReason(Enum):
    SAME_AS_CURRENT_PACKAGE = "same_as_current_package"
    GENERIC = "generic"


_GENERIC_MESSAGES = {
    GenericNameReason.TOO_LONG: f"'{{0}}' is too long (max {MAX_NAME_LENGTH} chars)",
    GenericNameReason.TOO_SHORT: "'{0}' is too short (min 1 char)",
    GenericNameReason.BAD_INTERNAL_CHARS: "'{0}' has non-alphanumeric/underscore chars",
    GenericNameReason.BEGIN_NUMBER: "'{0}' begins with a number",
    GenericNameReason.JUST_UNDERSCORES: "'{0}' is just underscores",
    GenericNameReason.END_UNDERSCORE: "'{0}' ends in an underscore",
}


class NameValidationError(StarpkgError, ValueError):
    """Raised when a name breaks a naming rule."""

    def __init__(self, name: str, reason: Enum, message: str):
        self.name = name
        self.reason = reason
        super().__init__(message)

    @property
    def generic(self) -> GenericNameError | None:
        """The wrapped generic failure, if this error wraps one."""
        cause = self.__cause__
        return cause if isinstance(cause, GenericNameError) else None


class GenericNameError(NameValidationError):
    """A name failed one of the generic shape rules."""

    def __init__(self, name: str, reason: GenericNameReason):
        super().__init__(name, reason, _GENERIC_MESSAGES[reason].format(name))


class PackageNameError(NameValidationError):
    """A package name is invalid."""

    def __init__(self, name: str, reason: PackageNameReason, detail: str):
        super().__init__(name, reason, f"invalid package name: {detail}")


class ExportNameError(NameValidationError):
    """An export (sprite, actor, string) name is invalid."""

    def __init__(self, name: str, reason: ExportNameReason, detail: str):
        super().__init__(name, reason, f"invalid export name: {detail}")


class DependencyNameError(NameValidationError):
    """A declared dependency name is invalid."""

    def __init__(self, name: str, reason: DependencyNameReason, detail: str):
        super().__init__(name, reason, f"invalid dependency name: {detail}")


def generic_name(s: str) -> None:
    """Check the rules shared by every kind of name.

    Raises:
        GenericNameError: For the first rule `s` breaks
    """
    if len(s) > MAX_NAME_LENGTH:
        raise GenericNameError(s, GenericNameReason.TOO_LONG)

    if not s:
        raise GenericNameError(s, GenericNameReason.TOO_SHORT)

    if not GOOD_NAME.fullmatch(s):
        raise GenericNameError(s, GenericNameReason.BAD_INTERNAL_CHARS)

    if not NO_NUMBER_BEGIN.match(s):
        raise GenericNameError(s, GenericNameReason.BEGIN_NUMBER)

    if not HAS_ALPHANUMERIC.search(s):
        raise GenericNameError(s, GenericNameReason.JUST_UNDERSCORES)

    if s.endswith("_"):
        raise GenericNameError(s, GenericNameReason.END_UNDERSCORE)


def package_name(s: str) -> None:
    """Check a package name.

    Package names cannot begin with an underscore (that would make every
    export in them look private) and cannot shadow the base game.

    Raises:
        PackageNameError
    """
    if s.startswith("_"):
        raise PackageNameError(
            s,
            PackageNameReason.BEGINS_UNDERSCORE,
            f"'{s}' begins with an underscore",
        )

    if s in settings.reserved_package_names:
        raise PackageNameError(s, PackageNameReason.RESERVED, f"'{s}' is reserved")

    try:
        generic_name(s)
    except GenericNameError as e:
        raise PackageNameError(s, PackageNameReason.GENERIC, str(e)) from e


def export_name(s: str) -> None:
    """Check an export name.

    A leading uppercase letter is allowed but discouraged.

    Raises:
        ExportNameError
    """
    if UPPER_ALPHA_BEGIN.match(s):
        logger.warning("export name '%s' begins with an uppercase letter", s)

    try:
        generic_name(s)
    except GenericNameError as e:
        raise ExportNameError(s, ExportNameReason.GENERIC, str(e)) from e


def dependency_name(s: str, current_package: str) -> None:
    """Check the name a package declares one of its dependencies under.

    Args:
        s: Declared dependency name
        current_package: Name of the declaring package

    Raises:
        DependencyNameError
    """
    if s == current_package:
        raise DependencyNameError(
            s,
            DependencyNameReason.SAME_AS_CURRENT_PACKAGE,
            f"'{s}' is the same as the current package name",
        )

    try:
        generic_name(s)
    except GenericNameError as e:
        raise DependencyNameError(s, DependencyNameReason.GENERIC, str(e)) from e

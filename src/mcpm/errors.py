from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcpm.build.diff import Difference


class ParseError(ValueError):
    """Malformed YAML document or region export."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class MissingStructureError(ValueError):
    """Required scaffolding is absent and no default exists for it."""


class OwnershipViolation(ValueError):
    """Unowned content changed between the base document and the merged output."""

    def __init__(self, target: str, differences: tuple[Difference, ...]) -> None:
        self.target = target
        self.differences = differences
        super().__init__(f"non-owned sections changed in {target} config ({len(differences)} differences)")


class ClassificationAmbiguity(ValueError):
    """Reserved for regions matching more than one classification rule.

    Classification is first-match-wins, so nothing raises this yet.
    """

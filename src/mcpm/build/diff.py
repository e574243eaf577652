"""Structural diff gate between a base document and a merged output, ignoring owned nodes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from mcpm.content.documents import DocumentPath, format_path, node_kind
from mcpm.content.io import load_document
from mcpm.errors import OwnershipViolation

if TYPE_CHECKING:
    from mcpm.formats.registry import TargetFormat

OwnershipPredicate = Callable[[DocumentPath, Any], bool]

MISSING_IN_GENERATED = "missing_in_generated"
MISSING_IN_ORIGINAL = "missing_in_original"
TYPE_MISMATCH = "type_mismatch"
LENGTH_MISMATCH = "length_mismatch"
VALUE_MISMATCH = "value_mismatch"


@dataclass(frozen=True)
class Difference:
    path: DocumentPath
    kind: str
    detail: str = ""

    def describe(self) -> str:
        text = f"{format_path(self.path)}: {self.kind}"
        return f"{text} ({self.detail})" if self.detail else text

    def to_dict(self) -> dict[str, Any]:
        return {"path": format_path(self.path), "kind": self.kind, "detail": self.detail}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    differences: tuple[Difference, ...] = ()
    error: str | None = None

    def raise_for_violations(self, target: str) -> None:
        if self.error is not None:
            raise ValueError(self.error)
        if not self.valid:
            raise OwnershipViolation(target, self.differences)


def strip_owned(document: Any, predicate: OwnershipPredicate, path: DocumentPath = ()) -> Any:
    """Copy of ``document`` without any node the predicate claims."""
    if isinstance(document, dict):
        stripped: dict[Any, Any] = {}
        for key, value in document.items():
            child_path = (*path, key)
            if not predicate(child_path, value):
                stripped[key] = strip_owned(value, predicate, child_path)
        return stripped
    if isinstance(document, list):
        return [
            strip_owned(item, predicate, (*path, index))
            for index, item in enumerate(document)
            if not predicate((*path, index), item)
        ]
    return document


def _same_scalar(left: Any, right: Any) -> bool:
    if isinstance(left, float) and isinstance(right, float) and math.isnan(left) and math.isnan(right):
        return True
    return left == right


def deep_diff(original: Any, generated: Any, path: DocumentPath = ()) -> list[Difference]:
    original_kind, generated_kind = node_kind(original), node_kind(generated)
    if original_kind != generated_kind:
        return [Difference(path, TYPE_MISMATCH, f"{original_kind} vs {generated_kind}")]

    if original_kind == "mapping":
        differences: list[Difference] = []
        for key in original:
            if key not in generated:
                differences.append(Difference((*path, key), MISSING_IN_GENERATED))
            else:
                differences.extend(deep_diff(original[key], generated[key], (*path, key)))
        for key in generated:
            if key not in original:
                differences.append(Difference((*path, key), MISSING_IN_ORIGINAL))
        return differences

    if original_kind == "sequence":
        if len(original) != len(generated):
            return [Difference(path, LENGTH_MISMATCH, f"{len(original)} vs {len(generated)}")]
        differences = []
        for index, (left, right) in enumerate(zip(original, generated)):
            differences.extend(deep_diff(left, right, (*path, index)))
        return differences

    if not _same_scalar(original, generated):
        return [Difference(path, VALUE_MISMATCH, f"{original!r} vs {generated!r}")]
    return []


def validate_merge(target: TargetFormat, original: dict[Any, Any], generated_text: str) -> ValidationResult:
    try:
        generated = load_document(generated_text, source=f"generated {target.label} config")
        before = strip_owned(target.normalize(original), target.is_owned)
        after = strip_owned(target.normalize(generated), target.is_owned)
    except ValueError as exc:
        return ValidationResult(valid=False, error=str(exc))

    differences = tuple(deep_diff(before, after))
    return ValidationResult(valid=not differences, differences=differences)

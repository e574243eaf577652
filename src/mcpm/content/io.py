from __future__ import annotations

import json
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import yaml

from mcpm.content.documents import normalize_document
from mcpm.errors import ParseError

CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")
YAML_INDENT = 2
YAML_LINE_WIDTH = float("inf")

BOOL_TAG = "tag:yaml.org,2002:bool"
INT_TAG = "tag:yaml.org,2002:int"
STR_TAG = "tag:yaml.org,2002:str"

# YAML 1.2 core-schema booleans and integers. Plugin configs use keys such as
# ``yes:``/``no:`` and values such as ``12:30`` that YAML 1.1 would coerce.
_BOOL_PATTERN = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
_INT_PATTERN = re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0x[0-9a-fA-F]+)$")


def _restrict_implicit_resolvers(cls: type) -> type:
    cls.yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag not in {BOOL_TAG, INT_TAG}]
        for first, resolvers in cls.yaml_implicit_resolvers.items()
    }
    cls.add_implicit_resolver(BOOL_TAG, _BOOL_PATTERN, list("tTfF"))
    cls.add_implicit_resolver(INT_TAG, _INT_PATTERN, list("-+0123456789"))
    return cls


@_restrict_implicit_resolvers
class DocumentLoader(yaml.SafeLoader):
    pass


@_restrict_implicit_resolvers
class DocumentDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar(STR_TAG, data, style="|")
    return dumper.represent_scalar(STR_TAG, data)


DocumentDumper.add_representer(str, _represent_str)


def load_document(text: str, *, source: str | None = None) -> dict[Any, Any]:
    try:
        raw = yaml.load(text, Loader=DocumentLoader)
    except yaml.YAMLError as exc:
        raise ParseError(f"invalid YAML: {exc}", source=source) from exc
    except RecursionError as exc:
        raise ParseError("recursive YAML aliases are not supported", source=source) from exc
    return normalize_document(raw, source=source)


def load_document_file(path: str | Path) -> dict[Any, Any]:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("file is not valid UTF-8", source=str(source)) from exc
    return load_document(text, source=str(source))


def dump_document(document: dict[Any, Any]) -> str:
    return yaml.dump(
        document,
        Dumper=DocumentDumper,
        indent=YAML_INDENT,
        width=YAML_LINE_WIDTH,
        allow_unicode=True,
        default_flow_style=False,
        sort_keys=False,
    )


def canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def write_atomic_text(path: str | Path, text: str) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(text)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def write_atomic_json(path: str | Path, payload: dict[str, Any]) -> None:
    write_atomic_text(path, canonical_json(payload))


def read_json(path: str | Path) -> Any:
    source = Path(path)
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ParseError(f"invalid JSON: {exc}", source=str(source)) from exc

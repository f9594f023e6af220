"""Renders manifest templates into Kubernetes-style objects."""

from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import jinja2
import yaml

_MANIFEST_SUFFIXES = (".yml", ".yaml", ".json")


class TemplateRenderError(Exception):
    """Raised when a manifest cannot be read, rendered or parsed."""


@dataclass
class RenderData:
    """Template functions and values available to a manifest."""

    funcs: dict[str, Callable[..., Any]] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


def get_or(m: Mapping[str, Any], key: str, fallback: Any) -> Any:
    """Return m[key], or fallback if it is missing or the empty string."""
    if key not in m:
        return fallback
    value = m[key]
    if isinstance(value, str) and value == "":
        return fallback
    return value


def is_set(m: Mapping[str, Any], key: str) -> Any:
    """Return m[key] if present, otherwise False."""
    return m.get(key, False)


@jinja2.pass_context
def _get_or(context, key, fallback):
    return get_or(context.get_all(), key, fallback)


@jinja2.pass_context
def _is_set(context, key):
    return is_set(context.get_all(), key)


def _environment(data: RenderData) -> jinja2.Environment:
    env = jinja2.Environment(undefined=jinja2.StrictUndefined, keep_trailing_newline=True)
    env.globals.update(data.funcs)
    env.globals.update(getOr=_get_or, isSet=_is_set)
    return env


def _decode(text: str) -> list[Any]:
    stripped = text.lstrip()
    if stripped.startswith("{"):
        decoder = json.JSONDecoder()
        docs, pos = [], 0
        while pos < len(stripped):
            doc, pos = decoder.raw_decode(stripped, pos)
            docs.append(doc)
            while pos < len(stripped) and stripped[pos].isspace():
                pos += 1
        return docs
    return [doc for doc in yaml.safe_load_all(text) if doc is not None]


def render_template(path: str | os.PathLike, data: RenderData) -> list[dict[str, Any]]:
    """Read, render and parse one YAML or JSON manifest holding one or more objects."""
    path = os.fspath(path)
    try:
        with open(path, encoding="utf-8") as fh:
            source = fh.read()
    except OSError as exc:
        raise TemplateRenderError(f"failed to read manifest {path}: {exc}") from exc
    env = _environment(data)
    try:
        template = env.from_string(source)
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateRenderError(f"failed to parse manifest {path} as template: {exc}") from exc
    try:
        rendered = template.render(data.data)
    except jinja2.TemplateError as exc:
        raise TemplateRenderError(f"failed to render manifest {path}: {exc}") from exc
    if not rendered.strip():
        return []
    try:
        docs = _decode(rendered)
    except (ValueError, yaml.YAMLError) as exc:
        raise TemplateRenderError(f"failed to unmarshal manifest {path}: {exc}") from exc
    for doc in docs:
        if not isinstance(doc, dict):
            raise TemplateRenderError(f"failed to unmarshal manifest {path}: not an object")
    return docs


def _manifest_files(directory: str):
    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        if entry.is_dir():
            yield from _manifest_files(entry.path)
        elif entry.name.endswith(_MANIFEST_SUFFIXES):
            yield entry.path


def render_dir(manifest_dir: str | os.PathLike, data: RenderData) -> list[dict[str, Any]]:
    """Render every manifest in a directory tree, in lexical order."""
    try:
        return [obj for path in _manifest_files(os.fspath(manifest_dir)) for obj in render_template(path, data)]
    except (OSError, TemplateRenderError) as exc:
        raise TemplateRenderError(f"error rendering manifests: {exc}") from exc


def _plain(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"cannot serialize {type(obj).__name__}")


def to_unstructured(obj: Any) -> dict[str, Any]:
    """Convert an object obeying object conventions into a plain dict."""
    try:
        result = json.loads(json.dumps(obj, default=_plain))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"failed to convert to unstructured (marshal): {exc}") from exc
    if not isinstance(result, dict):
        raise ValueError("failed to convert to unstructured (unmarshal): not an object")
    return result
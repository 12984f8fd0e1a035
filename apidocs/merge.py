"""Merge per-service OpenAPI definitions into a single specification.

Paths and tags are unioned in input order, the first input wins when two services define
the same operation. Components are unioned too. When a later service defines a component
under a name that is already taken by a different one, its component is renamed with a
numeric suffix and the service's refs are pointed to the new name.
"""
import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

import structlog

from apidocs.exceptions import MergeError

log = structlog.get_logger()

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

COMPONENT_SECTIONS = (
    "schemas",
    "responses",
    "parameters",
    "examples",
    "requestBodies",
    "headers",
    "securitySchemes",
    "links",
    "callbacks",
)

# taken from the first definition that has them
FIRST_WINS_FIELDS = ("openapi", "swagger", "info", "servers", "security", "externalDocs")


class Merger(Protocol):
    def merge(self, definitions: List[Dict[str, Any]]) -> Dict[str, Any]:
        ...


class OpenAPIMerger:
    """Union of OpenAPI documents."""

    def merge(self, definitions: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not definitions:
            raise MergeError("No OpenAPI definitions to merge")

        for i, definition in enumerate(definitions):
            _check_definition(definition, i)

        components, definitions = _merge_components(definitions)

        out: Dict[str, Any] = {}
        for name in FIRST_WINS_FIELDS:
            for definition in definitions:
                if name in definition:
                    out[name] = definition[name]
                    break

        tags = _merge_tags(definitions)
        if tags:
            out["tags"] = tags

        out["paths"] = _merge_paths(definitions)

        if components:
            out["components"] = components

        _check_refs(out)

        return out


def _check_definition(definition: Any, index: int) -> None:
    if not isinstance(definition, dict):
        raise MergeError(f"Definition #{index} is not a mapping")
    if "openapi" not in definition and "swagger" not in definition:
        raise MergeError(f"Definition #{index} has no `openapi` version field")
    if not isinstance(definition.get("paths", {}) or {}, dict):
        raise MergeError(f"Definition #{index} has invalid `paths`, expected a mapping")
    if not isinstance(definition.get("components", {}) or {}, dict):
        raise MergeError(f"Definition #{index} has invalid `components`, expected a mapping")


def _merge_tags(definitions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    tags = []
    seen = set()
    for definition in definitions:
        for tag in definition.get("tags", []) or []:
            name = tag.get("name") if isinstance(tag, dict) else None
            if name is None or name in seen:
                continue
            seen.add(name)
            tags.append(tag)
    return tags


def _merge_paths(definitions: List[Dict[str, Any]]) -> Dict[str, Any]:
    paths: Dict[str, Any] = {}
    for i, definition in enumerate(definitions):
        for path, item in (definition.get("paths", {}) or {}).items():
            if not isinstance(item, dict):
                raise MergeError(f"Definition #{i} has invalid path item for {path}")

            if path not in paths:
                paths[path] = dict(item)
                continue

            merged = paths[path]
            for field, value in item.items():
                if field not in merged:
                    merged[field] = value
                elif merged[field] != value:
                    if field in HTTP_METHODS:
                        log.warning("merge.duplicate_operation", path=path, method=field, definition=i)
                    else:
                        log.warning("merge.duplicate_path_field", path=path, field=field, definition=i)
    return paths


def _escape_pointer(name: str) -> str:
    return name.replace("~", "~0").replace("/", "~1")


def _component_ref(section: str, name: str) -> str:
    return f"#/components/{section}/{_escape_pointer(name)}"


def _free_name(name: str, value: Any, merged: Dict[str, Any], entries: Dict[str, Any]) -> str:
    """First `<name><n>` that is unused, or already holds the same value."""
    n = 1
    while True:
        candidate = f"{name}{n}"
        if candidate not in entries and (candidate not in merged or merged[candidate] == value):
            return candidate
        n += 1


def _rewrite_refs(node: Any, refs: Dict[str, str], schemes: Dict[str, str]) -> Any:
    """Copy of `node` with renamed component refs and security scheme names replaced."""
    if isinstance(node, dict):
        out = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                out[key] = _rename_ref(value, refs)
            elif key == "security" and isinstance(value, list) and schemes:
                out[key] = [
                    {schemes.get(k, k): v for k, v in req.items()} if isinstance(req, dict) else req for req in value
                ]
            else:
                out[key] = _rewrite_refs(value, refs, schemes)
        return out
    elif isinstance(node, list):
        return [_rewrite_refs(value, refs, schemes) for value in node]
    return node


def _rename_ref(ref: str, refs: Dict[str, str]) -> str:
    for old, new in refs.items():
        if ref == old or ref.startswith(old + "/"):
            return new + ref[len(old) :]
    return ref


def _merge_components(definitions: List[Dict[str, Any]]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Union components of all definitions.

    A name already taken by a different component is renamed with a numeric suffix
    (`Error` -> `Error1`) and refs of the definition that brought it are rewritten.
    Returns merged components and the definitions with rewritten refs.
    """
    components: Dict[str, Any] = {}
    rewritten = []
    for i, definition in enumerate(definitions):
        renames: Dict[str, Dict[str, str]] = {}
        for section, entries in (definition.get("components", {}) or {}).items():
            if not entries:
                continue
            if not isinstance(entries, dict):
                if section in COMPONENT_SECTIONS:
                    raise MergeError(f"Definition #{i} has invalid components.{section}")
                continue
            if section not in COMPONENT_SECTIONS:
                continue

            merged = components.get(section, {})
            for name, value in entries.items():
                if name in merged and merged[name] != value:
                    new_name = _free_name(name, value, merged, entries)
                    renames.setdefault(section, {})[name] = new_name
                    log.warning(
                        "merge.renamed_component", section=section, name=name, new_name=new_name, definition=i
                    )

        if renames:
            refs = {
                _component_ref(section, name): _component_ref(section, new_name)
                for section, names in renames.items()
                for name, new_name in names.items()
            }
            definition = _rewrite_refs(definition, refs, renames.get("securitySchemes", {}))
        rewritten.append(definition)

        for section, entries in (definition.get("components", {}) or {}).items():
            if not entries:
                continue
            if not isinstance(entries, dict):
                components.setdefault(section, entries)
                continue

            section_renames = renames.get(section, {})
            merged = components.setdefault(section, {})
            for name, value in entries.items():
                name = section_renames.get(name, name)
                if name not in merged:
                    merged[name] = value
                elif merged[name] != value:
                    # vendor extensions (x-...) are not renamed, first wins
                    log.warning("merge.duplicate_component", section=section, name=name, definition=i)
    return components, rewritten


def _iter_refs(node: Any) -> Iterator[str]:
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                yield value
            else:
                yield from _iter_refs(value)
    elif isinstance(node, list):
        for value in node:
            yield from _iter_refs(value)


def _resolve_pointer(doc: Any, pointer: str) -> bool:
    if not pointer:
        return True
    node = doc
    for part in pointer.lstrip("/").split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return False
    return True


def _check_refs(spec: Dict[str, Any]) -> None:
    """Every local `$ref` must point inside the merged spec, remote refs are left alone."""
    for ref in set(_iter_refs(spec)):
        if not ref.startswith("#"):
            continue
        if not _resolve_pointer(spec, ref[1:]):
            raise MergeError(f"Unresolvable reference {ref}")


def write_merged_spec(spec: Dict[str, Any], path: Path) -> None:
    """Write merged spec as compact JSON, overwriting existing file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(spec, f, separators=(",", ":"), ensure_ascii=False)


def merge_definitions(
    definitions: List[Dict[str, Any]], path: Path, merger: Optional[Merger] = None
) -> Dict[str, Any]:
    merger = merger or OpenAPIMerger()
    spec = merger.merge(definitions)
    write_merged_spec(spec, path)
    log.info("merge_definitions", definitions=len(definitions), paths=len(spec.get("paths", {})), path=str(path))
    return spec

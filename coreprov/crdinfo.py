"""Listing of the CRDs that a chart ships in its crds/ directory."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

import yaml


@dataclass(frozen=True)
class CRDInfo:
    kind: str
    resource: str
    group: str
    version: str
    namespaced: bool


def get_crd_info_list(pkg):
    """Return one CRDInfo per version of each CRD in the chart's crds/ directory."""
    crds_dir = posixpath.join(pkg.root_dir, "crds")
    try:
        entries = pkg.read_dir(crds_dir)
    except OSError as exc:
        raise type(exc)(f"failed to read directory {crds_dir}: {exc}") from exc

    result = []
    for entry in entries:
        if entry.is_dir or not entry.name.endswith(".yaml"):
            continue
        with pkg.open(posixpath.join(crds_dir, entry.name)) as stream:
            content = stream.read()
        try:
            doc = next(iter(yaml.safe_load_all(content)), None)
        except yaml.YAMLError as exc:
            raise ValueError(f"failed to unmarshal CRD: {exc}") from exc
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ValueError(f"failed to unmarshal CRD: {entry.name} is not a mapping")
        spec = doc.get("spec") or {}
        names = spec.get("names") or {}
        for version in spec.get("versions") or []:
            result.append(
                CRDInfo(
                    kind=names.get("kind", ""),
                    resource=names.get("plural", ""),
                    group=spec.get("group", ""),
                    version=(version or {}).get("name", ""),
                    namespaced=spec.get("scope") == "Namespaced",
                )
            )
    return result
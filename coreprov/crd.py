"""CustomResourceDefinition model, version bookkeeping and install helpers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .kube import GroupResource, NamespacedName, NotFoundError, retry_do

CRD_KIND = "CustomResourceDefinition"
VACUUM = "vacuum"


@dataclass
class CustomResourceConversion:
    strategy: str
    webhook: Optional[dict] = None


@dataclass
class CustomResourceDefinitionVersion:
    name: str
    served: bool = False
    storage: bool = False
    schema: Optional[dict] = None


@dataclass
class CustomResourceDefinition:
    name: str = ""
    group: str = ""
    names: dict = field(default_factory=dict)
    scope: str = ""
    versions: list = field(default_factory=list)
    conversion: Optional[CustomResourceConversion] = None
    namespace: str = ""
    resource_version: str = ""
    kind: str = CRD_KIND


def _vacuum_version():
    return CustomResourceDefinitionVersion(
        name=VACUUM,
        served=False,
        storage=True,
        schema={
            "openAPIV3Schema": {
                "type": "object",
                "description": "This is a vacuum version to storage different versions",
                "properties": {
                    "apiVersion": {
                        "type": "string",
                        "description": (
                            "APIVersion defines the versioned schema of this representation "
                            "of an object. Servers should convert recognized schemas to the "
                            "latest internal value, and may reject unrecognized values. More "
                            "info: https://git.k8s.io/community/contributors/devel/"
                            "sig-architecture/api-conventions.md#resources"
                        ),
                    },
                    "kind": {"type": "string"},
                    "metadata": {"type": "object"},
                    "spec": {"type": "object", "x-kubernetes-preserve-unknown-fields": True},
                    "status": {"type": "object", "x-kubernetes-preserve-unknown-fields": True},
                },
            }
        },
    )


def _plural(singular: str) -> str:
    if len(singular) < 2:
        return singular
    last, prev = singular[-1], singular[-2]
    if last in "sxz":
        return singular + "es"
    if last == "y":
        return singular[:-1] + "ies" if prev.lower() not in "aeiou" else singular + "s"
    if last == "h":
        return singular + "es" if prev in "cs" else singular + "s"
    if last == "e":
        return singular[:-2] + "ves" if prev == "f" else singular + "s"
    if last == "f":
        return singular[:-1] + "ves"
    return singular + "s"


def infer_group_resource(gk):
    """Guess the resource name of a kind: its lower-cased plural."""
    return GroupResource(gk.group, _plural(gk.kind).lower())


def conversion_conf(crd, conf):
    """Return a copy of ``crd`` with its conversion set to ``conf``."""
    result = copy.deepcopy(crd)
    result.conversion = conf
    return result


def set_served_storage(crd, version, served, storage):
    """Set the served and storage flags of the named version in place."""
    for item in crd.versions:
        if item.name == version:
            item.served = served
            item.storage = storage


def append_version(crd, toadd):
    """Return a copy of ``crd`` holding the new versions of ``toadd``.

    A storage-only "vacuum" version is added once; all other versions are
    marked served and not stored.
    """
    result = copy.deepcopy(crd)
    for new in toadd.versions:
        names = {v.name for v in result.versions}
        if new.name in names:
            continue
        result.versions.append(copy.deepcopy(new))
        if VACUUM not in names:
            result.versions.append(_vacuum_version())
        for item in result.versions:
            if item.name != VACUUM:
                item.served = True
                item.storage = False
    return result


def update(kube, name, new_obj):
    """Replace the stored CRD named ``name``; a missing CRD is not an error."""

    def attempt():
        try:
            current = kube.get(CRD_KIND, NamespacedName(name))
        except NotFoundError:
            print("CRD not found")
            return
        new_obj.resource_version = current.resource_version
        try:
            kube.update(new_obj)
        except NotFoundError:
            print("CRD not found")

    retry_do(attempt)


def uninstall(kube, gr):
    """Delete the CRD for a group resource; a missing CRD is not an error."""

    def attempt():
        try:
            obj = kube.get(CRD_KIND, NamespacedName(str(gr)))
            kube.delete(obj)
        except NotFoundError:
            pass

    retry_do(attempt)


def install(kube, obj):
    """Create the CRD, replacing any existing one of the same name."""

    def attempt():
        try:
            existing = kube.get(CRD_KIND, NamespacedName(obj.name))
        except NotFoundError:
            kube.create(obj)
            return
        try:
            kube.delete(existing)
        except Exception:
            pass
        kube.create(obj)

    retry_do(attempt)


def get(kube, gvr):
    """Return the CRD for ``gvr``, or None when it does not exist."""
    try:
        return kube.get(CRD_KIND, NamespacedName(str(gvr.group_resource())))
    except NotFoundError:
        return None


def lookup(kube, gvr):
    """Return True when the CRD exists and has the version of ``gvr``."""
    found = get(kube, gvr)
    return found is not None and any(v.name == gvr.version for v in found.versions)


def unmarshal(data):
    """Decode a CRD from YAML text or bytes."""
    doc: Any = yaml.safe_load(data)
    if not isinstance(doc, dict):
        raise ValueError("CRD document must be a mapping")
    kind = doc.get("kind")
    if kind and kind != CRD_KIND:
        raise ValueError(f"expected kind {CRD_KIND}, got {kind}")
    meta = doc.get("metadata") or {}
    spec = doc.get("spec") or {}
    conv = spec.get("conversion")
    return CustomResourceDefinition(
        name=meta.get("name", ""),
        group=spec.get("group", ""),
        names=dict(spec.get("names") or {}),
        scope=spec.get("scope", ""),
        versions=[
            CustomResourceDefinitionVersion(
                name=v.get("name", ""),
                served=bool(v.get("served", False)),
                storage=bool(v.get("storage", False)),
                schema=v.get("schema"),
            )
            for v in spec.get("versions") or []
        ],
        conversion=(
            CustomResourceConversion(conv.get("strategy", ""), conv.get("webhook"))
            if conv
            else None
        ),
        resource_version=str(meta.get("resourceVersion", "")),
    )
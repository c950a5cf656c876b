"""Derivation of the RBAC objects a composition controller needs from a chart's templates."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional

import yaml

from .crdinfo import get_crd_info_list
from .kube import NamespacedName
from .rbactools import (
    ClusterRole,
    ClusterRoleBinding,
    PolicyRule,
    Role,
    RoleBinding,
    ServiceAccount,
    create_cluster_role_binding,
    create_role_binding,
    create_service_account,
    init_cluster_role,
    init_role,
)

_KIND_API_VERSION_MESSAGE = "failed to find kind and apiVersion"
_NS_PLACEHOLDER = "krateo-tpl-namespace-auto-generated"

_TPL = r"\{\{(?:[^{}]|\{\{.*?\}\})*\}\}"
_COMMENT = re.compile(r"\{\{-?\s*/\*[\s\S]*?\*/\s*-?\}\}", re.ASCII)
_LOOKUP = re.compile(
    r'lookup\s*(?:"([^"]+)"|(\S+))\s*(?:"([^"]+)"|(\S+))'
    r'\s*(?:"([^"]+)"|(\S+))\s*(?:"([^"]+)"|(\S+))',
    re.ASCII,
)
_NAMESPACE_START = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?")
_NAMESPACE_LINE = re.compile(r"^\s\snamespace:\s*" + _TPL, re.ASCII)
_TEMPLATED_FIELD = re.compile(r":\s*" + _TPL, re.ASCII)
_FIELD_VALUE = re.compile(r":\s*(.*)", re.ASCII)
_IF = re.compile(r"^\{\{\s*-?\s*if\s+.+\}\}", re.ASCII)
_ELSE_IF = re.compile(r"^\{\{\s*-?\s*else\s+if\s+.+\}\}", re.ASCII)
_ELSE = re.compile(r"^\{\{\s*-?\s*else\s+\}\}", re.ASCII)
_DOTS = re.compile(r"^\.\.\.\s*$", re.ASCII)
_TEMPLATE = re.compile(_TPL)
_DIVIDER = re.compile(r"^-{3}\s*$", re.ASCII)


class KindApiVersionError(Exception):
    """Some chart resources could not be resolved to a kind and resource.

    ``rbac`` holds the RBAC map computed from what could be resolved.
    """

    def __init__(self, message=_KIND_API_VERSION_MESSAGE, rbac=None):
        super().__init__(message)
        self.rbac = rbac


@dataclass
class Resource:
    kind: str = ""
    resource: str = ""
    api_version: str = ""
    namespace: str = ""
    is_namespace_templated: bool = False
    is_namespaced: bool = False


@dataclass
class RBAC:
    role: Optional[Role] = None
    cluster_role: Optional[ClusterRole] = None
    role_binding: Optional[RoleBinding] = None
    cluster_role_binding: Optional[ClusterRoleBinding] = None
    service_account: Optional[ServiceAccount] = None


def _scan_lines(text):
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _contains_rule(rules, rule):
    return any(
        r.api_groups[0] == rule.api_groups[0]
        and r.resources[0] == rule.resources[0]
        and r.verbs[0] == rule.verbs[0]
        for r in rules
    )


def _api_group(api_version):
    parts = api_version.split("/")
    return parts[0] if len(parts) > 1 else ""


def _wrap_errors(errors):
    return f"{_KIND_API_VERSION_MESSAGE}: {errors[-1]} - "


def _field(mapping, key):
    value = mapping.get(key) if isinstance(mapping, dict) else None
    return "" if value is None else str(value)


def get_resource_from_lookup(lookup):
    """Return the resource named by a template ``lookup`` call in ``lookup``, or None."""
    match = _LOOKUP.search(lookup)
    if match is None:
        return None
    groups = match.groups()
    api_version = groups[0] or groups[1] or ""
    kind = groups[2] or groups[3] or ""
    namespace = groups[4] or groups[5] or ""
    res = Resource(kind=kind, api_version=api_version, namespace=namespace)
    if not _NAMESPACE_START.match(res.namespace):
        res.is_namespace_templated = True
        res.namespace = ""
    return res


class RbacGenerator:
    """Builds, per namespace, the roles and bindings a chart's resources require."""

    def __init__(
        self, discovery, pkg, deploy_name, deploy_namespace, secret_name, secret_namespace
    ):
        self._discovery = discovery
        self._pkg = pkg
        self._deploy_name = deploy_name
        self._deploy_namespace = deploy_namespace
        self._secret_name = secret_name
        self._secret_namespace = secret_namespace

    def populate_rbac(self, resource_name):
        """Return a map from namespace ("" for cluster scope) to its RBAC objects.

        Raises KindApiVersionError, carrying the map, when some resources could
        not be resolved; other failures to read the chart raise OSError.
        """
        template_dir = posixpath.join(self._pkg.root_dir, "templates")
        rbac_err = None
        try:
            resources, errors = self._collect(template_dir)
        except KindApiVersionError as exc:
            resources, rbac_err = [], exc
        except OSError as exc:
            raise type(exc)(f"failed to get resources info: {exc}") from exc
        else:
            if errors:
                rbac_err = KindApiVersionError(_wrap_errors(errors))

        rbac_map: dict[str, RBAC] = {}
        for res in resources:
            self._add_resource(rbac_map, res, resource_name)

        deploy_key = NamespacedName(self._deploy_name, self._deploy_namespace)
        rb = rbac_map.setdefault(self._deploy_namespace, RBAC())
        if rb.role is None:
            rb.role = init_role(resource_name, deploy_key)
        if rb.role_binding is None:
            rb.role_binding = create_role_binding(deploy_key, deploy_key)
        if rb.service_account is None:
            rb.service_account = create_service_account(deploy_key)
        rb.role.rules.extend(
            [
                PolicyRule(
                    api_groups=["core.krateo.io"],
                    resources=["compositiondefinitions", "compositiondefinitions/status"],
                    verbs=["*"],
                ),
                PolicyRule(
                    api_groups=["composition.krateo.io"],
                    resources=[resource_name, f"{resource_name}/status"],
                    verbs=["*"],
                ),
                PolicyRule(api_groups=[""], resources=["secrets"], verbs=["*"]),
            ]
        )

        if self._secret_namespace and self._secret_name:
            secret_key = NamespacedName(self._deploy_name, self._secret_namespace)
            rb = rbac_map.setdefault(self._secret_namespace, RBAC())
            if rb.role is None:
                rb.role = init_role(resource_name, secret_key)
            if rb.role_binding is None:
                rb.role_binding = create_role_binding(deploy_key, secret_key)
            rb.role.rules.append(
                PolicyRule(
                    api_groups=[""],
                    resources=["secrets"],
                    verbs=["get"],
                    resource_names=[self._secret_name],
                )
            )

        if rbac_err is not None:
            rbac_err.rbac = rbac_map
            raise rbac_err
        return rbac_map

    def _add_resource(self, rbac_map, res, resource_name):
        namespace = ""
        if res.is_namespaced:
            if not res.namespace and not res.is_namespace_templated:
                res.namespace = self._deploy_namespace
            elif not res.namespace and res.is_namespace_templated:
                res.is_namespaced = False
            namespace = res.namespace
        key = NamespacedName(self._deploy_name, namespace)

        rb = rbac_map.get(namespace)
        if rb is None:
            rb = RBAC()
            if res.is_namespaced:
                rb.role = init_role(resource_name, key)
                rb.role_binding = create_role_binding(
                    NamespacedName(self._deploy_name, self._deploy_namespace), key
                )
            else:
                rb.cluster_role = init_cluster_role(key)
                rb.cluster_role.rules.append(
                    PolicyRule(
                        api_groups=[""],
                        resources=["namespaces"],
                        verbs=["get", "list", "watch", "create"],
                    )
                )
                rb.cluster_role_binding = create_cluster_role_binding(
                    NamespacedName(self._deploy_name, self._deploy_namespace)
                )
            rbac_map[namespace] = rb

        rule = PolicyRule(
            api_groups=[_api_group(res.api_version)], resources=[res.resource], verbs=["*"]
        )
        if res.is_namespaced and namespace:
            if rb.role is None:
                rb.role = init_role(resource_name, key)
            target = rb.role
        else:
            if rb.cluster_role is None:
                rb.cluster_role = init_cluster_role(key)
            target = rb.cluster_role
        if not _contains_rule(target.rules, rule):
            target.rules.append(rule)

    def _read_dir(self, path):
        try:
            return self._pkg.read_dir(path)
        except OSError as exc:
            raise type(exc)(f"failed to read directory {path}: {exc}") from exc

    def _dependency_dir(self, templates_dir):
        base = templates_dir
        if base.endswith("templates"):
            base = base[: -len("templates")]
        charts_dir = posixpath.join(base, "charts")
        try:
            self._pkg.read_dir(charts_dir)
        except OSError:
            return ""
        return charts_dir

    def _crd_list(self):
        try:
            return get_crd_info_list(self._pkg)
        except (OSError, ValueError):
            return []

    def _collect_strict(self, templates_dir):
        resources, errors = self._collect(templates_dir)
        if errors:
            raise KindApiVersionError(_wrap_errors(errors))
        return resources

    def _collect(self, templates_dir):
        """Return the resources found under ``templates_dir`` and the soft errors met."""
        resources: list[Resource] = []
        errors: list[str] = []
        crd_list = self._crd_list()

        deps_dir = self._dependency_dir(templates_dir)
        if deps_dir:
            for entry in self._read_dir(deps_dir):
                if entry.is_dir:
                    dep_templates = posixpath.join(deps_dir, entry.name, "templates")
                    resources.extend(self._collect_strict(dep_templates))

        for entry in self._read_dir(templates_dir):
            path = posixpath.join(templates_dir, entry.name)
            if entry.is_dir:
                resources.extend(self._collect_strict(path))
                continue
            try:
                with self._pkg.open(path) as stream:
                    text = stream.read().decode("utf-8", errors="replace")
            except OSError as exc:
                raise type(exc)(f"failed to open file {entry.name}: {exc}") from exc
            self._scan_file(entry.name, text, crd_list, resources, errors)

        return resources, errors

    def _resolve(self, res, crd_list, errors):
        group = _api_group(res.api_version)
        try:
            res.resource, res.is_namespaced = self._gk_info(group, res.kind, crd_list)
        except (LookupError, ValueError, OSError) as exc:
            res.resource = ""
            res.is_namespaced = False
            errors.append(f"failed to get resource info for {res.kind} {res.api_version}: {exc}")

    def _gk_info(self, group, kind, crd_list):
        for info in crd_list:
            if info.group == group and info.kind == kind:
                return info.resource, info.namespaced
        mapping = self._discovery.rest_mapping(group, kind)
        return mapping.resource.resource, mapping.namespaced

    def _scan_file(self, name, text, crd_list, resources, errors):
        is_tpl = name.endswith(".tpl")
        is_yaml = name.endswith((".yaml", ".yml"))
        out: list[str] = []
        if is_tpl or is_yaml:
            for line in _scan_lines(text):
                if _COMMENT.search(line):
                    continue
                found = get_resource_from_lookup(line)
                if found is not None:
                    self._resolve(found, crd_list, errors)
                    resources.append(found)
                if is_yaml:
                    out.append(self._rewrite_line(line))

        cleaned = _TEMPLATE.sub("", "".join(line + "\n" for line in out)) + "\n"
        segments, current = [], []
        for line in _scan_lines(cleaned):
            if _DIVIDER.match(line):
                segments.append("".join(current))
                current = []
                continue
            current.append(line + "\n")
        segments.append("".join(current))

        for segment in segments:
            try:
                doc = next(iter(yaml.safe_load_all(segment)), None)
            except yaml.YAMLError as exc:
                errors.append(f"failed to parse yaml in file {name} : {exc}")
                continue
            if doc is None or doc == {} or doc == []:
                continue
            res = Resource(kind=_field(doc, "kind"), api_version=_field(doc, "apiVersion"))
            namespace = _field(doc.get("metadata") if isinstance(doc, dict) else None, "namespace")
            if namespace == _NS_PLACEHOLDER:
                namespace = ""
                res.is_namespace_templated = True
            res.namespace = namespace
            if not res.kind or not res.api_version:
                errors.append(f"{name}: {res.kind} {res.api_version} {res.namespace}")
                continue
            self._resolve(res, crd_list, errors)
            resources.append(res)

    @staticmethod
    def _rewrite_line(line):
        replaced = _NAMESPACE_LINE.sub(f"  namespace: {_NS_PLACEHOLDER}", line)
        if replaced != line:
            return replaced
        field_match = _TEMPLATED_FIELD.search(line)
        if field_match:
            stripped = _FIELD_VALUE.sub("", field_match.group())
            if stripped != line:
                return stripped
        for pattern in (_IF, _ELSE_IF, _ELSE):
            replaced = pattern.sub("---", line)
            if replaced != line:
                return replaced
        if _DOTS.match(line):
            return ""
        return line
"""RBAC objects (roles, bindings, service accounts) and their install helpers."""

from __future__ import annotations

from dataclasses import dataclass, field

from .gvr import singularize
from .kube import NamespacedName, NotFoundError, retry_do

RBAC_API_GROUP = "rbac.authorization.k8s.io"
RBAC_API_VERSION = f"{RBAC_API_GROUP}/v1"


@dataclass
class PolicyRule:
    api_groups: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    verbs: list[str] = field(default_factory=list)
    resource_names: list[str] = field(default_factory=list)


@dataclass
class Subject:
    kind: str
    name: str
    namespace: str = ""


@dataclass
class RoleRef:
    api_group: str
    kind: str
    name: str


@dataclass
class Role:
    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    rules: list[PolicyRule] = field(default_factory=list)
    kind: str = "Role"
    api_version: str = RBAC_API_VERSION
    resource_version: str = ""


@dataclass
class ClusterRole:
    name: str
    rules: list[PolicyRule] = field(default_factory=list)
    namespace: str = ""
    kind: str = "ClusterRole"
    api_version: str = RBAC_API_VERSION
    resource_version: str = ""


@dataclass
class RoleBinding:
    name: str
    namespace: str = ""
    role_ref: RoleRef | None = None
    subjects: list[Subject] = field(default_factory=list)
    kind: str = "RoleBinding"
    api_version: str = RBAC_API_VERSION
    resource_version: str = ""


@dataclass
class ClusterRoleBinding:
    name: str
    role_ref: RoleRef | None = None
    subjects: list[Subject] = field(default_factory=list)
    namespace: str = ""
    kind: str = "ClusterRoleBinding"
    api_version: str = RBAC_API_VERSION
    resource_version: str = ""


@dataclass
class ServiceAccount:
    name: str
    namespace: str = ""
    kind: str = "ServiceAccount"
    api_version: str = "v1"
    resource_version: str = ""


def init_role(resource, opts):
    """Return an empty Role named after ``opts``, labelled for ``resource``."""
    kind = singularize(resource).lower()
    return Role(
        name=opts.name,
        namespace=opts.namespace,
        labels={
            "app.kubernetes.io/name": "role",
            "app.kubernetes.io/instance": "manager-role",
            "app.kubernetes.io/component": "rbac",
            "app.kubernetes.io/created-by": kind,
            "app.kubernetes.io/part-of": kind,
            "app.kubernetes.io/managed-by": "kustomize",
        },
    )


def init_cluster_role(opts):
    """Return a ClusterRole allowing CRD reads and event writes."""
    return ClusterRole(
        name=opts.name,
        rules=[
            PolicyRule(
                api_groups=["apiextensions.k8s.io"],
                resources=["customresourcedefinitions"],
                verbs=["get", "list"],
            ),
            PolicyRule(api_groups=[""], resources=["events"], verbs=["create", "patch", "update"]),
        ],
    )


def create_role_binding(sa, opts):
    """Bind the Role named by ``opts`` to the service account ``sa``."""
    return RoleBinding(
        name=opts.name,
        namespace=opts.namespace,
        role_ref=RoleRef(api_group=RBAC_API_GROUP, kind="Role", name=opts.name),
        subjects=[Subject(kind="ServiceAccount", name=sa.name, namespace=sa.namespace)],
    )


def create_cluster_role_binding(opts):
    """Bind the ClusterRole named by ``opts`` to the service account of the same name."""
    return ClusterRoleBinding(
        name=opts.name,
        role_ref=RoleRef(api_group=RBAC_API_GROUP, kind="ClusterRole", name=opts.name),
        subjects=[Subject(kind="ServiceAccount", name=opts.name, namespace=opts.namespace)],
    )


def create_service_account(opts):
    return ServiceAccount(name=opts.name, namespace=opts.namespace)


def populate_cluster_role_binding(tmp, obj):
    """Add to ``tmp`` the subjects of ``obj`` that it does not have yet."""
    for sub in obj.subjects:
        if not any(
            sub.name == have.name and sub.namespace == have.namespace and sub.kind == have.kind
            for have in tmp.subjects
        ):
            tmp.subjects.append(sub)


def _install_if_absent(kube, obj):
    def attempt():
        try:
            kube.get(obj.kind, NamespacedName(obj.name, obj.namespace))
        except NotFoundError:
            kube.create(obj)

    retry_do(attempt)


def _uninstall(kind, opts, key):
    def attempt():
        kube = opts.kube_client
        try:
            obj = kube.get(kind, key)
            kube.delete(obj)
        except NotFoundError:
            return
        if opts.log is not None:
            opts.log(
                f"{kind} successfully uninstalled", "name", obj.name, "namespace", obj.namespace
            )

    retry_do(attempt)


def _cluster_key(opts):
    return NamespacedName(opts.namespaced_name.name)


def install_role(kube, obj):
    _install_if_absent(kube, obj)


def uninstall_role(opts):
    _uninstall("Role", opts, opts.namespaced_name)


def install_cluster_role(kube, obj):
    _install_if_absent(kube, obj)


def uninstall_cluster_role(opts):
    _uninstall("ClusterRole", opts, _cluster_key(opts))


def install_role_binding(kube, obj):
    _install_if_absent(kube, obj)


def uninstall_role_binding(opts):
    _uninstall("RoleBinding", opts, opts.namespaced_name)


def install_cluster_role_binding(kube, obj):
    """Create the binding, or merge its subjects into the existing one."""

    def attempt():
        try:
            current = kube.get(obj.kind, NamespacedName(obj.name))
        except NotFoundError:
            kube.create(obj)
            return
        populate_cluster_role_binding(current, obj)
        kube.update(current)

    retry_do(attempt)


def uninstall_cluster_role_binding(opts):
    _uninstall("ClusterRoleBinding", opts, _cluster_key(opts))


def install_service_account(kube, obj):
    _install_if_absent(kube, obj)


def uninstall_service_account(opts):
    _uninstall("ServiceAccount", opts, opts.namespaced_name)
# coreprov

Helpers for a composition-definition controller. The package opens a
packaged Helm chart, scans its templates and `crds/` directory, and works
out the roles, cluster roles, bindings and service account that a
controller managing the chart's compositions needs. It also keeps track of
the versions of a CustomResourceDefinition and maps kinds to resource
names.

## Installation

    pip install coreprov

The tests need the `test` extra:

    pip install "coreprov[test]"

## Modules

- `coreprov.chartfs.ChartFS` is a read-only view of a chart archive.
  `ChartFS.from_reader(stream, package_url)` accepts a binary stream or
  bytes holding a tar archive, gzipped or not. The archive must contain
  exactly one root directory; otherwise `ValueError` is raised. The view
  provides `root_dir`, `package_url`, `open(name)`, `read_dir(name)` and
  `exists(name)`.
- `coreprov.crdinfo.get_crd_info_list(pkg)` returns one `CRDInfo` (kind,
  resource, group, version, namespaced) for each version of each `.yaml`
  CRD in the chart's `crds/` directory.
- `coreprov.gvr` provides `pluralize`, `singularize` and
  `to_group_version_resource(gvk)`. The last of these turns a
  `GroupVersionKind` into a `GroupVersionResource` whose resource is the
  lower-cased plural of the kind.
- `coreprov.crd` holds the CustomResourceDefinition model:
  `CustomResourceDefinition`, `CustomResourceDefinitionVersion` and
  `CustomResourceConversion`. It offers these functions:
  - `append_version` adds new versions along with a storage-only `vacuum`
    version, and marks every other version served and not stored.
  - `set_served_storage` and `conversion_conf` change the served and storage
    flags and the conversion settings.
  - `infer_group_resource` maps a kind to its resource name.
  - `unmarshal` decodes a CRD from YAML.
  - `install`, `uninstall`, `update`, `get` and `lookup` work against a
    client.
- `coreprov.rbactools` defines `PolicyRule`, `Subject`, `RoleRef`, `Role`,
  `ClusterRole`, `RoleBinding`, `ClusterRoleBinding` and `ServiceAccount`.
  - The builders are `init_role`, `init_cluster_role`, `create_role_binding`,
    `create_cluster_role_binding` and `create_service_account`.
  - Each kind has `install_*` and `uninstall_*` helpers.
  - `install_cluster_role_binding` merges new subjects into an existing
    binding, using `populate_cluster_role_binding`.
- `coreprov.rbacgen.RbacGenerator(discovery, pkg, deploy_name,
  deploy_namespace, secret_name, secret_namespace)` scans the chart's
  templates, including the templates of dependency charts under `charts/`.
  It collects the resources those templates declare or `lookup`, and
  resolves them through the chart's CRDs or the discovery client.
  `populate_rbac(resource_name)` returns a dict that maps each namespace to
  an `RBAC` entry; cluster scope uses the key `""`. When some resources
  cannot be resolved, it raises `KindApiVersionError`, and the computed map
  is available as the exception's `rbac` attribute.
  `get_resource_from_lookup(line)` parses a template `lookup` call.
- `coreprov.discovery` covers API discovery:
  - `FakeDiscovery` answers discovery calls from a fixed list of
    `APIResourceList`s.
  - `CachedDiscoveryClient(delegate, cache_directory, ttl)` caches the
    delegate's answers as JSON files on disk. It provides `fresh`,
    `invalidate`, and `rest_mapping(group, kind)`, which returns a
    `RESTMapping`.
  - `SumDiskCache` is a disk cache whose entries are checked with SHA-256.
  - `sanitize` and `parse_group_version` are helpers.
- `coreprov.kube` provides the shared types: `NamespacedName`,
  `GroupKind`, `GroupResource`, `GroupVersionKind`, `GroupVersionResource`,
  `UninstallOptions`, `Secret` and `SecretKeySelector`. It also provides:
  - `InMemoryClient`, an object store with `get`, `create`, `update` and
    `delete`. It raises `NotFoundError` and `AlreadyExistsError`.
  - `retry_do(func, attempts, delay)`.
  - `get_secret(kube, selector)`.
- `coreprov.versionsort.sort_versions` orders API version strings. GA
  versions come first, newest first, then beta, then alpha, then any
  strings it cannot parse. `Version.parse` and `Version.compare` expose the
  ordering.
- `coreprov.jsonequality` provides `json_eq`, `equal` and
  `objects_are_equal`. They compare JSON documents or Python values by
  content, and `json_eq` and `equal` print a diff when the values differ.
- `coreprov.env.get_env_or_default(key, default_value)` returns the value of
  an environment variable, or `default_value` when it is unset.

## Example

    from coreprov.chartfs import ChartFS
    from coreprov.discovery import APIResource, APIResourceList, CachedDiscoveryClient, FakeDiscovery
    from coreprov.rbacgen import KindApiVersionError, RbacGenerator

    with open("my-chart-0.1.0.tgz", "rb") as stream:
        pkg = ChartFS.from_reader(stream, "my-chart-0.1.0.tgz")

    fake = FakeDiscovery(resources=[
        APIResourceList(group_version="v1", api_resources=[
            APIResource(name="configmaps", kind="ConfigMap", namespaced=True),
        ]),
    ])
    discovery = CachedDiscoveryClient(fake, "cache-dir", ttl=1.0)

    generator = RbacGenerator(discovery, pkg, "my-deploy", "my-namespace", "", "")
    try:
        rbac_by_namespace = generator.populate_rbac("mycharts")
    except KindApiVersionError as exc:
        rbac_by_namespace = exc.rbac

## Static file server

The package includes a small static file server:

    coreprov-serve -p 8100 -d ./public

`-p` sets the port and defaults to 8100. `-d` sets the directory to serve
and defaults to the current directory. To run the server from code, call
`coreprov.server.make_server(directory, port)`.

## What it does not do

- It does not download charts from repositories or registries. You pass it
  the archive.
- It does not render chart templates. It scans them line by line.
- It does not connect to a Kubernetes cluster. The install, uninstall and
  lookup helpers work against `coreprov.kube.InMemoryClient`, and discovery
  answers come from `FakeDiscovery` or another delegate you supply.
- It has no controller loop, and it does not create the controller's
  Deployment.
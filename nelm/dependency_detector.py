"""Detection of the resources a Kubernetes manifest implicitly depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

NAMESPACE_DEFAULT = "default"

_MISSING = object()


@dataclass(frozen=True)
class InternalDependency:
    """A resource (or set of candidate resources) that another resource needs."""

    names: tuple[str, ...]
    namespaces: tuple[str, ...]
    groups: tuple[str, ...]
    versions: tuple[str, ...]
    kinds: tuple[str, ...]
    default_namespace: str = ""


def _nested(obj: Any, fields: Sequence[str]) -> Any:
    current = obj
    for field in fields:
        if not isinstance(current, dict) or field not in current:
            return _MISSING
        current = current[field]
    return current


def _nested_map(obj: Any, *fields: str) -> dict | None:
    value = _nested(obj, fields)
    if not isinstance(value, dict) or not value:
        return None
    return value


def _nested_list(obj: Any, *fields: str) -> list:
    value = _nested(obj, fields)
    if not isinstance(value, list):
        return []
    return value


def _nested_bool(obj: Any, *fields: str) -> bool | None:
    value = _nested(obj, fields)
    return value if isinstance(value, bool) else None


def _nested_str(obj: Any, *fields: str) -> str | None:
    value = _nested(obj, fields)
    return value if isinstance(value, str) else None


def _nested_str_not_empty(obj: Any, *fields: str) -> str | None:
    value = _nested_str(obj, *fields)
    return value or None


def _group_kind(obj: dict) -> tuple[str, str]:
    api_version = obj.get("apiVersion")
    kind = obj.get("kind")
    api_version = api_version if isinstance(api_version, str) else ""
    group = api_version.split("/", 1)[0] if "/" in api_version else ""
    return group, kind if isinstance(kind, str) else ""


# Where the pod template lives for workload kinds, keyed by (group, kind).
_POD_TEMPLATE_PATHS: dict[tuple[str, str], tuple[str, ...]] = {
    ("apps", "Deployment"): ("spec", "template"),
    ("batch", "CronJob"): ("spec", "jobTemplate", "spec", "template"),
    ("apps", "DaemonSet"): ("spec", "template"),
    ("batch", "Job"): ("spec", "template"),
    ("", "Pod"): (),
    ("apps", "ReplicaSet"): ("spec", "template"),
    ("", "ReplicationController"): ("spec", "template"),
    ("apps", "StatefulSet"): ("spec", "template"),
}

_ROLE_BINDING_KINDS = {
    ("rbac.authorization.k8s.io", "ClusterRoleBinding"),
    ("rbac.authorization.k8s.io", "RoleBinding"),
}


class InternalDependencyDetector:
    """Find the resources that a manifest refers to and so must exist first."""

    def __init__(self, default_namespace: str = "") -> None:
        self.default_namespace = default_namespace

    def detect(self, obj: dict) -> list[InternalDependency]:
        """Return the dependencies of the resource described by ``obj``."""
        group_kind = _group_kind(obj)
        namespace = self._namespace(obj)
        dependencies: list[InternalDependency] = []

        if group_kind == ("apps", "StatefulSet"):
            service_name = _nested_str_not_empty(obj, "serviceName")
            if service_name is not None:
                dependencies.append(self._dep(service_name, (namespace,), "", "Service"))

        path = _POD_TEMPLATE_PATHS.get(group_kind)
        if path is not None:
            pod = _nested_map(obj, *path) if path else obj
            if pod is not None:
                dependencies.extend(self._parse_pod(pod, namespace))
        elif group_kind in _ROLE_BINDING_KINDS:
            dep = self._parse_role_ref(obj, namespace)
            if dep is not None:
                dependencies.append(dep)

        return dependencies

    def _dep(
        self, name: str, namespaces: Sequence[str], group: str, kind: str
    ) -> InternalDependency:
        return InternalDependency(
            names=(name,),
            namespaces=tuple(namespaces),
            groups=(group,),
            versions=(),
            kinds=(kind,),
            default_namespace=self.default_namespace,
        )

    def _namespace(self, obj: dict) -> str:
        namespace = _nested_str(obj, "metadata", "namespace")
        if namespace:
            return namespace
        if self.default_namespace:
            return self.default_namespace
        return NAMESPACE_DEFAULT

    def _parse_pod(self, pod: dict, namespace: str) -> Iterator[InternalDependency]:
        for key in ("containers", "initContainers", "ephemeralContainers"):
            for container in _nested_list(pod, "spec", key):
                yield from self._parse_container(container, namespace)

        for secret in _nested_list(pod, "spec", "imagePullSecrets"):
            name = _nested_str_not_empty(secret, "name")
            if name is not None:
                yield self._dep(name, (namespace,), "", "Secret")

        node_name = _nested_str_not_empty(pod, "spec", "nodeName")
        if node_name is not None:
            yield self._dep(node_name, (), "", "Node")

        priority_class = _nested_str_not_empty(pod, "spec", "priorityClassName")
        if priority_class is not None:
            yield self._dep(priority_class, (), "scheduling.k8s.io", "PriorityClass")

        for claim in _nested_list(pod, "spec", "resourceClaims"):
            dep = self._parse_resource_claim(claim, namespace)
            if dep is not None:
                yield dep

        runtime_class = _nested_str_not_empty(pod, "spec", "runtimeClassName")
        if runtime_class is not None:
            yield self._dep(runtime_class, (), "node.k8s.io", "RuntimeClass")

        for key in ("serviceAccount", "serviceAccountName"):
            account = _nested_str_not_empty(pod, "spec", key)
            if account is not None:
                yield self._dep(account, (namespace,), "", "ServiceAccount")

        for volume in _nested_list(pod, "spec", "volumes"):
            dep = self._parse_volume(volume, namespace)
            if dep is not None:
                yield dep

    def _parse_container(self, container: Any, namespace: str) -> Iterator[InternalDependency]:
        for env in _nested_list(container, "env"):
            dep = self._parse_ref(env, "configMapKeyRef", "ConfigMap", namespace)
            if dep is None:
                dep = self._parse_ref(env, "secretKeyRef", "Secret", namespace)
            if dep is not None:
                yield dep

        for env in _nested_list(container, "envFrom"):
            dep = self._parse_ref(env, "configMapRef", "ConfigMap", namespace)
            if dep is None:
                dep = self._parse_ref(env, "secretRef", "Secret", namespace)
            if dep is not None:
                yield dep

    def _parse_ref(
        self, env: Any, ref_key: str, kind: str, namespace: str
    ) -> InternalDependency | None:
        ref = _nested_map(env, "valueFrom", ref_key)
        if ref is None:
            return None
        if _nested_bool(ref, "optional"):
            return None
        name = _nested_str_not_empty(ref, "name")
        if name is None:
            return None
        return self._dep(name, (namespace,), "", kind)

    def _parse_resource_claim(self, claim: Any, namespace: str) -> InternalDependency | None:
        source = _nested_map(claim, "source")
        if source is None:
            return None
        name = _nested_str_not_empty(source, "resourceClaimName")
        if name is not None:
            return self._dep(name, (namespace,), "resource.k8s.io", "ResourceClaim")
        template = _nested_str_not_empty(source, "resourceClaimNameTemplate")
        if template is not None:
            return self._dep(template, (namespace,), "resource.k8s.io", "ResourceClaimTemplate")
        return None

    def _parse_volume(self, volume: Any, namespace: str) -> InternalDependency | None:
        for key, name_key, kind in (("configMap", "name", "ConfigMap"), ("secret", "secretName", "Secret")):
            source = _nested_map(volume, key)
            if source is None:
                continue
            name = _nested_str_not_empty(source, name_key)
            if name is None or _nested_bool(source, "optional"):
                return None
            return self._dep(name, (namespace,), "", kind)
        return None

    def _parse_role_ref(self, obj: dict, namespace: str) -> InternalDependency | None:
        role_ref = _nested_map(obj, "roleRef")
        if role_ref is None:
            return None
        api_group = _nested_str(role_ref, "apiGroup")
        kind = _nested_str(role_ref, "kind")
        name = _nested_str(role_ref, "name")
        if api_group is None or kind is None or name is None:
            return None
        namespaces = () if kind == "ClusterRole" else (namespace,)
        return self._dep(name, namespaces, api_group, kind)
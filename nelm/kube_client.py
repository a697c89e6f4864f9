"""Kubernetes client wrapper with per-resource locking and a result cache."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .log import get_default_logger

_CRD_GROUP = "apiextensions.k8s.io"
_CRD_RESOURCE = "customresourcedefinitions"


class KubeClientError(RuntimeError):
    """Raised when a request to the cluster fails."""


class NotFoundError(KubeClientError):
    """The requested resource does not exist in the cluster."""


class AlreadyExistsError(KubeClientError):
    """The resource to be created already exists in the cluster."""


class PropagationPolicy(str, Enum):
    """How dependents of a deleted resource are handled."""

    FOREGROUND = "Foreground"
    BACKGROUND = "Background"
    ORPHAN = "Orphan"

    def __str__(self) -> str:
        return self.value


class _Resource(Protocol):
    def version_id(self) -> str: ...

    def human_id(self) -> str: ...

    def name(self) -> str: ...

    def namespace(self) -> str: ...

    def group_version_resource(self) -> tuple[str, str, str]: ...

    def namespaced(self) -> bool: ...


class _DynamicClient(Protocol):
    def get(self, gvr: tuple[str, str, str], name: str, namespace: str | None) -> dict: ...

    def apply(
        self,
        gvr: tuple[str, str, str],
        name: str,
        obj: dict,
        namespace: str | None,
        *,
        dry_run: bool,
        force: bool,
        field_manager: str,
    ) -> dict: ...

    def merge_patch(
        self,
        gvr: tuple[str, str, str],
        name: str,
        patch: bytes,
        namespace: str | None,
        *,
        field_manager: str,
    ) -> dict: ...

    def delete(
        self,
        gvr: tuple[str, str, str],
        name: str,
        namespace: str | None,
        *,
        propagation_policy: PropagationPolicy,
    ) -> None: ...


class _Mapper(Protocol):
    def reset(self) -> None: ...


@dataclass
class _CacheEntry:
    obj: dict | None = None
    err: Exception | None = None


def _wrap(err: Exception, message: str) -> KubeClientError:
    cls = type(err) if isinstance(err, KubeClientError) else KubeClientError
    wrapped = cls(f"{message}: {err}")
    wrapped.__cause__ = err
    return wrapped


def _is_crd(gvr: tuple[str, str, str]) -> bool:
    group, _, resource = gvr
    return group == _CRD_GROUP and resource == _CRD_RESOURCE


class KubeClient:
    """Get, create, apply, patch and delete resources through a dynamic client.

    Calls on the same resource are serialised. Results of successful and failed
    requests are remembered so that later reads may be served from the cache.
    """

    field_manager = "nelm"

    def __init__(self, dynamic_client: _DynamicClient, mapper: _Mapper) -> None:
        self.dynamic_client = dynamic_client
        self.mapper = mapper
        self._cache: dict[str, _CacheEntry] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def get(self, resource: _Resource, try_cache: bool = False) -> dict:
        """Fetch the resource, optionally answering from the cache."""
        key = resource.version_id()
        with self._lock(key):
            if try_cache and key in self._cache:
                entry = self._cache[key]
                if entry.err is not None:
                    raise _wrap(
                        entry.err,
                        f'error getting resource "{resource.human_id()}" from client cache',
                    )
                return copy.deepcopy(entry.obj)

            gvr, namespace = self._target(resource)
            get_default_logger().debug('Getting resource "%s"', resource.human_id())
            try:
                obj = self.dynamic_client.get(gvr, resource.name(), namespace)
            except Exception as err:
                self._cache[key] = _CacheEntry(err=err)
                raise _wrap(err, f'error getting resource "{resource.human_id()}"') from err
            self._cache[key] = _CacheEntry(obj=copy.deepcopy(obj))
            return obj

    def create(self, resource: _Resource, obj: dict, force_replicas: int | None = None) -> dict:
        """Create the resource by a forced server-side apply."""
        key = resource.version_id()
        with self._lock(key):
            gvr, namespace = self._target(resource)

            if force_replicas is not None:
                obj.setdefault("spec", {})["replicas"] = int(force_replicas)

            get_default_logger().debug('Server-side applying resource "%s"', resource.human_id())
            try:
                result = self.dynamic_client.apply(
                    gvr,
                    resource.name(),
                    obj,
                    namespace,
                    dry_run=False,
                    force=True,
                    field_manager=self.field_manager,
                )
            except Exception as err:
                self._cache[key] = _CacheEntry(err=err)
                raise _wrap(
                    err, f'error server-side applying resource "{resource.human_id()}"'
                ) from err
            self._cache[key] = _CacheEntry(obj=copy.deepcopy(result))

            if _is_crd(gvr):
                self.mapper.reset()
            return result

    def apply(self, resource: _Resource, obj: dict, dry_run: bool = False) -> dict:
        """Server-side apply the resource; a dry run leaves the cache alone."""
        key = resource.version_id()
        with self._lock(key):
            gvr, namespace = self._target(resource)
            prefix = "dry-run " if dry_run else ""

            get_default_logger().debug(
                'Server-side %sapplying resource "%s"', prefix, resource.human_id()
            )
            try:
                result = self.dynamic_client.apply(
                    gvr,
                    resource.name(),
                    obj,
                    namespace,
                    dry_run=dry_run,
                    force=True,
                    field_manager=self.field_manager,
                )
            except Exception as err:
                if not dry_run:
                    self._cache[key] = _CacheEntry(err=err)
                raise _wrap(
                    err, f'error server-side {prefix}applying resource "{resource.human_id()}"'
                ) from err

            if not dry_run:
                self._cache[key] = _CacheEntry(obj=copy.deepcopy(result))
                if _is_crd(gvr):
                    self.mapper.reset()
            return result

    def merge_patch(self, resource: _Resource, patch: bytes) -> dict | None:
        """Merge-patch the resource; return None if it does not exist."""
        key = resource.version_id()
        with self._lock(key):
            gvr, namespace = self._target(resource)

            get_default_logger().debug('Merge patching resource "%s"', resource.human_id())
            try:
                result = self.dynamic_client.merge_patch(
                    gvr, resource.name(), patch, namespace, field_manager=self.field_manager
                )
            except NotFoundError:
                get_default_logger().debug(
                    'Skipping merge patching, not found resource "%s"', resource.human_id()
                )
                return None
            except Exception as err:
                self._cache[key] = _CacheEntry(err=err)
                raise _wrap(
                    err, f'error merge patching resource "{resource.human_id()}"'
                ) from err
            self._cache[key] = _CacheEntry(obj=copy.deepcopy(result))
            return result

    def delete(
        self, resource: _Resource, propagation_policy: PropagationPolicy | None = None
    ) -> None:
        """Delete the resource; a missing resource is not an error."""
        key = resource.version_id()
        with self._lock(key):
            gvr, namespace = self._target(resource)
            policy = propagation_policy if propagation_policy is not None else PropagationPolicy.FOREGROUND

            get_default_logger().debug('Deleting resource "%s"', resource.human_id())
            try:
                self.dynamic_client.delete(
                    gvr, resource.name(), namespace, propagation_policy=policy
                )
            except NotFoundError:
                get_default_logger().debug(
                    'Skipping deletion, not found resource "%s"', resource.human_id()
                )
                return
            except Exception as err:
                raise _wrap(err, f'error deleting resource "{resource.human_id()}"') from err
            self._cache.pop(key, None)

    def _lock(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    @staticmethod
    def _target(resource: _Resource) -> tuple[tuple[str, str, str], str | None]:
        try:
            gvr = tuple(resource.group_version_resource())
        except Exception as err:
            raise KubeClientError(f"error getting GroupVersionResource: {err}") from err
        try:
            namespaced = resource.namespaced()
        except Exception as err:
            raise KubeClientError(f"error checking if resource is namespaced: {err}") from err
        return gvr, (resource.namespace() if namespaced else None)
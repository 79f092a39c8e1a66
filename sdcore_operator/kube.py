"""Object model and an in-memory API client for reconciling NF deployments."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Union

WORKLOAD_GROUP_VERSION = "workload.nephio.org/v1alpha1"
REF_GROUP_VERSION = "ref.nephio.org/v1alpha1"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"

LEADER_ELECTION_ID = "5089c67f.nephio.org"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ObjectKey:
    """Namespace and name identifying an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Request:
    """A reconcile request for one object."""

    namespaced_name: ObjectKey


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile pass; ``requeue_after`` is in seconds."""

    requeue_after: float = 0.0


@dataclass
class Condition:
    """A status condition."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = field(default_factory=_now)


@dataclass
class Interface:
    """A network interface of an NF deployment; ``ipv4`` is an address in CIDR form."""

    name: str
    ipv4: str | None = None


@dataclass
class NFDeploymentStatus:
    observed_generation: int = 0
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class NFDeployment:
    """A network-function deployment request."""

    name: str
    namespace: str = "default"
    provider: str = ""
    interfaces: list[Interface] = field(default_factory=list)
    generation: int = 1
    uid: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: NFDeploymentStatus = field(default_factory=NFDeploymentStatus)

    kind: ClassVar[str] = "NFDeployment"

    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)


Object = Union[NFDeployment, dict]


class NotFoundError(LookupError):
    """Raised when an object does not exist."""

    def __init__(self, kind: str, key: ObjectKey):
        super().__init__(f'{kind} "{key}" not found')
        self.kind = kind
        self.key = key


class Scheme:
    """Maps kinds to their API versions."""

    def __init__(self) -> None:
        self._kinds: dict[str, str] = {}

    def register(self, kind: str, api_version: str) -> None:
        self._kinds[kind] = api_version

    def api_version_for(self, kind: str) -> str:
        try:
            return self._kinds[kind]
        except KeyError:
            raise KeyError(f"no kind {kind!r} is registered in the scheme") from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._kinds


def new_scheme() -> Scheme:
    """Return a scheme with the core, apps, workload and ref kinds registered."""
    scheme = Scheme()
    for kind in ("ConfigMap", "Service", "Pod", "Event"):
        scheme.register(kind, "v1")
    scheme.register("Deployment", "apps/v1")
    scheme.register("NFDeployment", WORKLOAD_GROUP_VERSION)
    scheme.register("NFDeploymentList", WORKLOAD_GROUP_VERSION)
    scheme.register("Config", REF_GROUP_VERSION)
    scheme.register("ConfigList", REF_GROUP_VERSION)
    return scheme


def _kind_of(obj: Object) -> str:
    if isinstance(obj, NFDeployment):
        return obj.kind
    return obj["kind"]


def _key_of(obj: Object) -> ObjectKey:
    if isinstance(obj, NFDeployment):
        return obj.key()
    meta = obj.get("metadata", {})
    return ObjectKey(meta.get("namespace", ""), meta.get("name", ""))


def _group(api_version: str) -> str:
    return api_version.rpartition("/")[0]


def set_controller_reference(owner: NFDeployment, obj: dict, scheme: Scheme) -> None:
    """Mark ``owner`` as the managing controller of ``obj``."""
    api_version = scheme.api_version_for(owner.kind)
    meta = obj.setdefault("metadata", {})
    namespace = meta.get("namespace", "")
    if owner.namespace and namespace != owner.namespace:
        if not namespace:
            raise ValueError(
                "cluster-scoped resource must not have a namespace-scoped owner, "
                f"owner's namespace {owner.namespace}"
            )
        raise ValueError(
            "cross-namespace owner references are disallowed, "
            f"owner's namespace {owner.namespace}, obj's namespace {namespace}"
        )
    ref = {
        "apiVersion": api_version,
        "kind": owner.kind,
        "name": owner.name,
        "uid": owner.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }

    def same_owner(existing: dict) -> bool:
        return (
            _group(existing.get("apiVersion", "")) == _group(api_version)
            and existing.get("kind") == owner.kind
            and existing.get("name") == owner.name
        )

    refs = meta.setdefault("ownerReferences", [])
    for existing in refs:
        if existing.get("controller") and not same_owner(existing):
            raise ValueError(
                f"Object {namespace}/{meta.get('name', '')} is already owned by another "
                f"{existing.get('kind')} controller {existing.get('name')}"
            )
    meta["ownerReferences"] = [r for r in refs if not same_owner(r)] + [ref]


class InMemoryClient:
    """An API client that keeps objects in memory."""

    def __init__(self, scheme: Scheme | None = None, objects: tuple = ()) -> None:
        self.scheme = scheme if scheme is not None else new_scheme()
        self._store: dict[tuple[str, ObjectKey], Object] = {}
        for obj in objects:
            self.add(obj)

    def get(self, kind: str, key: ObjectKey) -> Object:
        try:
            return copy.deepcopy(self._store[(kind, key)])
        except KeyError:
            raise NotFoundError(kind, key) from None

    def create(self, obj: Object) -> None:
        kind, key = _kind_of(obj), _key_of(obj)
        if (kind, key) in self._store:
            raise ValueError(f'{kind} "{key}" already exists')
        stored = copy.deepcopy(obj)
        if isinstance(stored, dict):
            meta = stored.setdefault("metadata", {})
            meta["generation"] = 1
            meta.setdefault("uid", str(uuid.uuid4()))
        self._store[(kind, key)] = stored

    def update(self, obj: Object) -> None:
        kind, key = _kind_of(obj), _key_of(obj)
        current = self._store.get((kind, key))
        if current is None:
            raise NotFoundError(kind, key)
        new = copy.deepcopy(obj)
        if isinstance(new, NFDeployment):
            new.status = copy.deepcopy(current.status)
            changed = (new.provider, new.interfaces) != (current.provider, current.interfaces)
            new.generation = current.generation + 1 if changed else current.generation
        else:
            if "status" in current:
                new["status"] = copy.deepcopy(current["status"])
            else:
                new.pop("status", None)
            generation = current.get("metadata", {}).get("generation", 1)
            if new.get("spec") != current.get("spec"):
                generation += 1
            new.setdefault("metadata", {})["generation"] = generation
        self._store[(kind, key)] = new

    def update_status(self, nf_deployment: NFDeployment) -> None:
        key = nf_deployment.key()
        current = self._store.get((nf_deployment.kind, key))
        if current is None:
            raise NotFoundError(nf_deployment.kind, key)
        current.status = copy.deepcopy(nf_deployment.status)

    def add(self, obj: Object) -> None:
        """Store an object as given, replacing any existing one."""
        self._store[(_kind_of(obj), _key_of(obj))] = copy.deepcopy(obj)


def create_or_update(
    client: InMemoryClient, kind: str, key: ObjectKey, mutate: Callable[[dict], Any]
) -> tuple[str, dict]:
    """Create the object or bring it up to date; return ("created"|"updated"|"unchanged", obj)."""

    def check_key(obj: dict) -> None:
        if _key_of(obj) != key:
            raise ValueError("MutateFn cannot mutate object name and/or object namespace")

    try:
        obj = client.get(kind, key)
    except NotFoundError:
        obj = {
            "apiVersion": client.scheme.api_version_for(kind),
            "kind": kind,
            "metadata": {"name": key.name, "namespace": key.namespace},
        }
        mutate(obj)
        check_key(obj)
        client.create(obj)
        return "created", obj

    before = copy.deepcopy(obj)
    mutate(obj)
    check_key(obj)
    if obj == before:
        return "unchanged", obj
    client.update(obj)
    return "updated", obj
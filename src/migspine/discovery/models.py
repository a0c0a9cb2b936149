"""Discovery cache record types.

Each record embeds :class:`Meta` (identity of the cluster resource) and
carries the resource labels, so the reconcilers can look records up by
pk, by (namespace, name), or by label selector.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from migspine.core.errors import ValidationError
from migspine.model.fields import Labels, column


@dataclass
class Meta:
    """Identity shared by all discovered resources."""

    pk: str = column("pk", "")
    namespace: str = column("key", "")
    name: str = column("key", "")
    uid: str = column("const", "")
    version: int = column(default=0)


@dataclass
class Cluster:
    """A source or destination cluster."""

    meta: Meta = field(default_factory=Meta)
    url: str = column(default="")
    labels: Labels = field(default_factory=Labels)


@dataclass
class Namespace:
    meta: Meta = field(default_factory=Meta)
    cluster: str = column("fk:Cluster(pk),index(cluster)", "")
    labels: Labels = field(default_factory=Labels)


@dataclass
class ImageStream:
    """An image stream discovered on a cluster."""

    meta: Meta = field(default_factory=Meta)
    cluster: str = column("fk:Cluster(pk),index(cluster)", "")
    registry: str = column("index(image)", "")
    repository: str = column("index(image)", "")
    tags: int = column(default=0)
    labels: Labels = field(default_factory=Labels)


@dataclass
class PersistentVolume:
    """A persistent volume and the claim bound to it."""

    meta: Meta = field(default_factory=Meta)
    cluster: str = column("fk:Cluster(pk),index(cluster)", "")
    capacity: str = column(default="")
    storage_class: str = column("index(storage)", "")
    access_mode: str = column(default="")
    phase: str = column(default="")
    claim: str = column(default="")
    labels: Labels = field(default_factory=Labels)


# Cluster first: the others reference it.
ALL_MODELS: tuple[type, ...] = (Cluster, Namespace, ImageStream, PersistentVolume)

KINDS: dict[str, type] = {cls.__name__: cls for cls in ALL_MODELS}


def model_for(kind: str) -> type:
    """Record class for a kind name (case-insensitive)."""
    for name, cls in KINDS.items():
        if name.lower() == kind.lower():
            return cls
    raise ValidationError(
        f"unknown kind {kind!r}, expected one of {sorted(KINDS)}"
    ).with_context(kind=kind)

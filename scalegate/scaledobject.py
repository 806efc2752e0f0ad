"""Building the scaled-object manifests that drive external-push scaling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "API_VERSION",
    "SCALER_ADDRESS_KEY",
    "HTTP_SCALED_OBJECT_KEY",
    "POLLING_INTERVAL",
    "TRIGGER_TYPE",
    "ScaleTargetRef",
    "ScaledObject",
    "object_kind",
    "new_scaled_object",
]

API_VERSION = "keda.sh/v1alpha1"
POLLING_INTERVAL = 15
TRIGGER_TYPE = "external-push"
SCALER_ADDRESS_KEY = "scalerAddress"
HTTP_SCALED_OBJECT_KEY = "httpScaledObject"


@dataclass(frozen=True)
class ScaleTargetRef:
    """The workload that a scaled object scales."""

    name: str
    kind: str = ""
    api_version: str = ""


class ScaledObject(dict):
    """A scaled-object manifest, as a plain mapping."""


def object_kind(obj: Any) -> str:
    """Return the kind of ``obj``: the name of its type (or of ``obj`` if a type)."""
    cls = obj if isinstance(obj, type) else type(obj)
    return cls.__name__


def new_scaled_object(
    namespace: str,
    name: str,
    labels: Optional[Mapping[str, str]],
    annotations: Optional[Mapping[str, str]],
    workload_ref: ScaleTargetRef,
    scaler_address: str,
    min_replicas: Optional[int],
    max_replicas: Optional[int],
    cooldown_period: Optional[int],
    initial_cooldown_period: Optional[int],
) -> ScaledObject:
    """Build a scaled object whose single trigger pushes from ``scaler_address``.

    Optional settings left as None, and empty labels or annotations, are
    omitted from the manifest.
    """
    metadata: Dict[str, Any] = {"namespace": namespace, "name": name}
    if labels:
        metadata["labels"] = dict(labels)
    if annotations:
        metadata["annotations"] = dict(annotations)

    target: Dict[str, Any] = {}
    if workload_ref.api_version:
        target["apiVersion"] = workload_ref.api_version
    if workload_ref.kind:
        target["kind"] = workload_ref.kind
    target["name"] = workload_ref.name

    spec: Dict[str, Any] = {
        "scaleTargetRef": target,
        "pollingInterval": POLLING_INTERVAL,
    }
    optional = {
        "cooldownPeriod": cooldown_period,
        "initialCooldownPeriod": initial_cooldown_period,
        "minReplicaCount": min_replicas,
        "maxReplicaCount": max_replicas,
    }
    spec.update({field: value for field, value in optional.items() if value is not None})
    spec["advanced"] = {"restoreToOriginalReplicaCount": True}
    spec["triggers"] = [
        {
            "type": TRIGGER_TYPE,
            "metadata": {
                SCALER_ADDRESS_KEY: scaler_address,
                HTTP_SCALED_OBJECT_KEY: name,
            },
        }
    ]

    return ScaledObject(
        apiVersion=API_VERSION,
        kind=object_kind(ScaledObject),
        metadata=metadata,
        spec=spec,
    )
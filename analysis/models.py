"""
Record types shared by the analysis modules.

Everything here is built once from a single snapshot and never mutated.
"""
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class NodeStatus(str, Enum):
    HEALTHY = 'Healthy'
    SCALE_IN_CANDIDATE = 'Scale-in candidate'
    NOT_READY = 'NotReady'


class Severity(str, Enum):
    """Recommendation urgency. Ordered Info < Low < Medium < High."""
    INFO = 'Info'
    LOW = 'Low'
    MEDIUM = 'Medium'
    HIGH = 'High'

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH]


def _as_plain_dict(record) -> Dict[str, Any]:
    data = asdict(record)
    for key, value in data.items():
        if isinstance(value, Enum):
            data[key] = value.value
    return data


@dataclass(frozen=True)
class NodeStat:
    name: str
    cpu_alloc_milli: int
    cpu_req_milli: int
    cpu_used_milli: int
    mem_alloc_mi: int
    mem_req_mi: int
    mem_used_mi: int
    pod_count: int
    status: NodeStatus

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


@dataclass(frozen=True)
class PodRecord:
    namespace: str
    name: str
    node_name: str
    cpu_req_milli: int
    cpu_used_milli: int
    mem_req_mi: int
    mem_used_mi: int
    owner: str
    deployment: str
    is_daemonset: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


@dataclass(frozen=True)
class WorkloadKey:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class DeploymentStat:
    namespace: str
    name: str
    cpu_req_milli: int
    cpu_used_milli: int
    mem_req_mi: int
    mem_used_mi: int
    pod_count: int
    waste_cpu: float
    waste_mem: float

    @property
    def key(self) -> WorkloadKey:
        return WorkloadKey(self.namespace, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


@dataclass(frozen=True)
class Recommendation:
    kind: str
    subject: str
    suggestion: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return _as_plain_dict(self)


@dataclass(frozen=True)
class ClusterSnapshot:
    """Raw inputs for one analysis run, in Kubernetes API JSON shape.

    node_usage: node name -> {"cpu": q, "memory": q}
    pod_usage: pod name -> [{"cpu": q, "memory": q}, ...] (one per container)
    """
    nodes: Tuple[Dict[str, Any], ...] = ()
    pods: Tuple[Dict[str, Any], ...] = ()
    node_usage: Mapping[str, Dict[str, Any]] = field(default_factory=dict)
    pod_usage: Mapping[str, List[Dict[str, Any]]] = field(default_factory=dict)
    namespace: Optional[str] = None

"""
Workload ownership resolution for pods.

Only the first owner reference is inspected when naming the workload. A pod
whose first reference is something unrelated (and whose ReplicaSet reference
comes later) falls through to the label/pod-name fallbacks.
"""
from typing import Any, Dict, List, NamedTuple, Optional

APP_NAME_LABEL = 'app.kubernetes.io/name'
APP_LABEL = 'app'
NO_OWNER = 'None'


class Ownership(NamedTuple):
    workload: str
    owner: str
    is_daemonset: bool


def _owner_refs(pod: Dict[str, Any]) -> List[Dict[str, Any]]:
    return (pod.get('metadata') or {}).get('ownerReferences') or []


def is_daemonset_owned(owner_refs: Optional[List[Dict[str, Any]]]) -> bool:
    return any(ref.get('kind') == 'DaemonSet' for ref in owner_refs or [])


def owner_kind(owner_refs: Optional[List[Dict[str, Any]]]) -> str:
    """Controller kind of the first owner reference, for display"""
    if not owner_refs:
        return NO_OWNER
    return owner_refs[0].get('kind') or NO_OWNER


def deployment_from_replicaset(rs_name: str) -> str:
    """Strip the pod-template-hash suffix: ``web-7d9f8c9c8b`` -> ``web``"""
    idx = rs_name.rfind('-')
    if idx > 0:
        return rs_name[:idx]
    return rs_name


def resolve_workload_name(pod: Dict[str, Any]) -> str:
    metadata = pod.get('metadata') or {}
    refs = _owner_refs(pod)
    if refs:
        first = refs[0]
        kind = first.get('kind')
        name = first.get('name') or ''
        if kind == 'Deployment':
            return name
        if kind == 'ReplicaSet':
            return deployment_from_replicaset(name)

    labels = metadata.get('labels') or {}
    if APP_NAME_LABEL in labels:
        return labels[APP_NAME_LABEL]
    if APP_LABEL in labels:
        return labels[APP_LABEL]
    return metadata.get('name', '')


def resolve_ownership(pod: Dict[str, Any]) -> Ownership:
    refs = _owner_refs(pod)
    return Ownership(
        workload=resolve_workload_name(pod),
        owner=owner_kind(refs),
        is_daemonset=is_daemonset_owned(refs),
    )

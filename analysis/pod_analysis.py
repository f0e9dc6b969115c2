"""
Pod records: one normalized row per non-DaemonSet pod, requests from the pod
spec and usage from the metrics snapshot.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from analysis.models import PodRecord
from analysis.ownership import resolve_ownership
from normalize.quantity import sum_requests, sum_usage

logger = logging.getLogger(__name__)


def build_pod_record(pod: Dict[str, Any],
                     pod_usage: Optional[Mapping[str, List[Dict[str, Any]]]] = None) -> Optional[PodRecord]:
    """Build the record for one pod, or None if the pod is DaemonSet-owned"""
    metadata = pod.get('metadata') or {}
    spec = pod.get('spec') or {}
    name = metadata.get('name', '')

    ownership = resolve_ownership(pod)
    if ownership.is_daemonset:
        logger.debug(f"Skipping DaemonSet pod {metadata.get('namespace')}/{name}")
        return None

    cpu_req, mem_req = sum_requests(spec.get('containers'))
    # absent metrics are zero usage, never an error
    cpu_used, mem_used = sum_usage((pod_usage or {}).get(name))

    return PodRecord(
        namespace=metadata.get('namespace', ''),
        name=name,
        node_name=spec.get('nodeName') or '',
        cpu_req_milli=cpu_req,
        cpu_used_milli=cpu_used,
        mem_req_mi=mem_req,
        mem_used_mi=mem_used,
        owner=ownership.owner,
        deployment=ownership.workload,
        is_daemonset=False,
    )


def build_pod_records(pods: Iterable[Dict[str, Any]],
                      pod_usage: Optional[Mapping[str, List[Dict[str, Any]]]] = None) -> Tuple[PodRecord, ...]:
    records = (build_pod_record(pod, pod_usage) for pod in pods or [])
    return tuple(r for r in records if r is not None)

"""Workload aggregation: pod records grouped into per-deployment totals and waste."""

from typing import Dict, Iterable, List, Tuple

from analysis.models import DeploymentStat, PodRecord, WorkloadKey


def waste_percent(used: int, requested: int) -> float:
    """100 * (1 - used/requested).

    Returns 0.0 when nothing is requested. Negative values mean usage exceeds
    the request.
    """
    if requested <= 0:
        return 0.0
    return (1.0 - used / requested) * 100.0


def aggregate_deployments(pod_records: Iterable[PodRecord]) -> Tuple[DeploymentStat, ...]:
    """
    Group pod records by (namespace, workload) and sum their figures.

    Groups come out in the order their first pod was seen. Callers pass
    records that are already DaemonSet-filtered.
    """
    groups: Dict[WorkloadKey, List[int]] = {}
    for rec in pod_records or []:
        key = WorkloadKey(rec.namespace, rec.deployment)
        # pod_count, cpu_req, cpu_used, mem_req, mem_used
        acc = groups.setdefault(key, [0, 0, 0, 0, 0])
        acc[0] += 1
        acc[1] += rec.cpu_req_milli
        acc[2] += rec.cpu_used_milli
        acc[3] += rec.mem_req_mi
        acc[4] += rec.mem_used_mi

    return tuple(
        DeploymentStat(
            namespace=key.namespace,
            name=key.name,
            cpu_req_milli=cpu_req,
            cpu_used_milli=cpu_used,
            mem_req_mi=mem_req,
            mem_used_mi=mem_used,
            pod_count=count,
            waste_cpu=waste_percent(cpu_used, cpu_req),
            waste_mem=waste_percent(mem_used, mem_req),
        )
        for key, (count, cpu_req, cpu_used, mem_req, mem_used) in groups.items()
    )

"""
Advisory recommendations from node stats and pod records.

Node rules come first, then pod rules; each pass keeps its input order.
CPU and memory findings for the same pod are separate entries.
"""
from typing import Iterable, List, Tuple

from analysis.deployment_analysis import waste_percent
from analysis.models import NodeStat, NodeStatus, PodRecord, Recommendation, Severity

DEFAULT_WASTE_THRESHOLD_PERCENT = 80.0

NODE_SCALE_IN_KIND = 'Scale-in candidate'
NODE_KIND = 'Node'
POD_CPU_KIND = 'Pod (CPU)'
POD_MEMORY_KIND = 'Pod (Memory)'


def severity_for_waste(waste: float) -> Severity:
    if waste >= 90:
        return Severity.HIGH
    if waste >= 70:
        return Severity.MEDIUM
    if waste >= 50:
        return Severity.LOW
    return Severity.INFO


def recommend_nodes(node_stats: Iterable[NodeStat]) -> Tuple[Recommendation, ...]:
    recs: List[Recommendation] = []
    for node in node_stats or []:
        if node.status == NodeStatus.SCALE_IN_CANDIDATE:
            recs.append(Recommendation(
                kind=NODE_SCALE_IN_KIND,
                subject=node.name,
                suggestion='Consider draining this node',
                severity=Severity.MEDIUM,
            ))
        elif node.status == NodeStatus.NOT_READY:
            recs.append(Recommendation(
                kind=NODE_KIND,
                subject=f"{node.name} is NotReady",
                suggestion='Check node health and connectivity',
                severity=Severity.HIGH,
            ))
    return tuple(recs)


def recommend_pods(pod_records: Iterable[PodRecord],
                   threshold: float = DEFAULT_WASTE_THRESHOLD_PERCENT) -> Tuple[Recommendation, ...]:
    """Flag pods whose CPU or memory waste is at or above `threshold` percent.

    A resource with a zero request is never flagged, whatever its usage.
    """
    recs: List[Recommendation] = []
    for pod in pod_records or []:
        subject = f"{pod.namespace}/{pod.name}"
        if pod.cpu_req_milli > 0:
            cpu_waste = waste_percent(pod.cpu_used_milli, pod.cpu_req_milli)
            if cpu_waste >= threshold:
                recs.append(Recommendation(
                    kind=POD_CPU_KIND,
                    subject=subject,
                    suggestion='Consider reducing CPU requests',
                    severity=severity_for_waste(cpu_waste),
                ))
        if pod.mem_req_mi > 0:
            mem_waste = waste_percent(pod.mem_used_mi, pod.mem_req_mi)
            if mem_waste >= threshold:
                recs.append(Recommendation(
                    kind=POD_MEMORY_KIND,
                    subject=subject,
                    suggestion='Consider reducing Memory requests',
                    severity=severity_for_waste(mem_waste),
                ))
    return tuple(recs)


def recommend(node_stats: Iterable[NodeStat], pod_records: Iterable[PodRecord],
              threshold: float = DEFAULT_WASTE_THRESHOLD_PERCENT) -> Tuple[Recommendation, ...]:
    return recommend_nodes(node_stats) + recommend_pods(pod_records, threshold)

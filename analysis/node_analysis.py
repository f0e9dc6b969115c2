"""
Node analysis - deterministic, single snapshot
Combines allocatable capacity, requests of pods scheduled to each node and
node-level usage, then classifies each node.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from analysis.models import NodeStat, NodeStatus
from normalize.quantity import cpu_to_milli, memory_to_mi, sum_requests, usage_to_units

logger = logging.getLogger(__name__)

# Usage below this share of allocatable, for both resources, marks a scale-in candidate
CPU_SCALE_IN_THRESHOLD_PERCENT = 30.0
MEM_SCALE_IN_THRESHOLD_PERCENT = 30.0


def usage_percent(used: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return used / total * 100.0


def is_node_ready(node: Dict[str, Any]) -> bool:
    """True only if the node reports a Ready condition with status True"""
    conditions = (node.get('status') or {}).get('conditions') or []
    for condition in conditions:
        if condition.get('type') == 'Ready':
            return condition.get('status') == 'True'
    return False


def classify_node(ready: bool, cpu_used: int, cpu_alloc: int, mem_used: int, mem_alloc: int,
                  cpu_threshold: float = CPU_SCALE_IN_THRESHOLD_PERCENT,
                  mem_threshold: float = MEM_SCALE_IN_THRESHOLD_PERCENT) -> NodeStatus:
    if not ready:
        return NodeStatus.NOT_READY
    if (usage_percent(cpu_used, cpu_alloc) < cpu_threshold
            and usage_percent(mem_used, mem_alloc) < mem_threshold):
        return NodeStatus.SCALE_IN_CANDIDATE
    return NodeStatus.HEALTHY


def _requests_by_node(pods: Iterable[Dict[str, Any]]) -> Dict[str, List[int]]:
    """node name -> [cpu_milli, mem_mi, pod_count] over every scheduled pod"""
    totals: Dict[str, List[int]] = {}
    for pod in pods or []:
        node_name = (pod.get('spec') or {}).get('nodeName')
        if not node_name:
            continue
        cpu, mem = sum_requests((pod.get('spec') or {}).get('containers'))
        entry = totals.setdefault(node_name, [0, 0, 0])
        entry[0] += cpu
        entry[1] += mem
        entry[2] += 1
    return totals


def build_node_stats(nodes: Iterable[Dict[str, Any]],
                     node_usage: Optional[Mapping[str, Dict[str, Any]]],
                     pods: Iterable[Dict[str, Any]],
                     cpu_threshold: float = CPU_SCALE_IN_THRESHOLD_PERCENT,
                     mem_threshold: float = MEM_SCALE_IN_THRESHOLD_PERCENT) -> Tuple[NodeStat, ...]:
    """Build one NodeStat per node, in node order.

    `pods` is the unfiltered pod list: DaemonSet pods count towards a node's
    requested totals and pod count because they occupy the node all the same.
    `node_usage` may be None or empty when metrics are unavailable.
    """
    node_usage = node_usage or {}
    requested = _requests_by_node(pods)
    stats = []

    for node in nodes or []:
        name = (node.get('metadata') or {}).get('name', 'unknown')
        allocatable = (node.get('status') or {}).get('allocatable') or {}
        cpu_alloc = cpu_to_milli(allocatable.get('cpu'))
        mem_alloc = memory_to_mi(allocatable.get('memory'))
        cpu_used, mem_used = usage_to_units(node_usage.get(name))
        cpu_req, mem_req, pod_count = requested.get(name, (0, 0, 0))

        status = classify_node(is_node_ready(node), cpu_used, cpu_alloc, mem_used, mem_alloc,
                               cpu_threshold=cpu_threshold, mem_threshold=mem_threshold)
        logger.debug(f"Node {name}: {status.value} (cpu {cpu_used}/{cpu_alloc}m, mem {mem_used}/{mem_alloc}Mi)")

        stats.append(NodeStat(
            name=name,
            cpu_alloc_milli=cpu_alloc,
            cpu_req_milli=cpu_req,
            cpu_used_milli=cpu_used,
            mem_alloc_mi=mem_alloc,
            mem_req_mi=mem_req,
            mem_used_mi=mem_used,
            pod_count=pod_count,
            status=status,
        ))

    return tuple(stats)

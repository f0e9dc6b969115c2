"""
Presentation: fixed-width tables and JSON documents.

All sorting happens here; the analysis modules hand over records in their
own deterministic order.
"""
import json
from typing import Any, Dict, Iterable, List, Sequence

from analysis.deployment_analysis import waste_percent
from analysis.models import DeploymentStat, NodeStat, PodRecord, Recommendation


def render_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    rows = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells):
        return "  ".join(f"{cell:<{widths[i]}}" for i, cell in enumerate(cells)).rstrip()

    out = [line(headers), line("-" * w for w in widths)]
    out.extend(line(row) for row in rows)
    return "\n".join(out)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2)


def records_to_dicts(records: Iterable[Any]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]


def sort_nodes(node_stats: Iterable[NodeStat]) -> List[NodeStat]:
    return sorted(node_stats, key=lambda n: n.name)


def sort_deployments(deployments: Iterable[DeploymentStat]) -> List[DeploymentStat]:
    """Most over-provisioned (CPU) first; ties keep their original order"""
    return sorted(deployments, key=lambda d: d.waste_cpu, reverse=True)


def _format_waste(used: int, requested: int) -> str:
    if requested <= 0:
        return "N/A"
    return f"{waste_percent(used, requested):.1f}"


def render_nodes(node_stats: Iterable[NodeStat]) -> str:
    rows = [
        [
            n.name,
            f"{n.cpu_alloc_milli} / {n.cpu_req_milli} / {n.cpu_used_milli}",
            f"{n.mem_alloc_mi} / {n.mem_req_mi} / {n.mem_used_mi}",
            n.pod_count,
            n.status.value,
        ]
        for n in node_stats
    ]
    return render_table(["NODE", "CPU(Alloc/Req/Use m)", "MEM(Alloc/Req/Use Mi)", "PODS", "STATUS"], rows)


def render_pods(pod_records: Iterable[PodRecord]) -> str:
    rows = [
        [
            p.namespace, p.name, p.node_name,
            f"{p.cpu_req_milli} / {p.cpu_used_milli}",
            f"{p.mem_req_mi} / {p.mem_used_mi}",
            p.owner, p.deployment,
            _format_waste(p.cpu_used_milli, p.cpu_req_milli),
            _format_waste(p.mem_used_mi, p.mem_req_mi),
        ]
        for p in pod_records
    ]
    return render_table(
        ["NAMESPACE", "POD", "NODE", "CPU(REQ/USE m)", "MEM(REQ/USE Mi)", "OWNER", "WORKLOAD",
         "WASTE% CPU", "WASTE% MEM"],
        rows,
    )


def render_deployments(deployments: Iterable[DeploymentStat]) -> str:
    rows = [
        [
            d.namespace, d.name,
            f"{d.cpu_req_milli} / {d.cpu_used_milli}",
            f"{d.mem_req_mi} / {d.mem_used_mi}",
            d.pod_count,
            f"{d.waste_cpu:.1f}",
            f"{d.waste_mem:.1f}",
        ]
        for d in deployments
    ]
    return render_table(
        ["NAMESPACE", "DEPLOYMENT", "CPU(REQ/USE m)", "MEM(REQ/USE Mi)", "PODS", "WASTE% CPU", "WASTE% MEM"],
        rows,
    )


def render_recommendations(recs: Iterable[Recommendation]) -> str:
    rows = [[r.kind, r.subject, r.suggestion, r.severity.value] for r in recs]
    return render_table(["TYPE", "DETAILS", "SUGGESTION", "SEVERITY"], rows)


def cluster_totals(node_stats: Iterable[NodeStat]) -> Dict[str, int]:
    totals = {
        'cpu_alloc_milli': 0, 'cpu_req_milli': 0, 'cpu_used_milli': 0,
        'mem_alloc_mi': 0, 'mem_req_mi': 0, 'mem_used_mi': 0,
    }
    for n in node_stats:
        for key in totals:
            totals[key] += getattr(n, key)
    return totals


def render_report(report: Dict[str, Any], node_stats: Sequence[NodeStat],
                  deployments: Sequence[DeploymentStat], recs: Sequence[Recommendation]) -> str:
    t = report['cluster_summary']
    parts = [
        "Cluster Summary:",
        f"CPU Alloc(m): {t['cpu_alloc_milli']}  CPU Req(m): {t['cpu_req_milli']}  CPU Used(m): {t['cpu_used_milli']}",
        f"MEM Alloc(Mi): {t['mem_alloc_mi']}  MEM Req(Mi): {t['mem_req_mi']}  MEM Used(Mi): {t['mem_used_mi']}",
        f"Nodes: {t['node_count']}  Workload pods: {t['pod_count']}  Deployments: {t['deployment_count']}",
        "",
        "Nodes:",
        render_nodes(sort_nodes(node_stats)),
        "",
        "Top Over-provisioned Deployments:",
        render_deployments(sort_deployments(deployments)),
        "",
        "Recommendations:",
        render_recommendations(recs),
    ]
    return "\n".join(parts)

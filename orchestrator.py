"""Orchestrator: acquire snapshot -> analysis -> render / atomic write.

Also the `kcap` command line: nodes, pods, deploys, recommend, report.
"""
import argparse
import logging
from datetime import datetime, timezone
import os
import sys
import tempfile
from typing import Any, Dict, List, Optional

import yaml

from config import (
    setup_logging, build_config, ConfigValidationError, AnalyzerConfig,
    get_report_output_path, PROMETHEUS_VERIFY_TLS
)
from metrics.kube_client import KubeClient, KubeClientError
from metrics.prometheus_client import PrometheusClient, PrometheusError
from analysis.models import ClusterSnapshot
from analysis import deployment_analysis as dep_analysis
from analysis import node_analysis as node_analysis_mod
from analysis import pod_analysis as pod_analysis_mod
from analysis import recommendations as rec_mod
import report as report_mod

logger = logging.getLogger(__name__)

COMMANDS = ('nodes', 'pods', 'deploys', 'recommend', 'report')
# the full report reads everything, so it gets a longer deadline
REPORT_TIMEOUT_FACTOR = 2


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _atomic_write(path: str, data: str) -> None:
    dirp = os.path.dirname(path) or '.'
    os.makedirs(dirp, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix='.tmp_report_', dir=dirp)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(data)
        # Atomic replace
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def _usage_or_empty(what: str, fetch) -> Dict[str, Any]:
    """Run a metrics fetch; on failure log and carry on with zero usage"""
    try:
        return fetch()
    except (KubeClientError, PrometheusError) as e:
        logger.warning(f"{what} not available, usage values will be zero: {e}")
        return {}


def collect_snapshot(cfg: AnalyzerConfig, kube: KubeClient,
                     need_nodes: bool = True, need_node_usage: bool = True,
                     need_pod_usage: bool = True) -> ClusterSnapshot:
    """Fetch what a command needs from the cluster

    Inventory failures propagate (KubeClientError); metrics failures degrade to
    an empty usage mapping.
    """
    prom = None
    if cfg.metrics_source == 'prometheus':
        prom = PrometheusClient(cfg.prometheus_url, timeout=cfg.prometheus_timeout,
                                verify_tls=PROMETHEUS_VERIFY_TLS)

    nodes: List[Dict[str, Any]] = kube.list_nodes() if need_nodes else []
    node_usage: Dict[str, Any] = {}
    if need_nodes and need_node_usage:
        fetch = prom.node_usage_snapshot if prom else kube.node_metrics
        node_usage = _usage_or_empty('Node metrics', fetch)

    pods = kube.list_pods(cfg.namespace)
    pod_usage: Dict[str, Any] = {}
    if need_pod_usage:
        if prom:
            fetch = lambda: prom.pod_usage_snapshot(cfg.namespace)
        else:
            fetch = lambda: kube.pod_metrics(cfg.namespace)
        pod_usage = _usage_or_empty('Pod metrics', fetch)

    logger.info(f"Snapshot: {len(nodes)} node(s), {len(pods)} pod(s), "
                f"usage for {len(node_usage)} node(s) and {len(pod_usage)} pod(s)")
    return ClusterSnapshot(
        nodes=tuple(nodes),
        pods=tuple(pods),
        node_usage=node_usage,
        pod_usage=pod_usage,
        namespace=cfg.namespace,
    )


def analyze(snapshot: ClusterSnapshot, threshold: float) -> Dict[str, Any]:
    """Run every analysis step over one snapshot"""
    node_stats = node_analysis_mod.build_node_stats(snapshot.nodes, snapshot.node_usage, snapshot.pods)
    pod_records = pod_analysis_mod.build_pod_records(snapshot.pods, snapshot.pod_usage)
    deployments = dep_analysis.aggregate_deployments(pod_records)
    recs = rec_mod.recommend(node_stats, pod_records, threshold)
    return {
        'nodes': node_stats,
        'pods': pod_records,
        'deployments': deployments,
        'recommendations': recs,
    }


def build_report(result: Dict[str, Any], cfg: AnalyzerConfig) -> Dict[str, Any]:
    """JSON-ready document for the full report"""
    summary: Dict[str, Any] = report_mod.cluster_totals(result['nodes'])
    summary.update({
        'node_count': len(result['nodes']),
        'pod_count': len(result['pods']),
        'deployment_count': len(result['deployments']),
        'recommendation_count': len(result['recommendations']),
    })
    return {
        'generated_at': _now_iso(),
        'namespace': cfg.namespace or '',
        'threshold': cfg.threshold,
        'metrics_source': cfg.metrics_source,
        'cluster_summary': summary,
        'nodes': report_mod.records_to_dicts(report_mod.sort_nodes(result['nodes'])),
        'pods': report_mod.records_to_dicts(result['pods']),
        'deployments': report_mod.records_to_dicts(report_mod.sort_deployments(result['deployments'])),
        'recommendations': report_mod.records_to_dicts(result['recommendations']),
    }


def render(command: str, result: Dict[str, Any], cfg: AnalyzerConfig,
           doc: Optional[Dict[str, Any]] = None) -> str:
    as_json = cfg.output_mode == 'json'
    if command == 'nodes':
        nodes = report_mod.sort_nodes(result['nodes'])
        return report_mod.to_json(report_mod.records_to_dicts(nodes)) if as_json else report_mod.render_nodes(nodes)
    if command == 'pods':
        pods = result['pods']
        return report_mod.to_json(report_mod.records_to_dicts(pods)) if as_json else report_mod.render_pods(pods)
    if command == 'deploys':
        deps = report_mod.sort_deployments(result['deployments'])
        return report_mod.to_json(report_mod.records_to_dicts(deps)) if as_json else report_mod.render_deployments(deps)
    if command == 'recommend':
        recs = result['recommendations']
        return report_mod.to_json(report_mod.records_to_dicts(recs)) if as_json else report_mod.render_recommendations(recs)
    if doc is None:
        doc = build_report(result, cfg)
    if as_json:
        return report_mod.to_json(doc)
    return report_mod.render_report(doc, result['nodes'], result['deployments'], result['recommendations'])


def run_command(command: str, cfg: AnalyzerConfig, kube: Optional[KubeClient] = None,
                save: bool = False) -> str:
    """Acquire, analyze and render one command. Raises KubeClientError on inventory failure."""
    if kube is None:
        timeout = cfg.api_timeout * (REPORT_TIMEOUT_FACTOR if command == 'report' else 1)
        kube = KubeClient(cfg.kubeconfig, timeout=timeout)

    snapshot = collect_snapshot(
        cfg, kube,
        need_nodes=command in ('nodes', 'recommend', 'report'),
        need_node_usage=command in ('nodes', 'recommend', 'report'),
        need_pod_usage=command != 'nodes',
    )
    result = analyze(snapshot, cfg.threshold)

    doc = None
    if command == 'report':
        doc = build_report(result, cfg)
        if save:
            path = get_report_output_path(cfg.output_dir)
            _atomic_write(path, report_mod.to_json(doc))
            logger.info(f"Wrote report to {path}")

    return render(command, result, cfg, doc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='kcap', description='Kubernetes Capacity Analyzer')
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--kubeconfig', help='Path to kubeconfig file')
    common.add_argument('-n', '--namespace', help='Namespace (default: all namespaces)')
    common.add_argument('--json', action='store_true', help='Print output as JSON')
    common.add_argument('--config', help='YAML configuration file')
    common.add_argument('--metrics-source', choices=['metrics-server', 'prometheus'],
                        help='Where usage figures come from')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('nodes', parents=[common], help='Per-node allocatable, requested and usage summary')
    sub.add_parser('pods', parents=[common], help='Pod requests vs usage')
    sub.add_parser('deploys', parents=[common], help='Aggregated deployment requests vs usage')
    for name, help_text in (('recommend', 'Recommendations for nodes and pods'),
                            ('report', 'Full cluster summary with deployments and recommendations')):
        p = sub.add_parser(name, parents=[common], help=help_text)
        p.add_argument('--threshold', type=float, help='Waste threshold percentage (default 80)')
        if name == 'report':
            p.add_argument('--save', action='store_true', help='Also write the report JSON to OUTPUT_DIR')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(stream=sys.stderr)

    try:
        cfg = build_config(
            args.config,
            kubeconfig=args.kubeconfig,
            namespace=args.namespace,
            threshold=getattr(args, 'threshold', None),
            output_mode='json' if args.json else None,
            metrics_source=args.metrics_source,
        )
    except FileNotFoundError:
        logger.error(f"Configuration file not found: {args.config}")
        return 1
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML configuration: {e}")
        return 1
    except ConfigValidationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        output = run_command(args.command, cfg, save=getattr(args, 'save', False))
    except KubeClientError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    print(output)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())

"""
Prometheus usage source, used instead of metrics-server when
METRICS_SOURCE=prometheus. Returns the same snapshot shapes as
metrics.kube_client: CPU in cores, memory in bytes.
"""
import logging
import math
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

NODE_CPU_QUERY = 'sum by (node) (rate(container_cpu_usage_seconds_total{{container!="",node!=""}}[{window}]))'
NODE_MEMORY_QUERY = 'sum by (node) (container_memory_working_set_bytes{{container!="",node!=""}})'
POD_CPU_QUERY = 'sum by (pod, container) (rate(container_cpu_usage_seconds_total{{container!="",container!="POD"{ns}}}[{window}]))'
POD_MEMORY_QUERY = 'sum by (pod, container) (container_memory_working_set_bytes{{container!="",container!="POD"{ns}}})'


class PrometheusError(Exception):
    pass


class PrometheusClient:
    def __init__(self, url: str, timeout: int = 30, verify_tls: bool = True, rate_window: str = '5m'):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.rate_window = rate_window

    def query_instant(self, promql: str) -> List[Dict[str, Any]]:
        """
        Query Prometheus `/api/v1/query` and return `data.result`.
        """
        try:
            r = requests.get(f"{self.url}/api/v1/query", params={"query": promql},
                             timeout=self.timeout, verify=self.verify_tls)
        except requests.RequestException as e:
            raise PrometheusError(f"request failed: {e}")
        if r.status_code != 200:
            raise PrometheusError(f"prometheus returned status {r.status_code}: {r.text}")
        try:
            data = r.json()
        except ValueError as e:
            raise PrometheusError(f"invalid JSON from prometheus: {e}")
        if data.get("status") != "success":
            raise PrometheusError(f"prometheus error: {data}")
        return data.get("data", {}).get("result", [])

    @staticmethod
    def _sample(res: Dict[str, Any]) -> Optional[float]:
        try:
            value = float(res.get('value', [None, None])[1])
        except (ValueError, IndexError, TypeError):
            return None
        # NaN and Inf samples (stale or empty series) are dropped
        if not math.isfinite(value):
            return None
        return value

    def node_usage_snapshot(self) -> Dict[str, Dict[str, Any]]:
        """node name -> {"cpu": cores, "memory": bytes}"""
        usage: Dict[str, Dict[str, Any]] = {}
        queries = (
            ('cpu', NODE_CPU_QUERY.format(window=self.rate_window)),
            ('memory', NODE_MEMORY_QUERY.format()),
        )
        for resource, promql in queries:
            for res in self.query_instant(promql):
                node = res.get('metric', {}).get('node')
                value = self._sample(res)
                if node and value is not None:
                    usage.setdefault(node, {})[resource] = value
        return usage

    def pod_usage_snapshot(self, namespace: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """pod name -> list of per-container {"cpu": cores, "memory": bytes}"""
        ns = f',namespace="{namespace}"' if namespace else ''
        per_container: Dict[str, Dict[str, Dict[str, Any]]] = {}
        queries = (
            ('cpu', POD_CPU_QUERY.format(ns=ns, window=self.rate_window)),
            ('memory', POD_MEMORY_QUERY.format(ns=ns)),
        )
        for resource, promql in queries:
            for res in self.query_instant(promql):
                metric = res.get('metric', {})
                pod = metric.get('pod')
                value = self._sample(res)
                if not pod or value is None:
                    continue
                container = metric.get('container') or '<unknown>'
                per_container.setdefault(pod, {}).setdefault(container, {})[resource] = value
        return {pod: list(containers.values()) for pod, containers in per_container.items()}

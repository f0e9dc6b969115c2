"""
Kubernetes API access: node/pod inventory and metrics.k8s.io usage.

Every method returns plain dicts in Kubernetes API JSON shape so the analysis
modules never see client model objects.
"""
import logging
import os
import time
from typing import Any, Dict, List, Optional

import urllib3
from kubernetes import client, config as kube_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)

METRICS_GROUP = 'metrics.k8s.io'
METRICS_VERSION = 'v1beta1'


class KubeClientError(Exception):
    pass


class KubeConfigError(KubeClientError):
    """No usable kubeconfig or in-cluster configuration"""
    pass


class KubeApiError(KubeClientError):
    """API call failed, timed out, or the deadline expired"""
    pass


def resolve_kubeconfig_path(kubeconfig: Optional[str] = None) -> Optional[str]:
    """Explicit path, then $KUBECONFIG, then ~/.kube/config if it exists.

    None means fall back to in-cluster configuration.
    """
    if kubeconfig:
        return kubeconfig
    env_path = os.getenv('KUBECONFIG')
    if env_path:
        return env_path
    candidate = os.path.join(os.path.expanduser('~'), '.kube', 'config')
    if os.path.exists(candidate):
        return candidate
    return None


def _build_api_client(kubeconfig: Optional[str]) -> client.ApiClient:
    path = resolve_kubeconfig_path(kubeconfig)
    configuration = client.Configuration()
    try:
        if path:
            logger.debug(f"Loading kubeconfig from {path}")
            kube_config.load_kube_config(config_file=path, client_configuration=configuration)
        else:
            logger.debug("No kubeconfig found, using in-cluster configuration")
            kube_config.load_incluster_config(client_configuration=configuration)
    except (ConfigException, OSError) as e:
        raise KubeConfigError(f"unable to load cluster configuration: {e}")
    return client.ApiClient(configuration)


class KubeClient:
    """Thin wrapper over CoreV1Api and the metrics API

    Args:
        kubeconfig: Path to kubeconfig file (optional)
        timeout: Overall time budget in seconds; each call gets what is left
        api_client: Pre-built ApiClient, mainly for tests
    """

    def __init__(self, kubeconfig: Optional[str] = None, timeout: float = 30,
                 api_client: Optional[client.ApiClient] = None):
        self.api_client = api_client or _build_api_client(kubeconfig)
        self.core = client.CoreV1Api(self.api_client)
        self.custom = client.CustomObjectsApi(self.api_client)
        self.timeout = timeout
        self.deadline = time.monotonic() + timeout

    def _remaining(self) -> float:
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise KubeApiError(f"deadline of {self.timeout}s exceeded")
        return remaining

    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, _request_timeout=self._remaining(), **kwargs)
        except ApiException as e:
            raise KubeApiError(f"{what} failed: {e.status} {e.reason}")
        except urllib3.exceptions.HTTPError as e:
            raise KubeApiError(f"{what} failed: {e}")

    def _to_dicts(self, items) -> List[Dict[str, Any]]:
        return [self.api_client.sanitize_for_serialization(item) for item in items]

    def list_nodes(self) -> List[Dict[str, Any]]:
        result = self._call('list nodes', self.core.list_node)
        return self._to_dicts(result.items)

    def list_pods(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """List pods in `namespace`, or in all namespaces when it is empty"""
        if namespace:
            result = self._call(f'list pods in {namespace}', self.core.list_namespaced_pod, namespace)
        else:
            result = self._call('list pods', self.core.list_pod_for_all_namespaces)
        return self._to_dicts(result.items)

    def node_metrics(self) -> Dict[str, Dict[str, Any]]:
        """node name -> {"cpu": quantity, "memory": quantity}"""
        data = self._call('list node metrics', self.custom.list_cluster_custom_object,
                          METRICS_GROUP, METRICS_VERSION, 'nodes')
        usage = {}
        for item in data.get('items', []):
            name = (item.get('metadata') or {}).get('name')
            if name:
                usage[name] = item.get('usage') or {}
        return usage

    def pod_metrics(self, namespace: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """pod name -> list of per-container {"cpu": quantity, "memory": quantity}"""
        if namespace:
            data = self._call(f'list pod metrics in {namespace}', self.custom.list_namespaced_custom_object,
                              METRICS_GROUP, METRICS_VERSION, namespace, 'pods')
        else:
            data = self._call('list pod metrics', self.custom.list_cluster_custom_object,
                              METRICS_GROUP, METRICS_VERSION, 'pods')
        usage = {}
        for item in data.get('items', []):
            name = (item.get('metadata') or {}).get('name')
            if name:
                usage[name] = [c.get('usage') or {} for c in item.get('containers', [])]
        return usage

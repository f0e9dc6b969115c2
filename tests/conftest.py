"""
Test fixtures and configuration for pytest
"""
import pytest


def make_node(name, cpu='4', memory='8Gi', ready='True'):
    """Node in Kubernetes API JSON shape. ready=None leaves out the Ready condition."""
    conditions = [{'type': 'MemoryPressure', 'status': 'False'}]
    if ready is not None:
        conditions.append({'type': 'Ready', 'status': ready})
    return {
        'metadata': {'name': name},
        'status': {
            'allocatable': {'cpu': cpu, 'memory': memory, 'pods': '110'},
            'conditions': conditions,
        },
    }


def make_pod(name, namespace='default', node='node-1', owners=None, labels=None, containers=None):
    """Pod in Kubernetes API JSON shape.

    owners: list of (kind, name); containers: list of (cpu_request, memory_request)
    """
    metadata = {'name': name, 'namespace': namespace, 'labels': labels or {}}
    if owners:
        metadata['ownerReferences'] = [{'kind': k, 'name': n} for k, n in owners]
    spec_containers = []
    for i, (cpu, mem) in enumerate(containers if containers is not None else [('100m', '128Mi')]):
        requests = {}
        if cpu is not None:
            requests['cpu'] = cpu
        if mem is not None:
            requests['memory'] = mem
        spec_containers.append({
            'name': f'c{i}',
            'resources': {'requests': requests, 'limits': {'cpu': '8', 'memory': '16Gi'}},
        })
    spec = {'containers': spec_containers}
    if node:
        spec['nodeName'] = node
    return {'metadata': metadata, 'spec': spec}


@pytest.fixture
def sample_nodes():
    return [
        make_node('node-1', cpu='4', memory='8Gi'),
        make_node('node-2', cpu='4', memory='8Gi'),
        make_node('node-3', cpu='2', memory='4Gi', ready='False'),
    ]


@pytest.fixture
def sample_pods():
    return [
        make_pod('web-7d9f8c9c8b-abcde', owners=[('ReplicaSet', 'web-7d9f8c9c8b')],
                 containers=[('500m', '512Mi')]),
        make_pod('web-7d9f8c9c8b-fghij', node='node-2', owners=[('ReplicaSet', 'web-7d9f8c9c8b')],
                 containers=[('500m', '512Mi')]),
        make_pod('fluentd-x1', namespace='kube-system', owners=[('DaemonSet', 'fluentd')],
                 containers=[('100m', '200Mi')]),
        make_pod('db-0', namespace='data', node='node-2', owners=[('StatefulSet', 'db')],
                 labels={'app': 'postgres'}, containers=[('1', '2Gi'), ('100m', '64Mi')]),
    ]


@pytest.fixture
def sample_node_usage():
    return {
        'node-1': {'cpu': '500m', 'memory': '820Mi'},
        'node-2': {'cpu': '3', 'memory': '6Gi'},
    }


@pytest.fixture
def sample_pod_usage():
    return {
        'web-7d9f8c9c8b-abcde': [{'cpu': '50m', 'memory': '100Mi'}],
        'web-7d9f8c9c8b-fghij': [{'cpu': '25m', 'memory': '256Mi'}],
        'fluentd-x1': [{'cpu': '10m', 'memory': '50Mi'}],
        'db-0': [{'cpu': '900m', 'memory': '1500Mi'}, {'cpu': '20000000n', 'memory': '10Mi'}],
    }


@pytest.fixture
def temp_output_dir(tmp_path):
    """Temporary directory for test output files"""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir

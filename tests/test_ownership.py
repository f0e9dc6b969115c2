from analysis.ownership import (
    deployment_from_replicaset,
    is_daemonset_owned,
    owner_kind,
    resolve_ownership,
    resolve_workload_name,
)
from conftest import make_pod


def test_replicaset_name_truncated_at_last_hyphen():
    pod = make_pod('web-7d9f8c9c8b-abcde', owners=[('ReplicaSet', 'web-7d9f8c9c8b')])
    assert resolve_workload_name(pod) == 'web'


def test_replicaset_with_hyphenated_deployment():
    assert deployment_from_replicaset('api-gateway-5c6b7d8f9') == 'api-gateway'


def test_replicaset_without_hyphen_kept():
    pod = make_pod('singleton-xyz', owners=[('ReplicaSet', 'singleton')])
    assert resolve_workload_name(pod) == 'singleton'


def test_replicaset_leading_hyphen_kept():
    assert deployment_from_replicaset('-abc') == '-abc'


def test_deployment_owner_name_used():
    pod = make_pod('p', owners=[('Deployment', 'frontend')], labels={'app': 'other'})
    assert resolve_workload_name(pod) == 'frontend'


def test_label_fallbacks():
    both = make_pod('p1', owners=[('StatefulSet', 'db')],
                    labels={'app.kubernetes.io/name': 'postgres', 'app': 'pg'})
    app_only = make_pod('p2', owners=[('Job', 'migrate')], labels={'app': 'migrator'})
    assert resolve_workload_name(both) == 'postgres'
    assert resolve_workload_name(app_only) == 'migrator'


def test_pod_name_is_last_resort():
    pod = make_pod('standalone', owners=None, labels={})
    assert resolve_workload_name(pod) == 'standalone'


def test_only_first_owner_reference_is_inspected():
    # The ReplicaSet reference comes second and is not looked at
    pod = make_pod('worker-abc', owners=[('Job', 'batch'), ('ReplicaSet', 'worker-6f7c8d')],
                   labels={'app': 'worker-app'})
    assert resolve_workload_name(pod) == 'worker-app'


def test_owner_kind_is_first_reference_or_none():
    assert owner_kind([{'kind': 'StatefulSet', 'name': 'db'}, {'kind': 'ReplicaSet', 'name': 'x'}]) == 'StatefulSet'
    assert owner_kind([]) == 'None'
    assert owner_kind(None) == 'None'


def test_daemonset_detected_in_any_position():
    assert is_daemonset_owned([{'kind': 'Node', 'name': 'n'}, {'kind': 'DaemonSet', 'name': 'ds'}])
    assert not is_daemonset_owned([{'kind': 'ReplicaSet', 'name': 'rs-1'}])
    assert not is_daemonset_owned(None)


def test_resolve_ownership_bundle():
    pod = make_pod('web-1-x', owners=[('ReplicaSet', 'web-1')])
    own = resolve_ownership(pod)
    assert own.workload == 'web'
    assert own.owner == 'ReplicaSet'
    assert own.is_daemonset is False

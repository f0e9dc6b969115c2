from analysis.models import DeploymentStat, NodeStat, NodeStatus, PodRecord, Recommendation, Severity
import report


def node(name, cpu_alloc=4000, status=NodeStatus.HEALTHY):
    return NodeStat(name=name, cpu_alloc_milli=cpu_alloc, cpu_req_milli=1000, cpu_used_milli=500,
                    mem_alloc_mi=8192, mem_req_mi=1024, mem_used_mi=512, pod_count=3, status=status)


def deployment(name, waste_cpu):
    return DeploymentStat(namespace='default', name=name, cpu_req_milli=100, cpu_used_milli=10,
                          mem_req_mi=64, mem_used_mi=32, pod_count=1, waste_cpu=waste_cpu, waste_mem=50.0)


def test_render_table_pads_columns():
    out = report.render_table(['A', 'LONG'], [['xyz', 1], ['q', 22]])
    assert out.splitlines() == [
        'A    LONG',
        '---  ----',
        'xyz  1',
        'q    22',
    ]


def test_sort_nodes_by_name():
    assert [n.name for n in report.sort_nodes([node('b'), node('a'), node('c')])] == ['a', 'b', 'c']


def test_sort_deployments_by_cpu_waste_descending():
    deps = [deployment('low', 10.0), deployment('high', 95.0), deployment('negative', -20.0)]
    assert [d.name for d in report.sort_deployments(deps)] == ['high', 'low', 'negative']


def test_render_nodes_row():
    out = report.render_nodes([node('n1', status=NodeStatus.SCALE_IN_CANDIDATE)])
    row = out.splitlines()[2]
    assert '4000 / 1000 / 500' in row
    assert '8192 / 1024 / 512' in row
    assert row.endswith('Scale-in candidate')


def test_render_pods_marks_zero_request():
    pod = PodRecord(namespace='default', name='p', node_name='n1', cpu_req_milli=0, cpu_used_milli=5,
                    mem_req_mi=100, mem_used_mi=25, owner='None', deployment='p')
    row = report.render_pods([pod]).splitlines()[2]
    assert 'N/A' in row
    assert '75.0' in row


def test_render_recommendations():
    rec = Recommendation(kind='Pod (CPU)', subject='default/p', suggestion='Consider reducing CPU requests',
                         severity=Severity.HIGH)
    lines = report.render_recommendations([rec]).splitlines()
    assert lines[0].split() == ['TYPE', 'DETAILS', 'SUGGESTION', 'SEVERITY']
    assert lines[2].endswith('High')


def test_cluster_totals():
    totals = report.cluster_totals([node('a'), node('b', cpu_alloc=2000)])
    assert totals == {
        'cpu_alloc_milli': 6000, 'cpu_req_milli': 2000, 'cpu_used_milli': 1000,
        'mem_alloc_mi': 16384, 'mem_req_mi': 2048, 'mem_used_mi': 1024,
    }


def test_records_to_dicts_plain_values():
    d = report.records_to_dicts([node('a')])[0]
    assert d['status'] == 'Healthy'
    assert report.to_json([d]).startswith('[\n')

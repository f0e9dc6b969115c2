import pytest

import config
from config import (
    AnalyzerConfig,
    ConfigValidationError,
    build_config,
    get_report_output_path,
    load_config_file,
    validate_config,
)


def test_defaults_are_valid():
    cfg = AnalyzerConfig()
    validate_config(cfg)
    assert cfg.threshold == 80.0
    assert cfg.output_mode == 'table'
    assert cfg.metrics_source == 'metrics-server'


def test_with_overrides_ignores_none():
    cfg = AnalyzerConfig().with_overrides(namespace='prod', threshold=None)
    assert cfg.namespace == 'prod'
    assert cfg.threshold == 80.0


@pytest.mark.parametrize('changes,field', [
    ({'threshold': 120.0}, 'threshold'),
    ({'threshold': -1.0}, 'threshold'),
    ({'api_timeout': 0}, 'api_timeout'),
    ({'output_mode': 'yaml'}, 'output_mode'),
    ({'metrics_source': 'datadog'}, 'metrics_source'),
    ({'metrics_source': 'prometheus', 'prometheus_url': 'ftp://prom:9090'}, 'prometheus_url'),
])
def test_invalid_values_rejected(changes, field):
    with pytest.raises(ConfigValidationError, match=field):
        validate_config(AnalyzerConfig(**changes))


def test_all_errors_reported_together():
    with pytest.raises(ConfigValidationError) as exc:
        validate_config(AnalyzerConfig(threshold=200.0, output_mode='xml'))
    assert 'threshold' in str(exc.value)
    assert 'output_mode' in str(exc.value)


def test_prometheus_url_only_checked_for_prometheus_source():
    validate_config(AnalyzerConfig(prometheus_url='not a url'))


def test_load_config_file(tmp_path):
    path = tmp_path / 'kcap.yaml'
    path.write_text("namespace: shop\nthreshold: '65'\nmetrics_source: prometheus\nkubeconfig:\n")
    assert load_config_file(str(path)) == {
        'namespace': 'shop',
        'threshold': 65.0,
        'metrics_source': 'prometheus',
    }


def test_load_config_file_unknown_key(tmp_path):
    path = tmp_path / 'kcap.yaml'
    path.write_text("threshhold: 50\n")
    with pytest.raises(ConfigValidationError, match='unknown keys'):
        load_config_file(str(path))


def test_load_config_file_requires_mapping(tmp_path):
    path = tmp_path / 'kcap.yaml'
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigValidationError, match='mapping'):
        load_config_file(str(path))


def test_load_config_file_bad_number(tmp_path):
    path = tmp_path / 'kcap.yaml'
    path.write_text("api_timeout: soon\n")
    with pytest.raises(ConfigValidationError, match='api_timeout'):
        load_config_file(str(path))


def test_empty_config_file(tmp_path):
    path = tmp_path / 'kcap.yaml'
    path.write_text("")
    assert load_config_file(str(path)) == {}


def test_build_config_precedence(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'NAMESPACE', 'from-env')
    monkeypatch.setattr(config, 'WASTE_THRESHOLD_PERCENT', 70.0)
    path = tmp_path / 'kcap.yaml'
    path.write_text("namespace: from-file\noutput_mode: json\n")

    cfg = build_config(str(path), namespace='from-flag', threshold=None)
    assert cfg.namespace == 'from-flag'
    assert cfg.output_mode == 'json'
    assert cfg.threshold == 70.0


def test_build_config_validates():
    with pytest.raises(ConfigValidationError):
        build_config(threshold=150.0)


def test_build_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_config(str(tmp_path / 'missing.yaml'))


def test_report_output_path():
    assert get_report_output_path('/tmp/out') == '/tmp/out/report.json'


def test_to_dict_has_every_field():
    d = AnalyzerConfig(namespace='a').to_dict()
    assert d['namespace'] == 'a'
    assert set(d) == {
        'kubeconfig', 'namespace', 'threshold', 'output_mode', 'metrics_source',
        'prometheus_url', 'prometheus_timeout', 'api_timeout', 'output_dir',
    }

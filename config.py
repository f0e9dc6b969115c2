import os
import logging
import sys
from dataclasses import dataclass, fields, replace
from typing import Optional, List, Dict, Any
from urllib.parse import urlparse

import yaml


# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def setup_logging(stream=None):
    """Configure application-wide logging

    The CLI logs to stderr so that JSON written to stdout stays parseable.
    """
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(stream or sys.stdout)]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    v = os.getenv(name)
    return v if v else None


# =============================================================================
# Cluster Access
# =============================================================================
# Empty means: KUBECONFIG, then ~/.kube/config, then in-cluster config
KUBECONFIG_PATH: Optional[str] = _env_optional("KUBECONFIG")
# Empty means all namespaces
NAMESPACE: Optional[str] = _env_optional("KCAP_NAMESPACE")
# Overall deadline for snapshot acquisition
API_TIMEOUT_SECONDS: int = int(os.getenv("API_TIMEOUT_SECONDS", "30"))

# =============================================================================
# Metrics Source
# =============================================================================
METRICS_SOURCES = ("metrics-server", "prometheus")
METRICS_SOURCE: str = os.getenv("METRICS_SOURCE", "metrics-server")
PROMETHEUS_URL: str = os.getenv("PROMETHEUS_URL", "http://localhost:9090")
PROMETHEUS_TIMEOUT_SECONDS: int = int(os.getenv("PROMETHEUS_TIMEOUT_SECONDS", "30"))
PROMETHEUS_VERIFY_TLS: bool = _env_bool("PROMETHEUS_VERIFY_TLS", True)

# =============================================================================
# Analysis & Output
# =============================================================================
WASTE_THRESHOLD_PERCENT: float = float(os.getenv("WASTE_THRESHOLD_PERCENT", "80.0"))
OUTPUT_MODES = ("table", "json")
OUTPUT_MODE: str = os.getenv("OUTPUT_MODE", "table")
OUTPUT_DIR: str = os.getenv("OUTPUT_DIR", "output")


def get_report_output_path(output_dir: Optional[str] = None) -> str:
    """Path of the latest saved report: {output_dir}/report.json"""
    return os.path.join(output_dir or OUTPUT_DIR, "report.json")


__all__ = [
    "KUBECONFIG_PATH",
    "NAMESPACE",
    "API_TIMEOUT_SECONDS",
    "METRICS_SOURCES",
    "METRICS_SOURCE",
    "PROMETHEUS_URL",
    "PROMETHEUS_TIMEOUT_SECONDS",
    "PROMETHEUS_VERIFY_TLS",
    "WASTE_THRESHOLD_PERCENT",
    "OUTPUT_MODES",
    "OUTPUT_MODE",
    "OUTPUT_DIR",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "setup_logging",
    "get_report_output_path",
    "AnalyzerConfig",
    "ConfigValidationError",
    "load_config_file",
    "build_config",
    "validate_config",
]


# =============================================================================
# Run Configuration
# =============================================================================
@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable settings for one CLI run, passed explicitly to each step"""
    kubeconfig: Optional[str] = None
    namespace: Optional[str] = None
    threshold: float = 80.0
    output_mode: str = "table"
    metrics_source: str = "metrics-server"
    prometheus_url: str = "http://localhost:9090"
    prometheus_timeout: int = 30
    api_timeout: int = 30
    output_dir: str = "output"

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        return cls(
            kubeconfig=KUBECONFIG_PATH,
            namespace=NAMESPACE,
            threshold=WASTE_THRESHOLD_PERCENT,
            output_mode=OUTPUT_MODE,
            metrics_source=METRICS_SOURCE,
            prometheus_url=PROMETHEUS_URL,
            prometheus_timeout=PROMETHEUS_TIMEOUT_SECONDS,
            api_timeout=API_TIMEOUT_SECONDS,
            output_dir=OUTPUT_DIR,
        )

    def with_overrides(self, **overrides) -> "AnalyzerConfig":
        """Return a copy with every non-None override applied"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# =============================================================================
# Configuration Validation
# =============================================================================
class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


def _validate_positive_int(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name} must be positive, got {value}")


def _validate_percent(name: str, value: float) -> None:
    if not (0 <= value <= 100):
        raise ConfigValidationError(f"{name} must be between 0 and 100, got {value}")


def _validate_choice(name: str, value: str, allowed) -> None:
    if value not in allowed:
        options = ", ".join(f"'{a}'" for a in allowed)
        raise ConfigValidationError(f"{name} must be one of {options}, got '{value}'")


def _validate_url(name: str, value: str) -> None:
    try:
        result = urlparse(value)
        if not all([result.scheme, result.netloc]):
            raise ValueError("Missing scheme or netloc")
        if result.scheme not in ('http', 'https'):
            raise ValueError(f"Invalid scheme: {result.scheme}")
    except Exception as e:
        raise ConfigValidationError(f"{name} is not a valid URL: {value} ({e})")


def validate_config(cfg: AnalyzerConfig) -> None:
    """Validate a run configuration

    Raises:
        ConfigValidationError: If any configuration value is invalid
    """
    errors = []
    checks = [
        lambda: _validate_percent("threshold", cfg.threshold),
        lambda: _validate_positive_int("api_timeout", cfg.api_timeout),
        lambda: _validate_positive_int("prometheus_timeout", cfg.prometheus_timeout),
        lambda: _validate_choice("output_mode", cfg.output_mode, OUTPUT_MODES),
        lambda: _validate_choice("metrics_source", cfg.metrics_source, METRICS_SOURCES),
    ]
    if cfg.metrics_source == "prometheus":
        checks.append(lambda: _validate_url("prometheus_url", cfg.prometheus_url))

    for check in checks:
        try:
            check()
        except ConfigValidationError as e:
            errors.append(str(e))

    if errors:
        raise ConfigValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


# =============================================================================
# Configuration Loading
# =============================================================================
_FIELD_TYPES = {
    "threshold": float,
    "prometheus_timeout": int,
    "api_timeout": int,
}


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load a YAML config file whose keys match AnalyzerConfig fields"""
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path}: top level must be a mapping")

    known = {f.name for f in fields(AnalyzerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigValidationError(f"{config_path}: unknown keys {unknown}")

    values = {}
    for key, value in data.items():
        if value is None:
            continue
        cast = _FIELD_TYPES.get(key)
        try:
            values[key] = cast(value) if cast else value
        except (TypeError, ValueError):
            raise ConfigValidationError(f"{config_path}: invalid value for {key}: {value!r}")
    return values


def build_config(config_path: Optional[str] = None, **overrides) -> AnalyzerConfig:
    """Environment defaults, then the optional YAML file, then explicit overrides"""
    cfg = AnalyzerConfig.from_env()
    if config_path:
        cfg = cfg.with_overrides(**load_config_file(config_path))
    cfg = cfg.with_overrides(**overrides)
    validate_config(cfg)
    return cfg

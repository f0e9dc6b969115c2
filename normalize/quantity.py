"""
Resource quantity normalization.

Converts Kubernetes quantities (``"250m"``, ``"1.5"``, ``"512Mi"``, ``"1e3"``)
and plain numbers (cores / bytes, as returned by Prometheus) into the two
canonical integer units used everywhere else: milli-CPU and mebibytes.
"""
from decimal import Decimal, ROUND_CEILING
from typing import Any, Dict, Iterable, Optional, Tuple

from kubernetes.utils import parse_quantity as _kube_parse_quantity

BYTES_PER_MI = 1024 * 1024


def parse_quantity(value: Any) -> Decimal:
    """Parse a quantity into base units (cores or bytes). Missing values are 0."""
    if value is None or value == '':
        return Decimal(0)
    if isinstance(value, float):
        # go through repr so 0.1 stays 0.1 instead of its binary expansion
        value = repr(value)
    return _kube_parse_quantity(value)


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def cpu_to_milli(value: Any) -> int:
    """CPU quantity -> milli-cores, rounded up like Quantity.MilliValue()"""
    return _ceil(parse_quantity(value) * 1000)


def memory_to_bytes(value: Any) -> int:
    return _ceil(parse_quantity(value))


def memory_to_mi(value: Any) -> int:
    """Memory quantity -> Mi. Truncates: 1.5Mi -> 1, 1048575 -> 0."""
    return memory_to_bytes(value) // BYTES_PER_MI


def usage_to_units(usage: Optional[Dict[str, Any]]) -> Tuple[int, int]:
    """Single ``{"cpu": ..., "memory": ...}`` mapping -> (cpu_milli, mem_mi)"""
    if not usage:
        return 0, 0
    return cpu_to_milli(usage.get('cpu')), memory_to_mi(usage.get('memory'))


def sum_requests(containers: Optional[Iterable[Dict[str, Any]]]) -> Tuple[int, int]:
    """Sum resource requests over a pod spec's containers. Limits are ignored.

    Each container is converted on its own before summing, so memory is
    truncated to Mi per container.
    """
    cpu_total = 0
    mem_total = 0
    for container in containers or []:
        requests = (container.get('resources') or {}).get('requests') or {}
        cpu_total += cpu_to_milli(requests.get('cpu'))
        mem_total += memory_to_mi(requests.get('memory'))
    return cpu_total, mem_total


def sum_usage(containers: Optional[Iterable[Dict[str, Any]]]) -> Tuple[int, int]:
    """Sum per-container usage figures for one pod.

    CPU is summed in milli-cores; memory is summed in bytes and only then
    converted to Mi.
    """
    cpu_total = 0
    mem_bytes = 0
    for usage in containers or []:
        usage = usage or {}
        cpu_total += cpu_to_milli(usage.get('cpu'))
        mem_bytes += memory_to_bytes(usage.get('memory'))
    return cpu_total, mem_bytes // BYTES_PER_MI

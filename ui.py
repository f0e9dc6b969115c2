#!/usr/bin/env python3
"""
Read-only HTTP API over the latest saved report.

Run `python orchestrator.py report --save` to produce OUTPUT_DIR/report.json,
then serve it:
- /api/report, /api/nodes, /api/deployments, /api/recommendations
- /health (liveness), /ready (report present), /metrics (self-monitoring)
"""
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from flask import Flask, jsonify, Response, request

from analysis.models import Severity
from config import setup_logging, get_report_output_path

logger = logging.getLogger(__name__)

app = Flask(__name__)

REPORT_FILE = Path(get_report_output_path())

# Metrics for observability
_metrics = {
    'requests_total': 0,
    'requests_by_endpoint': {},
    'errors_total': 0,
    'start_time': time.time()
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def _record_request(endpoint: str):
    """Record request metrics"""
    _metrics['requests_total'] += 1
    _metrics['requests_by_endpoint'][endpoint] = _metrics['requests_by_endpoint'].get(endpoint, 0) + 1


def load_json(filepath):
    """Load JSON file safely"""
    try:
        filepath = Path(filepath)
        if not filepath.exists():
            return None
        with open(filepath, 'r') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading {filepath}: {e}")
        _metrics['errors_total'] += 1
        return None


def _report_section(section: str):
    report = load_json(REPORT_FILE)
    if not report:
        return jsonify({"error": "Report not found"}), 404
    return jsonify(report.get(section, []))


@app.route('/api/report')
def get_report():
    """Full saved report"""
    _record_request('/api/report')
    report = load_json(REPORT_FILE)
    if report:
        return jsonify(report)
    return jsonify({"error": "Report not found"}), 404


@app.route('/api/nodes')
def get_nodes():
    _record_request('/api/nodes')
    return _report_section('nodes')


@app.route('/api/deployments')
def get_deployments():
    _record_request('/api/deployments')
    return _report_section('deployments')


@app.route('/api/recommendations')
def get_recommendations():
    """Recommendations, optionally filtered with ?min_severity=Low|Medium|High"""
    _record_request('/api/recommendations')
    min_severity = request.args.get('min_severity')
    if min_severity is None:
        return _report_section('recommendations')

    try:
        floor = Severity(min_severity).rank
    except ValueError:
        allowed = [s.value for s in Severity]
        return jsonify({"error": f"min_severity must be one of {allowed}"}), 400

    report = load_json(REPORT_FILE)
    if not report:
        return jsonify({"error": "Report not found"}), 404
    recs = [r for r in report.get('recommendations', []) if _severity_rank(r) >= floor]
    return jsonify(recs)


def _severity_rank(rec) -> int:
    try:
        return Severity(rec.get('severity')).rank
    except ValueError:
        # unknown severities sort below everything
        return -1


@app.route('/health')
def health():
    """Health check endpoint for liveness probes"""
    _record_request('/health')
    return jsonify({
        "status": "healthy",
        "timestamp": _now_iso()
    })


@app.route('/ready')
def ready():
    """Readiness check endpoint - verifies a saved report exists"""
    _record_request('/ready')
    report = load_json(REPORT_FILE)
    if report:
        return jsonify({
            "status": "ready",
            "report_generated_at": report.get('generated_at'),
            "timestamp": _now_iso()
        })
    return jsonify({
        "status": "not_ready",
        "reason": "No report file found",
        "timestamp": _now_iso()
    }), 503


@app.route('/metrics')
def metrics():
    """Prometheus metrics endpoint for self-monitoring"""
    _record_request('/metrics')
    uptime = time.time() - _metrics['start_time']
    report = load_json(REPORT_FILE) or {}
    recs = report.get('recommendations', [])

    lines = [
        "# HELP kcap_ui_requests_total Total number of HTTP requests",
        "# TYPE kcap_ui_requests_total counter",
        f"kcap_ui_requests_total {_metrics['requests_total']}",
        "",
        "# HELP kcap_ui_errors_total Total number of errors",
        "# TYPE kcap_ui_errors_total counter",
        f"kcap_ui_errors_total {_metrics['errors_total']}",
        "",
        "# HELP kcap_ui_uptime_seconds UI uptime in seconds",
        "# TYPE kcap_ui_uptime_seconds gauge",
        f"kcap_ui_uptime_seconds {uptime:.2f}",
        "",
        "# HELP kcap_report_available Whether a saved report exists",
        "# TYPE kcap_report_available gauge",
        f"kcap_report_available {1 if report else 0}",
        "",
        "# HELP kcap_recommendations Recommendations in the saved report by severity",
        "# TYPE kcap_recommendations gauge",
    ]
    for severity in Severity:
        count = sum(1 for r in recs if r.get('severity') == severity.value)
        lines.append(f'kcap_recommendations{{severity="{severity.value}"}} {count}')

    lines.append("")
    lines.append("# HELP kcap_ui_requests_by_endpoint Requests per endpoint")
    lines.append("# TYPE kcap_ui_requests_by_endpoint counter")
    for endpoint, count in _metrics['requests_by_endpoint'].items():
        lines.append(f'kcap_ui_requests_by_endpoint{{endpoint="{endpoint}"}} {count}')

    return Response('\n'.join(lines), mimetype='text/plain')


if __name__ == '__main__':
    setup_logging()
    logger.info(f"Serving {REPORT_FILE}")
    logger.info("Report: http://127.0.0.1:8080/api/report")
    logger.info("Health: http://127.0.0.1:8080/health")
    app.run(debug=False, host='127.0.0.1', port=8080)

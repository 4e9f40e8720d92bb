# zyro/lib/monitoring.py
from fastapi import FastAPI
from prometheus_client.registry import CollectorRegistry as Registry
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator
from zyro.core.logging import log

# Separate registry so tests can create apps repeatedly
registry = Registry()

active_workflow_runs = Gauge(
    'zyro_active_workflow_runs',
    'Number of workflow runs currently executing in this process',
    registry=registry
)

workflow_runs_total = Counter(
    'zyro_workflow_runs_total',
    'Finished workflow runs by event and final status',
    ['event', 'status'],
    registry=registry
)


def set_active_workflow_runs(n: int):
    """Sets the value of the active workflow runs gauge."""
    active_workflow_runs.set(n)


def record_run_finished(event: str, status: str):
    workflow_runs_total.labels(event=event, status=status).inc()


def register_monitoring(app: FastAPI):
    """
    Registers Prometheus request instrumentation and exposes /metrics.
    """
    instrumentator = Instrumentator(
        excluded_handlers=["/metrics"],  # Don't monitor the metrics endpoint itself
        registry=registry
    ).instrument(app)

    instrumentator.expose(app, include_in_schema=False, should_gzip=True)

    log("MONITORING", "Prometheus instrumentation registered at /metrics.")

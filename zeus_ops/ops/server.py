"""FastAPI ops server with health endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI, Response
from fastapi.responses import Response as FastAPIResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest


def check_system_ready() -> tuple[bool, dict]:
    """
    Run one health aggregation over the configured probes.

    Returns:
        Tuple of (is_ready, details_dict); ready unless the overall status is
        Unhealthy or Unreachable
    """
    from zeus_ops.probes import build_probes
    from zeus_ops.monitoring.aggregator import HealthAggregator
    from zeus_ops.utils.config import get_config

    details: dict = {}
    try:
        sample = HealthAggregator(build_probes(get_config())).collect()
    except Exception as e:
        details["error"] = str(e)
        return False, details

    details["overall"] = sample.overall.value
    details["response_time_ms"] = sample.response_time_ms
    for name, dependency in sample.dependencies.items():
        details[name] = dependency.status.value
    if sample.error:
        details["error"] = sample.error

    return not sample.overall.is_failure, details


def create_app() -> FastAPI:
    """Create FastAPI application for ops endpoints."""
    app = FastAPI(
        title="Zeus Ops",
        description="Health and metrics endpoints for the Zeus.People deployment",
        version="1.0.0",
    )

    @app.get("/health")
    def health():
        """Liveness probe - returns 200 if the ops server is responsive."""
        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/ready")
    def ready(response: Response):
        """Readiness probe - returns 200 if dependencies are usable, 503 otherwise."""
        is_ready, details = check_system_ready()

        result = {
            "status": "ready" if is_ready else "not_ready",
            "timestamp": datetime.now().isoformat(),
            "checks": details,
        }

        if not is_ready:
            response.status_code = 503

        return result

    @app.get("/metrics")
    def metrics():
        """Prometheus metrics endpoint."""
        return FastAPIResponse(
            content=generate_latest(REGISTRY),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


def run_server(host: str = "0.0.0.0", port: int = 8080) -> None:
    """Run the ops server with uvicorn."""
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)

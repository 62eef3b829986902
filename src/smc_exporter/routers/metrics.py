from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


def create_metrics_router(path: str = "/metrics") -> APIRouter:
    """Expose the application's CollectorRegistry at `path`."""
    router = APIRouter(tags=["metrics"])

    # Sync endpoint: FastAPI runs it in the threadpool, one scrape per request
    @router.get(path, response_class=Response)
    def metrics(request: Request) -> Response:
        registry = request.app.state.registry
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return router

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST


def metrics(request: Request) -> Response:
    """
    Exposes the registry in the Prometheus text format.
    Always 200: collectors that cannot reach their data source just
    contribute no sample lines.
    """
    payload = request.app.state.registry.gather()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter()

_INDEX_TEMPLATE = """<html>
<head><title>Example Exporter</title></head>
<body>
<h1>Example Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request) -> HTMLResponse:
    """Static landing page pointing at the metrics path."""
    metrics_path = getattr(request.app.state, "metrics_path", "/metrics")
    return HTMLResponse(_INDEX_TEMPLATE.format(metrics_path=metrics_path))

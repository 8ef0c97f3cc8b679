import logging

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

logger = logging.getLogger(__name__)

router = APIRouter()

WELCOME_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Welcome Webpage</title>
    <!-- Add Bootstrap CSS link -->
    <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.0/dist/css/bootstrap.min.css">
</head>
<body>
    <div class="container">
        <h1>Welcome Enviroment Page!</h1>
        <a href="/env">Check Enviroment</a>
    </div>

    <!-- Add Bootstrap JS scripts -->
    <script src="https://cdn.jsdelivr.net/npm/bootstrap@5.3.0/dist/js/bootstrap.bundle.min.js"></script>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def root() -> HTMLResponse:
    """Welcome page linking to the environment view."""
    logger.info("GET /")
    return HTMLResponse(content=WELCOME_HTML, status_code=200)

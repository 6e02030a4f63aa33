"""FastAPI application for the swap aggregator.

Note: Rate limiting is not implemented at the application level; it belongs
to the reverse proxy in front of the service.
"""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aggregator import __version__
from aggregator.api.endpoints import router
from aggregator.config import load_config
from aggregator.logging_config import configure_logging

config = load_config()
configure_logging(level=config.log_level, json=config.log_json)

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="Swap Aggregator",
    description="Best-route pricing and executor plans for DEX swaps",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


app.include_router(router)


def run() -> None:
    """Run the aggregator API server.

    Configuration via environment variables:
    - AGGREGATOR_HOST: Host to bind to (default: 0.0.0.0)
    - AGGREGATOR_PORT: Port to bind to (default: 8000)
    - AGGREGATOR_DEBUG: Enable reload mode (default: false)
    """
    uvicorn.run(
        "aggregator.api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    run()

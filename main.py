import logging
import os

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from backends import create_backend
from config import load_config
from log_config import configure_logging

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ('GET', 'HEAD')


class MethodGuardMiddleware(BaseHTTPMiddleware):
    """Middleware rejecting every method the gateway does not implement"""

    async def dispatch(self, request, call_next):
        if request.method not in ALLOWED_METHODS:
            logger.info("Rejecting %s %s", request.method, request.url.path)
            return JSONResponse(
                {"error": f"Method {request.method} not implemented"},
                status_code=501
            )
        return await call_next(request)


def create_app(config=None, transport=None):
    """Create the Starlette app

    Args:
        config: Config to use (default: read from the environment)
        transport: httpx transport for the health check, mainly for tests
    """
    if config is None:
        config = load_config()
    backend = create_backend(config)

    async def object_handler(request):
        """Serve one object from the configured backend"""
        path = request.path_params['path']
        logger.debug("%s /%s", request.method, path)
        # backend.get may block on the filesystem
        return await run_in_threadpool(backend.get, path)

    async def health_check(request):
        """Check if the backend is reachable"""
        if config.service == 'local':
            return _health_response(await run_in_threadpool(os.path.isdir, backend.directory))

        endpoint = config.endpoint_url
        if '://' not in endpoint:
            endpoint = f"{config.scheme}://{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=config.timeout_seconds, transport=transport) as client:
                response = await client.head(endpoint)
        except httpx.HTTPError as e:
            logger.warning("Health check against %s failed: %s", endpoint, e)
            return _health_response(False)
        return _health_response(response.status_code < 500)

    routes = [
        Route("/healthz", health_check, methods=["GET"]),
        Route("/{path:path}", object_handler, methods=list(ALLOWED_METHODS)),
    ]
    middleware = [
        Middleware(MethodGuardMiddleware)
    ]
    return Starlette(routes=routes, middleware=middleware)


def _health_response(ok):
    if ok:
        return JSONResponse({"status": "ok"}, status_code=200)
    return JSONResponse({"status": "nok"}, status_code=503)


def main():
    config = load_config()
    configure_logging(level=config.log_level, secrets=[config.secret_key])
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()

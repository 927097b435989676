"""FastAPI server for Health Maps."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from health_maps import utils
from health_maps.data_loader import build_cache, build_planner, create_http_client, get_air_quality
from health_maps.exceptions import HealthMapsError, InternalError, ValidationError
from health_maps.orchestrator import RouteHealthPlanner

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


class RoutesRequest(BaseModel):
    """Request model for route ranking."""
    start: Optional[str] = None
    end: Optional[str] = None


def create_app(config: Optional[Dict] = None,
               planner: Optional[RouteHealthPlanner] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Loaded configuration; the default config file when omitted
        planner: Prebuilt planner, used as is instead of building one at startup

    Returns:
        FastAPI application
    """
    if config is None:
        config = utils.load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if planner is not None:
            app.state.planner = planner
            yield
            return

        client = create_http_client(config)
        cache = build_cache(config, get_air_quality(config, client))
        app.state.planner = build_planner(config, client, cache)
        logger.info("Environment cache ready (max %d entries)", cache.max_entries)
        try:
            yield
        finally:
            cache.clear()
            await client.aclose()

    app = FastAPI(
        title="Health Maps API",
        description="Driving routes ranked by pollution exposure, heat and travel time",
        version=VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get('server', {}).get('cors_origins', []),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HealthMapsError)
    async def handle_pipeline_error(request: Request, exc: HealthMapsError):
        logger.error("Backend Error: %s", exc.message, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={'error': exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_bad_body(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=ValidationError.status_code,
                            content={'error': ValidationError.default_message})

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "Health Maps API",
            "version": VERSION,
            "status": "running"
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint with environment cache statistics."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "cache": request.app.state.planner.cache.stats()
        }

    @app.post("/api/routes")
    async def routes(body: RoutesRequest, request: Request):
        """Fastest, healthiest and second healthiest routes between two places."""
        try:
            result = await request.app.state.planner.plan(body.start, body.end)
        except HealthMapsError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure while planning routes")
            raise InternalError() from e
        return result.to_dict()

    return app


def run_server(config_path: str = utils.DEFAULT_CONFIG_PATH,
               host: Optional[str] = None, port: Optional[int] = None):
    """Run the FastAPI server."""
    config = utils.load_config(config_path)
    utils.configure_logging(config.get('logging', {}).get('level'))

    server_config = config.get('server', {})
    uvicorn.run(
        create_app(config),
        host=host or server_config.get('host', '0.0.0.0'),
        port=port or server_config.get('port', 3000)
    )

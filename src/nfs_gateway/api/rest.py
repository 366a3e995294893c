"""
FastAPI REST API Server for nfs-gateway

Volume create/get/delete over HTTP plus the service entry point.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from nfs_gateway import __version__
from nfs_gateway.config import GatewayConfig
from nfs_gateway.manager import VolumeManager
from nfs_gateway.types import CreateVolumeRequest, VolumeResponse
from nfs_gateway.errors import (
    GatewayError,
    InvalidRequestError,
    VolumeExistsError,
    VolumeNotFoundError,
    ExportError,
    VolumeStorageError,
    VolumeCleanupError,
    ExportfsNotFoundError,
    BootstrapError,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Response Models
# =============================================================================


class HealthStatus(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    volumes: int = Field(default=0, description="Number of recorded volumes")
    timestamp: str = Field(
        default_factory=lambda: datetime.utcnow().isoformat(),
        description="Response timestamp"
    )


class GatewayErrorResponse(BaseModel):
    """Uniform error response"""
    error_code: str = Field(..., description="Error code (see ERROR_CODES)")
    message: str = Field(..., description="Human readable error description")
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error details"
    )
    request_id: str = Field(..., description="Request tracking ID")
    timestamp: str = Field(
        default_factory=lambda: datetime.utcnow().isoformat(),
        description="Error time (ISO 8601)"
    )


# =============================================================================
# Error Code Mapping
# =============================================================================

ERROR_CODE_MAP = {
    InvalidRequestError: 400,
    VolumeExistsError: 409,
    VolumeNotFoundError: 404,
    ExportError: 500,
    VolumeStorageError: 500,
    VolumeCleanupError: 500,
    ExportfsNotFoundError: 503,
    BootstrapError: 500,
}


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    manager: VolumeManager,
    config: Optional[GatewayConfig] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Volumes are re-exported when the application starts and everything is
    unexported when it stops.

    Args:
        manager: Volume manager serving the requests
        config: Optional gateway configuration

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = GatewayConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.manager.reload()
        yield
        app.state.manager.shutdown()

    app = FastAPI(
        title="nfs-gateway API",
        version=__version__,
        description="NFS volume control plane",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.manager = manager

    register_exception_handlers(app)
    register_routes(app)

    logger.info(f"FastAPI application created with data root: {config.data_root}")
    return app


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    error_response = GatewayErrorResponse(
        error_code=error_code,
        message=message,
        details=details or {},
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(),
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers"""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Handle GatewayError exceptions"""
        status_code = ERROR_CODE_MAP.get(type(exc), 500)
        if status_code >= 500:
            logger.error(f"GatewayError: {exc.error_code} - {exc.message}")
        else:
            logger.info(f"Request rejected: {exc.error_code} - {exc.message}")
        return _error_response(
            request, status_code, exc.error_code, exc.message, exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors"""
        return _error_response(
            request,
            400,
            "INVALID_REQUEST",
            "error decoding request",
            {"errors": _jsonable_errors(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        return _error_response(
            request,
            500,
            "INTERNAL_ERROR",
            str(exc) or "An unexpected error occurred",
        )


def _jsonable_errors(errors) -> List[Dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in errors
    ]


def register_routes(app: FastAPI) -> None:
    """Register all API routes"""

    def get_manager(request: Request) -> VolumeManager:
        return request.app.state.manager

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    # Handlers are plain functions: FastAPI runs each request on a worker
    # thread, and the manager blocks on the store and exportfs.

    @app.get("/health", response_model=HealthStatus, tags=["System"])
    def health_check(manager: VolumeManager = Depends(get_manager)):
        """
        Service health check

        Reports the number of recorded volumes.
        """
        try:
            volumes = manager.count()
        except GatewayError as e:
            logger.error(f"Health check failed: {e}")
            return HealthStatus(status="degraded", version=__version__)
        return HealthStatus(status="healthy", version=__version__, volumes=volumes)

    @app.post(
        "/volume",
        response_model=VolumeResponse,
        status_code=201,
        tags=["Volumes"]
    )
    def create_volume(
        request: CreateVolumeRequest,
        name: Optional[str] = Query(default=None),
        manager: VolumeManager = Depends(get_manager),
    ):
        """
        Create a volume

        Records the volume, creates its directory and exports it to the
        requested hosts.
        """
        if not name:
            raise InvalidRequestError(
                field="name", value=name, reason="must supply a name parameter"
            )
        logger.info(f"Creating volume: {name}")

        volume = manager.create(name, hosts=request.hosts, options=request.options)
        return VolumeResponse.from_volume(volume)

    @app.get("/volume/{name}", response_model=VolumeResponse, tags=["Volumes"])
    def get_volume(name: str, manager: VolumeManager = Depends(get_manager)):
        """Get a volume's export path"""
        return VolumeResponse.from_volume(manager.get(name))

    @app.delete("/volume/{name}", status_code=200, tags=["Volumes"])
    def delete_volume(name: str, manager: VolumeManager = Depends(get_manager)):
        """
        Delete a volume

        Deleting a volume that does not exist succeeds.
        """
        logger.info(f"Deleting volume: {name}")
        manager.delete(name)
        return Response(status_code=200)


# =============================================================================
# Entry Point
# =============================================================================

def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """Split 'host:port' (host optional)."""
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {addr!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


def exit_on_error(message: str, err: Exception) -> None:
    print(f"{message}: {err}", file=sys.stderr)
    sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the nfs-gateway command."""
    import argparse
    import uvicorn

    from nfs_gateway.bootstrap import setup_nfs, stop_daemons
    from nfs_gateway.utils.logger import configure_logging

    parser = argparse.ArgumentParser(
        description="NFS volume gateway",
        prog="nfs-gateway"
    )
    parser.add_argument(
        "-H",
        dest="listen",
        default=None,
        help="Address to listen on (default: 127.0.0.1:80)"
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Location to store data (default: /var/lib/nfsg)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML or JSON configuration file"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Logging level"
    )
    parser.add_argument(
        "--no-setup-nfs",
        action="store_true",
        default=False,
        help="Do not prepare the kernel NFS server"
    )

    args = parser.parse_args(argv)

    overrides: Dict[str, Any] = {}
    try:
        if args.listen:
            overrides["api_host"], overrides["api_port"] = parse_listen_addr(args.listen)
        if args.root:
            overrides["data_root"] = args.root
        if args.log_level:
            overrides["log_level"] = args.log_level
        if args.no_setup_nfs:
            overrides["setup_nfs"] = False
        config = GatewayConfig.load(args.config)
        config = GatewayConfig(**{**config.model_dump(), **overrides})
    except (OSError, ValueError) as e:
        exit_on_error("error loading configuration", e)

    configure_logging(config.log_level, file_path=config.log_file)

    try:
        manager = VolumeManager.from_config(config)
    except GatewayError as e:
        exit_on_error("error setting up volume manager", e)

    daemons = []
    if config.setup_nfs:
        try:
            daemons = setup_nfs()
        except BootstrapError as e:
            manager.close()
            exit_on_error("error preparing NFS", e)

    app = create_app(manager, config)

    try:
        uvicorn.run(
            app,
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level,
        )
    finally:
        stop_daemons(daemons)
        manager.close()


if __name__ == "__main__":
    main()

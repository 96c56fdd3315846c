"""Entry point for the LiveDrop store server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import DocumentExistsError, InvalidToken, LiveDropError
from common.logging_config import setup_logging
from server.config import SERVER_HOST, SERVER_PORT
from server.database import get_db_connection, init_database
from server.routes.auth_routes import router as auth_router
from server.routes.document_routes import router as document_router

logger = setup_logging('server')

app = FastAPI(
    title="LiveDrop Store",
    description="Shared metadata store and identity provider for LiveDrop clients",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()
    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database on application startup.
    """
    logger.info("Store server starting up...")
    init_database()
    logger.info("Database initialized")


@app.exception_handler(DocumentExistsError)
async def document_exists_handler(request: Request, exc: DocumentExistsError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"Document exists error: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "code": "DOCUMENT_EXISTS"}
    )


@app.exception_handler(InvalidToken)
async def invalid_token_handler(request: Request, exc: InvalidToken):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"Invalid token error [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc), "code": "INVALID_TOKEN"}
    )


@app.exception_handler(LiveDropError)
async def livedrop_error_handler(request: Request, exc: LiveDropError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(f"Unhandled LiveDrop error: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "INTERNAL_ERROR"}
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    """
    return {"status": "healthy", "service": "livedrop-store"}


@app.get("/ready")
async def ready_check():
    """
    Readiness check endpoint. Verifies database connectivity.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"

    ready = db_status == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready, "database": db_status}
    )


app.include_router(auth_router)
app.include_router(document_router)


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "server.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
    )


if __name__ == "__main__":
    main()

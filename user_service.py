"""
User Service: REST API over the in-memory user store.

    GET    /                  welcome payload
    GET    /health            status + UTC timestamp
    GET    /api/users         list users (creation order)
    GET    /api/users/{id}    fetch one user
    POST   /api/users         create  {name, email}
    PUT    /api/users/{id}    partial update  {name?, email?}
    DELETE /api/users/{id}    delete

Malformed JSON and schema failures are both answered with 400.
Append ``?pretty`` to any request for indented JSON.

Port: $PORT (default 3000)
"""

import json
import logging
import os
import time
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_store import UserNotFound, UserStore, UserValidationError

logger = logging.getLogger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────────

DEFAULT_PORT = 3000
HOST         = os.getenv("HOST", "0.0.0.0")
LOG_LEVEL    = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT   = '%(asctime)s - %(levelname)s - %(message)s'

USER_FIELDS = ("name", "email")


def get_port() -> int:
    """$PORT as an int; missing, non-numeric or non-positive values fall back to 3000."""
    try:
        port = int(os.getenv("PORT", ""))
    except ValueError:
        return DEFAULT_PORT
    return port if port > 0 else DEFAULT_PORT


# ── Internal helpers ──────────────────────────────────────────────────────────

def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _read_user_fields(request: Request) -> dict:
    """Parse the JSON body and keep only the user fields."""
    raw = await request.body()
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise UserValidationError({"body": "Malformed JSON body"}) from exc
    if not isinstance(body, dict):
        raise UserValidationError({"body": "Expected a JSON object"})
    return {k: body[k] for k in USER_FIELDS if k in body}


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


# ── FastAPI app ───────────────────────────────────────────────────────────────

def create_app(store: UserStore) -> FastAPI:
    app = FastAPI(title="User Service")

    # ── Middleware (last registered runs first) ──

    @app.middleware("http")
    async def pretty_json(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "pretty" not in request.query_params or not content_type.startswith("application/json"):
            return response
        body = b"".join([chunk async for chunk in response.body_iterator])
        headers = {k: v for k, v in response.headers.items() if k != "content-length"}
        return Response(
            json.dumps(json.loads(body), indent=2, ensure_ascii=False),
            status_code=response.status_code,
            headers=headers,
            media_type="application/json",
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        method, path = request.method, request.url.path
        logger.info("<-- %s %s", method, path)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("--> %s %s %d %.0fms", method, path, response.status_code, elapsed)
        return response

    # ── Error mapping ──

    @app.exception_handler(UserNotFound)
    async def user_not_found(request: Request, exc: UserNotFound):
        return _error(404, "User not found")

    @app.exception_handler(UserValidationError)
    async def invalid_user(request: Request, exc: UserValidationError):
        return _error(400, "Invalid request body", fields=exc.fields)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        response = _error(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal Server Error")

    # ── Endpoints ──

    @app.get("/")
    def root():
        return {
            "message":   "Welcome to User Service API",
            "endpoints": {"health": "/health", "users": "/api/users"},
        }

    @app.get("/health")
    def health():
        return {"status": "healthy", "timestamp": _utc_timestamp()}

    @app.get("/api/users")
    @app.get("/api/users/", include_in_schema=False)
    def list_users():
        """All users in creation order."""
        return {"users": store.list()}

    @app.get("/api/users/{user_id}")
    def get_user(user_id: str):
        return {"user": store.get(user_id)}

    @app.post("/api/users", status_code=201)
    @app.post("/api/users/", status_code=201, include_in_schema=False)
    async def create_user(request: Request):
        """Create a user; both name and email are required."""
        fields = await _read_user_fields(request)
        user = store.create(**fields)
        logger.info("User %s created", user.id)
        return {"user": user}

    @app.put("/api/users/{user_id}")
    async def update_user(user_id: str, request: Request):
        """Partial update: fields left out of the body keep their value."""
        try:
            changes = await _read_user_fields(request)
        except UserValidationError:
            store.get(user_id)  # an unknown id is a 404 whatever the body
            raise
        return {"user": store.update(user_id, **changes)}

    @app.delete("/api/users/{user_id}")
    def delete_user(user_id: str):
        store.delete(user_id)
        logger.info("User %s deleted", user_id)
        return {"message": "User deleted"}

    return app


app = create_app(UserStore())


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    port = get_port()
    logger.info("Server running on http://localhost:%d", port)
    uvicorn.run(app, host=HOST, port=port, log_level=LOG_LEVEL.lower(), access_log=False)


if __name__ == "__main__":
    main()

# main.py
"""
FastAPI entry point for PantryChef, the ingredient-to-recipe service.
Startup/readiness checks against Supabase, request-id middleware with
structured request logging, and the recipe router.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pantrychef.api.recipes import pantrychef_error_handler
from pantrychef.api.recipes import router as recipes_router
from pantrychef.config.settings import settings
from pantrychef.config.supabase import supabase_client
from pantrychef.models import get_engine, init_db
from pantrychef.services.errors import PantryChefError

logger = logging.getLogger("uvicorn.error")

# config
HEALTH_CHECK_TIMEOUT = float(os.getenv("HEALTH_CHECK_TIMEOUT", "5.0"))
FAIL_ON_DB_STARTUP = os.getenv("FAIL_ON_DB_STARTUP", "false").lower() in ("1", "true", "yes")


async def _run_sync_in_executor(fn, *args, timeout: float = HEALTH_CHECK_TIMEOUT):
    """
    Run a blocking sync function in the default threadpool with a timeout.
    Returns the function's result or raises TimeoutError.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn, *args), timeout=timeout)


def _ensure_schema() -> None:
    engine = get_engine()
    try:
        init_db(engine)
    finally:
        engine.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PantryChef...")

    if settings.create_schema_on_startup and settings.database_url:
        try:
            await asyncio.to_thread(_ensure_schema)
        except Exception:
            logger.exception("Creating the recipe schema failed")
            raise

    supabase_healthy = False
    try:
        supabase_healthy = await _run_sync_in_executor(supabase_client.health_check)
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out after %.1fs", HEALTH_CHECK_TIMEOUT)
    except Exception as exc:
        logger.exception("Unexpected error calling supabase_client.health_check: %s", exc)

    app.state.supabase_healthy = bool(supabase_healthy)
    logger.info("Supabase health: %s", app.state.supabase_healthy)

    if not app.state.supabase_healthy and FAIL_ON_DB_STARTUP:
        logger.error("FAIL_ON_DB_STARTUP enabled and Supabase unhealthy. Aborting startup.")
        raise RuntimeError("Supabase unhealthy on startup")

    yield

    logger.info("Shutting down PantryChef...")


app = FastAPI(
    title="PantryChef",
    description="Turn the ingredients you have into recipes, save and browse them",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # lock down in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(PantryChefError, pantrychef_error_handler)


# Request-id middleware + structured request logging
@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s", request.method, request.url.path, request_id)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse(
            {
                "ok": False,
                "error": "internal_error",
                "message": "Internal server error",
                "diagnostics": {"request_id": request_id},
            },
            status_code=500,
        )
    logger.info("← Completed request id=%s status=%s", request_id, response.status_code)
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(recipes_router, tags=["recipes"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "PantryChef is running!", "status": "healthy"}


@app.get("/health")
async def health_check():
    """
    Liveness check. Runs a bounded Supabase health_check and reports degraded
    (503) instead of failing when the store is down.
    """
    try:
        db_ok = await _run_sync_in_executor(supabase_client.health_check)
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out on /health")
        db_ok = False
    except Exception as exc:
        logger.exception("Error invoking supabase health on /health: %s", exc)
        db_ok = False

    return JSONResponse(
        {
            "status": "healthy" if db_ok else "degraded",
            "service": "pantrychef",
            "database": "connected" if db_ok else "disconnected",
            "supabase": supabase_client.diagnostics(),
        },
        status_code=200 if db_ok else 503,
    )


@app.get("/ready")
async def readiness_check():
    """Readiness: uses the state cached at startup, else a one-shot bounded check."""
    supabase_state: Optional[bool] = getattr(app.state, "supabase_healthy", None)
    if supabase_state is None:
        try:
            supabase_state = await _run_sync_in_executor(supabase_client.health_check, timeout=2.0)
        except Exception:
            supabase_state = False

    if supabase_state:
        return JSONResponse({"ready": True, "database": "connected"}, status_code=200)
    return JSONResponse({"ready": False, "database": "disconnected"}, status_code=503)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 5000)),
        reload=True,
    )

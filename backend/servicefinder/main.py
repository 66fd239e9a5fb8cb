import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from servicefinder import config
from servicefinder.http_errors import install_error_handlers
from servicefinder.routers import auth, listings, realtime
from servicefinder.services.realtime import connection_registry


def setup_logging(level: str) -> None:
    root = logging.getLogger()
    if root.handlers:
        # uvicorn or pytest already configured logging.
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


setup_logging(config.LOG_LEVEL)

app = FastAPI(title="Local Services Finder API", version="0.1.0")

# Registered first so the CORS layer still wraps the generic 500 response.
install_error_handlers(app)

allow_any_origin = len(config.CORS_ORIGINS) == 1 and config.CORS_ORIGINS[0] == "*"

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    # Browsers reject wildcard CORS with credentials enabled.
    allow_credentials=not allow_any_origin,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
)

if not (len(config.TRUSTED_HOSTS) == 1 and config.TRUSTED_HOSTS[0] == "*"):
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=config.TRUSTED_HOSTS)

app.include_router(auth.router)
app.include_router(listings.router)
app.include_router(realtime.router)


@app.get("/")
def root():
    return {
        "message": "Local Services Finder API is running",
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "realtime_viewers": len(connection_registry)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("servicefinder.main:app", host="0.0.0.0", port=5000, log_level=config.LOG_LEVEL.lower())

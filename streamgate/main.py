"""StreamGate Server - FastAPI Application Entry Point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from streamgate.config import settings
from streamgate.database import init_db
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load keying material and initialize the database on startup."""
    # Fails fast when the vault key is missing or malformed.
    app.state.vault = CredentialVault.from_settings(settings)
    app.state.signer = TokenSigner.from_settings(settings)
    init_db()
    yield


app = FastAPI(
    title="StreamGate",
    description="Device access control and upstream credential relay for streaming clients",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

from streamgate.api.errors import register_error_handlers  # noqa: E402

register_error_handlers(app)

# --- Register API routers ---
from streamgate.api.devices import router as devices_router  # noqa: E402
from streamgate.api.playback import router as playback_router  # noqa: E402
from streamgate.api.admin import router as admin_router  # noqa: E402

API_PREFIX = "/api/v1"

app.include_router(devices_router, prefix=API_PREFIX)
app.include_router(playback_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)


@app.get("/")
def root():
    """Health check / server info."""
    return {
        "name": settings.server_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/api/v1/health")
def health():
    return {"status": "ok"}

"""
SocialBug Web Client - FastAPI companion app
Holds the tab's session state, talks to the SocialBug API and receives
provider redirects for account linking.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import connections_redirect_uri, settings, validate_security_settings
from routers import auth, campaigns, connections, health, posts
from services.api_gateway import ApiGateway
from services.session_store import SessionStore
from services.tab_context import TabContext


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    configure_logging()
    print("🚀 Starting SocialBug web client...")
    validate_security_settings()
    tab = getattr(app.state, "tab", None)
    owns_tab = tab is None
    if owns_tab:
        store = SessionStore.from_url(settings.SESSION_DATABASE_URL, settings.ENCRYPTION_KEY)
        gateway = ApiGateway(store, settings.SOCIALBUG_API_BASE_URL)
        tab = TabContext(store, gateway, connections_redirect_uri())
        app.state.tab = tab
        print(f"🔗 Talking to {settings.SOCIALBUG_API_BASE_URL}; provider redirects land on {connections_redirect_uri()}")
    yield
    # Shutdown
    if owns_tab:
        await tab.aclose()
        app.state.tab = None
    print("👋 Shutting down web client...")


app = FastAPI(
    title="SocialBug Web Client",
    description="Link social accounts and manage campaigns, items and posts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(connections.router, prefix="/connections", tags=["Connections"])
app.include_router(campaigns.router, prefix="/campaigns", tags=["Campaigns"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "SocialBug Web Client",
        "version": "0.1.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.APP_HOST, port=settings.APP_PORT)

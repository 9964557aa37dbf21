"""
Cal.com proxy server. Mentors store their Cal.com API key here; the client app then calls
Cal.com through this server without ever holding the key. Port 4000 by default.
"""
import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from calcom_proxy import config
from calcom_proxy.calcom_client import CalcomClient
from calcom_proxy.database import init_db, make_engine, make_session_factory
from calcom_proxy.delegation import ProfileStore
from calcom_proxy.errors import ConfigurationError, register_error_handlers
from calcom_proxy.identity import IdentityVerifier
from calcom_proxy.proxy import router as proxy_router
from calcom_proxy.tokens import router as tokens_router
from calcom_proxy.token_store import TokenStore

logger = logging.getLogger(__name__)


def create_app(
    verifier: IdentityVerifier | None = None,
    token_store: TokenStore | None = None,
    profiles: ProfileStore | None = None,
    calcom: CalcomClient | None = None,
) -> FastAPI:
    """
    Build the app. Components not passed in are created from config when the app starts
    and closed when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        owned_calcom = None
        if verifier is None:
            # Refuse to start without a complete service account
            service_account = config.load_service_account()
            app.state.verifier = IdentityVerifier(service_account.project_id)
        else:
            app.state.verifier = verifier
        if token_store is None or profiles is None:
            engine = make_engine(config.DATABASE_URL)
            init_db(engine)
            session_factory = make_session_factory(engine)
        app.state.token_store = token_store or TokenStore(session_factory)
        app.state.profiles = profiles or ProfileStore(session_factory)
        if calcom is None:
            owned_calcom = CalcomClient(httpx.AsyncClient())
        app.state.calcom = calcom or owned_calcom
        logger.info("Cal.com proxy ready (upstream %s)", app.state.calcom.base_url)
        yield
        if owned_calcom is not None:
            await owned_calcom.aclose()
        if engine is not None:
            engine.dispose()

    app = FastAPI(title="Cal.com Proxy", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_error_handlers(app)
    app.include_router(tokens_router, tags=["tokens"])
    app.include_router(proxy_router, tags=["calcom"])

    @app.get("/", response_class=PlainTextResponse)
    def root():
        """Liveness; no authentication required."""
        return "Cal.com Proxy Server is running"

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "calcom_proxy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config.load_service_account()
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)
    logger.info("Cal.com proxy server running on http://localhost:%s", config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())

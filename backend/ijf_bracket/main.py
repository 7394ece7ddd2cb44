import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ijf_bracket import __version__
from ijf_bracket.database import STORE_BACKEND, init_db
from ijf_bracket.routes import draws, runtime

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="IJF Bracket API", version=__version__)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Draws, brackets and read-only views
app.include_router(draws.router, prefix="/api", tags=["draws"])
# Match lifecycle and repair passes
app.include_router(runtime.router, prefix="/api", tags=["runtime"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("IJF Bracket API %s started (store: %s)", __version__, STORE_BACKEND)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "IJF Bracket API", "version": __version__, "store": STORE_BACKEND, "status": "healthy"}

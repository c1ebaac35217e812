"""Backend HTTP de l'export FEC : application FastAPI et chargement du plan comptable."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from craftly_ops.config.loader import load_config
from craftly_ops.models import Journal

from .routes import router

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "./config"
DEFAULT_CORS_ORIGINS = "http://localhost:3000"


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Charge une seule fois le plan comptable et les sources (``CONFIG_DIR``).

    Une configuration invalide empêche le démarrage (ConfigError).
    """
    config_dir = Path(os.getenv("CONFIG_DIR", DEFAULT_CONFIG_DIR))
    config = load_config(config_dir)
    application.state.config = config
    logger.info(
        "Plan comptable chargé depuis %s : journaux %s/%s, fuseau %s",
        config_dir,
        config.journaux[Journal.VENTES].code,
        config.journaux[Journal.BANQUE].code,
        config.timezone,
    )
    yield


app = FastAPI(
    title="craftly-ops FEC",
    description="Génération du Fichier des Écritures Comptables à partir des factures de vente.",
    lifespan=lifespan,
)

# Front d'export (formulaire période + SIREN)
cors_origins = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in cors_origins],
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(router)

"""Endpoints de l'API : /api/export/fec, /api/process, /api/download/excel, /api/defaults, /api/siren, /api/health."""

from __future__ import annotations

import datetime
import json
import logging

from fastapi import APIRouter, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from craftly_ops.config.loader import AppConfig
from craftly_ops.export import ExportOrchestrator
from craftly_ops.exporters.excel import export_to_bytes
from craftly_ops.models import (
    BalanceError,
    DataFetchError,
    FECExport,
    FECExportRequest,
    FECFormatError,
    InvalidAmount,
    InvalidPeriod,
    InvalidSiren,
    Journal,
)
from craftly_ops.siren import siren_from_vat_number

from .overrides import apply_overrides
from .serializers import serialize_response

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_FILES = 5


async def _validate_and_read_files(
    files: list[UploadFile],
) -> dict[str, bytes]:
    """Valide les uploads et retourne un dict {filename: bytes}."""
    if len(files) > MAX_FILES:
        raise HTTPException(
            status_code=422,
            detail=f"Trop de fichiers : {len(files)} (maximum {MAX_FILES}).",
        )

    files_dict: dict[str, bytes] = {}
    for f in files:
        filename = f.filename or "unknown"
        if not filename.lower().endswith(".csv"):
            raise HTTPException(
                status_code=422,
                detail=f"Extension invalide pour '{filename}' : seuls les fichiers .csv sont acceptés.",
            )
        content = await f.read()
        if len(content) > MAX_FILE_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"Fichier '{filename}' trop volumineux : {len(content)} octets (maximum {MAX_FILE_SIZE}).",
            )
        files_dict[filename] = content

    return files_dict


def _resolve_config(request: Request, overrides_json: str | None) -> AppConfig:
    """Parse optional overrides JSON and apply to config."""
    config: AppConfig = request.app.state.config
    if overrides_json:
        try:
            overrides_dict = json.loads(overrides_json)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=422, detail=f"JSON overrides invalide : {e}")
        try:
            config = apply_overrides(config, overrides_dict)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=f"Overrides invalides : {e}")
    return config


async def _run_export(
    request: Request,
    files: list[UploadFile],
    start_date: datetime.date,
    end_date: datetime.date,
    siren: str,
    overrides: str | None,
) -> FECExport:
    """Exécute l'export et traduit les erreurs métier en réponses HTTP."""
    files_dict = await _validate_and_read_files(files)
    config = _resolve_config(request, overrides)
    export_request = FECExportRequest(start_date=start_date, end_date=end_date, siren=siren)

    try:
        return ExportOrchestrator().run_from_buffers(files_dict, export_request, config)
    except (InvalidSiren, InvalidPeriod) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (DataFetchError, InvalidAmount) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except BalanceError as e:
        logger.error("Erreur de balance : %s", e)
        raise HTTPException(status_code=500, detail="Erreur interne de calcul comptable")
    except FECFormatError as e:
        logger.error("Erreur de format FEC : %s", e)
        raise HTTPException(status_code=500, detail="Erreur interne de génération du FEC")


@router.post("/api/export/fec")
async def export_fec(
    request: Request,
    files: list[UploadFile],
    start_date: datetime.date = Form(...),
    end_date: datetime.date = Form(...),
    siren: str = Form(...),
    overrides: str | None = Form(None),
) -> Response:
    """Upload CSV → fichier FEC texte en téléchargement."""
    result = await _run_export(request, files, start_date, end_date, siren, overrides)
    return Response(
        content=result.content.encode("utf-8"),
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.post("/api/process")
async def process(
    request: Request,
    files: list[UploadFile],
    start_date: datetime.date = Form(...),
    end_date: datetime.date = Form(...),
    siren: str = Form(...),
    overrides: str | None = Form(None),
) -> JSONResponse:
    """Upload CSV → JSON (entries, anomalies, summary)."""
    result = await _run_export(request, files, start_date, end_date, siren, overrides)
    return JSONResponse(content=serialize_response(result))


@router.post("/api/download/excel")
async def download_excel(
    request: Request,
    files: list[UploadFile],
    start_date: datetime.date = Form(...),
    end_date: datetime.date = Form(...),
    siren: str = Form(...),
    overrides: str | None = Form(None),
) -> StreamingResponse:
    """Upload CSV → fichier .xlsx (écritures + anomalies) en téléchargement."""
    result = await _run_export(request, files, start_date, end_date, siren, overrides)
    buffer = export_to_bytes(result.entries, result.anomalies)
    filename = result.filename.replace(".txt", ".xlsx")

    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/api/defaults")
async def defaults(request: Request) -> JSONResponse:
    """Retourne les valeurs par défaut du plan comptable et des journaux."""
    config: AppConfig = request.app.state.config

    return JSONResponse(content={
        "journaux": {
            journal.value: {"code": config.journaux[journal].code, "libelle": config.journaux[journal].label}
            for journal in Journal
        },
        "comptes": {
            "clients": config.compte_clients_prefix,
            "ventes": config.compte_ventes.number,
            "tva_collectee": config.compte_tva.number,
            "banque": config.compte_banque.number,
        },
        "timezone": config.timezone,
    })


@router.get("/api/siren")
async def siren_from_vat(vat_number: str) -> dict[str, str | None]:
    """Extrait le SIREN d'un numéro de TVA intracommunautaire (pré-remplissage du formulaire)."""
    return {"siren": siren_from_vat_number(vat_number)}


@router.get("/api/health")
async def health() -> dict[str, str]:
    """Health check pour Render."""
    return {"status": "ok"}

"""
app/api/dependencies.py

Shared FastAPI dependencies for upload validation and storage wiring.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import PurePath

from fastapi import Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.config import BulkImportSettings, get_bulk_import_settings
from app.domain.bulk_import import ImportType
from app.storage.base import ImportStorage, ReferenceSource
from app.storage.sqlalchemy_storage import (
    SQLAlchemyPatientStorage,
    SQLAlchemyProductionStorage,
    SQLAlchemyReferenceSource,
)
from db.session import get_db

UPLOAD_EXTENSIONS = frozenset({".csv", ".xlsx", ".xlsm"})


@dataclass(frozen=True)
class ImportUpload:
    filename: str
    content: bytes


async def get_import_upload(
    file: UploadFile = File(...),
    settings: BulkImportSettings = Depends(get_bulk_import_settings),
) -> ImportUpload:
    """
    Validate extension, size and non-empty content of an uploaded spreadsheet.
    """

    filename = (file.filename or "").strip()
    extension = PurePath(filename).suffix.lower()
    if extension not in UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only .csv, .xlsx and .xlsm files are allowed.",
        )

    try:
        content = await file.read(settings.max_upload_bytes + 1)
    finally:
        await file.close()

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Uploaded file exceeds {settings.max_upload_bytes} bytes.",
        )

    return ImportUpload(filename=filename, content=content)


def get_manual_overrides(overrides: str | None = Form(default=None)) -> dict[str, str] | None:
    """
    Parse the optional JSON object of canonical field -> header label overrides.
    """

    if overrides is None or not overrides.strip():
        return None
    try:
        parsed = json.loads(overrides)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"overrides must be a JSON object: {exc.msg}",
        ) from exc
    if not isinstance(parsed, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in parsed.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="overrides must map canonical field names to header labels.",
        )
    return parsed


def get_reference_source(db: Session = Depends(get_db)) -> ReferenceSource:
    return SQLAlchemyReferenceSource(session=db)


def get_import_storage(import_type: ImportType, db: Session = Depends(get_db)) -> ImportStorage:
    if import_type is ImportType.PATIENT:
        return SQLAlchemyPatientStorage(session=db)
    return SQLAlchemyProductionStorage(session=db)

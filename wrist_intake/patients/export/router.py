from __future__ import annotations

import logging
from io import BytesIO

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from wrist_intake.core.settings import get_settings
from wrist_intake.patients.deps import get_clinical_store
from wrist_intake.patients.export.pdf import (
    PageLayout,
    content_disposition,
    export_filename,
    render_pdf,
)
from wrist_intake.patients.export.sheet import render_patient_sheet
from wrist_intake.patients.schemas import PatientDetailOut
from wrist_intake.patients.service import get_patient_detail
from wrist_intake.patients.store import ClinicalStore

router = APIRouter(prefix="/{patient_id}", tags=["export"])
logger = logging.getLogger("wrist_intake.export")

_ALLOWED_SNAPSHOT_TYPES = {"image/png", "image/jpeg"}
_CHUNK_SIZE = 1024 * 1024


def _layout() -> PageLayout:
    settings = get_settings()
    return PageLayout(margin_mm=float(settings.export_margin_mm), dpi=int(settings.export_dpi))


def _sniff_image_type(head: bytes) -> str | None:
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    return None


async def _read_limited(upload: UploadFile, *, max_bytes: int) -> bytes:
    buf = bytearray()
    while True:
        chunk = await upload.read(_CHUNK_SIZE)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Uploaded snapshot is too large",
            )
    return bytes(buf)


async def _require_patient(*, store: ClinicalStore, patient_id: str) -> PatientDetailOut:
    detail = await get_patient_detail(store=store, patient_id=patient_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return detail


def _pdf_response(*, detail: PatientDetailOut, pdf: bytes) -> Response:
    filename = export_filename(apellido=detail.filiatorios.apellido, dni=detail.id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )


def _render_sheet_pdf(detail: PatientDetailOut, layout: PageLayout) -> bytes:
    return render_pdf(render_patient_sheet(detail), layout)


def _render_snapshot_pdf(data: bytes, layout: PageLayout) -> bytes:
    with Image.open(BytesIO(data)) as image:
        image.load()
        return render_pdf(image, layout)


@router.get(
    "/export.pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def export_patient_pdf(
    patient_id: str,
    store: ClinicalStore = Depends(get_clinical_store),
) -> Response:
    """Download the patient sheet (demographics and every record) as a paginated A4 PDF."""

    detail = await _require_patient(store=store, patient_id=patient_id)
    pdf = await run_in_threadpool(_render_sheet_pdf, detail, _layout())
    logger.info("Patient sheet exported", extra={"success": True})
    return _pdf_response(detail=detail, pdf=pdf)


@router.post(
    "/export",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def export_snapshot_pdf(
    patient_id: str,
    file: UploadFile = File(description="PNG or JPEG rendering of the patient view."),
    store: ClinicalStore = Depends(get_clinical_store),
) -> Response:
    """Paginate an uploaded raster of the patient view into an A4 PDF."""

    detail = await _require_patient(store=store, patient_id=patient_id)

    data = await _read_limited(file, max_bytes=get_settings().max_snapshot_upload_bytes)
    mime_type = _sniff_image_type(data[:16])
    if mime_type not in _ALLOWED_SNAPSHOT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Snapshot must be a PNG or JPEG image",
        )

    try:
        pdf = await run_in_threadpool(_render_snapshot_pdf, data, _layout())
    except Image.DecompressionBombError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded snapshot is too large",
        ) from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Snapshot image could not be decoded",
        ) from exc

    logger.info("Patient snapshot exported", extra={"success": True})
    return _pdf_response(detail=detail, pdf=pdf)

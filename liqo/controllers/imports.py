"""Spreadsheet import of groups."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import Response

from liqo.config.settings import settings
from liqo.controllers.dependencies import AdminDep, ImportProcessorDep
from liqo.infrastructure.spreadsheets import (
    TEMPLATE_FILENAME,
    build_group_template,
    read_group_spreadsheet,
)
from liqo.views import ERROR_RESPONSES, ImportResultResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"], responses=ERROR_RESPONSES)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/group-template")
async def download_group_template(_: AdminDep) -> Response:
    return Response(
        content=build_group_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )


@router.post("/groups", response_model=ImportResultResponse)
async def import_groups(
    admin: AdminDep,
    processor: ImportProcessorDep,
    file: UploadFile = File(...),
) -> ImportResultResponse:
    """Create one group per valid row; invalid rows are reported, not fatal."""

    # one extra byte is enough to know the limit was exceeded
    content = await file.read(settings.imports.max_file_bytes + 1)
    sheet = read_group_spreadsheet(file.filename, content, settings.imports.max_file_bytes)
    logger.info(
        "User %s importing %d group rows from %s",
        admin.id,
        len(sheet.rows),
        file.filename,
    )
    result = await processor.import_groups(sheet)
    return ImportResultResponse.model_validate(result)

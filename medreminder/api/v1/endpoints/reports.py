"""
Mock report analysis endpoint.
Accepts one or more uploaded report files and returns canned analysis data.
"""
import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from medreminder.api.deps import get_app_settings, verify_api_key_dependency
from medreminder.core.config import Settings
from medreminder.services.report_analysis import (
    ReportFile,
    describe_file,
    generate_mock_report,
    validate_report_file,
)
from medreminder.utils.timezone import get_zoneinfo, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key_dependency)])


async def read_bounded(upload: UploadFile, max_size: int) -> Tuple[Optional[bytes], int]:
    """Read an upload without buffering more than max_size + 1 bytes.

    Returns (content, size); content is None when the upload is over the limit.
    """
    if upload.size is not None and upload.size > max_size:
        return None, upload.size
    content = await upload.read(max_size + 1)
    if len(content) > max_size:
        return None, len(content)
    return content, len(content)


@router.post("/analyze")
async def analyze_reports(
    files: List[UploadFile] = File(...),
    settings: Settings = Depends(get_app_settings),
):
    """
    Validate the uploaded files and return a mock analysis.

    Files over REPORT_MAX_FILE_SIZE or of an unsupported type are listed
    under ``rejected`` with the reason; the rest are described and analysed.

    Raises:
        HTTPException: 400 if no uploaded file is acceptable
    """
    accepted: List[ReportFile] = []
    rejected = []
    for upload in files:
        content, size = await read_bounded(upload, settings.REPORT_MAX_FILE_SIZE)
        filename = upload.filename or "uploaded_file"
        reason = validate_report_file(
            filename,
            upload.content_type,
            size,
            max_size=settings.REPORT_MAX_FILE_SIZE,
            allowed_types=settings.REPORT_ALLOWED_CONTENT_TYPES,
        )
        if reason:
            logger.info(f"🚫 [Reports] Rejected {filename}: {reason}")
            rejected.append({"filename": filename, "reason": reason})
            continue
        accepted.append(
            ReportFile(
                filename=filename,
                content_type=upload.content_type or "application/octet-stream",
                size=size,
                content=content,
            )
        )

    if not accepted:
        reasons = "; ".join(f"{r['filename']}: {r['reason']}" for r in rejected)
        raise HTTPException(status_code=400, detail=f"No supported files uploaded. {reasons}".strip())

    now = utc_now().astimezone(get_zoneinfo(settings.DEFAULT_TIMEZONE))
    logger.info(f"🧪 [Reports] Mock analysis for {len(accepted)} file(s)")
    return {
        "report": generate_mock_report(accepted, now),
        "files": [describe_file(f) for f in accepted],
        "rejected": rejected,
    }

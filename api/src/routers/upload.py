"""
Media upload router (posters, documents).

Files are checked against the upload rules (10MB, JPEG/PNG/PDF) before
they are sent to Cloudinary. Without Cloudinary credentials uploads return
development placeholder URLs.
"""

from typing import Any, Dict, List, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from api.src.dependencies import get_current_customer, get_upload_service
from api.src.errors import as_http_error
from api.src.models.common import success
from api.src.services.booking_service import Customer
from api.src.services.upload_service import UploadError, UploadService, resource_type_for

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

UploadKind = Literal["image", "pdf", "auto"]


async def _upload_one(
    uploads: UploadService, file: UploadFile, folder: Optional[str], kind: str
) -> Dict[str, Any]:
    content = await file.read()
    result = await uploads.upload(
        content,
        file.filename,
        folder=folder,
        resource_type=resource_type_for(file.content_type, kind),
    )
    return {
        **result,
        "fileName": file.filename,
        "fileType": file.content_type,
        "fileSize": len(content),
    }


@router.post("/single", summary="Upload one file")
async def upload_single(
    file: Optional[UploadFile] = File(None),
    folder: Optional[str] = Form(None),
    kind: UploadKind = Form("auto", alias="type"),
    customer: Customer = Depends(get_current_customer),
    uploads: UploadService = Depends(get_upload_service),
) -> Dict[str, Any]:
    """
    **Errors:**
    - 400: No file uploaded / file validation failed
    - 502: Upload failed
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "No file uploaded"})
    check = uploads.validate_file(file)
    if not check.valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "File validation failed", "details": [check.message]},
        )

    try:
        result = await _upload_one(uploads, file, folder, kind)
    except UploadError as e:
        raise as_http_error(e)
    return success(result, message="File uploaded successfully")


@router.post("/multiple", summary="Upload up to 10 files")
async def upload_multiple(
    files: Optional[List[UploadFile]] = File(None),
    folder: Optional[str] = Form(None),
    kind: UploadKind = Form("auto", alias="type"),
    customer: Customer = Depends(get_current_customer),
    uploads: UploadService = Depends(get_upload_service),
) -> Dict[str, Any]:
    """
    Upload each file independently; one failure does not abort the rest.

    The response lists a per-file result with ``success`` and either
    ``data`` or ``error``.
    """
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "No files uploaded"})
    if len(files) > uploads.rules.max_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": f"Too many files. Maximum is {uploads.rules.max_files} files"},
        )

    results: List[Dict[str, Any]] = []
    for file in files:
        check = uploads.validate_file(file)
        if not check.valid:
            results.append({"fileName": file.filename, "success": False, "error": check.message})
            continue
        try:
            data = await _upload_one(uploads, file, folder, kind)
        except UploadError as e:
            results.append({"fileName": file.filename, "success": False, "error": e.message})
            continue
        results.append({"fileName": file.filename, "success": True, "data": data})

    uploaded = sum(1 for result in results if result["success"])
    logger.info("files_uploaded", total=len(files), uploaded=uploaded)
    return success(
        {
            "totalFiles": len(files),
            "successfulUploads": uploaded,
            "failedUploads": len(files) - uploaded,
            "results": results,
        },
        message=f"Uploaded {uploaded} files successfully",
    )


@router.delete("/{public_id:path}", summary="Delete an uploaded file")
async def delete_file(
    public_id: str,
    resource_type: Literal["image", "video", "raw", "auto"] = Query("image", alias="resourceType"),
    customer: Customer = Depends(get_current_customer),
    uploads: UploadService = Depends(get_upload_service),
) -> Dict[str, Any]:
    try:
        deleted = await uploads.delete(public_id, resource_type)
    except UploadError as e:
        raise as_http_error(e)
    return success({"deleted": deleted, "publicId": public_id}, message="File deleted successfully")

"""Upload, file serving and URL signing endpoints."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from examdesk.storage.object_store import (
    InvalidKeyError,
    InvalidSignatureError,
    LocalObjectStore,
    ObjectNotFoundError,
    guess_content_type,
)
from examdesk.storage.upload_router import UploadRejectedError, upload
from examdesk.web.dependencies import get_object_store
from examdesk.web.errors import upload_error_to_http
from examdesk.web.schemas import SignUrlRequest, SignUrlResponse, UploadResponse

router = APIRouter(tags=["files"])


@router.post("/api/uploads/{endpoint}", response_model=UploadResponse)
async def upload_to_endpoint(
    endpoint: str,
    file: UploadFile = File(...),
    store: LocalObjectStore = Depends(get_object_store),
) -> UploadResponse:
    """Upload a file through a named upload endpoint."""
    data = await file.read()
    try:
        result = upload(
            store,
            endpoint,
            file.filename or "file",
            data,
            file.content_type or "application/octet-stream",
        )
    except UploadRejectedError as e:
        raise upload_error_to_http(e)
    return UploadResponse(**result.to_dict())


@router.get("/files/{bucket}/{key:path}")
async def serve_file(
    bucket: str,
    key: str,
    token: str | None = None,
    store: LocalObjectStore = Depends(get_object_store),
) -> Response:
    """Serve a stored object. A ``token`` must match the requested key."""
    if bucket != store.bucket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bucket '{bucket}' not found",
        )

    if token is not None:
        try:
            signed_key = store.verify_token(token)
        except InvalidSignatureError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        if signed_key != key:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Token does not match the requested file",
            )

    try:
        data = store.get(key)
    except (ObjectNotFoundError, InvalidKeyError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File '{key}' not found",
        )

    return Response(content=data, media_type=guess_content_type(key))


@router.post("/api/files/sign", response_model=SignUrlResponse)
async def sign_url(
    data: SignUrlRequest,
    store: LocalObjectStore = Depends(get_object_store),
) -> SignUrlResponse:
    """Signed, expiring URL for a stored file."""
    key = store.key_from_url(data.url)
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not extract path from URL",
        )
    if not store.exists(key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File '{key}' not found",
        )
    return SignUrlResponse(signed_url=store.signed_url(key, data.expires_in))

"""HTTP error mapping for domain exceptions."""

from fastapi import HTTPException, status

from examdesk.storage.upload_router import (
    FileTooLargeError,
    UnknownEndpointError,
    UnsupportedFileTypeError,
    UploadRejectedError,
)


def upload_error_to_http(error: UploadRejectedError) -> HTTPException:
    """Map an upload rejection to its HTTP status."""
    if isinstance(error, FileTooLargeError):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(error, UnknownEndpointError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, UnsupportedFileTypeError):
        code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


def upstream_error(message: str) -> HTTPException:
    """502 for failures of the chat-completion API."""
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)

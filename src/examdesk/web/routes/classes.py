"""Class endpoints."""

from fastapi import APIRouter, HTTPException, status

from examdesk.db.academics_repository import (
    create_class,
    delete_class,
    get_class,
    list_classes,
    update_class,
)
from examdesk.web.schemas import (
    ClassCreate,
    ClassListResponse,
    ClassResponse,
    ClassUpdate,
)

router = APIRouter(prefix="/api/classes", tags=["classes"])


@router.get("", response_model=ClassListResponse)
async def list_all_classes() -> ClassListResponse:
    """List all classes ordered by name."""
    classes = [ClassResponse.model_validate(c) for c in list_classes()]
    return ClassListResponse(classes=classes, count=len(classes))


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class_by_id(class_id: str) -> ClassResponse:
    record = get_class(class_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Class '{class_id}' not found",
        )
    return ClassResponse.model_validate(record)


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_new_class(data: ClassCreate) -> ClassResponse:
    record = create_class(name=data.name, department=data.department, year=data.year)
    return ClassResponse.model_validate(record)


@router.patch("/{class_id}", response_model=ClassResponse)
async def update_existing_class(class_id: str, data: ClassUpdate) -> ClassResponse:
    record = update_class(class_id, **data.model_dump(exclude_unset=True))
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Class '{class_id}' not found",
        )
    return ClassResponse.model_validate(record)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_class(class_id: str) -> None:
    if not delete_class(class_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Class '{class_id}' not found",
        )

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from app.core.config import settings
from app.core.constants import BookCategory, SortOrder
from app.core.dependencies import authenticate, get_book_service
from app.schemas.book import BookCreateRequest, BookFilters, BookUpdateRequest
from app.schemas.response import ApiResponse
from app.schemas.user import Principal
from app.services.book_service import BookService

router = APIRouter(dependencies=[Depends(authenticate)])


def get_book_filters(
    search: Optional[str] = Query(default=None, max_length=255),
    author: Optional[str] = Query(default=None, max_length=255),
    category: Optional[BookCategory] = None,
    sort_by: str = Query(default="published_date", alias="sortBy"),
    sort_order: str = Query(default=SortOrder.DESC.value, alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> BookFilters:
    try:
        return BookFilters(
            search=search,
            author=author,
            category=category,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        raise RequestValidationError(
            [{**error, "loc": ("query", *error["loc"])} for error in e.errors()]
        )


@router.get("", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def list_books(
    filters: BookFilters = Depends(get_book_filters),
    book_service: BookService = Depends(get_book_service)
):
    """List active books. Supports search, author and category filters, sorting and pagination."""
    result = await book_service.get_all_books(filters)
    return ApiResponse(
        success=True,
        message="Books fetched successfully",
        data=result.model_dump(mode="json")
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreateRequest,
    principal: Principal = Depends(authenticate),
    book_service: BookService = Depends(get_book_service)
):
    """Create a book and announce it to every verified user by email."""
    book = await book_service.create_book(payload, principal.uid)
    return ApiResponse(
        success=True,
        code=status.HTTP_201_CREATED,
        message="Book created successfully",
        data=book.model_dump(mode="json")
    )


@router.get("/{book_id}", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def get_book(
    book_id: int,
    book_service: BookService = Depends(get_book_service)
):
    book = await book_service.get_book_by_id(book_id)
    return ApiResponse(
        success=True,
        message="Book fetched successfully",
        data=book.model_dump(mode="json")
    )


@router.put("/{book_id}", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def update_book(
    book_id: int,
    payload: BookUpdateRequest,
    book_service: BookService = Depends(get_book_service)
):
    book = await book_service.update_book(book_id, payload)
    return ApiResponse(
        success=True,
        message="Book updated successfully",
        data=book.model_dump(mode="json")
    )


@router.delete("/{book_id}", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def delete_book(
    book_id: int,
    book_service: BookService = Depends(get_book_service)
):
    await book_service.delete_book(book_id)
    return ApiResponse(success=True, message="Book deleted successfully")

"""Groceries API router.

Catalogue listing and detail, multipart create with an optional image,
update/delete, and the caller's wallet (UserGroceryMap entries).
Static paths (`/user`, `/wallet`) are declared before `/{grocery_id}`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.security import get_current_user
from database.deps import get_db_read, get_db_write
from database.models import Grocery, User
from schemas.common_schema import DeletedResponse
from schemas.grocery_schema import (
    GroceryDetail, GroceryListResponse, GroceryResponse, GroceryUnit, GroceryUpdateRequest,
    GroceryWithRecipes, GroceryWithRecipesResponse, WalletAddRequest, WalletEntry, WalletLink,
    WalletLinkResponse, WalletResponse, WalletUpdateRequest,
)
from services.grocery_service import grocery_service
from services.queries import ListFilters, query_service, resolve_sort

logger = get_logger("api.groceries")
router = APIRouter(prefix="/api/groceries", tags=["groceries"])

SORT_FIELDS = {"by_name": "name", "by_kcal": "kcal_per_unit"}


def _list_response(page_result) -> GroceryListResponse:
    return GroceryListResponse(
        groceries=[GroceryDetail.model_validate(g) for g in page_result.items],
        total=page_result.total,
        nextPage=page_result.next_page,
        prevPage=page_result.prev_page,
    )


@router.get("", response_model=GroceryListResponse)
def list_groceries(
    page: int = 1,
    limit: Optional[int] = None,
    name: Optional[str] = None,
    min_kcal: Optional[float] = None,
    max_kcal: Optional[float] = None,
    linked_user: Optional[int] = None,
    by_name: Optional[str] = None,
    by_kcal: Optional[str] = None,
    db: Session = Depends(get_db_read),
):
    """List groceries, filtered, sorted and paginated.

    Args:
        page: 1-indexed page number.
        limit: Page size (default from configuration).
        name: Case-insensitive substring of the grocery name.
        min_kcal: Lower bound on kcal_per_unit.
        max_kcal: Upper bound on kcal_per_unit.
        linked_user: Only groceries in this user's wallet.
        by_name: Sort direction for the name (asc/desc, 1/-1, ...).
        by_kcal: Sort direction for kcal_per_unit.

    Raises:
        ValidationError: On a non-positive page/limit, an unknown sort
            direction or more than one sort key.
    """
    sort = resolve_sort(SORT_FIELDS, by_name=by_name, by_kcal=by_kcal)
    filters = ListFilters(name=name, ranges={"kcal_per_unit": (min_kcal, max_kcal)}, linked_user_id=linked_user)
    return _list_response(query_service.list_primary(db, Grocery, filters, page, limit, sort))


@router.get("/user", response_model=GroceryListResponse)
def list_my_groceries(
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db_read),
    current_user: User = Depends(get_current_user),
):
    """Groceries created by the caller."""
    filters = ListFilters(creator_id=current_user.id)
    return _list_response(query_service.list_primary(db, Grocery, filters, page, limit))


@router.get("/wallet", response_model=WalletResponse)
def my_wallet(
    buying_list: bool = False,
    db: Session = Depends(get_db_read),
    current_user: User = Depends(get_current_user),
):
    """The caller's wallet; `buying_list=true` returns only buying-list entries."""
    entries = query_service.get_user_wallet(db, current_user.id, buying_list_only=buying_list)
    return WalletResponse(groceries=[WalletEntry(**e) for e in entries])


@router.put("/wallet/{link_id}", response_model=WalletLinkResponse)
def update_wallet_entry(
    link_id: int,
    payload: WalletUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    link = grocery_service.update_wallet_entry(db, current_user, link_id, payload.model_dump(exclude_none=True))
    return WalletLinkResponse(user_grocery_map=WalletLink.model_validate(link))


@router.delete("/wallet/{link_id}", response_model=DeletedResponse)
def remove_wallet_entry(
    link_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    grocery_service.remove_from_wallet(db, current_user, link_id)
    return DeletedResponse(deleted_id=link_id)


@router.get("/{grocery_id}", response_model=GroceryWithRecipesResponse)
def get_grocery(grocery_id: int, db: Session = Depends(get_db_read)):
    """A grocery with every recipe that uses it."""
    view = query_service.get_grocery_with_recipes(db, grocery_id)
    return GroceryWithRecipesResponse(grocery=GroceryWithRecipes(**view))


@router.post("", response_model=GroceryResponse, status_code=201)
def create_grocery(
    name: str = Form(..., min_length=1, max_length=120),
    unit: GroceryUnit = Form("grams"),
    kcal_per_unit: float = Form(..., gt=0),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Create a grocery from a multipart form with an optional image.

    Raises:
        PermissionDeniedError: If the caller is a standard user.
        ValidationError: If the upload is not an image.
        ConflictError: If a grocery with this name exists.
    """
    image_filename, image_data = None, None
    if image is not None and image.filename:
        image_filename = image.filename
        image_data = image.file.read()
    grocery = grocery_service.create(
        db, current_user, name=name, unit=unit, kcal_per_unit=kcal_per_unit,
        image_filename=image_filename, image_data=image_data,
    )
    return GroceryResponse(grocery=GroceryDetail.model_validate(grocery))


@router.put("/{grocery_id}", response_model=GroceryResponse)
def update_grocery(
    grocery_id: int,
    payload: GroceryUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    grocery = grocery_service.update(db, grocery_id, current_user, payload.model_dump(exclude_none=True))
    return GroceryResponse(grocery=GroceryDetail.model_validate(grocery))


@router.delete("/{grocery_id}", response_model=DeletedResponse)
def delete_grocery(
    grocery_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Delete the grocery, every wallet and recipe link to it, and its image."""
    grocery_service.delete(db, grocery_id, current_user)
    return DeletedResponse(deleted_id=grocery_id)


@router.post("/{grocery_id}/wallet", response_model=WalletLinkResponse, status_code=201)
def add_to_wallet(
    grocery_id: int,
    payload: WalletAddRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Add the grocery to the caller's wallet, or to their buying list.

    Raises:
        NotFoundError: If the grocery does not exist.
        ConflictError: If it is already on the caller's buying list.
    """
    link = grocery_service.add_to_wallet(
        db, current_user, grocery_id,
        amount=payload.amount, expires_date=payload.expires_date, is_in_buying_list=payload.is_in_buying_list,
    )
    return WalletLinkResponse(user_grocery_map=WalletLink.model_validate(link))

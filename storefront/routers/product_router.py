from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import get_current_admin, require_roles
from ..database import get_db
from ..models import Product, Role, User
from ..schemas import CategoryCreate, CategoryOut, ProductCreate, ProductOut, ProductUpdate

router = APIRouter(prefix="/products", tags=["products"])
category_router = APIRouter(prefix="/categories", tags=["categories"])

get_current_merchant = require_roles("seller", "admin")


def _catalog_error(e: ValueError) -> HTTPException:
    if str(e) == "name_required":
        return HTTPException(status_code=400, detail="Name is required")
    if str(e) == "category_not_found":
        return HTTPException(status_code=404, detail="Category not found")
    if str(e) == "duplicate_category_name":
        return HTTPException(status_code=409, detail="Category name already exists")
    return HTTPException(status_code=400, detail=str(e))


def _get_owned_product(db: Session, product_id: int, current_user: User) -> Product:
    db_product = crud.get_product(db, product_id)
    if not db_product:
        raise HTTPException(status_code=404, detail=f"Product with id {product_id} not found")
    if current_user.role != Role.ADMIN.value and db_product.seller_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own products",
        )
    return db_product


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    body: ProductCreate,
    current_user: User = Depends(get_current_merchant),
    db: Session = Depends(get_db),
):
    product_data = body.model_dump(exclude={"seller_id"})

    seller_id = current_user.id
    if current_user.role == Role.ADMIN.value and body.seller_id is not None:
        seller = crud.get_user(db, body.seller_id)
        if seller is None or seller.role != Role.SELLER.value:
            raise HTTPException(status_code=404, detail=f"Seller with id {body.seller_id} not found")
        seller_id = seller.id

    try:
        return crud.create_product(db, product_data, seller_id=seller_id)
    except ValueError as e:
        raise _catalog_error(e)


@router.get("", response_model=List[ProductOut])
def list_products(
    skip: int = Query(0, ge=0, description="**Skip** number of products"),
    limit: int = Query(100, ge=1, le=1000, description="**Limit** number of products"),
    search: Optional[str] = Query(None, description="**Search** in name or description"),
    category_id: Optional[int] = Query(None),
    seller_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return crud.get_products(
        db, skip=skip, limit=limit, search=search, category_id=category_id, seller_id=seller_id
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    db_product = crud.get_product(db, product_id)
    if not db_product:
        raise HTTPException(status_code=404, detail=f"Product with id {product_id} not found")
    return db_product


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    body: ProductUpdate,
    current_user: User = Depends(get_current_merchant),
    db: Session = Depends(get_db),
):
    _get_owned_product(db, product_id, current_user)
    try:
        return crud.update_product(db, product_id, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise _catalog_error(e)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    current_user: User = Depends(get_current_merchant),
    db: Session = Depends(get_db),
):
    _get_owned_product(db, product_id, current_user)
    crud.delete_product(db, product_id)
    return None


@category_router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return crud.get_categories(db)


@category_router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    body: CategoryCreate,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        return crud.create_category(db, body.model_dump())
    except ValueError as e:
        raise _catalog_error(e)


@category_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    if not crud.delete_category(db, category_id):
        raise HTTPException(status_code=404, detail=f"Category with id {category_id} not found")
    return None

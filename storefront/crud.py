from typing import Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .models import AccountStatus, Category, Product, Role, User


# -----------------------------
# Users
# -----------------------------

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    normalized = (email or "").strip().lower()
    if not normalized:
        return None
    return db.query(User).filter(User.email == normalized).first()


def create_user(db: Session, user_data: dict, hashed_password: str) -> User:
    role = user_data.get("role") or Role.CUSTOMER.value
    # Sellers have to be approved by an admin before they can sign in
    account_status = AccountStatus.PENDING.value if role == Role.SELLER.value else AccountStatus.APPROVED.value

    db_user = User(
        name=user_data["name"].strip(),
        email=user_data["email"].strip().lower(),
        hashed_password=hashed_password,
        phone=user_data.get("phone"),
        address=user_data.get("address"),
        role=role,
        account_status=account_status,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def get_pending_sellers(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == Role.SELLER.value, User.account_status == AccountStatus.PENDING.value)
        .order_by(User.id)
        .all()
    )


def set_account_status(db: Session, user: User, account_status: AccountStatus) -> User:
    user.account_status = account_status.value
    db.commit()
    db.refresh(user)
    return user


# -----------------------------
# Categories
# -----------------------------

def get_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name).all()


def get_category(db: Session, category_id: int) -> Optional[Category]:
    return db.get(Category, category_id)


def create_category(db: Session, category_data: dict) -> Category:
    name = (category_data.get("name") or "").strip()
    if not name:
        raise ValueError("name_required")

    existing = db.query(Category).filter(func.lower(Category.name) == name.lower()).first()
    if existing:
        raise ValueError("duplicate_category_name")

    db_category = Category(name=name, description=category_data.get("description"))
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


def delete_category(db: Session, category_id: int) -> Optional[Category]:
    db_category = get_category(db, category_id)
    if db_category:
        db.query(Product).filter(Product.category_id == category_id).update(
            {"category_id": None}, synchronize_session=False
        )
        db.delete(db_category)
        db.commit()
    return db_category


# -----------------------------
# Products
# -----------------------------

def create_product(db: Session, product_data: dict, seller_id: int) -> Product:
    name = (product_data.get("name") or "").strip()
    if not name:
        raise ValueError("name_required")

    category_id = product_data.get("category_id")
    if category_id is not None and get_category(db, category_id) is None:
        raise ValueError("category_not_found")

    db_product = Product(**{**product_data, "name": name, "seller_id": seller_id})
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def get_products(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    search: str = None,
    category_id: int = None,
    seller_id: int = None,
) -> List[Product]:
    query = db.query(Product)
    if search:
        search_pattern = f"%{search}%"
        query = query.filter(
            or_(
                Product.name.ilike(search_pattern),
                Product.description.ilike(search_pattern),
            )
        )
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if seller_id is not None:
        query = query.filter(Product.seller_id == seller_id)
    return query.order_by(Product.id).offset(skip).limit(limit).all()


def update_product(db: Session, product_id: int, update_data: dict) -> Optional[Product]:
    db_product = get_product(db, product_id)
    if not db_product:
        return None

    if "name" in update_data and update_data.get("name") is not None:
        new_name = str(update_data["name"]).strip()
        if not new_name:
            raise ValueError("name_required")
        update_data["name"] = new_name

    category_id = update_data.get("category_id")
    if category_id is not None and get_category(db, category_id) is None:
        raise ValueError("category_not_found")

    for key, value in update_data.items():
        if value is not None:
            setattr(db_product, key, value)
    db.commit()
    db.refresh(db_product)
    return db_product


def delete_product(db: Session, product_id: int) -> Optional[Product]:
    db_product = get_product(db, product_id)
    if db_product:
        db.delete(db_product)
        db.commit()
    return db_product


# -----------------------------
# Stock (used by order placement; callers own the transaction)
# -----------------------------

def find_products_by_ids(db: Session, ids: Iterable[int]) -> List[Product]:
    unique_ids = set(ids)
    if not unique_ids:
        return []
    return db.query(Product).filter(Product.id.in_(unique_ids)).all()


def decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Take ``quantity`` from stock only if that much is available.

    Returns False when the row was not updated, i.e. the product is gone or
    another order claimed the stock first. Does not commit.
    """
    if quantity <= 0:
        raise ValueError("quantity must be > 0")

    updated = (
        db.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
    )
    return updated == 1


def restock(db: Session, product_id: int, quantity: int) -> None:
    if quantity <= 0:
        raise ValueError("quantity must be > 0")

    db.query(Product).filter(Product.id == product_id).update(
        {Product.stock: Product.stock + quantity}, synchronize_session=False
    )


def current_stock(db: Session, product_id: int) -> int:
    stock = db.query(Product.stock).filter(Product.id == product_id).scalar()
    return int(stock or 0)

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_principal, get_db
from app.core.errors import NotFound, ValidationError
from app.core.logging_config import get_logger
from app.models.cart import CartItem
from app.schemas.cart import CartAdd, CartItemOut, CartRemove, CartUpdate
from app.services.store import run_in_transaction
from app.utils.validators import parse_positive_amount

router = APIRouter(prefix="/api/auth/cart", tags=["Cart"])
logger = get_logger()


def _item(db: Session, user_id: int, kit_name: str) -> CartItem | None:
    return (
        db.query(CartItem)
        .filter(CartItem.user_id == user_id, CartItem.kit_name == kit_name)
        .first()
    )


def _kit_name(value: str | None, message: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(message)
    return name


# =====================================================================
#                           VIEW
# =====================================================================
@router.get("")
def get_cart(principal=Depends(get_current_principal), db: Session = Depends(get_db)):
    user, _ = principal
    items = db.query(CartItem).filter(CartItem.user_id == user.id).order_by(CartItem.id).all()
    return {"success": True, "cart": [CartItemOut.model_validate(i) for i in items]}


# =====================================================================
#                           ADD / UPDATE
# =====================================================================
@router.post("/add")
def add_to_cart(data: CartAdd, principal=Depends(get_current_principal), db: Session = Depends(get_db)):
    user, _ = principal
    if not (data.kit_name or "").strip() or data.price is None:
        raise ValidationError("Kit name and price are required")
    kit_name = data.kit_name.strip()
    price = parse_positive_amount(data.price)

    existing = _item(db, user.id, kit_name)

    def work():
        if existing is not None:
            existing.quantity += data.quantity
            return existing
        item = CartItem(user_id=user.id, kit_name=kit_name, price=price, quantity=data.quantity)
        db.add(item)
        db.flush()
        return item

    item = run_in_transaction(db, work)
    db.refresh(item)
    logger.info(f"Cart {user.email}: {kit_name} x{item.quantity}")
    return {
        "success": True,
        "message": "Cart item updated" if existing is not None else "Item added to cart",
        "item": CartItemOut.model_validate(item),
    }


@router.put("/update")
def update_cart_item(data: CartUpdate, principal=Depends(get_current_principal), db: Session = Depends(get_db)):
    user, _ = principal
    if not (data.kit_name or "").strip() or data.quantity is None:
        raise ValidationError("Kit name and quantity are required")
    kit_name = data.kit_name.strip()

    if data.quantity <= 0:
        run_in_transaction(db, lambda: _remove(db, user.id, kit_name))
        return {"success": True, "message": "Item removed from cart"}

    item = _item(db, user.id, kit_name)
    if item is None:
        raise NotFound("Cart item not found")

    def work():
        item.quantity = data.quantity
        return item

    run_in_transaction(db, work)
    db.refresh(item)
    return {"success": True, "message": "Cart item updated", "item": CartItemOut.model_validate(item)}


# =====================================================================
#                           REMOVE / CLEAR
# =====================================================================
def _remove(db: Session, user_id: int, kit_name: str):
    db.query(CartItem).filter(CartItem.user_id == user_id, CartItem.kit_name == kit_name).delete()


@router.delete("/remove")
def remove_from_cart(data: CartRemove, principal=Depends(get_current_principal), db: Session = Depends(get_db)):
    user, _ = principal
    kit_name = _kit_name(data.kit_name, "Kit name is required")
    run_in_transaction(db, lambda: _remove(db, user.id, kit_name))
    return {"success": True, "message": "Item removed from cart"}


@router.delete("/clear")
def clear_cart(principal=Depends(get_current_principal), db: Session = Depends(get_db)):
    user, _ = principal
    run_in_transaction(db, lambda: db.query(CartItem).filter(CartItem.user_id == user.id).delete())
    logger.info(f"Cart cleared for {user.email}")
    return {"success": True, "message": "Cart cleared"}

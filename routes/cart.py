from fastapi import APIRouter, Depends

from core.dependencies import get_cart_service
from schemas.cart import CartItemAdd, CartItemOut, CartItemUpdate, CartOut
from services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/{user_id}", response_model=CartOut)
def get_cart(user_id: int, service: CartService = Depends(get_cart_service)):
    return service.get_cart(user_id)


@router.post("/{user_id}/items", response_model=CartItemOut, status_code=201)
def add_to_cart(user_id: int, data: CartItemAdd, service: CartService = Depends(get_cart_service)):
    line = service.add_to_cart(user_id, data.product_id, data.quantity)
    return CartItemOut.from_line(line)


@router.patch("/{user_id}/items/{product_id}", response_model=CartItemOut)
def set_quantity(
    user_id: int,
    product_id: int,
    data: CartItemUpdate,
    service: CartService = Depends(get_cart_service),
):
    line = service.set_quantity(user_id, product_id, data.quantity)
    return CartItemOut.from_line(line)


@router.delete("/{user_id}/items/{product_id}", status_code=204)
def remove_item(user_id: int, product_id: int, service: CartService = Depends(get_cart_service)):
    service.remove_item(user_id, product_id)
    return None


@router.delete("/{user_id}", status_code=204)
def clear_cart(user_id: int, service: CartService = Depends(get_cart_service)):
    service.clear_cart(user_id)
    return None

from pydantic import BaseModel, Field
from typing import List, Optional


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1)


class CartItemOut(BaseModel):
    cart_id: int
    product_id: int
    product_name: str
    quantity: int
    price: float
    sale_price: Optional[float] = None
    image_url: Optional[str] = None

    @classmethod
    def from_line(cls, line) -> "CartItemOut":
        product = line.product
        return cls(
            cart_id=line.id,
            product_id=line.product_id,
            product_name=product.name,
            quantity=line.quantity,
            price=product.price,
            sale_price=product.sale_price,
            image_url=product.primary_image_url,
        )


class CartOut(BaseModel):
    user_id: int
    items: List[CartItemOut]
    total_quantity: int

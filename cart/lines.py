"""
Cart line records and their persisted JSON shape.
"""
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class CartItem:
    """
    What a product view hands to the cart: a line without a quantity.

    Price and stock are snapshots taken when the item is added.
    """
    product_id: str
    title: str
    unit_price: int
    stock_ceiling: int
    original_unit_price: Optional[int] = None
    image_url: str = ''

    @classmethod
    def from_product(cls, product) -> 'CartItem':
        """Snapshot a catalog Product (or anything with the same fields)."""
        images = product.images or []
        return cls(
            product_id=str(product.id),
            title=product.title,
            unit_price=product.effective_price,
            stock_ceiling=product.stock,
            original_unit_price=product.retail_price if product.has_discount else None,
            image_url=images[0] if images else '',
        )


@dataclass
class CartLine:
    product_id: str
    title: str
    unit_price: int
    quantity: int
    stock_ceiling: int
    original_unit_price: Optional[int] = None
    image_url: str = ''

    @classmethod
    def from_item(cls, item: CartItem, quantity: int = 1) -> 'CartLine':
        return cls(
            product_id=item.product_id,
            title=item.title,
            unit_price=item.unit_price,
            quantity=quantity,
            stock_ceiling=item.stock_ceiling,
            original_unit_price=item.original_unit_price,
            image_url=item.image_url,
        )

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'CartLine':
        """
        Rebuild a line from its persisted record.

        Raises:
            ValueError: If the record does not describe a valid line
        """
        if not isinstance(data, dict):
            raise ValueError(f"Cart line must be an object, got {type(data).__name__}")
        try:
            line = cls(
                product_id=str(data['product_id']),
                title=str(data['title']),
                unit_price=_as_int(data['unit_price'], 'unit_price'),
                quantity=_as_int(data['quantity'], 'quantity'),
                stock_ceiling=_as_int(data['stock_ceiling'], 'stock_ceiling'),
                original_unit_price=(
                    None if data.get('original_unit_price') is None
                    else _as_int(data['original_unit_price'], 'original_unit_price')
                ),
                image_url=str(data.get('image_url') or ''),
            )
        except KeyError as e:
            raise ValueError(f"Cart line missing field {e.args[0]!r}") from e
        if not 1 <= line.quantity <= line.stock_ceiling:
            raise ValueError(
                f"Cart line {line.product_id}: quantity {line.quantity} "
                f"outside 1..{line.stock_ceiling}"
            )
        return line


def _as_int(value, field: str) -> int:
    # bool is an int subclass; a stored true/false is never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Cart line field {field!r} must be an integer")
    return value

"""
Cart Service - Shopping cart state with a stock ceiling per line.

Rules:
1. A line's quantity stays within 1..stock_ceiling after every operation
2. A mutation that would break rule 1 is not applied; an error notice is
   emitted instead (nothing is raised)
3. Every applied mutation writes the whole cart to storage (write-through)
4. Unreadable stored data starts an empty cart; failed writes are logged
   and the in-memory cart stays authoritative
"""
import json
import logging
from typing import Callable, Dict, List, Optional

from .lines import CartItem, CartLine
from .signals import Notice, NoticeKind, send_cart_notification

logger = logging.getLogger(__name__)


class Cart:
    """
    Mapping of product id to CartLine, persisted through a storage slot.

    Args:
        slot: Object with load() -> bytes | None and save(bytes) -> bool
        notify: Receives every Notice; defaults to the cart_notification signal
    """

    def __init__(self, slot, notify: Optional[Callable[[Notice], None]] = None):
        self.slot = slot
        self._notify = notify or (lambda notice: send_cart_notification(notice, sender=type(self)))
        self._lines: Dict[str, CartLine] = self._hydrate()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _hydrate(self) -> Dict[str, CartLine]:
        try:
            raw = self.slot.load()
        except Exception as e:
            logger.warning(f"Could not read stored cart, starting empty: {e}")
            return {}
        if not raw:
            return {}
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError("stored cart is not a list")
            lines = [CartLine.from_dict(record) for record in records]
        except (ValueError, RecursionError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors;
            # deeply nested payloads exhaust the decoder stack
            logger.warning(f"Discarding malformed stored cart: {e}")
            return {}
        return {line.product_id: line for line in lines}

    def serialize(self) -> bytes:
        return json.dumps(
            [line.to_dict() for line in self._lines.values()],
            ensure_ascii=False,
        ).encode('utf-8')

    def _persist(self) -> None:
        try:
            saved = self.slot.save(self.serialize())
        except Exception as e:
            logger.error(f"Cart write failed: {e}")
            return
        if not saved:
            logger.warning("Cart write was not accepted by storage")

    def _emit(self, kind: str, message: str, product_id: Optional[str] = None) -> None:
        self._notify(Notice(kind=kind, message=message, product_id=product_id))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_to_cart(self, item: CartItem) -> Optional[CartLine]:
        """
        Add one unit of item.

        Returns:
            The updated line, or None if the stock ceiling rejected it
        """
        line = self._lines.get(item.product_id)
        if line is None:
            if item.stock_ceiling < 1:
                self._reject(item.title, item.product_id)
                return None
            line = CartLine.from_item(item)
            self._lines[item.product_id] = line
            self._persist()
            self._emit(NoticeKind.SUCCESS, f"{item.title} added to cart", item.product_id)
            logger.debug(f"Cart: added {item.product_id}")
            return line

        # The incoming item carries the current stock; the stored ceiling may be stale
        if line.quantity + 1 > item.stock_ceiling:
            self._reject(line.title, line.product_id)
            return None
        line.quantity += 1
        line.stock_ceiling = item.stock_ceiling
        self._persist()
        self._emit(NoticeKind.SUCCESS, f"{line.title} quantity increased", line.product_id)
        return line

    def remove_from_cart(self, product_id: str) -> None:
        line = self._lines.pop(str(product_id), None)
        if line is None:
            return
        self._persist()
        self._emit(NoticeKind.INFO, f"{line.title} removed from cart", line.product_id)

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        """
        Set the quantity of an existing line.

        Below 1 removes the line; above the stock ceiling is rejected.
        Unknown product ids are ignored.
        """
        product_id = str(product_id)
        if quantity < 1:
            self.remove_from_cart(product_id)
            return None
        line = self._lines.get(product_id)
        if line is None:
            return None
        if quantity > line.stock_ceiling:
            self._reject(line.title, product_id)
            return line
        if quantity != line.quantity:
            line.quantity = quantity
            self._persist()
        return line

    def clear_cart(self) -> None:
        self._lines.clear()
        self._persist()
        self._emit(NoticeKind.INFO, "Cart cleared")

    def _reject(self, title: str, product_id: str) -> None:
        logger.info(f"Cart: stock ceiling reached for {product_id}")
        self._emit(NoticeKind.ERROR, f"Insufficient stock for {title}", product_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def items(self) -> List[CartLine]:
        return list(self._lines.values())

    def get(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(str(product_id))

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def total_price(self) -> int:
        return sum(line.subtotal for line in self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self):
        return len(self._lines)

    def __contains__(self, product_id):
        return str(product_id) in self._lines

    def __iter__(self):
        return iter(self.items)

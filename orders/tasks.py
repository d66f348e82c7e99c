"""
Celery tasks for order processing.

Tasks:
    - send_order_notification: Staff notification for a new order
"""
import logging
from celery import shared_task

logger = logging.getLogger(__name__)


def format_order_message(order) -> str:
    """Render the staff notification text for an order."""
    items_list = "\n".join(
        f"{index}. {item.product_title} x{item.quantity} = {item.subtotal:,} so'm"
        for index, item in enumerate(order.items.all(), start=1)
    )
    lines = [
        "NEW ORDER",
        "",
        f"Order: #{order.id}",
        f"Date: {order.created_at.strftime('%Y-%m-%d %H:%M')}",
        "",
        f"Customer: {order.customer_name}",
        f"Phone: {order.phone}",
        "",
        "Address:",
        f"{order.region}, {order.city}",
        order.address,
    ]
    if order.comment:
        lines += ["", f"Comment: {order.comment}"]
    lines += [
        "",
        "Items:",
        items_list,
        "",
        f"Total: {order.total_price:,} so'm",
    ]
    return "\n".join(lines)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_notification(self, order_id: int):
    """
    Async task triggered after a successful checkout.

    Renders the staff notification and hands it to the log; delivery to a
    chat service is configured outside this project.

    Args:
        order_id: ID of the new order

    Returns:
        Dict with notification details
    """
    from orders.models import Order

    try:
        order = Order.objects.prefetch_related('items').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for notification")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    if order.status == Order.Status.CANCELLED:
        logger.warning(f"Order #{order_id} is cancelled, skipping notification")
        return {'status': 'skipped', 'message': f'Order {order_id} is cancelled'}

    message = format_order_message(order)
    logger.info(f"[CELERY] Order notification:\n{message}")

    return {
        'status': 'success',
        'order_id': order.id,
        'message': message,
    }

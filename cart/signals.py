"""
User-facing cart notifications.

Every cart transition produces a Notice; by default it is broadcast through
the ``cart_notification`` signal with ``kind``, ``message`` and
``product_id`` keyword arguments.
"""
from dataclasses import dataclass
from typing import Optional

from django.db import models
from django.dispatch import Signal

cart_notification = Signal()


class NoticeKind(models.TextChoices):
    INFO = 'info', 'Info'
    SUCCESS = 'success', 'Success'
    ERROR = 'error', 'Error'


@dataclass(frozen=True)
class Notice:
    kind: str
    message: str
    product_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {'kind': str(self.kind), 'message': self.message, 'product_id': self.product_id}


def send_cart_notification(notice: Notice, sender=None) -> None:
    cart_notification.send(
        sender=sender,
        kind=notice.kind,
        message=notice.message,
        product_id=notice.product_id,
    )

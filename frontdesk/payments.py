"""Payment recording. A completed payment confirms a reserved booking."""
import uuid

from django.db import transaction
from django.utils import timezone

from hotel_backoffice.logging import get_logger

from .exceptions import InvalidAmount, InvalidTransition
from .lifecycle import TERMINAL_STATUSES, lock_booking, transition
from .models import Booking, Payment, record_audit

logger = get_logger(__name__)


def new_receipt_number():
    return f"RCP-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def record_payment(booking_id, amount, payment_method, actor=None, status=Payment.Status.COMPLETED, notes=''):
    if amount is None or amount < 0:
        raise InvalidAmount()

    with transaction.atomic():
        booking = lock_booking(booking_id)
        if booking.status in TERMINAL_STATUSES and status == Payment.Status.COMPLETED:
            raise InvalidTransition(detail=f"Booking {booking.pk} is {booking.status}; it no longer accepts payments.")

        payment = Payment.objects.create(
            booking=booking,
            amount=amount,
            payment_method=payment_method,
            status=status,
            processed_by=actor if actor is not None and actor.is_authenticated else None,
            receipt_number=new_receipt_number(),
            notes=notes or '',
        )
        record_audit(actor, 'payment.recorded', payment, booking_id=booking.pk, amount=str(amount), status=status)

        if status == Payment.Status.COMPLETED and booking.status == Booking.Status.RESERVED:
            transition(booking, Booking.Status.CONFIRMED, actor, 'booking.confirmed', payment_id=payment.pk)

    logger.info('payment recorded', booking_id=booking.pk, payment_id=payment.pk, status=status)
    return payment

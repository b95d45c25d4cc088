from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class RoomType(models.Model):
    name = models.CharField(max_length=100, unique=True)
    base_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    max_occupancy = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    amenities = models.JSONField(default=list, blank=True)
    images = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Room(models.Model):
    class Status(models.TextChoices):
        AVAILABLE = "available"
        OCCUPIED = "occupied"
        CLEANING = "cleaning"
        MAINTENANCE = "maintenance"

    room_number = models.CharField(max_length=20, unique=True)
    room_type = models.ForeignKey(RoomType, on_delete=models.PROTECT, related_name="rooms")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)

    class Meta:
        ordering = ["room_number"]

    def __str__(self):
        return f"Room {self.room_number}"


class Guest(models.Model):
    full_name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    id_type = models.CharField(max_length=50, blank=True)
    id_number = models.CharField(max_length=100, blank=True, db_index=True)
    address = models.TextField(blank=True)

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name

    @property
    def has_identity(self):
        return bool(self.id_type) and bool(self.id_number)


class Booking(models.Model):
    class Status(models.TextChoices):
        RESERVED = "reserved"
        CONFIRMED = "confirmed"
        CHECKED_IN = "checked_in"
        CHECKED_OUT = "checked_out"
        CANCELLED = "cancelled"
        EXPIRED = "expired"

    guest = models.ForeignKey(Guest, on_delete=models.PROTECT, related_name="bookings")
    room_type = models.ForeignKey(RoomType, on_delete=models.PROTECT, related_name="bookings")
    # null while soft-allocated; bound at or before check-in
    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name="bookings", null=True, blank=True)
    check_in_date = models.DateField()
    check_out_date = models.DateField()  # exclusive
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RESERVED)
    notes = models.TextField(blank=True)
    key_card_id = models.CharField(max_length=100, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_in_date__lt=models.F("check_out_date")),
                name="booking_check_in_before_check_out",
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} ({self.status})"

    @property
    def nights(self):
        return (self.check_out_date - self.check_in_date).days

    @property
    def is_soft_allocated(self):
        return self.room_id is None


class Payment(models.Model):
    class Method(models.TextChoices):
        CASH = "cash"
        CARD = "card"
        TRANSFER = "transfer"
        MOBILE = "mobile"

    class Status(models.TextChoices):
        PENDING = "pending"
        COMPLETED = "completed"
        REFUNDED = "refunded"
        FAILED = "failed"

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    payment_method = models.CharField(max_length=20, choices=Method.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    # absent for automated payments
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="payments_processed"
    )
    processed_at = models.DateTimeField(auto_now_add=True)
    receipt_number = models.CharField(max_length=40, unique=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-processed_at", "-id"]


class AuditLog(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="audit_entries"
    )
    action = models.CharField(max_length=50)
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=50)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]


def record_audit(actor, action, instance, **details):
    """Append an audit entry for `instance`; call inside the caller's transaction."""
    return AuditLog.objects.create(
        user=actor if actor is not None and actor.is_authenticated else None,
        action=action,
        entity_type=instance._meta.model_name,
        entity_id=str(instance.pk),
        details=details,
    )

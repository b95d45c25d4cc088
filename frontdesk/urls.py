from rest_framework.routers import DefaultRouter
from frontdesk.views import (
    AuditLogViewSet,
    BookingViewSet,
    GuestViewSet,
    PaymentViewSet,
    RoomTypeViewSet,
    RoomViewSet,
)

router = DefaultRouter()
router.register(r'room-types', RoomTypeViewSet)
router.register(r'rooms', RoomViewSet)
router.register(r'guests', GuestViewSet)
router.register(r'bookings', BookingViewSet)
router.register(r'payments', PaymentViewSet)
router.register(r'audit-logs', AuditLogViewSet)

urlpatterns = router.urls

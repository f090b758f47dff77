from datetime import date

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import SlotUnavailable, ValidationError
from app.core.redis import delete_pattern, get_cache, set_cache
from app.models.booking import Booking
from app.models.enums import PaymentStatus, SLOT_HOLDING_STATUSES
from app.services.activities import activities_match, normalize_activity_name, slots_for_activity


def _cache_key(activity_name: str, booking_date: date) -> str:
    return f"slots:{booking_date.isoformat()}:{normalize_activity_name(activity_name)}"


def invalidate_slot_cache(*dates: date | None):
    for d in dates:
        if d is not None:
            delete_pattern(f"slots:{d.isoformat()}:*")


# ---------------------------------------------------------------------
# OCCUPANCY
# ---------------------------------------------------------------------
def occupied_slots(db: Session, activity_name: str, booking_date: date,
                   exclude_booking_id: int | None = None) -> list[str]:
    """Slot labels held on ``booking_date`` by an active booking of this activity.

    A booking is filed under its activity or its combo name, so both are checked.
    """
    query = db.query(Booking).filter(
        Booking.booking_date == booking_date,
        Booking.status.in_(SLOT_HOLDING_STATUSES),
        Booking.payment_status != PaymentStatus.REFUNDED.value,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)

    return [
        b.booking_time_slot
        for b in query.order_by(Booking.id).all()
        if activities_match(activity_name, b.activity_name)
        or activities_match(activity_name, b.combo_name)
    ]


def available_slots(db: Session, activity_name: str, booking_date: date,
                    use_cache: bool = True) -> dict:
    key = _cache_key(activity_name, booking_date)
    if use_cache:
        cached = get_cache(key)
        if cached is not None:
            return cached

    all_slots = slots_for_activity(activity_name)
    booked = occupied_slots(db, activity_name, booking_date)
    result = {
        "all_slots": all_slots,
        "available_slots": [s for s in all_slots if s not in booked],
        "booked_slots": booked,
    }

    if use_cache:
        set_cache(key, result, ttl=get_settings().SLOT_CACHE_TTL_SECONDS)
    return result


def ensure_slot_available(db: Session, activity_name: str, booking_date: date, slot: str,
                          exclude_booking_id: int | None = None):
    """Guard for writes; always reads the store, never the cache."""
    if slot not in slots_for_activity(activity_name):
        raise ValidationError(f"'{slot}' is not a valid time slot for {activity_name}")

    if slot in occupied_slots(db, activity_name, booking_date, exclude_booking_id):
        raise SlotUnavailable()

#!/usr/bin/env python3
"""
Tests for booking eligibility under the one-upcoming-appointment policy.

"now" is pinned to 2024-06-05 15:30 UTC, which is 09:30 in America/Edmonton.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import AppointmentNotFound, BookingLimitReached, CustomerNotFound, RetroStatusNotAllowed
from app.db.models.appointment import AppointmentStatus
from app.services.eligibility import (
    allowed_status_options,
    can_customer_book,
    create_appointment_guarded,
    is_appointment_past,
    reschedule_appointment,
    update_appointment_status,
)

NOW = datetime(2024, 6, 5, 15, 30, tzinfo=timezone.utc)


class TestCanCustomerBook:
    """Pre-flight eligibility check"""

    @pytest.mark.asyncio
    async def test_policy_off_skips_appointment_read(self, db, make_business, make_customer, make_appointment):
        business = await make_business(limit_one=False)
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        with patch('app.services.eligibility.count_upcoming_appointments', new_callable=AsyncMock) as mock_count:
            assert await can_customer_book(db, business.id, customer.id, NOW) is True
            mock_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_appointments(self, db, make_business, make_customer):
        business = await make_business()
        customer = await make_customer(business)
        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    async def test_future_appointment_blocks(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        assert await can_customer_book(db, business.id, customer.id, NOW) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["CANCELLED", "CANCELED", "NO_SHOW"])
    async def test_terminal_statuses_do_not_count(self, status, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-10", start_time="10:00", status=status)

        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["SCHEDULED", "CONFIRMED", "COMPLETED"])
    async def test_live_statuses_count(self, status, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-10", start_time="10:00", status=status)

        assert await can_customer_book(db, business.id, customer.id, NOW) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_time,expected", [
        ("09:00", True),   # earlier today
        ("09:30", True),   # exactly now is not upcoming
        ("10:00", False),  # later today
    ])
    async def test_same_day_compares_local_time(self, start_time, expected, db, make_business, make_customer, make_appointment):
        business = await make_business(timezone_name="America/Edmonton")
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-05", start_time=start_time)

        assert await can_customer_book(db, business.id, customer.id, NOW) is expected

    @pytest.mark.asyncio
    async def test_yesterday_is_past(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-04", start_time="23:59")

        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    async def test_business_timezone_decides_today(self, db, make_business, make_customer, make_appointment):
        # 15:30 UTC is already 00:30 on 2024-06-06 in Tokyo
        business = await make_business(timezone_name="Asia/Tokyo")
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-05", start_time="23:00")

        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_time,expected", [("16:00", False), ("15:00", True)])
    async def test_invalid_timezone_behaves_as_utc(self, start_time, expected, db, make_business, make_customer, make_appointment):
        business = await make_business(timezone_name="Not/AZone")
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-05", start_time=start_time)

        assert await can_customer_book(db, business.id, customer.id, NOW) is expected

    @pytest.mark.asyncio
    async def test_missing_timezone_behaves_as_utc(self, db, make_business, make_customer, make_appointment):
        business = await make_business(timezone_name=None)
        customer = await make_customer(business)
        await make_appointment(business, customer, date="2024-06-05", start_time="16:00")

        assert await can_customer_book(db, business.id, customer.id, NOW) is False

    @pytest.mark.asyncio
    async def test_excluded_appointment_is_ignored(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        appt = await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        assert await can_customer_book(db, business.id, customer.id, NOW, exclude_appointment_id=appt.id) is True

    @pytest.mark.asyncio
    async def test_other_customers_and_businesses_do_not_count(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        other_business = await make_business(name="Other Gym")
        customer = await make_customer(business)
        neighbour = await make_customer(business, full_name="Someone Else")
        await make_appointment(business, neighbour, date="2024-06-10", start_time="10:00")
        await make_appointment(other_business, customer, date="2024-06-10", start_time="10:00")

        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    async def test_unknown_business_means_no_limit(self, db):
        assert await can_customer_book(db, 9999, 1, NOW) is True

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self):
        mock_session = AsyncMock()
        mock_session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection refused")))

        with pytest.raises(OperationalError):
            await can_customer_book(mock_session, 1, 1, NOW)


class TestGuardedCreate:
    """Insert path re-checks the limit inside the transaction"""

    @pytest.mark.asyncio
    async def test_first_booking_succeeds(self, db, make_business, make_customer):
        business = await make_business()
        customer = await make_customer(business)

        appt = await create_appointment_guarded(
            db, business_id=business.id, customer_id=customer.id,
            date="2024-06-10", start_time="10:00", now=NOW,
        )

        assert appt.id is not None
        assert appt.status == AppointmentStatus.SCHEDULED.value
        assert appt.duration_min == 30

    @pytest.mark.asyncio
    async def test_second_booking_is_rejected(self, db, make_business, make_customer):
        business = await make_business()
        customer = await make_customer(business)
        await create_appointment_guarded(
            db, business_id=business.id, customer_id=customer.id,
            date="2024-06-10", start_time="10:00", now=NOW,
        )

        with pytest.raises(BookingLimitReached) as exc_info:
            await create_appointment_guarded(
                db, business_id=business.id, customer_id=customer.id,
                date="2024-06-12", start_time="11:00", now=NOW,
            )
        assert exc_info.value.code == "booking_limit_reached"
        assert exc_info.value.message == "You already have an upcoming appointment."

    @pytest.mark.asyncio
    async def test_policy_off_allows_many(self, db, make_business, make_customer):
        business = await make_business(limit_one=False)
        customer = await make_customer(business)
        for day in ("2024-06-10", "2024-06-11"):
            await create_appointment_guarded(
                db, business_id=business.id, customer_id=customer.id,
                date=day, start_time="10:00", now=NOW,
            )

    @pytest.mark.asyncio
    async def test_unknown_customer(self, db, make_business):
        business = await make_business()
        with pytest.raises(CustomerNotFound):
            await create_appointment_guarded(
                db, business_id=business.id, customer_id=424242,
                date="2024-06-10", start_time="10:00", now=NOW,
            )

    @pytest.mark.asyncio
    async def test_rejection_rolls_back(self):
        mock_session = AsyncMock()
        with patch('app.services.eligibility.lock_customer', new_callable=AsyncMock) as mock_lock, \
             patch('app.services.eligibility.can_customer_book', new_callable=AsyncMock) as mock_check:
            mock_lock.return_value = object()
            mock_check.return_value = False

            with pytest.raises(BookingLimitReached):
                await create_appointment_guarded(
                    mock_session, business_id=1, customer_id=1,
                    date="2024-06-10", start_time="10:00", now=NOW,
                )

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestReschedule:

    @pytest.mark.asyncio
    async def test_moving_the_only_appointment_is_allowed(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        appt = await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        moved = await reschedule_appointment(db, appt.id, date="2024-06-11", start_time="14:15", now=NOW)

        assert (moved.date, moved.start_time) == ("2024-06-11", "14:15")

    @pytest.mark.asyncio
    async def test_blocked_by_another_upcoming(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        # A stale pair created before the policy was switched on
        first = await make_appointment(business, customer, date="2024-06-10", start_time="10:00")
        await make_appointment(business, customer, date="2024-06-12", start_time="10:00")

        with pytest.raises(BookingLimitReached):
            await reschedule_appointment(db, first.id, date="2024-06-11", start_time="10:00", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, db):
        with pytest.raises(AppointmentNotFound):
            await reschedule_appointment(db, 31337, date="2024-06-11", start_time="10:00", now=NOW)


class TestRetroStatus:
    """NO_SHOW is only valid once the appointment has started"""

    @pytest.mark.asyncio
    async def test_no_show_rejected_for_upcoming(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        appt = await make_appointment(business, customer, date="2024-06-05", start_time="10:00")

        with pytest.raises(RetroStatusNotAllowed):
            await update_appointment_status(db, appt.id, AppointmentStatus.NO_SHOW, NOW)

    @pytest.mark.asyncio
    async def test_no_show_allowed_for_past(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        appt = await make_appointment(business, customer, date="2024-06-05", start_time="08:00")

        updated = await update_appointment_status(db, appt.id, AppointmentStatus.NO_SHOW, NOW)

        assert updated.status == "NO_SHOW"

    @pytest.mark.asyncio
    async def test_cancel_is_always_allowed(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        appt = await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        updated = await update_appointment_status(db, appt.id, AppointmentStatus.CANCELLED, NOW)

        assert updated.status == "CANCELLED"
        assert await can_customer_book(db, business.id, customer.id, NOW) is True

    @pytest.mark.asyncio
    async def test_options_hide_no_show_until_past(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        upcoming = await make_appointment(business, customer, date="2024-06-05", start_time="10:00")
        past = await make_appointment(business, customer, date="2024-06-05", start_time="09:00")

        assert not is_appointment_past(upcoming, NOW, business.timezone)
        assert "NO_SHOW" not in allowed_status_options(upcoming, NOW, business.timezone)
        assert "CANCELLED" in allowed_status_options(upcoming, NOW, business.timezone)

        assert is_appointment_past(past, NOW, business.timezone)
        assert "NO_SHOW" in allowed_status_options(past, NOW, business.timezone)

    @pytest.mark.asyncio
    async def test_reactivating_cancelled_respects_limit(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        cancelled = await make_appointment(business, customer, date="2024-06-08", start_time="10:00", status="CANCELLED")
        await make_appointment(business, customer, date="2024-06-10", start_time="10:00")

        with pytest.raises(BookingLimitReached):
            await update_appointment_status(db, cancelled.id, AppointmentStatus.SCHEDULED, NOW)

        await db.refresh(cancelled)
        assert cancelled.status == "CANCELLED"

    @pytest.mark.asyncio
    async def test_reactivating_only_appointment_is_allowed(self, db, make_business, make_customer, make_appointment):
        business = await make_business()
        customer = await make_customer(business)
        cancelled = await make_appointment(business, customer, date="2024-06-08", start_time="10:00", status="CANCELED")

        updated = await update_appointment_status(db, cancelled.id, AppointmentStatus.CONFIRMED, NOW)

        assert updated.status == "CONFIRMED"
        assert await can_customer_book(db, business.id, customer.id, NOW) is False

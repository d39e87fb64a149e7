import threading
import time
from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from rentals import services
from rentals.availability import has_overlap, recompute_availability
from rentals.exceptions import CarUnavailable, Forbidden, InvalidDateRange, InvalidTransition, NotFound
from rentals.models import Car, Reservation

from .utils import AvailabilityAssertions, FrozenTodayMixin, make_car, make_user


class BookingScenarioTests(FrozenTodayMixin, AvailabilityAssertions, TestCase):
    """Full lifecycle of one booking of a 100.00/day car."""

    def setUp(self):
        super().setUp()
        self.car = make_car(daily_rate=Decimal("100.00"))
        self.client_user = make_user("ana", "client")

    def book(self, start, end, user=None):
        return services.book(self.car.pk, user or self.client_user, start, end)

    def test_lifecycle(self):
        reservation = self.book(date(2025, 6, 1), date(2025, 6, 3))
        self.assertEqual(reservation.day_count, 3)
        self.assertEqual(reservation.total_amount, Decimal("300.00"))
        self.assertEqual(reservation.status, Reservation.PENDING)
        self.car.refresh_from_db()
        self.assertFalse(self.car.available)

        with self.assertRaises(CarUnavailable):
            self.book(date(2025, 6, 2), date(2025, 6, 4))
        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.PENDING)
        self.assertEqual(Reservation.objects.count(), 1)

        reservation = services.approve(reservation.pk)
        self.assertEqual(reservation.status, Reservation.ACTIVE)
        self.car.refresh_from_db()
        self.assertFalse(self.car.available)

        reservation = services.complete(reservation.pk)
        self.assertEqual(reservation.status, Reservation.COMPLETED)
        self.car.refresh_from_db()
        self.assertTrue(self.car.available)

    def test_same_day_booking_is_rejected(self):
        with self.assertRaises(InvalidDateRange):
            self.book(date(2025, 7, 1), date(2025, 7, 1))
        self.assertFalse(Reservation.objects.exists())
        self.car.refresh_from_db()
        self.assertTrue(self.car.available)


class BookTests(FrozenTodayMixin, AvailabilityAssertions, TestCase):
    def setUp(self):
        super().setUp()
        self.car = make_car(daily_rate=Decimal("49.99"))
        self.user = make_user("ana", "client")

    def test_start_in_the_past_is_rejected(self):
        with self.assertRaises(InvalidDateRange):
            services.book(self.car.pk, self.user, date(2025, 4, 30), date(2025, 5, 3))

    def test_start_today_is_accepted(self):
        reservation = services.book(self.car.pk, self.user, self.today, date(2025, 5, 2))
        self.assertEqual(reservation.day_count, 2)

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(InvalidDateRange):
            services.book(self.car.pk, self.user, date(2025, 6, 5), date(2025, 6, 1))

    def test_missing_dates_are_rejected(self):
        with self.assertRaises(InvalidDateRange):
            services.book(self.car.pk, self.user, None, date(2025, 6, 1))

    def test_unknown_car(self):
        with self.assertRaises(NotFound):
            services.book(999, self.user, date(2025, 6, 1), date(2025, 6, 2))

    def test_user_without_customer_profile(self):
        self.user.customer.delete()
        self.user.refresh_from_db()
        with self.assertRaises(NotFound):
            services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 2))

    def test_price_is_snapshotted_and_totalled(self):
        reservation = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 4))
        self.car.daily_rate = Decimal("80.00")
        self.car.save()
        reservation.refresh_from_db()
        self.assertEqual(reservation.price_per_day, Decimal("49.99"))
        self.assertEqual(reservation.day_count, 4)
        self.assertEqual(reservation.total_amount, Decimal("199.96"))

    def test_touching_ranges_overlap_because_dates_are_inclusive(self):
        services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        with self.assertRaises(CarUnavailable):
            services.book(self.car.pk, self.user, date(2025, 6, 3), date(2025, 6, 5))
        services.book(self.car.pk, self.user, date(2025, 6, 4), date(2025, 6, 6))
        self.assertEqual(Reservation.objects.filter(car=self.car).count(), 2)

    def test_enclosing_range_overlaps(self):
        services.book(self.car.pk, self.user, date(2025, 6, 10), date(2025, 6, 12))
        with self.assertRaises(CarUnavailable):
            services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 30))

    def test_cancelled_and_completed_reservations_release_their_dates(self):
        cancelled = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        services.cancel(cancelled.pk, self.user)
        completed = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        services.approve(completed.pk)
        services.complete(completed.pk)

        again = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        self.assertEqual(again.status, Reservation.PENDING)
        self.assertAvailabilityConsistent(self.car)

    def test_rejected_reservation_keeps_its_dates_blocked(self):
        rejected = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        services.reject(rejected.pk)

        self.assertAvailabilityConsistent(self.car)
        self.assertTrue(self.car.available)
        self.assertTrue(has_overlap(self.car.pk, date(2025, 6, 2), date(2025, 6, 2)))
        with self.assertRaises(CarUnavailable):
            services.book(self.car.pk, self.user, date(2025, 6, 2), date(2025, 6, 4))
        self.assertFalse(services.is_available_for_dates(self.car.pk, date(2025, 6, 3), date(2025, 6, 3)))
        services.book(self.car.pk, self.user, date(2025, 6, 4), date(2025, 6, 5))

    def test_other_cars_are_not_affected(self):
        other = make_car(make="Kia", model="Rio")
        services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        services.book(other.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        self.assertAvailabilityConsistent(self.car)
        self.assertAvailabilityConsistent(other)

    def test_car_is_locked_before_the_overlap_check(self):
        calls = []
        real_lock = services._lock_car
        real_overlap = services.has_overlap

        def lock(car_id):
            calls.append("lock")
            return real_lock(car_id)

        def overlap(*args):
            calls.append("overlap")
            return real_overlap(*args)

        with mock.patch.object(services, "_lock_car", side_effect=lock), mock.patch.object(
            services, "has_overlap", side_effect=overlap
        ):
            services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))

        self.assertEqual(calls, ["lock", "overlap"])


class TransitionServiceTests(FrozenTodayMixin, AvailabilityAssertions, TestCase):
    def setUp(self):
        super().setUp()
        self.car = make_car()
        self.owner = make_user("ana", "client")
        self.stranger = make_user("luis", "client")
        self.reservation = services.book(self.car.pk, self.owner, date(2025, 6, 1), date(2025, 6, 3))

    def assertStatus(self, status):
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, status)

    def test_cancel_pending_frees_the_car(self):
        services.cancel(self.reservation.pk, self.owner)
        self.assertStatus(Reservation.CANCELLED)
        self.assertAvailabilityConsistent(self.car)
        self.assertTrue(self.car.available)

    def test_cancel_active(self):
        services.approve(self.reservation.pk)
        services.cancel(self.reservation.pk, self.owner)
        self.assertStatus(Reservation.CANCELLED)
        self.assertAvailabilityConsistent(self.car)

    @override_settings(RENTALS_ALLOW_ACTIVE_CANCELLATION=False)
    def test_cancel_active_when_disabled(self):
        services.approve(self.reservation.pk)
        with self.assertRaises(InvalidTransition):
            services.cancel(self.reservation.pk, self.owner)
        self.assertStatus(Reservation.ACTIVE)
        self.assertAvailabilityConsistent(self.car)

    def test_cancel_by_someone_else_is_forbidden(self):
        with self.assertRaises(Forbidden):
            services.cancel(self.reservation.pk, self.stranger)
        self.assertStatus(Reservation.PENDING)
        self.assertAvailabilityConsistent(self.car)

    def test_cancel_unknown_reservation(self):
        with self.assertRaises(NotFound):
            services.cancel(999, self.owner)

    def test_cancel_is_a_no_op_on_terminal_reservations(self):
        services.cancel(self.reservation.pk, self.owner)
        again = services.cancel(self.reservation.pk, self.owner)
        self.assertEqual(again.status, Reservation.CANCELLED)

        other = services.book(self.car.pk, self.owner, date(2025, 7, 1), date(2025, 7, 2))
        services.approve(other.pk)
        services.complete(other.pk)
        result = services.cancel(other.pk, self.owner)
        self.assertEqual(result.status, Reservation.COMPLETED)
        self.assertAvailabilityConsistent(self.car)

    def test_reject_frees_the_car(self):
        services.reject(self.reservation.pk)
        self.assertStatus(Reservation.REJECTED)
        self.assertAvailabilityConsistent(self.car)
        self.assertTrue(self.car.available)

    def test_reject_twice_is_a_no_op(self):
        services.reject(self.reservation.pk)
        services.reject(self.reservation.pk)
        self.assertStatus(Reservation.REJECTED)

    def test_approve_requires_pending(self):
        services.approve(self.reservation.pk)
        with self.assertRaises(InvalidTransition):
            services.approve(self.reservation.pk)
        services.complete(self.reservation.pk)
        with self.assertRaises(InvalidTransition):
            services.reject(self.reservation.pk)
        self.assertStatus(Reservation.COMPLETED)

    def test_approve_rejected_is_invalid(self):
        services.reject(self.reservation.pk)
        with self.assertRaises(InvalidTransition):
            services.approve(self.reservation.pk)
        self.assertStatus(Reservation.REJECTED)
        self.assertAvailabilityConsistent(self.car)

    def test_approve_unknown_reservation(self):
        with self.assertRaises(NotFound):
            services.approve(999)

    def test_complete_requires_active(self):
        with self.assertRaises(InvalidTransition):
            services.complete(self.reservation.pk)
        self.assertStatus(Reservation.PENDING)
        self.assertAvailabilityConsistent(self.car)

    def test_complete_twice_is_a_no_op(self):
        services.approve(self.reservation.pk)
        services.complete(self.reservation.pk)
        services.complete(self.reservation.pk)
        self.assertStatus(Reservation.COMPLETED)

    def test_customer_completes_own_rental(self):
        services.approve(self.reservation.pk)
        with self.assertRaises(Forbidden):
            services.complete(self.reservation.pk, self.stranger)
        self.assertStatus(Reservation.ACTIVE)

        services.complete(self.reservation.pk, self.owner)
        self.assertStatus(Reservation.COMPLETED)
        self.assertTrue(Car.objects.get(pk=self.car.pk).available)

    def test_car_stays_held_while_another_reservation_holds_it(self):
        second = services.book(self.car.pk, self.owner, date(2025, 7, 1), date(2025, 7, 3))
        services.cancel(self.reservation.pk, self.owner)
        self.car.refresh_from_db()
        self.assertFalse(self.car.available)

        services.reject(second.pk)
        self.car.refresh_from_db()
        self.assertTrue(self.car.available)


class AvailabilityTests(FrozenTodayMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.car = make_car()
        self.user = make_user("ana", "client")

    def test_recompute_follows_holding_reservations(self):
        reservation = services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        self.assertFalse(recompute_availability(self.car.pk))
        Reservation.objects.filter(pk=reservation.pk).update(status=Reservation.REJECTED)
        self.assertTrue(recompute_availability(self.car.pk))

    def test_recompute_repairs_a_drifted_flag_and_is_idempotent(self):
        services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        Car.objects.filter(pk=self.car.pk).update(available=True)

        self.assertFalse(recompute_availability(self.car.pk))
        self.assertFalse(recompute_availability(self.car.pk))
        self.car.refresh_from_db()
        self.assertFalse(self.car.available)

    def test_recompute_unknown_car_does_not_fail(self):
        self.assertTrue(recompute_availability(999))

    def test_has_overlap_ignores_other_cars(self):
        other = make_car(make="Kia", model="Rio")
        services.book(other.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        self.assertFalse(has_overlap(self.car.pk, date(2025, 6, 1), date(2025, 6, 3)))
        self.assertTrue(has_overlap(other.pk, date(2025, 6, 3), date(2025, 6, 3)))

    def test_is_available_for_dates(self):
        services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        self.assertFalse(services.is_available_for_dates(self.car.pk, date(2025, 6, 2), date(2025, 6, 5)))
        self.assertTrue(services.is_available_for_dates(self.car.pk, date(2025, 6, 4), date(2025, 6, 5)))
        self.assertTrue(services.is_available_for_dates(self.car.pk, date(2025, 6, 4), date(2025, 6, 4)))
        self.assertFalse(services.is_available_for_dates(self.car.pk, None, date(2025, 6, 5)))
        self.assertFalse(services.is_available_for_dates(self.car.pk, date(2025, 6, 5), date(2025, 6, 4)))

    def test_available_cars(self):
        other = make_car(make="Kia", model="Rio")
        services.book(self.car.pk, self.user, date(2025, 6, 1), date(2025, 6, 3))
        free = services.available_cars(date(2025, 6, 2), date(2025, 6, 2))
        self.assertEqual(list(free), [other])
        self.assertEqual(services.available_cars(None, None).count(), 2)


class ReservationQueryTests(FrozenTodayMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.car = make_car()
        self.ana = make_user("ana", "client")
        self.luis = make_user("luis", "client")
        self.first = services.book(self.car.pk, self.ana, date(2025, 6, 1), date(2025, 6, 2))
        self.second = services.book(self.car.pk, self.luis, date(2025, 6, 5), date(2025, 6, 6))
        self.third = services.book(self.car.pk, self.ana, date(2025, 6, 9), date(2025, 6, 10))
        services.approve(self.third.pk)

    def test_list_all_newest_first(self):
        self.assertEqual(list(services.list_all()), [self.third, self.second, self.first])

    def test_list_by_customer(self):
        self.assertEqual(list(services.list_by_customer(self.ana.customer)), [self.third, self.first])
        self.assertEqual(list(services.list_by_customer(self.luis.customer.pk)), [self.second])

    def test_list_by_status(self):
        self.assertEqual(list(services.list_by_status(Reservation.PENDING)), [self.second, self.first])
        self.assertEqual(list(services.list_by_status(Reservation.ACTIVE)), [self.third])
        with self.assertRaises(ValueError):
            services.list_by_status("archived")

    def test_get_reservation(self):
        self.assertEqual(services.get_reservation(self.first.pk), self.first)
        with self.assertRaises(NotFound):
            services.get_reservation(999)


class ConcurrentBookingTests(TransactionTestCase):
    """Two customers race for the same car and dates on separate connections."""

    def setUp(self):
        self.car = make_car()
        self.users = [make_user("ana", "client"), make_user("luis", "client")]
        self.start = timezone.localdate() + timedelta(days=30)

    def test_only_one_of_two_overlapping_bookings_succeeds(self):
        barrier = threading.Barrier(len(self.users))
        outcomes = []
        real_overlap = services.has_overlap

        def slow_overlap(*args):
            # Widen the gap between the overlap check and the insert.
            result = real_overlap(*args)
            time.sleep(0.2)
            return result

        def attempt(user, offset):
            start = self.start + timedelta(days=offset)
            try:
                barrier.wait(timeout=5)
                services.book(self.car.pk, user, start, start + timedelta(days=2))
            except CarUnavailable:
                outcomes.append("unavailable")
            except Exception as exc:
                outcomes.append(f"{type(exc).__name__}: {exc}")
            else:
                outcomes.append("booked")
            finally:
                connection.close()

        with mock.patch.object(services, "has_overlap", side_effect=slow_overlap):
            threads = [
                threading.Thread(target=attempt, args=(user, offset))
                for offset, user in enumerate(self.users)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=30)

        self.assertEqual(sorted(outcomes), ["booked", "unavailable"])
        self.assertEqual(Reservation.objects.filter(car=self.car).count(), 1)
        self.car.refresh_from_db()
        self.assertFalse(self.car.available)

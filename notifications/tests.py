from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings
from kombu.exceptions import OperationalError as BrokerUnavailable

from booking.services.booking_manager import BookingManager, BookingRequest
from booking.services.intervals import parse_hhmm
from booking.tests.factories import MONDAY, make_service, make_stylist, next_weekday
from notifications.models import Notification
from notifications.tasks import send_booking_confirmation_task


class ConfirmationQueueTests(TestCase):
    def setUp(self):
        self.cut = make_service("Haircut", duration=30)
        make_stylist("Sam", skills=[self.cut], working_days=range(0, 5), hours=("09:00", "17:00"))
        self.request = BookingRequest(
            service_id=self.cut.pk,
            date=next_weekday(MONDAY),
            start=parse_hhmm("09:00"),
            customer={"name": "Jane Doe", "phone": "0712345678", "email": "jane@example.com"},
        )

    @override_settings(NOTIFICATIONS_ASYNC=True)
    def test_confirmation_queued_on_broker_after_commit(self):
        with mock.patch("notifications.signals.send_booking_confirmation_task") as task:
            with self.captureOnCommitCallbacks() as callbacks:
                appointment = BookingManager().create_booking(self.request)
            task.delay.assert_not_called()

            for callback in callbacks:
                callback()
        task.delay.assert_called_once_with(appointment.pk)
        task.apply.assert_not_called()

    @override_settings(NOTIFICATIONS_ASYNC=True)
    def test_broker_down_sends_in_process(self):
        with mock.patch("notifications.signals.send_booking_confirmation_task") as task:
            task.delay.side_effect = BrokerUnavailable("connection refused")
            with self.assertLogs("notifications.signals", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    appointment = BookingManager().create_booking(self.request)
        task.apply.assert_called_once_with(args=(appointment.pk,))

    @override_settings(NOTIFICATIONS_ASYNC=False)
    def test_sent_in_process_without_broker(self):
        with self.captureOnCommitCallbacks(execute=True):
            appointment = BookingManager().create_booking(self.request)
        self.assertEqual(len(mail.outbox), 1)
        self.assertTrue(Notification.objects.get(appointment=appointment).sent)


@override_settings(NOTIFICATIONS_ASYNC=False)
class ConfirmationTaskTests(TestCase):
    def setUp(self):
        self.cut = make_service("Haircut", duration=30)
        make_stylist("Sam", skills=[self.cut], working_days=range(0, 5), hours=("09:00", "17:00"))
        request = BookingRequest(
            service_id=self.cut.pk,
            date=next_weekday(MONDAY),
            start=parse_hhmm("09:00"),
            customer={"name": "Jane Doe", "phone": "0712345678", "email": "jane@example.com"},
        )
        # on_commit callbacks are not run here, so nothing is sent yet
        self.appointment = BookingManager().create_booking(request)

    def test_transient_failure_is_retried(self):
        with mock.patch(
            "booking.services.notification_service.send_mail",
            side_effect=[SMTPException("relay busy"), 1],
        ):
            result = send_booking_confirmation_task.apply(args=(self.appointment.pk,))

        self.assertEqual(result.get(), {"sent": True})
        attempts = Notification.objects.filter(appointment=self.appointment)
        self.assertEqual(attempts.filter(sent=False).count(), 1)
        self.assertEqual(attempts.filter(sent=True).count(), 1)

    def test_gives_up_after_max_retries(self):
        with mock.patch(
            "booking.services.notification_service.send_mail", side_effect=SMTPException("relay down")
        ) as send:
            with self.assertLogs("notifications.tasks", level="ERROR") as logs:
                result = send_booking_confirmation_task.apply(args=(self.appointment.pk,))

        self.assertEqual(result.get(), {"sent": False, "error": "relay down"})
        self.assertEqual(send.call_count, send_booking_confirmation_task.max_retries + 1)
        self.assertIn("failed after", logs.output[-1])
        self.assertFalse(Notification.objects.filter(appointment=self.appointment, sent=True).exists())

    def test_missing_appointment(self):
        with self.assertLogs("notifications.tasks", level="ERROR"):
            result = send_booking_confirmation_task.apply(args=(987654,))
        self.assertEqual(result.get(), {"error": "Appointment not found"})
        self.assertEqual(len(mail.outbox), 0)

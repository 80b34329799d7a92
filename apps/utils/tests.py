import json
import logging
from unittest import mock

from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework import exceptions as drf_exceptions
from rest_framework.exceptions import ValidationError

from apps.warehouse.models import Warehouse
from apps.utils.exceptions import (
    Conflict,
    InternalError,
    InvalidInput,
    NotFound,
    Unavailable,
    custom_exception_handler,
)
from apps.utils.logging import JSONFormatter
from apps.utils.resilience import RetryPolicy
from apps.utils.unit_of_work import UnitOfWork


class UnitOfWorkTests(TestCase):
    def test_commit_persists(self):
        with UnitOfWork() as uow:
            Warehouse.objects.create(name="Main", code="WH-1")
            uow.commit()
        self.assertTrue(uow.committed)
        self.assertTrue(Warehouse.objects.filter(code="WH-1").exists())

    def test_leaving_without_commit_rolls_back(self):
        with UnitOfWork() as uow:
            Warehouse.objects.create(name="Main", code="WH-1")
        self.assertFalse(uow.committed)
        self.assertFalse(Warehouse.objects.exists())

    def test_exception_rolls_back_and_propagates(self):
        with self.assertRaises(NotFound):
            with UnitOfWork():
                Warehouse.objects.create(name="Main", code="WH-1")
                raise NotFound("gone")
        self.assertFalse(Warehouse.objects.exists())

    def test_operational_error_becomes_unavailable(self):
        with self.assertRaises(Unavailable):
            with UnitOfWork():
                raise OperationalError("server closed the connection")

    def test_commit_after_budget_rolls_back(self):
        with mock.patch.object(UnitOfWork, "clock", side_effect=[0.0, 10.0]):
            with self.assertRaises(Unavailable) as ctx:
                with UnitOfWork(timeout_ms=5000) as uow:
                    Warehouse.objects.create(name="Main", code="WH-1")
                    uow.commit()
        self.assertEqual(ctx.exception.code, "timeout")
        self.assertFalse(uow.committed)
        self.assertFalse(Warehouse.objects.exists())

    def test_begin_twice(self):
        uow = UnitOfWork().begin()
        try:
            with self.assertRaises(RuntimeError):
                uow.begin()
        finally:
            uow.rollback()
        with self.assertRaises(RuntimeError):
            uow.commit()


class RetryPolicyTests(SimpleTestCase):
    def test_retries_retryable_errors_with_backoff(self):
        sleeps = []
        calls = mock.Mock(side_effect=[Conflict("busy"), Unavailable("down"), "ok"])

        @RetryPolicy(attempts=3, backoff_ms=10, sleep=sleeps.append)
        def operation():
            return calls()

        self.assertEqual(operation(), "ok")
        self.assertEqual(calls.call_count, 3)
        self.assertEqual(sleeps, [0.01, 0.02])

    def test_gives_up_after_attempts(self):
        calls = mock.Mock(side_effect=Conflict("busy"))

        @RetryPolicy(attempts=2, backoff_ms=0, sleep=lambda s: None)
        def operation():
            return calls()

        with self.assertRaises(Conflict):
            operation()
        self.assertEqual(calls.call_count, 2)

    def test_non_retryable_raises_immediately(self):
        calls = mock.Mock(side_effect=InvalidInput("bad"))

        @RetryPolicy(attempts=5, backoff_ms=0, sleep=lambda s: None)
        def operation():
            return calls()

        with self.assertRaises(InvalidInput):
            operation()
        self.assertEqual(calls.call_count, 1)

    def test_stops_when_backoff_would_overrun_budget(self):
        sleeps = []
        calls = mock.Mock(side_effect=Conflict("busy"))
        clock = mock.Mock(side_effect=[0.0, 0.0, 0.1])

        @RetryPolicy(attempts=5, backoff_ms=100, budget_ms=250, sleep=sleeps.append, clock=clock)
        def operation():
            return calls()

        with self.assertLogs("apps.utils.resilience", level="WARNING"):
            with self.assertRaises(Conflict):
                operation()
        self.assertEqual(calls.call_count, 2)
        self.assertEqual(sleeps, [0.1])

    def test_budget_is_shared_across_attempts(self):
        calls = mock.Mock(side_effect=Unavailable("down"))
        clock = mock.Mock(side_effect=[0.0, 6.0])

        @RetryPolicy(attempts=5, backoff_ms=0, budget_ms=5000, sleep=lambda s: None, clock=clock)
        def operation():
            return calls()

        with self.assertLogs("apps.utils.resilience", level="WARNING"):
            with self.assertRaises(Unavailable):
                operation()
        self.assertEqual(calls.call_count, 1)


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_errors(self):
        cases = [
            (InvalidInput("bad"), status.HTTP_400_BAD_REQUEST, "invalid_input"),
            (NotFound("gone"), status.HTTP_404_NOT_FOUND, "not_found"),
            (Conflict("busy"), status.HTTP_409_CONFLICT, "conflict"),
            (Unavailable("down"), status.HTTP_503_SERVICE_UNAVAILABLE, "unavailable"),
        ]
        for exc, code, error_code in cases:
            with self.subTest(exc=exc):
                res = custom_exception_handler(exc, {})
                self.assertEqual(res.status_code, code)
                self.assertEqual(res.data["code"], error_code)
                self.assertEqual(res.data["error"], exc.message)
                self.assertEqual(res.data.get("retryable", False), exc.retryable)

    def test_internal_error_hides_message(self):
        with self.assertLogs("apps.utils.exceptions", level="ERROR"):
            res = custom_exception_handler(InternalError("db exploded at row 7"), {})
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertNotIn("row 7", res.data["error"])

    def test_validation_error(self):
        res = custom_exception_handler(ValidationError({"newQuantity": ["required"]}), {})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_input")
        self.assertIn("newQuantity", res.data["details"])

    def test_unhandled(self):
        with self.assertLogs("apps.utils.exceptions", level="ERROR"):
            res = custom_exception_handler(KeyError("boom"), {})
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data["code"], "server_error")

    def test_framework_errors_use_the_same_envelope(self):
        cases = [
            (drf_exceptions.NotAuthenticated(), status.HTTP_401_UNAUTHORIZED, "not_authenticated"),
            (drf_exceptions.PermissionDenied(), status.HTTP_403_FORBIDDEN, "permission_denied"),
            (drf_exceptions.NotFound("Invalid page."), status.HTTP_404_NOT_FOUND, "not_found"),
            (drf_exceptions.MethodNotAllowed("PUT"), status.HTTP_405_METHOD_NOT_ALLOWED, "method_not_allowed"),
        ]
        for exc, code, error_code in cases:
            with self.subTest(exc=exc):
                res = custom_exception_handler(exc, {})
                self.assertEqual(res.status_code, code)
                self.assertEqual(res.data["code"], error_code)
                self.assertEqual(res.data["error"], str(exc.detail))
                self.assertNotIn("detail", res.data)

    def test_throttled_keeps_retry_after(self):
        res = custom_exception_handler(drf_exceptions.Throttled(wait=30), {})
        self.assertEqual(res.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(res.data["code"], "throttled")
        self.assertEqual(res["Retry-After"], "30")


class JSONFormatterTests(SimpleTestCase):
    def make_record(self, msg, args=None, **extra):
        record = logging.LogRecord("apps.inventory", logging.INFO, __file__, 1, msg, args, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_scrubs_sensitive_keys(self):
        record = self.make_record({"user": "ops", "password": "hunter2", "nested": {"token": "abc"}})
        payload = json.loads(JSONFormatter().format(record))
        self.assertNotIn("hunter2", payload["msg"])
        self.assertNotIn("abc", payload["msg"])
        self.assertIn("ops", payload["msg"])

    def test_context_fields(self):
        record = self.make_record("Adjusted", inventory_item_id="item-1", actor_id="u-1")
        payload = json.loads(JSONFormatter().format(record))
        self.assertEqual(payload["inventory_item_id"], "item-1")
        self.assertEqual(payload["actor_id"], "u-1")
        self.assertEqual(payload["lvl"], "INFO")


class EndpointTests(TestCase):
    def test_health(self):
        res = self.client.get("/api/v1/utils/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["components"]["db"], "ok")

    def test_info_and_request_id(self):
        res = self.client.get("/api/v1/utils/info/", HTTP_X_REQUEST_ID="req-42")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["app_name"], "Invista")
        self.assertEqual(res["X-Request-ID"], "req-42")

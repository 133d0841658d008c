#!/usr/bin/env python3
"""
Integration Tests for the FastPay HTTP API
Drives the full signup -> login -> transfer -> history flow through FastAPI.
"""

import os
import sqlite3
import tempfile
import time
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from ledger_service.main import create_app
from tests.support import make_settings


class ApiTestCase(unittest.TestCase):

    def settings(self):
        return make_settings()

    def setUp(self):
        self.app = create_app(self.settings())
        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()
        self.app.state.context.dispose()

    def signup(self, name: str, email: str, password: str = "pw"):
        return self.client.post("/api/signup", json={"name": name, "email": email, "password": password})

    def login(self, email: str, password: str = "pw"):
        return self.client.post("/api/login", json={"email": email, "password": password})

    def register_and_login(self, name: str, email: str):
        upi_id = self.signup(name, email).json()["upi_id"]
        token = self.login(email).json()["token"]
        return upi_id, {"Authorization": f"Bearer {token}"}


class TestSignupAndLogin(ApiTestCase):

    def test_signup(self):
        response = self.signup("Alice", "alice@example.com")

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["message"], "User registered successfully!")
        self.assertRegex(data["upi_id"], r"^[0-9a-f]{8}@fastpay$")

    def test_duplicate_signup(self):
        self.signup("Alice", "alice@example.com")
        response = self.signup("Alice", "alice@example.com")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User already exists")
        self.assertEqual(response.json()["error"]["code"], "ACCOUNT_EXISTS")

    def test_signup_validation(self):
        response = self.client.post("/api/signup", json={"name": "Alice", "email": "not-an-email", "password": "pw"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

        response = self.client.post("/api/signup", json={"email": "alice@example.com", "password": "pw"})
        self.assertEqual(response.status_code, 400)

    def test_signup_password_too_long_for_bcrypt(self):
        response = self.signup("Alice", "alice@example.com", password="x" * 100)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(response.json()["error"]["field"], "password")
        self.assertEqual(self.login("alice@example.com", "x" * 100).status_code, 400)

        response = self.signup("Alice", "alice@example.com", password="x" * 72)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.login("alice@example.com", "x" * 72).status_code, 200)

    def test_login(self):
        upi_id = self.signup("Alice", "alice@example.com").json()["upi_id"]

        response = self.login("alice@example.com")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["message"], "Login successful!")
        self.assertEqual(data["upi_id"], upi_id)
        self.assertEqual(data["balance"], 1000)
        self.assertTrue(data["token"])

    def test_login_invalid(self):
        self.signup("Alice", "alice@example.com")

        for email, password in (("alice@example.com", "nope"), ("bob@example.com", "pw")):
            response = self.login(email, password)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["message"], "Invalid credentials")


class TestAuthenticatedRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.alice, self.alice_auth = self.register_and_login("Alice", "alice@example.com")
        self.bob, self.bob_auth = self.register_and_login("Bob", "bob@example.com")

    def test_profile_hides_password(self):
        response = self.client.get(f"/api/user/{self.bob}", headers=self.alice_auth)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["upi_id"], self.bob)
        self.assertEqual(data["name"], "Bob")
        self.assertEqual(data["balance"], 1000)
        self.assertNotIn("password", data)
        self.assertNotIn("password_hash", data)

    def test_profile_not_found(self):
        response = self.client.get("/api/user/00000000@fastpay", headers=self.alice_auth)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "User not found")

    def test_missing_token(self):
        response = self.client.get(f"/api/user/{self.bob}")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Access denied")

    def test_bad_token(self):
        for header in ("Bearer garbage", "Token abc", "Bearer"):
            response = self.client.get(f"/api/user/{self.bob}", headers={"Authorization": header})
            self.assertEqual(response.status_code, 400, header)
            self.assertEqual(response.json()["message"], "Invalid token")

    def test_expired_token(self):
        credentials = self.app.state.context.credentials
        stale = credentials.issue_token(1, self.alice, now=int(time.time()) - 7200)

        response = self.client.get(f"/api/user/{self.bob}", headers={"Authorization": f"Bearer {stale}"})
        self.assertEqual(response.status_code, 400)

    def test_alice_pays_bob(self):
        response = self.client.post("/api/transaction", headers=self.alice_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": self.bob, "amount": 300,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Transaction successful!")

        alice = self.client.get(f"/api/user/{self.alice}", headers=self.alice_auth).json()
        bob = self.client.get(f"/api/user/{self.bob}", headers=self.alice_auth).json()
        self.assertEqual(alice["balance"], 700)
        self.assertEqual(bob["balance"], 1300)

        history = self.client.get(f"/api/transactions/{self.alice}", headers=self.alice_auth).json()
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["amount"], 300)
        self.assertEqual(history[0]["sender_upi_id"], self.alice)
        self.assertEqual(history[0]["receiver_upi_id"], self.bob)

        # then an overdraft attempt leaves everything as it was
        response = self.client.post("/api/transaction", headers=self.alice_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": self.bob, "amount": 5000,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Insufficient balance")
        alice = self.client.get(f"/api/user/{self.alice}", headers=self.alice_auth).json()
        self.assertEqual(alice["balance"], 700)
        history = self.client.get(f"/api/transactions/{self.bob}", headers=self.bob_auth).json()
        self.assertEqual(len(history), 1)

    def test_invalid_amount(self):
        for amount in (0, -5):
            response = self.client.post("/api/transaction", headers=self.alice_auth, json={
                "sender_upi_id": self.alice, "receiver_upi_id": self.bob, "amount": amount,
            })
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["message"], "Invalid amount")

        history = self.client.get(f"/api/transactions/{self.alice}", headers=self.alice_auth).json()
        self.assertEqual(history, [])

    def test_unknown_receiver(self):
        response = self.client.post("/api/transaction", headers=self.alice_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": "ffffffff@fastpay", "amount": 10,
        })
        self.assertEqual(response.status_code, 404)

    def test_cannot_spend_someone_elses_balance(self):
        response = self.client.post("/api/transaction", headers=self.bob_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": self.bob, "amount": 10,
        })
        self.assertEqual(response.status_code, 403)

        alice = self.client.get(f"/api/user/{self.alice}", headers=self.alice_auth).json()
        self.assertEqual(alice["balance"], 1000)

    def test_self_transfer(self):
        response = self.client.post("/api/transaction", headers=self.alice_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": self.alice, "amount": 10,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_RECIPIENT")

    def test_history_requires_token(self):
        response = self.client.get(f"/api/transactions/{self.alice}")
        self.assertEqual(response.status_code, 401)


class TestSlowAndLockedStore(ApiTestCase):
    """Store stalls surface as errors only when nothing was committed"""

    def settings(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "ledger.db")
        return make_settings(database_url=f"sqlite:///{self.path}", store_timeout_seconds=0.2)

    def setUp(self):
        super().setUp()
        self.alice, self.alice_auth = self.register_and_login("Alice", "alice@example.com")
        self.bob, _ = self.register_and_login("Bob", "bob@example.com")

    def tearDown(self):
        super().tearDown()
        self.tmp.cleanup()

    def pay_bob(self, amount: int):
        return self.client.post("/api/transaction", headers=self.alice_auth, json={
            "sender_upi_id": self.alice, "receiver_upi_id": self.bob, "amount": amount,
        })

    def balance(self, upi_id: str) -> int:
        return self.client.get(f"/api/user/{upi_id}", headers=self.alice_auth).json()["balance"]

    def test_store_error_means_no_money_moved(self):
        blocker = sqlite3.connect(self.path, isolation_level=None)
        blocker.execute("BEGIN EXCLUSIVE")
        try:
            response = self.pay_bob(300)
        finally:
            blocker.execute("ROLLBACK")
            blocker.close()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"]["code"], "DATABASE_ERROR")
        self.assertEqual(self.balance(self.alice), 1000)
        self.assertEqual(self.balance(self.bob), 1000)
        history = self.client.get(f"/api/transactions/{self.alice}", headers=self.alice_auth).json()
        self.assertEqual(history, [])

    def test_slow_transfer_reports_its_real_outcome(self):
        transfers = self.app.state.context.transfers
        transfer = transfers.transfer

        def slow_transfer(*args):
            time.sleep(0.5)
            return transfer(*args)

        with patch.object(transfers, "transfer", new=slow_transfer):
            response = self.pay_bob(300)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.balance(self.alice), 700)
        self.assertEqual(self.balance(self.bob), 1300)


class TestOperationalEndpoints(ApiTestCase):

    def test_health(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["store"]["state"], "CLOSED")

    def test_trace_id_echoed(self):
        response = self.client.get("/health", headers={"X-Trace-ID": "abc123"})
        self.assertEqual(response.headers["X-Trace-ID"], "abc123")

        response = self.client.get("/api/user/x")
        self.assertEqual(response.json()["trace_id"], response.headers["X-Trace-ID"])

    def test_openapi_declares_bearer_auth(self):
        schema = self.client.get("/openapi.json").json()

        self.assertIn("bearerAuth", schema["components"]["securitySchemes"])
        self.assertIn("security", schema["paths"]["/api/transaction"]["post"])
        self.assertNotIn("security", schema["paths"]["/api/login"]["post"])

    def test_cors(self):
        response = self.client.options("/api/login", headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")


if __name__ == "__main__":
    unittest.main()

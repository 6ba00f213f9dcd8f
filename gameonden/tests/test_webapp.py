import os
import tempfile
import unittest

from gameonden.webapp import create_app


class WebAppTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.app = create_app(
            os.path.join(self.tmpdir.name, "web.db"),
            config={"TESTING": True, "SECRET_KEY": "test"},
        )
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        self.app.extensions["lounge_system"].close()
        self.tmpdir.cleanup()

    def _login(self, username: str, password: str):
        return self.client.post("/login", data={"username": username, "password": password})

    def _create_bill(self, **overrides):
        form = {
            "customer_name": "John Doe",
            "age": "25",
            "zone_id": "ps5",
            "tier_id": "dual",
            "duration_hours": "2",
            "additional_player_names": ["Ravi", "ignored", "ignored"],
            "contact_number": "9876543210",
            "address": "12, Main Road",
            "discount": "50",
            "payment_method": "UPI",
        }
        form.update(overrides)
        return self.client.post("/billing", data=form)

    def test_anonymous_users_are_sent_to_login(self) -> None:
        response = self.client.get("/")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers["Location"].endswith("/login"))
        response = self.client.get("/records")
        self.assertTrue(response.headers["Location"].endswith("/login"))

    def test_invalid_login(self) -> None:
        response = self._login("staff", "nope")
        self.assertEqual(response.status_code, 401)
        self.assertIn(b"Invalid credentials", response.data)

    def test_staff_billing_flow(self) -> None:
        self._login("staff", "password")
        response = self._create_bill()
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers["Location"].endswith("/bills/1/receipt"))

        receipt = self.client.get("/bills/1/receipt")
        self.assertEqual(receipt.status_code, 200)
        self.assertIn("₹270.00".encode(), receipt.data)
        self.assertIn(b"John Doe, Ravi", receipt.data)

        text = self.client.get("/bills/1/receipt.txt")
        self.assertEqual(text.mimetype, "text/plain")
        self.assertIn(b"Grand Total", text.data)

        records = self.client.get("/records?q=john")
        self.assertIn(b"Billing Records", records.data)
        self.assertNotIn(b"Most Popular Zone", records.data)

        export = self.client.get("/records/export.csv")
        self.assertEqual(export.mimetype, "text/csv")
        self.assertIn("billing_records_", export.headers["Content-Disposition"])
        self.assertIn(b'"320.00","50.00","270.00","UPI"', export.data)

        # Staff cannot delete bills or manage users.
        self.client.post("/bills/1/delete")
        self.assertEqual(self.client.get("/bills/1/receipt").status_code, 200)
        response = self.client.get("/users")
        self.assertEqual(response.status_code, 302)

    def test_missing_bill_returns_404(self) -> None:
        self._login("staff", "password")
        self.assertEqual(self.client.get("/bills/42/receipt").status_code, 404)

    def test_validation_errors_are_flashed(self) -> None:
        self._login("staff", "password")
        response = self._create_bill(customer_name="")
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"Payer name is required", response.data)

    def test_admin_dashboard_and_user_management(self) -> None:
        self._login("1111", "1111")
        self._create_bill()
        dashboard = self.client.get("/records")
        self.assertIn(b"Admin Dashboard", dashboard.data)
        self.assertIn(b"Most Popular Zone", dashboard.data)

        self.client.post("/bills/1/delete")
        self.assertEqual(self.client.get("/bills/1/receipt").status_code, 404)

        self.client.post("/users", data={"username": "priya", "password": "pw", "role": "staff"})
        users = self.client.get("/users")
        self.assertIn(b"priya", users.data)

        response = self.client.post(
            "/users/user-1",
            data={"username": "1111", "password": "1111", "role": "staff"},
            follow_redirects=True,
        )
        self.assertIn(b"only administrator", response.data)

        response = self.client.post("/users/user-1/delete", follow_redirects=True)
        self.assertIn(b"cannot delete their own account", response.data)

        self.client.post("/users/user-2/delete")
        self.client.post("/logout")
        self.assertEqual(self._login("staff", "password").status_code, 401)


if __name__ == "__main__":
    unittest.main()

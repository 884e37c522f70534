from unittest.mock import MagicMock

import requests
from django.test import SimpleTestCase
from rest_framework.test import APITestCase, RequestsClient

from contact.client import (
    INVALID_MESSAGE,
    SAVED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    ApiDataCentre,
    SaveStatus,
    StoreDataCentre,
    platform_for_width,
    submit_contact_form,
)
from contact.csv_codec import decode_records
from contact.exceptions import StoreError
from contact.filters import SubmissionFilter
from contact.models import ContactSubmission
from contact.stores import LocalSubmissionStore

API_URL = "http://testserver/api"


def mock_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "Error"
    response.json.return_value = body if body is not None else {}
    response.text = text
    return response


class PlatformTests(SimpleTestCase):
    def test_platform_for_width(self):
        self.assertEqual(platform_for_width(375), "Mobile")
        self.assertEqual(platform_for_width(767), "Mobile")
        self.assertEqual(platform_for_width(768), "Tablet")
        self.assertEqual(platform_for_width(1023), "Tablet")
        self.assertEqual(platform_for_width(1024), "Desktop")
        self.assertEqual(platform_for_width(None), "Unknown")


class StoreDataCentreTests(SimpleTestCase):
    def setUp(self):
        self.datacentre = StoreDataCentre(LocalSubmissionStore({}))

    def test_save_and_read_back(self):
        result = self.datacentre.save(
            {"name": "Ann", "email": "a@x.com", "message": "hi", "platform": "Mobile"}
        )
        self.assertIs(result.status, SaveStatus.SAVED)
        self.assertTrue(result.ok)
        self.assertEqual(self.datacentre.get(result.data["id"])["name"], "Ann")
        self.assertEqual(len(self.datacentre.get_all()), 1)

    def test_invalid_save(self):
        result = self.datacentre.save({"name": "Ann", "email": "", "message": "hi"})
        self.assertIs(result.status, SaveStatus.INVALID)
        self.assertIn("email", result.fields)

    def test_query_accepts_payload_or_filter(self):
        self.datacentre.save({"name": "Anna", "email": "a@x.com", "message": "hi", "platform": "Desktop"})
        self.datacentre.save({"name": "Bob", "email": "b@x.com", "message": "hi", "platform": "Mobile"})
        self.assertEqual(len(self.datacentre.query({"platform": "Desktop"})), 1)
        self.assertEqual(len(self.datacentre.query(SubmissionFilter(name="o"))), 1)
        self.assertEqual(len(self.datacentre.query()), 2)

    def test_invalid_filter_degrades_to_empty(self):
        self.datacentre.save({"name": "Anna", "email": "a@x.com", "message": "hi"})
        with self.assertLogs("contact.client", level="ERROR"):
            self.assertEqual(self.datacentre.query({"startDate": "soon"}), [])

    def test_export_and_import_csv(self):
        self.datacentre.save({"name": "Doe, John", "email": "j@x.com", "message": 'say "hi"', "platform": "Tablet"})
        self.datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"})

        csv_text = self.datacentre.export_csv()
        self.assertEqual(len(decode_records(csv_text)), 2)

        mirror = StoreDataCentre(LocalSubmissionStore({}))
        self.assertEqual(mirror.import_csv(csv_text), 2)
        self.assertEqual(
            sorted((r["name"], r["message"], r["platform"]) for r in mirror.get_all()),
            [("Ann", "hi", "Unknown"), ("Doe, John", 'say "hi"', "Tablet")],
        )

    def test_export_empty(self):
        self.assertIsNone(self.datacentre.export_csv())

    def test_stats_delete_and_clear(self):
        first = self.datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"}).data
        self.datacentre.save({"name": "Bob", "email": "b@x.com", "message": "hi"})
        self.assertEqual(self.datacentre.get_stats()["totalRecords"], 2)
        self.assertTrue(self.datacentre.delete(first["id"]))
        self.assertTrue(self.datacentre.delete(first["id"]))
        self.assertEqual(self.datacentre.get_stats()["totalRecords"], 1)
        self.assertTrue(self.datacentre.clear())
        self.assertEqual(self.datacentre.get_all(), [])

    def test_store_errors_degrade(self):
        store = MagicMock()
        store.list.side_effect = StoreError("down")
        store.stats.side_effect = StoreError("down")
        store.create.side_effect = StoreError("down")
        datacentre = StoreDataCentre(store)
        with self.assertLogs("contact.client", level="ERROR"):
            self.assertEqual(datacentre.get_all(), [])
            self.assertIsNone(datacentre.get_stats())
            self.assertIsNone(datacentre.export_csv())
            result = datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"})
        self.assertIs(result.status, SaveStatus.UNAVAILABLE)


class ApiDataCentreMockTests(SimpleTestCase):
    def setUp(self):
        self.session = MagicMock()
        self.datacentre = ApiDataCentre(API_URL + "/", session=self.session, timeout=3)

    def test_save_posts_json(self):
        self.session.request.return_value = mock_response(
            201, {"success": True, "data": {"id": 1, "name": "Ann"}}
        )
        result = self.datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"})
        self.assertIs(result.status, SaveStatus.SAVED)
        self.session.request.assert_called_once_with(
            "POST",
            f"{API_URL}/contacts",
            timeout=3,
            json={"name": "Ann", "email": "a@x.com", "message": "hi"},
        )

    def test_save_validation_failure(self):
        self.session.request.return_value = mock_response(
            400,
            {"success": False, "error": "Name, email, and message are required", "fields": {"email": ["x"]}},
        )
        result = self.datacentre.save({"name": "Ann"})
        self.assertIs(result.status, SaveStatus.INVALID)
        self.assertEqual(result.fields, {"email": ["x"]})

    def test_save_server_unreachable(self):
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertLogs("contact.client", level="ERROR"):
            result = self.datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"})
        self.assertIs(result.status, SaveStatus.UNAVAILABLE)

    def test_save_server_error(self):
        self.session.request.return_value = mock_response(500, {"success": False, "error": "db down"})
        with self.assertLogs("contact.client", level="ERROR"):
            result = self.datacentre.save({"name": "Ann", "email": "a@x.com", "message": "hi"})
        self.assertIs(result.status, SaveStatus.UNAVAILABLE)
        self.assertEqual(result.error, "db down")

    def test_reads_degrade_when_unreachable(self):
        self.session.request.side_effect = requests.Timeout("slow")
        with self.assertLogs("contact.client", level="ERROR"):
            self.assertEqual(self.datacentre.get_all(), [])
            self.assertEqual(self.datacentre.query({"name": "an"}), [])
            self.assertIsNone(self.datacentre.get_stats())
            self.assertIsNone(self.datacentre.export_csv())
            self.assertFalse(self.datacentre.clear())
            self.assertFalse(self.datacentre.delete(3))

    def test_query_sends_filter_payload(self):
        self.session.request.return_value = mock_response(200, {"success": True, "data": []})
        self.datacentre.query(SubmissionFilter(platform="Desktop"))
        self.session.request.assert_called_once_with(
            "POST", f"{API_URL}/contacts/query", timeout=3, json={"platform": "Desktop"}
        )


class SubmitContactFormTests(SimpleTestCase):
    def test_messages(self):
        datacentre = StoreDataCentre(LocalSubmissionStore({}))
        self.assertEqual(
            submit_contact_form(datacentre, "Ann", "a@x.com", "hi", viewport_width=500),
            SAVED_MESSAGE,
        )
        self.assertEqual(datacentre.get_all()[0]["platform"], "Mobile")
        self.assertEqual(
            submit_contact_form(datacentre, "Ann", "", "hi"),
            INVALID_MESSAGE.format(error="Name, email, and message are required"),
        )

        unreachable = ApiDataCentre(API_URL, session=MagicMock())
        unreachable.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertLogs("contact.client", level="ERROR"):
            self.assertEqual(
                submit_contact_form(unreachable, "Ann", "a@x.com", "hi"), UNAVAILABLE_MESSAGE
            )


class ApiDataCentreIntegrationTests(APITestCase):
    def setUp(self):
        self.datacentre = ApiDataCentre(API_URL, session=RequestsClient())

    def test_hosted_round_trip(self):
        result = self.datacentre.save(
            {"name": "Ann", "email": "a@x.com", "message": "hi", "platform": "Mobile"}
        )
        self.assertIs(result.status, SaveStatus.SAVED)
        self.assertEqual(ContactSubmission.objects.count(), 1)

        self.assertEqual(self.datacentre.get(result.data["id"])["name"], "Ann")
        self.assertEqual(len(self.datacentre.get_all()), 1)
        self.assertEqual(len(self.datacentre.query({"platform": "Mobile"})), 1)
        self.assertEqual(self.datacentre.query({"platform": "Desktop"}), [])
        self.assertEqual(self.datacentre.get_stats()["totalRecords"], 1)
        self.assertEqual(len(self.datacentre.export_csv().splitlines()), 2)

        self.assertTrue(self.datacentre.delete(result.data["id"]))
        self.assertEqual(self.datacentre.get_all(), [])
        with self.assertLogs("contact.client", level="INFO"):
            self.assertIsNone(self.datacentre.export_csv())

    def test_hosted_validation(self):
        result = self.datacentre.save({"name": "Ann", "email": "", "message": "hi"})
        self.assertIs(result.status, SaveStatus.INVALID)
        self.assertEqual(result.error, "Name, email, and message are required")

import logging
import os

from django.conf import settings
from django.db import OperationalError
from django.test import TestCase

from contact.exceptions import StoreError
from contact.stores import DatabaseSubmissionStore


class LoggingTest(TestCase):
    def read_log(self):
        log_file_path = os.path.join(settings.LOGS_DIR, "django_errors.log")
        self.assertTrue(os.path.exists(log_file_path), "Log file does not exist.")
        with open(log_file_path, "r") as log_file:
            return log_file_path, log_file.read()

    def clean_log(self, log_file_path, message):
        # Remove the test message from the log file
        with open(log_file_path, "r") as log_file:
            log_contents = log_file.read()
        with open(log_file_path, "w") as log_file:
            log_file.write(log_contents.replace(message, ""))

    def test_error_logging_to_file(self):
        # The log message to test
        test_message = "This is a test error message for logging."

        # Log an error using Django's logging system
        logger = logging.getLogger("django")
        logger.error(test_message)

        log_file_path, log_contents = self.read_log()
        self.assertIn(test_message, log_contents, "Log message not found in log file.")
        self.clean_log(log_file_path, test_message)

    def test_store_errors_reach_the_log_file(self):
        test_message = "contact store test failure 7f3a"

        def fail(*args, **kwargs):
            raise OperationalError(test_message)

        store = DatabaseSubmissionStore()
        store._records = fail
        with self.assertRaises(StoreError):
            store.list()

        log_file_path, log_contents = self.read_log()
        self.assertIn(test_message, log_contents)
        self.clean_log(log_file_path, test_message)

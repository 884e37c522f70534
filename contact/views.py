import logging

from django.apps import apps
from django.conf import settings
from django.http import HttpResponse
from django_ratelimit.decorators import ratelimit
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .csv_codec import NoData, encode_records
from .exceptions import MISSING_FIELDS_MESSAGE, StoreError, SubmissionNotFound
from .filters import InvalidFilter, SubmissionFilter
from .serializers import ContactSubmissionSerializer, SubmissionSerializer
from .stores import REQUIRED_FIELDS

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "contacts_export.csv"


def conditional_ratelimit(*args, **kwargs):
    def decorator(func):
        if settings.TESTING:
            return func
        return ratelimit(*args, **kwargs)(func)

    return decorator


@conditional_ratelimit(key="ip", rate=settings.CONTACT_RATE_LIMIT, method="POST", block=True)
def rate_limit_check(request):
    pass


def error_response(message, status_code, **extra):
    return Response({"success": False, "error": message, **extra}, status=status_code)


def store_error_response(error):
    response = error_response(str(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if error.retryable:
        response["Retry-After"] = "1"
    return response


def parse_submission_id(pk):
    try:
        return int(pk)
    except (TypeError, ValueError):
        return None


def validation_message(errors):
    for field in REQUIRED_FIELDS:
        if any(getattr(detail, "code", None) in ("required", "blank", "null") for detail in errors.get(field, [])):
            return MISSING_FIELDS_MESSAGE
    for messages in errors.values():
        if messages:
            return str(messages[0])
    return "Invalid contact submission"


class StoreAPIView(APIView):
    # Views normally use the store built by the contact app; tests and other
    # deployments can pass one through as_view(store=...).
    store = None

    def get_store(self):
        if self.store is not None:
            return self.store
        return apps.get_app_config("contact").store


class HealthView(StoreAPIView):
    def get(self, request):
        connected, error = self.get_store().check_connection()
        body = {
            "status": "OK",
            "message": "Server is running",
            "database": "Connected" if connected else "Disconnected",
        }
        if not connected:
            logger.warning(f"Health check could not reach the database: {error}")
            body["error"] = error
        return Response(body)


class ContactListView(StoreAPIView):
    def get(self, request):
        try:
            records = self.get_store().list()
        except StoreError as e:
            logger.error(f"Error fetching contacts: {e}")
            return store_error_response(e)
        return Response(
            {
                "success": True,
                "count": len(records),
                "data": SubmissionSerializer(records, many=True).data,
            }
        )

    def post(self, request):

        # Perform rate limit check
        rate_limit_check(request)

        serializer = ContactSubmissionSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(
                "Contact submission rejected.",
                extra={"errors": serializer.errors},
            )
            return error_response(
                validation_message(serializer.errors),
                status.HTTP_400_BAD_REQUEST,
                fields=serializer.errors,
            )

        try:
            record = self.get_store().create(**serializer.validated_data)
        except StoreError as e:
            logger.error(f"Error creating contact: {e}")
            return store_error_response(e)
        return Response(
            {
                "success": True,
                "message": "Contact submission saved",
                "data": SubmissionSerializer(record).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        try:
            deleted = self.get_store().delete_all()
        except StoreError as e:
            logger.error(f"Error clearing contacts: {e}")
            return store_error_response(e)
        logger.info(f"All contacts cleared ({deleted} removed)")
        return Response({"success": True, "message": "All contacts cleared"})


class ContactDetailView(StoreAPIView):
    def get(self, request, pk):
        submission_id = parse_submission_id(pk)
        if submission_id is None:
            return error_response("Invalid contact id", status.HTTP_400_BAD_REQUEST)
        try:
            record = self.get_store().get_by_id(submission_id)
        except SubmissionNotFound as e:
            return error_response(str(e), status.HTTP_404_NOT_FOUND)
        except StoreError as e:
            logger.error(f"Error fetching contact {submission_id}: {e}")
            return store_error_response(e)
        return Response({"success": True, "data": SubmissionSerializer(record).data})

    def delete(self, request, pk):
        submission_id = parse_submission_id(pk)
        if submission_id is None:
            return error_response("Invalid contact id", status.HTTP_400_BAD_REQUEST)
        try:
            self.get_store().delete_by_id(submission_id)
        except StoreError as e:
            logger.error(f"Error deleting contact {submission_id}: {e}")
            return store_error_response(e)
        return Response({"success": True, "message": "Contact deleted successfully"})


class ContactQueryView(StoreAPIView):
    def post(self, request):
        try:
            submission_filter = SubmissionFilter.from_payload(request.data)
        except InvalidFilter as e:
            return error_response(
                str(e), status.HTTP_400_BAD_REQUEST, fields={e.field: [e.message]}
            )

        try:
            records = self.get_store().query(submission_filter)
        except StoreError as e:
            logger.error(f"Error querying contacts: {e}")
            return store_error_response(e)
        return Response(
            {
                "success": True,
                "count": len(records),
                "filters": submission_filter.to_payload(),
                "data": SubmissionSerializer(records, many=True).data,
            }
        )


class StatsView(StoreAPIView):
    def get(self, request):
        try:
            stats = self.get_store().stats()
        except StoreError as e:
            logger.error(f"Error fetching stats: {e}")
            return store_error_response(e)
        return Response({"success": True, "stats": stats})


class ExportCsvView(StoreAPIView):
    def get(self, request):
        try:
            csv_text = encode_records(self.get_store().list())
        except NoData as e:
            return error_response(str(e), status.HTTP_404_NOT_FOUND)
        except StoreError as e:
            logger.error(f"Error exporting CSV: {e}")
            return store_error_response(e)

        response = HttpResponse(csv_text, content_type="text/csv")
        response["Content-Disposition"] = f"attachment; filename={EXPORT_FILENAME}"
        return response

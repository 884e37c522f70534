from rest_framework import serializers

from .exceptions import SubmissionInvalid
from .models import ContactSubmission
from .stores import clean_submission


class ContactSubmissionSerializer(serializers.ModelSerializer):
    """Validates the body of a new submission; saving is left to the store."""

    name = serializers.CharField(max_length=255)
    email = serializers.CharField(max_length=254)
    message = serializers.CharField()
    platform = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True
    )

    def validate(self, data):
        try:
            return clean_submission(
                data.get("name"), data.get("email"), data.get("message"), data.get("platform")
            )
        except SubmissionInvalid as e:
            raise serializers.ValidationError(
                e.errors, code="required" if e.missing else "invalid"
            )

    class Meta:
        model = ContactSubmission
        fields = ["name", "email", "message", "platform"]


class SubmissionSerializer(serializers.Serializer):
    """Read-only representation of a stored submission record."""

    id = serializers.IntegerField()
    name = serializers.CharField()
    email = serializers.CharField()
    message = serializers.CharField()
    platform = serializers.CharField()
    timestamp = serializers.DateTimeField()
    created_at = serializers.DateTimeField()

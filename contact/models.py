from django.db import models
from django.db.models import Q
from django.utils import timezone


class Platform(models.TextChoices):
    DESKTOP = "Desktop"
    TABLET = "Tablet"
    MOBILE = "Mobile"
    UNKNOWN = "Unknown"


class ContactSubmission(models.Model):
    name = models.CharField(max_length=255)
    email = models.EmailField()
    message = models.TextField()
    platform = models.CharField(max_length=50, default=Platform.UNKNOWN)
    timestamp = models.DateTimeField(default=timezone.now, editable=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "contact_submissions"
        ordering = ["-timestamp", "-id"]
        constraints = [
            models.CheckConstraint(condition=~Q(name=""), name="contact_name_not_empty"),
            models.CheckConstraint(condition=~Q(email=""), name="contact_email_not_empty"),
            models.CheckConstraint(condition=~Q(message=""), name="contact_message_not_empty"),
        ]

    def __str__(self):
        return f"ContactSubmission from {self.name}"

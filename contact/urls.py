from django.urls import path

from .views import (
    ContactDetailView,
    ContactListView,
    ContactQueryView,
    ExportCsvView,
    HealthView,
    StatsView,
)

urlpatterns = [
    path("api/health", HealthView.as_view(), name="health"),
    path("api/contacts", ContactListView.as_view(), name="contacts"),
    path("api/contacts/query", ContactQueryView.as_view(), name="contacts_query"),
    path("api/contacts/<str:pk>", ContactDetailView.as_view(), name="contact"),
    path("api/stats", StatsView.as_view(), name="stats"),
    path("api/export/csv", ExportCsvView.as_view(), name="export_csv"),
]

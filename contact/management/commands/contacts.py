import json
import shelve

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from contact.client import ApiDataCentre, StoreDataCentre
from contact.stores import LocalSubmissionStore


def dump(value):
    return json.dumps(value, indent=2, default=str)


class Command(BaseCommand):
    help = "Inspect, export and clear contact submissions"

    def add_arguments(self, parser):
        source = parser.add_mutually_exclusive_group()
        source.add_argument(
            "--api-url",
            help="Use the hosted API at this base URL, e.g. http://localhost:8000/api",
        )
        source.add_argument(
            "--local",
            metavar="PATH",
            help="Use an offline store kept in this shelve file",
        )

        actions = parser.add_subparsers(dest="action", required=True)
        actions.add_parser("list", help="Show every submission")

        query = actions.add_parser("query", help="Show submissions matching filters")
        query.add_argument("--name")
        query.add_argument("--email")
        query.add_argument("--platform")
        query.add_argument("--start-date")
        query.add_argument("--end-date")

        actions.add_parser("stats", help="Show submission statistics")

        export = actions.add_parser("export", help="Write submissions as CSV")
        export.add_argument("--output", help="File to write, stdout by default")

        import_ = actions.add_parser("import", help="Load a CSV export into the offline store")
        import_.add_argument("path")

        delete = actions.add_parser("delete", help="Delete one submission")
        delete.add_argument("id", type=int)

        clear = actions.add_parser("clear", help="Delete every submission")
        clear.add_argument(
            "--yes", action="store_true", help="Confirm clearing all submissions"
        )

    def get_datacentre(self, options):
        if options["api_url"]:
            return ApiDataCentre(options["api_url"])
        if options["local"]:
            return StoreDataCentre(LocalSubmissionStore(shelve.open(options["local"])))
        return StoreDataCentre(apps.get_app_config("contact").store)

    def handle(self, *args, **options):
        datacentre = self.get_datacentre(options)
        try:
            getattr(self, f"handle_{options['action']}")(datacentre, options)
        finally:
            if isinstance(datacentre, StoreDataCentre) and options["local"]:
                datacentre.store.close()

    def handle_list(self, datacentre, options):
        records = datacentre.get_all()
        self.stdout.write(dump(records))
        self.stdout.write(self.style.SUCCESS(f"{len(records)} submissions"))

    def handle_query(self, datacentre, options):
        filters = {
            "name": options["name"],
            "email": options["email"],
            "platform": options["platform"],
            "startDate": options["start_date"],
            "endDate": options["end_date"],
        }
        records = datacentre.query(filters)
        self.stdout.write(dump(records))
        self.stdout.write(self.style.SUCCESS(f"{len(records)} matching submissions"))

    def handle_stats(self, datacentre, options):
        stats = datacentre.get_stats()
        if stats is None:
            raise CommandError("Could not fetch statistics")
        self.stdout.write(dump(stats))

    def handle_export(self, datacentre, options):
        csv_text = datacentre.export_csv()
        if csv_text is None:
            raise CommandError("No data to export")
        if options["output"]:
            with open(options["output"], "w", newline="", encoding="utf-8") as output:
                output.write(csv_text)
            self.stdout.write(self.style.SUCCESS(f"Exported to {options['output']}"))
        else:
            self.stdout.write(csv_text, ending="")

    def handle_import(self, datacentre, options):
        if not options["local"]:
            raise CommandError("Import is only available for the offline store (--local)")
        with open(options["path"], newline="", encoding="utf-8") as source:
            imported = datacentre.import_csv(source.read())
        self.stdout.write(self.style.SUCCESS(f"Imported {imported} submissions"))

    def handle_delete(self, datacentre, options):
        if not datacentre.delete(options["id"]):
            raise CommandError(f"Could not delete submission {options['id']}")
        self.stdout.write(self.style.SUCCESS(f"Submission {options['id']} deleted"))

    def handle_clear(self, datacentre, options):
        if not options["yes"]:
            raise CommandError("Refusing to clear all submissions without --yes")
        if not datacentre.clear():
            raise CommandError("Error clearing data")
        self.stdout.write(self.style.SUCCESS("Data centre cleared"))

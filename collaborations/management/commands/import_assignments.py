from pathlib import Path
from django.core.management.base import BaseCommand, CommandError

from collaborations.errors import StreamReadFailed
from collaborations.services import IngestionCoordinator
from collaborations.store import DjangoAssignmentStore


class Command(BaseCommand):
    help = "Import employee project assignments from a CSV file."

    def add_arguments(self, parser):
        parser.add_argument("path", help="CSV file with EmpID, ProjectID, DateFrom, DateTo columns.")
        parser.add_argument(
            "--chunk-size",
            type=int,
            default=None,
            help="Rows written per chunk (default: COLLABORATIONS_CHUNK_SIZE).",
        )

    def handle(self, *args, **options):
        path = Path(options["path"]).resolve()
        if not path.is_file():
            raise CommandError(f"{path} not found")

        coordinator = IngestionCoordinator(DjangoAssignmentStore(), chunk_size=options["chunk_size"])
        with open(path, "rb") as f:
            try:
                summary = coordinator.ingest(f)
            except StreamReadFailed as e:
                raise CommandError(
                    f"{e.message} ({e.summary.processed_rows} rows accepted before the failure)"
                ) from e

        self.stdout.write(
            f"Processed {summary.processed_rows} rows, "
            f"{summary.rows_with_error} rejected, {summary.write_errors} write errors"
        )
        self.stdout.write(self.style.SUCCESS(summary.message))

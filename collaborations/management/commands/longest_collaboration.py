from django.core.management.base import BaseCommand

from collaborations.services import CollaborationAnalyzer
from collaborations.store import DjangoAssignmentStore


class Command(BaseCommand):
    help = "Show the pair of employees who worked together the longest."

    def add_arguments(self, parser):
        parser.add_argument(
            "--all",
            action="store_true",
            help="List every collaborating pair, longest first.",
        )

    def handle(self, *args, **options):
        analyzer = CollaborationAnalyzer(DjangoAssignmentStore())

        if options["all"]:
            totals = analyzer.collaboration_totals()
            # sorted() is stable, so equal totals keep first-reached order
            for pair, days in sorted(totals.items(), key=lambda item: item[1], reverse=True):
                self.stdout.write(f"{pair.low},{pair.high},{days}")
            return

        result = analyzer.find_longest_collaboration()
        if not result.total_days:
            self.stdout.write("No overlapping assignments found.")
            return
        self.stdout.write(
            self.style.SUCCESS(f"{result.emp1_id},{result.emp2_id},{result.total_days}")
        )

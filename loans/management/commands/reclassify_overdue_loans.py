from django.core.management.base import BaseCommand

from loans.management.commands._results import write_queued, write_task_result
from notifications.tasks import reclassify_overdue_loans, send_overdue_report


class Command(BaseCommand):
    help = "Mark active loans past their due date as overdue (run immediately)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--async",
            action="store_true",
            help="Queue the sweep on Celery instead of running it here",
        )
        parser.add_argument(
            "--report",
            action="store_true",
            help="Also send the Telegram overdue report",
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("Starting overdue loans sweep..."))

        if options["async"]:
            write_queued(self, reclassify_overdue_loans.delay())
            if options["report"]:
                write_queued(self, send_overdue_report.delay())
            return

        result = reclassify_overdue_loans()
        write_task_result(self, result, f'{result["reclassified"]} loan(s) marked overdue.')

        if options["report"]:
            report = send_overdue_report()
            write_task_result(
                self,
                report,
                f'Report sent for {report.get("overdue_count", 0)} overdue loan(s).',
                subject="Report",
            )

from django.core.management.base import BaseCommand

from loans.management.commands._results import write_queued, write_task_result
from notifications.tasks import send_overdue_notification


class Command(BaseCommand):
    help = "Send the overdue Telegram alert for one loan"

    def add_arguments(self, parser):
        parser.add_argument("loan_id", type=int, help="ID of the overdue loan")
        parser.add_argument(
            "--async",
            action="store_true",
            help="Queue the alert on Celery instead of sending it here",
        )

    def handle(self, *args, **options):
        loan_id = options["loan_id"]
        self.stdout.write(f"Sending overdue alert for loan {loan_id}")

        if options["async"]:
            write_queued(self, send_overdue_notification.delay(loan_id))
            return

        write_task_result(
            self, send_overdue_notification(loan_id), "Notification sent successfully!"
        )

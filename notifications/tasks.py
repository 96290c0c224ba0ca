import logging

import pytz
from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django.utils.html import escape

from loans.models import Loan
from loans.services import reclassify_overdue
from notifications.telegram import is_enabled, send_telegram_message
from reservations.models import Reservation

logger = logging.getLogger(__name__)


def local_now():
    return timezone.now().astimezone(pytz.timezone(settings.LIBRARY_TIME_ZONE))


def local(dt):
    return dt.astimezone(pytz.timezone(settings.LIBRARY_TIME_ZONE))


def overdue_message(loan, now):
    days_overdue = loan.days_overdue
    return (
        "⚠️ <b>OVERDUE LOAN ALERT</b>\n"
        f"📚 <b>Book</b>: {escape(loan.book.title)}\n"
        f"✍️ <b>Author</b>: {escape(loan.book.author)}\n"
        f"👤 <b>Borrower</b>: {escape(loan.borrower.full_name)}\n"
        f"📧 <b>Email</b>: {escape(loan.borrower.email)}\n"
        f"📅 <b>Borrowed</b>: {local(loan.loan_date):%Y-%m-%d}\n"
        f"🗓️ <b>Due Date</b>: {local(loan.due_date):%Y-%m-%d}\n"
        f"⏰ <b>Days Overdue</b>: {days_overdue} day{'s' if days_overdue != 1 else ''}\n"
        f"🏛️ <b>Library</b>: {escape(loan.book.get_location_display())}\n"
        f"🧾 <b>Loan ID</b>: {loan.id}\n"
        f"🕘 <b>Alert Time</b>: {now:%H:%M}"
    )


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def reclassify_overdue_loans(self):
    """
    Periodic sweep: mark active loans past their due date as overdue.

    Returns:
        dict: Summary of the task execution
    """
    now = timezone.now()
    try:
        reclassified = reclassify_overdue(now)
    except Exception as exc:
        logger.error(f"Task {self.request.id}: Overdue sweep failed: {exc}")
        raise self.retry(exc=exc)

    logger.info(f"Task {self.request.id}: {reclassified} loan(s) reclassified as overdue")
    return {
        "task_id": self.request.id,
        "status": "success",
        "reclassified": reclassified,
        "timestamp": now.isoformat(),
    }


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_overdue_report(self):
    """
    Daily report: sweep overdue loans, then send one Telegram alert per
    overdue loan and a summary message.

    Returns:
        dict: Summary of the task execution
    """
    reclassify_overdue()
    now = local_now()

    overdue_loans = (
        Loan.objects.select_related("book", "borrower")
        .filter(status=Loan.Status.OVERDUE)
        .order_by("due_date", "borrower__email")
    )
    overdue_count = overdue_loans.count()

    logger.info(
        f"Task {self.request.id}: Found {overdue_count} overdue loan(s) on {now:%Y-%m-%d}"
    )

    if not is_enabled():
        return {
            "task_id": self.request.id,
            "status": "skipped",
            "reason": "Telegram notifications disabled",
            "overdue_count": overdue_count,
        }

    if overdue_count == 0:
        message = (
            "🎉 <b>No Overdue Loans Today!</b>\n"
            f"📅 <b>Date</b>: {now:%Y-%m-%d}\n"
            f"🕘 <b>Checked at</b>: {now:%H:%M}\n"
            "✅ All loans are up to date!"
        )
        if not send_telegram_message(message):
            logger.warning(f"Task {self.request.id}: Failed to send 'no overdue' notification")
            raise self.retry(countdown=60)

        return {
            "task_id": self.request.id,
            "status": "success",
            "overdue_count": 0,
            "date": now.date().isoformat(),
        }

    successful_notifications = 0
    failed_loan_ids = []

    for loan in overdue_loans:
        if send_telegram_message(overdue_message(loan, now)):
            successful_notifications += 1
        else:
            failed_loan_ids.append(loan.id)
            logger.warning(
                f"Task {self.request.id}: Failed to send notification for loan {loan.id}"
            )

    summary_message = (
        "📊 <b>Daily Overdue Report</b>\n"
        f"📅 <b>Date</b>: {now:%Y-%m-%d}\n"
        f"⚠️ <b>Total Overdue</b>: {overdue_count}\n"
        f"✅ <b>Notifications Sent</b>: {successful_notifications}\n"
        f"❌ <b>Failed Notifications</b>: {len(failed_loan_ids)}"
    )
    if failed_loan_ids:
        summary_message += f"\n🚫 <b>Failed IDs</b>: {', '.join(map(str, failed_loan_ids))}"

    if not send_telegram_message(summary_message):
        logger.warning(f"Task {self.request.id}: Failed to send summary message")

    # If more than half of notifications failed, retry the task
    if len(failed_loan_ids) > successful_notifications:
        logger.warning(f"Task {self.request.id}: Too many failed notifications, retrying...")
        raise self.retry(countdown=300)

    return {
        "task_id": self.request.id,
        "status": "completed",
        "overdue_count": overdue_count,
        "successful_notifications": successful_notifications,
        "failed_notifications": len(failed_loan_ids),
        "failed_loan_ids": failed_loan_ids,
        "date": now.date().isoformat(),
    }


@shared_task
def send_overdue_notification(loan_id):
    """
    Send the overdue alert for a single loan.

    Returns:
        dict: Result of the notification attempt
    """
    try:
        loan = Loan.objects.select_related("book", "borrower").get(id=loan_id)
    except Loan.DoesNotExist:
        return {"loan_id": loan_id, "status": "error", "message": "Loan not found"}

    if not loan.is_open:
        return {"loan_id": loan_id, "status": "skipped", "reason": "Book already returned"}

    if not loan.is_overdue:
        return {"loan_id": loan_id, "status": "skipped", "reason": "Not overdue yet"}

    success = send_telegram_message(overdue_message(loan, local_now()))
    return {
        "loan_id": loan_id,
        "status": "success" if success else "failed",
        "message": (
            "Notification sent successfully" if success else "Failed to send notification"
        ),
    }


@shared_task
def notify_new_loan(loan_id):
    loan = Loan.objects.select_related("book", "borrower").filter(id=loan_id).first()
    if loan is None:
        return False

    book = loan.book
    msg = (
        "<b>📚 New Loan</b>\n"
        f"👤 <b>Borrower</b>: {escape(loan.borrower.full_name)} ({escape(loan.borrower.email)})\n"
        f"📖 <b>Book</b>: {escape(book.title)} by {escape(book.author)}\n"
        f"📅 <b>Borrowed</b>: {local(loan.loan_date):%Y-%m-%d}\n"
        f"🗓️ <b>Due</b>: {local(loan.due_date):%Y-%m-%d}\n"
        f"📦 <b>Copies left</b>: {book.available_copies}/{book.total_copies}\n"
        f"🧾 <b>Loan ID</b>: {loan.id}"
    )
    return send_telegram_message(msg)


@shared_task
def notify_reservation_fulfilled(reservation_id):
    reservation = (
        Reservation.objects.select_related("book", "borrower", "loan")
        .filter(id=reservation_id, status=Reservation.Status.FULFILLED)
        .first()
    )
    if reservation is None:
        return False

    book = reservation.book
    msg = (
        "<b>🔔 Reservation Fulfilled</b>\n"
        f"👤 <b>Borrower</b>: {escape(reservation.borrower.full_name)} ({escape(reservation.borrower.email)})\n"
        f"📖 <b>Book</b>: {escape(book.title)} by {escape(book.author)}\n"
        f"📅 <b>Reserved</b>: {local(reservation.reservation_date):%Y-%m-%d}\n"
        f"🏛️ <b>Pick up at</b>: {escape(book.get_location_display())}\n"
        f"🧾 <b>Loan ID</b>: {reservation.loan_id}"
    )
    return send_telegram_message(msg)

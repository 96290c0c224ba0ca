"""
Borrowing eligibility.

``can_borrow`` decides from already-loaded objects only and never touches the
database, so the same rule backs the loan service, the eligibility endpoint
and the tests.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Type

from library_service.exceptions import (
    AlreadyBorrowed,
    NoCopiesAvailable,
    NotFound,
    StatusBlocked,
)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[Type[Exception]] = None

    def raise_for_reason(self):
        if not self.allowed:
            raise self.reason()


ALLOWED = Decision(allowed=True)


def can_borrow(book, borrower_active_loans: Iterable, now=None) -> Decision:
    """
    Decide whether a borrower may open a loan on ``book``.

    Reasons are checked in priority order and only the first applies:
    NotFound, AlreadyBorrowed, StatusBlocked, NoCopiesAvailable.
    ``borrower_active_loans`` are the borrower's open loans (any book).
    """
    if book is None:
        return Decision(False, NotFound)

    if any(
        loan.book_id == book.pk and loan.status in ("active", "overdue")
        for loan in borrower_active_loans
    ):
        return Decision(False, AlreadyBorrowed)

    if book.status != "available":
        return Decision(False, StatusBlocked)

    if book.available_copies <= 0:
        return Decision(False, NoCopiesAvailable)

    return ALLOWED

# Overview: Invoice number allocation from the per-tenant sequence row.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import InternalError
from ..models import InvoiceSequence
from ..time_utils import month_stamp, utcnow


class InvoiceNumbering:
    """
    Allocates INV-YYYYMM-NNNNN numbers.

    NNNNN is a tenant-wide counter that keeps counting across months;
    YYYYMM is the UTC month of issue. Allocation runs inside the caller's
    transaction and never commits, so a rolled-back sale returns its number
    and the UPDATE's row lock serializes concurrent sales of one tenant.
    """

    PREFIX = "INV"
    PAD = 5

    def __init__(self, session):
        self.session = session

    def generate(self, tenant_id: int, now: datetime | None = None) -> str:
        seq = self._next_sequence(tenant_id)
        return f"{self.PREFIX}-{month_stamp(now or utcnow())}-{seq:0{self.PAD}d}"

    def _next_sequence(self, tenant_id: int) -> int:
        if not tenant_id:
            raise InternalError("tenant_id is required for invoice numbering")

        stmt = (
            update(InvoiceSequence)
            .where(InvoiceSequence.tenant_id == tenant_id)
            .values(next_number=InvoiceSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )

        if self.session.execute(stmt).rowcount:
            return self._current(tenant_id) - 1

        # First invoice for this tenant
        try:
            with self.session.begin_nested():
                self.session.add(InvoiceSequence(tenant_id=tenant_id, next_number=2))
            return 1
        except IntegrityError:
            # Lost the first-insert race; the winner's row exists now
            if not self.session.execute(stmt).rowcount:
                raise
            return self._current(tenant_id) - 1

    def _current(self, tenant_id: int) -> int:
        return (
            self.session.query(InvoiceSequence.next_number)
            .filter_by(tenant_id=tenant_id)
            .scalar()
        )

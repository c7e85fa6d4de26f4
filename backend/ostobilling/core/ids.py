"""Identifier generation for billing records."""

import uuid
from datetime import datetime
from typing import Protocol

from ostobilling.core.config import settings


class IdGenerator(Protocol):
    """Produces record ids and invoice numbers."""

    def new_id(self) -> uuid.UUID:
        """Return a fresh record id."""
        ...

    def invoice_number(self, invoice_id: uuid.UUID, issued_at: datetime) -> str:
        """Return the human readable number of an invoice."""
        ...


class UuidGenerator:
    """Random UUID4 ids and date-stamped invoice numbers.

    Invoice numbers look like ``INV-20240115-<32 hex chars>``. Embedding the
    invoice id keeps them unique without a database sequence.
    """

    def __init__(self, prefix: str | None = None):
        """Create the generator with an optional invoice number prefix."""
        self.prefix = prefix or settings.INVOICE_NUMBER_PREFIX

    def new_id(self) -> uuid.UUID:
        """Return a random UUID4."""
        return uuid.uuid4()

    def invoice_number(self, invoice_id: uuid.UUID, issued_at: datetime) -> str:
        """Format the invoice number for the given invoice id and issue time."""
        return f"{self.prefix}-{issued_at:%Y%m%d}-{invoice_id.hex}"


id_generator = UuidGenerator()

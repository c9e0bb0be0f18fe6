from datetime import date
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.models import DocumentSequence


class DocumentPrefix(StrEnum):
    """Prefixes of numbered financial documents."""

    RECEIPT = "RCP"
    BILL = "BILL"


class DocumentNumberGenerator:
    """
    Generates sequential document numbers in format: PREFIX-YYYY-NNNNNN

    Examples:
        RCP-2026-000001
        BILL-2026-000042
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate(self, prefix: str, year: int | None = None) -> str:
        """
        Generate next document number for given prefix and year.

        The sequence row is locked (SELECT FOR UPDATE) so concurrent payments
        never share a receipt number.
        """
        if year is None:
            year = date.today().year
        prefix = str(prefix)

        stmt = (
            select(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            sequence = DocumentSequence(prefix=prefix, year=year, last_number=0)
            self.session.add(sequence)
            await self.session.flush()

            result = await self.session.execute(stmt)
            sequence = result.scalar_one()

        sequence.last_number += 1
        await self.session.flush()

        return f"{prefix}-{year}-{sequence.last_number:06d}"

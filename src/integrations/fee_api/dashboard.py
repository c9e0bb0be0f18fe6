"""Admin dashboard loader: independent reads run concurrently."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from src.integrations.fee_api.client import FeeApiClient, FeeApiError
from src.modules.fees.schemas import AggregateSnapshot, FeeStructureResponse
from src.modules.students.schemas import SchoolClassResponse

logger = logging.getLogger(__name__)


@dataclass
class DashboardData:
    stats: AggregateSnapshot | None = None
    structures: list[FeeStructureResponse] = field(default_factory=list)
    classes: list[SchoolClassResponse] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.errors


async def load_dashboard(client: FeeApiClient, academic_year: str | None = None) -> DashboardData:
    """
    Fetch statistics, fee structures and the class directory in parallel.

    Each part succeeds or fails on its own; a failed part is left empty and
    its message is kept under errors[<part>].
    """
    parts = {
        "stats": client.get_stats_summary(academic_year=academic_year),
        "structures": client.list_structures(academic_year=academic_year),
        "classes": client.list_classes(),
    }
    results = await asyncio.gather(*parts.values(), return_exceptions=True)

    data = DashboardData()
    for name, result in zip(parts, results):
        if isinstance(result, (FeeApiError, httpx.HTTPError)):
            logger.warning("Dashboard part %s failed: %s", name, result)
            data.errors[name] = str(result) or result.__class__.__name__
        elif isinstance(result, BaseException):
            raise result
        else:
            setattr(data, name, result)
    return data

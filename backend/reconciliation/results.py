# reconciliation/results.py

from dataclasses import asdict, dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class BalanceCheck:
    """Outcome of recomputing one cached balance."""

    document: str  # "account", "customer" or "supplier"
    pk: int
    name: str
    cached: Decimal
    computed: Decimal

    @property
    def drift(self) -> Decimal:
        return self.cached - self.computed

    @property
    def is_mismatch(self) -> bool:
        return abs(self.drift) > settings.BALANCE_TOLERANCE

    @property
    def changed(self) -> bool:
        return self.cached != self.computed

    def as_dict(self) -> dict:
        data = asdict(self)
        data["cached"] = str(self.cached)
        data["computed"] = str(self.computed)
        data["drift"] = str(self.drift)
        return data

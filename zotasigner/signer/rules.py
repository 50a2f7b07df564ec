"""
zotasigner/signer/rules.py
Endpoint rule table: which (method, path prefix) pairs get which algorithm.

Order matters: the first rule whose method and prefix both match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

API_V1 = "/api/v1"

DEPOSIT_PREFIX = f"{API_V1}/deposit/request/"
DEPOSIT_DIRECT_PREFIX = f"{API_V1}/deposit/request/direct/"
PAYOUT_PREFIX = f"{API_V1}/payout/request/"
ORDER_STATUS_PREFIX = f"{API_V1}/query/order-status/"
ORDERS_REPORT_PREFIX = f"{API_V1}/query/orders-report/csv/"
CURRENT_BALANCE_PREFIX = f"{API_V1}/query/current-balance/"
EXCHANGE_RATES_PREFIX = f"{API_V1}/query/exchange-rates/"

QUERY_PREFIXES: Tuple[str, ...] = (
    ORDER_STATUS_PREFIX,
    ORDERS_REPORT_PREFIX,
    CURRENT_BALANCE_PREFIX,
    EXCHANGE_RATES_PREFIX,
)

# Paths whose segment after the prefix is an endpoint (or group) id.
# Longest first so "direct/" is not mistaken for an id.
ENDPOINT_ID_PREFIXES: Tuple[str, ...] = (
    DEPOSIT_DIRECT_PREFIX,
    DEPOSIT_PREFIX,
    PAYOUT_PREFIX,
)


class Algorithm(str, Enum):
    DEPOSIT = "deposit"
    PAYOUT = "payout"
    ORDER_STATUS = "order-status"
    ORDERS_REPORT = "orders-report"
    CURRENT_BALANCE = "current-balance"
    EXCHANGE_RATES = "exchange-rates"


@dataclass(frozen=True)
class EndpointRule:
    method: str
    prefixes: Tuple[str, ...]
    algorithm: Algorithm

    def matches_path(self, path: Optional[str]) -> bool:
        if not path:
            return False
        return any(path.startswith(prefix) for prefix in self.prefixes)

    def matches(self, method: Optional[str], path: Optional[str]) -> bool:
        if method is None or self.method.upper() != method.upper():
            return False
        return self.matches_path(path)

    def matched_prefix(self, path: str) -> str:
        """Longest prefix of this rule that ``path`` starts with ("" when none)."""
        hits = [p for p in self.prefixes if path.startswith(p)]
        return max(hits, key=len) if hits else ""


ENDPOINT_RULES: Tuple[EndpointRule, ...] = (
    EndpointRule("POST", (DEPOSIT_PREFIX, DEPOSIT_DIRECT_PREFIX), Algorithm.DEPOSIT),
    EndpointRule("POST", (PAYOUT_PREFIX,), Algorithm.PAYOUT),
    EndpointRule("GET", (ORDER_STATUS_PREFIX,), Algorithm.ORDER_STATUS),
    EndpointRule("GET", (ORDERS_REPORT_PREFIX,), Algorithm.ORDERS_REPORT),
    EndpointRule("GET", (CURRENT_BALANCE_PREFIX,), Algorithm.CURRENT_BALANCE),
    EndpointRule("GET", (EXCHANGE_RATES_PREFIX,), Algorithm.EXCHANGE_RATES),
)


def match_rule(method: Optional[str], path: Optional[str]) -> Optional[EndpointRule]:
    for rule in ENDPOINT_RULES:
        if rule.matches(method, path):
            return rule
    return None


def is_known_path(path: Optional[str]) -> bool:
    """True when any rule's prefix matches, whatever the method. Host gating only."""
    return any(rule.matches_path(path) for rule in ENDPOINT_RULES)


def is_query_endpoint(path: Optional[str]) -> bool:
    if not path:
        return False
    return any(path.startswith(prefix) for prefix in QUERY_PREFIXES)

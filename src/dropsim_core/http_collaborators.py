"""
Collaborators backed by the learner dashboard's REST API.

Endpoints:
    GET  /api/products/list          -> {"products": [...]}
    GET  /api/budget/allocate        -> {"allocations": [...]}
    GET  /api/products/seasonality   -> {"products": [...]}
    POST /api/products/performance   <- PerformanceReport payload
    GET  /api/dashboard/state        -> {"state": {...}}
    POST /api/dashboard/state        <- snapshot

Transport errors and non-2xx responses raise ``CollaboratorUnavailable``
(``PersistenceFailure`` for state saves and loads).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from dropsim_core.config import CollaboratorSettings
from dropsim_core.errors import CollaboratorUnavailable, PersistenceFailure
from dropsim_core.models.market import BudgetAllocation, SeasonalityFactor
from dropsim_core.models.product import Product
from dropsim_core.services.financial_resolver import PerformanceReport

logger = logging.getLogger(__name__)


class DashboardApiClient:
    """
    One client per learner session; implements the catalog, budget, seasonality,
    reporting and state-store contracts.

    Usage:
        async with DashboardApiClient("https://dash.example", token="...") as api:
            products = await api.get_catalog()
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("DashboardApiClient requires a base_url")
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )

    @classmethod
    def from_settings(
        cls, settings: CollaboratorSettings, token: Optional[str] = None
    ) -> DashboardApiClient:
        if not settings.base_url:
            raise ValueError("collaborators.base_url is not configured")
        if token is None and settings.api_token is not None:
            token = settings.api_token.get_secret_value()
        return cls(settings.base_url, token, timeout=settings.timeout_seconds)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Closes the underlying HTTP client to release resources."""
        await self.http_client.aclose()

    async def _request(self, collaborator: str, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.http_client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "%s %s returned HTTP %s", method, path, e.response.status_code
            )
            raise CollaboratorUnavailable(
                collaborator, f"{collaborator} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.warning("Network error calling %s %s: %s", method, path, e)
            raise CollaboratorUnavailable(collaborator, f"{collaborator} unreachable: {e}") from e
        except ValueError as e:
            # Body was not JSON
            raise CollaboratorUnavailable(collaborator, f"{collaborator} sent invalid JSON") from e

    async def get_catalog(self) -> List[Product]:
        data = await self._request("catalog", "GET", "/api/products/list")
        products = []
        for row in _rows(data, "products"):
            if row.get("activeInDashboard") is False:
                continue
            try:
                products.append(Product.model_validate(row))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed catalog product %r: %s", row.get("id"), e)
        return products

    async def get_budget_allocations(self) -> List[BudgetAllocation]:
        data = await self._request("budget", "GET", "/api/budget/allocate")
        try:
            return [BudgetAllocation.model_validate(row) for row in _rows(data, "allocations")]
        except PydanticValidationError as e:
            raise CollaboratorUnavailable("budget", f"malformed budget allocations: {e}") from e

    async def get_seasonality(self) -> List[SeasonalityFactor]:
        data = await self._request("seasonality", "GET", "/api/products/seasonality")
        factors = []
        for row in _rows(data, "products"):
            if row.get("productId") is None:
                continue
            try:
                factors.append(
                    SeasonalityFactor(
                        product_id=row.get("productId"),
                        seasonality=row.get("seasonality", row.get("currentSeasonality")),
                        trend=row.get("trend", row.get("currentTrend")),
                    )
                )
            except PydanticValidationError as e:
                logger.warning("Ignoring seasonality for %r: %s", row.get("productId"), e)
        return factors

    async def report_product_performance(self, report: PerformanceReport) -> None:
        await self._request(
            "performance", "POST", "/api/products/performance", json=report.to_payload()
        )

    async def load_state(self) -> Optional[Dict[str, Any]]:
        try:
            data = await self._request("state", "GET", "/api/dashboard/state")
        except CollaboratorUnavailable as e:
            raise PersistenceFailure(str(e)) from e
        state = data.get("state") if isinstance(data, dict) else None
        return state or None

    async def save_state(self, snapshot: Dict[str, Any]) -> None:
        try:
            await self._request("state", "POST", "/api/dashboard/state", json=snapshot)
        except CollaboratorUnavailable as e:
            raise PersistenceFailure(str(e)) from e


def _rows(data: Any, key: str) -> List[Dict[str, Any]]:
    """Accept either ``{key: [...]}`` or a bare list."""
    if isinstance(data, dict):
        data = data.get(key) or []
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


__all__ = ["DashboardApiClient"]

"""Asset endpoints: ``GET /product`` and ``POST /product/create``."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pycertplus._api._envelope import unwrap_list, unwrap_object
from pycertplus._constants import ASSET_CREATE_ENDPOINT, ASSETS_ENDPOINT
from pycertplus._transport import Transport
from pycertplus.exceptions import CertApiError
from pycertplus.models.asset import Asset
from pycertplus.models.requests import AssetCreateRequest, AssetCreateResponse

_logger = logging.getLogger(__name__)


async def fetch_assets(transport: Transport) -> tuple[Asset, ...]:
    """Fetch every asset, each with its nested interventions."""
    payload = await transport.request("GET", ASSETS_ENDPOINT)
    items = unwrap_list(payload, ASSETS_ENDPOINT)
    try:
        assets = tuple(Asset.model_validate(item) for item in items)
    except ValidationError as exc:
        raise CertApiError(f"Unparseable asset in listing: {exc}", endpoint=ASSETS_ENDPOINT) from exc
    _logger.debug("Fetched %d assets", len(assets))
    return assets


async def create_asset(transport: Transport, request: AssetCreateRequest) -> AssetCreateResponse:
    payload = await transport.request("POST", ASSET_CREATE_ENDPOINT, request.to_payload())
    try:
        return AssetCreateResponse.model_validate(unwrap_object(payload, ASSET_CREATE_ENDPOINT))
    except ValidationError as exc:
        raise CertApiError(
            f"Unparseable asset creation response: {exc}",
            endpoint=ASSET_CREATE_ENDPOINT,
        ) from exc

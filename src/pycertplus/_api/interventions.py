"""Intervention endpoints: ``GET /maintenance`` and ``POST /maintenance/create``.

The listing does not name the owning asset, so records parsed here are
unresolved until :mod:`pycertplus.reconcile` attributes them.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pycertplus._api._envelope import unwrap_list, unwrap_object
from pycertplus._constants import INTERVENTION_CREATE_ENDPOINT, INTERVENTIONS_ENDPOINT
from pycertplus._transport import Transport
from pycertplus.exceptions import CertApiError
from pycertplus.models.intervention import InterventionRecord
from pycertplus.models.requests import InterventionCreateRequest, InterventionCreateResponse

_logger = logging.getLogger(__name__)


async def fetch_interventions(transport: Transport) -> tuple[InterventionRecord, ...]:
    payload = await transport.request("GET", INTERVENTIONS_ENDPOINT)
    items = unwrap_list(payload, INTERVENTIONS_ENDPOINT)
    try:
        records = tuple(InterventionRecord.model_validate(item) for item in items)
    except ValidationError as exc:
        raise CertApiError(
            f"Unparseable intervention in listing: {exc}",
            endpoint=INTERVENTIONS_ENDPOINT,
        ) from exc
    _logger.debug("Fetched %d interventions", len(records))
    return records


async def create_intervention(
    transport: Transport,
    request: InterventionCreateRequest,
) -> InterventionCreateResponse:
    payload = await transport.request("POST", INTERVENTION_CREATE_ENDPOINT, request.to_payload())
    try:
        return InterventionCreateResponse.model_validate(unwrap_object(payload, INTERVENTION_CREATE_ENDPOINT))
    except ValidationError as exc:
        raise CertApiError(
            f"Unparseable intervention creation response: {exc}",
            endpoint=INTERVENTION_CREATE_ENDPOINT,
        ) from exc

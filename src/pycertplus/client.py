"""High-level async client for the inventory service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pycertplus._api import assets as _assets_api
from pycertplus._api import interventions as _interventions_api
from pycertplus._transport import HttpTransport, Transport
from pycertplus.cache import CacheStatus, CollectionCache
from pycertplus.config import CertConfig
from pycertplus.exceptions import AssetConflictError, AssetNotFoundError, CertError
from pycertplus.models.asset import Asset
from pycertplus.models.intervention import InterventionRecord, KnownAsset
from pycertplus.models.requests import (
    AssetCreateRequest,
    AssetDraft,
    InterventionCreateRequest,
    InterventionDraft,
)
from pycertplus.reconcile import Reconciler
from pycertplus.tags import extract_tag, tags_match

_logger = logging.getLogger(__name__)


class CertClient:
    """Async client for the inventory service.

    Usage::

        async with CertClient(CertConfig.from_env()) as client:
            asset = await client.find_asset_by_tag("https://host/public/product/QR123")
            history = await client.get_interventions_by_asset(asset.uuid)

    Reads are served from two :class:`~pycertplus.cache.CollectionCache`
    instances (assets and interventions) that live as long as the
    ``async with`` block. Writes validate locally first and invalidate
    the affected cache on success.
    """

    def __init__(
        self,
        config: CertConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CertConfig.from_env()
        self._external_session = session is not None
        self._http_session = session
        self._injected_transport = transport
        self._transport: Transport | None = None
        self._clock = clock
        self._assets: CollectionCache[Asset] | None = None
        self._interventions: CollectionCache[InterventionRecord] | None = None
        self._reconciler: Reconciler | None = None

    @property
    def config(self) -> CertConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CertClient:
        if self._injected_transport is not None:
            self._transport = self._injected_transport
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)

        self._assets = CollectionCache(
            self._fetch_assets,
            name="assets",
            ttl=self._config.cache_ttl,
            clock=self._clock,
        )
        self._interventions = CollectionCache(
            self._fetch_interventions,
            name="interventions",
            ttl=self._config.cache_ttl,
            clock=self._clock,
        )
        self._reconciler = Reconciler(self._assets, self._interventions)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for cache in (self._assets, self._interventions):
            if cache is not None:
                await cache.aclose()
        self._assets = None
        self._interventions = None
        self._reconciler = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise CertError("Client not initialized. Use 'async with CertClient(...) as client:'")
        return self._transport

    def _require_caches(self) -> tuple[CollectionCache[Asset], CollectionCache[InterventionRecord], Reconciler]:
        if self._assets is None or self._interventions is None or self._reconciler is None:
            raise CertError("Client not initialized. Use 'async with CertClient(...) as client:'")
        return self._assets, self._interventions, self._reconciler

    async def _fetch_assets(self) -> tuple[Asset, ...]:
        return await _assets_api.fetch_assets(self._require_transport())

    async def _fetch_interventions(self) -> tuple[InterventionRecord, ...]:
        return await _interventions_api.fetch_interventions(self._require_transport())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_assets(self, *, force_refresh: bool = False) -> tuple[Asset, ...]:
        assets, _, _ = self._require_caches()
        return await assets.get(force_refresh)

    async def get_asset(self, asset_id: str, *, force_refresh: bool = False) -> Asset:
        """Return the asset with uuid *asset_id*.

        Raises
        ------
        AssetNotFoundError
            No asset has that uuid.
        """
        for asset in await self.get_assets(force_refresh=force_refresh):
            if asset.uuid == asset_id:
                return asset
        raise AssetNotFoundError(f"No asset with id {asset_id!r}")

    async def find_asset_by_tag(self, raw: str, *, force_refresh: bool = False) -> Asset | None:
        """Look up an asset by scanned tag in the current snapshot.

        *raw* may be a landing-page URL, a path or the bare tag. Returns
        ``None`` when no asset matches; callers decide whether a forced
        refresh is worth a second attempt.
        """
        if not extract_tag(raw):
            return None
        for asset in await self.get_assets(force_refresh=force_refresh):
            if tags_match(raw, asset.qr_code):
                return asset
        return None

    async def get_interventions(self, *, force_refresh: bool = False) -> tuple[InterventionRecord, ...]:
        """All interventions, each attributed to its asset where possible."""
        _, _, reconciler = self._require_caches()
        return await reconciler.interventions(force_refresh)

    async def get_interventions_by_asset(
        self,
        asset_id: str,
        *,
        force_refresh: bool = False,
    ) -> list[InterventionRecord]:
        _, _, reconciler = self._require_caches()
        return await reconciler.interventions_for_asset(asset_id, force_refresh=force_refresh)

    async def get_assets_with_location(self, *, force_refresh: bool = False) -> list[Asset]:
        """Assets whose history carries a usable location, for map views."""
        return [asset for asset in await self.get_assets(force_refresh=force_refresh) if asset.location is not None]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_asset(self, draft: AssetDraft) -> Asset:
        """Register a new asset.

        Raises
        ------
        CertValidationError
            The draft is incomplete; nothing was sent.
        AssetConflictError
            The tag is already issued to an asset in the current snapshot.
        TransientFetchError
            The service rejected or did not answer the write. Writes are
            never retried.
        """
        request = AssetCreateRequest.from_draft(draft, created_by=self._config.user_id)
        existing = await self.find_asset_by_tag(request.qr_code)
        if existing is not None:
            raise AssetConflictError(
                f"Tag {request.qr_code!r} is already issued to asset {existing.uuid}",
                tag=request.qr_code,
                asset_uuid=existing.uuid,
            )

        response = await _assets_api.create_asset(self._require_transport(), request)
        assets, _, _ = self._require_caches()
        assets.invalidate()
        _logger.debug("Created asset %s for tag %s", response.uuid, request.qr_code)

        return Asset.model_validate(
            {
                **request.to_payload(),
                "uuid": response.uuid,
                "asset_id": response.ledger_asset_id,
                "metadata_cid": response.metadata_cid,
                "created_at": datetime.now(UTC),
                "raw": response.raw,
            }
        )

    async def create_intervention(self, asset_id: str, draft: InterventionDraft) -> InterventionRecord:
        """Record an intervention against *asset_id*.

        Coordinates are validated before anything else; see
        :func:`pycertplus.geo.format_coordinate`.
        """
        request = InterventionCreateRequest.from_draft(
            draft,
            asset_uuid=asset_id,
            company_id=self._config.company_id,
        )
        response = await _interventions_api.create_intervention(self._require_transport(), request)
        assets, interventions, _ = self._require_caches()
        # Assets nest their interventions, so both snapshots are now outdated.
        interventions.invalidate()
        assets.invalidate()
        _logger.debug(
            "Created %s intervention %s on asset %s",
            request.intervention_type,
            response.uuid,
            asset_id,
        )

        payload = request.to_payload()
        payload.pop("product_uuid", None)
        return InterventionRecord.model_validate(
            {
                **payload,
                "uuid": response.uuid,
                "created_at": datetime.now(UTC),
                "asset_ref": KnownAsset(asset_id=request.product_uuid),
                "raw": response.raw,
            }
        )

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        assets, interventions, _ = self._require_caches()
        assets.clear()
        interventions.clear()

    def cache_status(self) -> dict[str, CacheStatus]:
        assets, interventions, _ = self._require_caches()
        return {cache.name: cache.status() for cache in (assets, interventions)}

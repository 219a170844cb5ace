"""Attribute intervention records to the assets that own them.

``GET /maintenance`` omits the owning asset of each record. The asset
listing nests interventions under their owner, so an index
``intervention uuid -> asset uuid`` built from the asset snapshot
recovers the relationship. Records that cannot be attributed keep an
:class:`~pycertplus.models.intervention.UnresolvedAsset` reference.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import NamedTuple

from pycertplus._constants import SENTINEL_ASSET_ID
from pycertplus.cache import CollectionCache
from pycertplus.exceptions import ReconciliationWarning
from pycertplus.models._base import InstallStatus, InterventionType
from pycertplus.models.asset import Asset
from pycertplus.models.intervention import InterventionRecord, KnownAsset, UnresolvedAsset

_logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


class ReconcileResult(NamedTuple):
    records: tuple[InterventionRecord, ...]
    unresolved: int


def _index_owners(assets: Iterable[Asset]) -> tuple[dict[str, str], frozenset[str]]:
    index: dict[str, str] = {}
    ambiguous: set[str] = set()
    for asset in assets:
        for record in asset.interventions:
            owner = index.get(record.uuid)
            if owner is not None and owner != asset.uuid:
                ambiguous.add(record.uuid)
            index.setdefault(record.uuid, asset.uuid)
    for uuid in ambiguous:
        _logger.debug("Intervention %s is nested under more than one asset", uuid)
        del index[uuid]
    return index, frozenset(ambiguous)


def build_intervention_index(assets: Iterable[Asset]) -> dict[str, str]:
    """Map every nested intervention uuid to its owning asset uuid.

    An intervention uuid nested under two different assets is ambiguous
    and left out of the index.
    """
    index, _ = _index_owners(assets)
    return index


def reconcile_interventions(
    records: Iterable[InterventionRecord],
    assets: Iterable[Asset],
) -> ReconcileResult:
    """Attach an asset reference to every record.

    The asset index wins over an owner reported in the record's own
    payload, and a record nested under more than one asset stays
    unresolved whatever its payload says. Emits
    :class:`~pycertplus.exceptions.ReconciliationWarning` when some
    records stay unresolved.
    """
    index, ambiguous = _index_owners(assets)
    reconciled: list[InterventionRecord] = []
    unresolved = 0
    for record in records:
        owner = index.get(record.uuid)
        if owner is not None:
            reconciled.append(record.with_asset_ref(KnownAsset(asset_id=owner)))
        elif record.is_resolved and record.uuid not in ambiguous:
            reconciled.append(record)
        else:
            reconciled.append(record.with_asset_ref(UnresolvedAsset()))
            unresolved += 1

    if unresolved:
        _logger.warning(
            "%d of %d interventions could not be attributed to an asset",
            unresolved,
            len(reconciled),
        )
        warnings.warn(
            f"{unresolved} intervention(s) have no known owner and use the sentinel asset id",
            ReconciliationWarning,
            stacklevel=2,
        )
    return ReconcileResult(records=tuple(reconciled), unresolved=unresolved)


def filter_by_asset(records: Iterable[InterventionRecord], asset_id: str) -> list[InterventionRecord]:
    """Records owned by *asset_id*.

    Querying the sentinel id yields only unresolved records; querying a
    concrete id never yields unresolved ones.
    """
    if asset_id == SENTINEL_ASSET_ID:
        return [record for record in records if not record.is_resolved]
    return [record for record in records if record.is_resolved and record.asset_id == asset_id]


def group_by_type(
    records: Iterable[InterventionRecord],
    intervention_type: InterventionType | str,
) -> list[InterventionRecord]:
    wanted = InterventionType(intervention_type)
    return [record for record in records if record.intervention_type is wanted]


def with_location(records: Iterable[InterventionRecord]) -> list[InterventionRecord]:
    return [record for record in records if record.location is not None]


def installation_status(records: Sequence[InterventionRecord]) -> InstallStatus:
    """Installed iff an install event exists with no later decommission.

    Events are ordered by ``created_at``; records without a timestamp sort
    first and ties keep their list order.
    """
    ordered = sorted(records, key=lambda record: record.created_at or _EPOCH)
    installed = False
    for record in ordered:
        if record.intervention_type is InterventionType.INSTALL:
            installed = True
        elif record.intervention_type is InterventionType.DECOMMISSION:
            installed = False
    return InstallStatus.INSTALLED if installed else InstallStatus.NOT_INSTALLED


def permitted_intervention_types(status: InstallStatus) -> tuple[InterventionType, ...]:
    """Intervention types offered for an asset in *status*.

    An asset that is not installed can only be installed; an installed
    one accepts anything except another installation.
    """
    if status is InstallStatus.INSTALLED:
        return tuple(kind for kind in InterventionType if kind is not InterventionType.INSTALL)
    return (InterventionType.INSTALL,)


class Reconciler:
    """Reconciled view over the asset and intervention caches."""

    def __init__(
        self,
        assets: CollectionCache[Asset],
        interventions: CollectionCache[InterventionRecord],
    ) -> None:
        self._assets = assets
        self._interventions = interventions

    async def interventions(self, force_refresh: bool = False) -> tuple[InterventionRecord, ...]:
        # The index must be complete before any lookup, so assets come first.
        assets = await self._assets.get(force_refresh)
        records = await self._interventions.get(force_refresh)
        return reconcile_interventions(records, assets).records

    async def interventions_for_asset(
        self,
        asset_id: str,
        *,
        force_refresh: bool = False,
    ) -> list[InterventionRecord]:
        return filter_by_asset(await self.interventions(force_refresh), asset_id)

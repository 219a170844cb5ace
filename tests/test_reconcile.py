from __future__ import annotations

import warnings
from typing import Any

import pytest

from pycertplus._constants import SENTINEL_ASSET_ID
from pycertplus.cache import CollectionCache
from pycertplus.exceptions import ReconciliationWarning
from pycertplus.models import Asset, InstallStatus, InterventionRecord, InterventionType, KnownAsset
from pycertplus.reconcile import (
    Reconciler,
    build_intervention_index,
    filter_by_asset,
    group_by_type,
    installation_status,
    permitted_intervention_types,
    reconcile_interventions,
    with_location,
)


def _record(uuid: str, kind: str = "maintenance", created_at: str | None = None, **extra: Any) -> InterventionRecord:
    return InterventionRecord.model_validate(
        {"uuid": uuid, "intervention_type": kind, "created_at": created_at, **extra}
    )


def _asset(uuid: str, *nested: str) -> Asset:
    return Asset.model_validate(
        {"uuid": uuid, "qr_code": f"QR-{uuid}", "maintenances": [{"uuid": m} for m in nested]}
    )


ASSETS = (_asset("asset-a", "m-1", "m-2"), _asset("asset-b", "m-3"))


def test_index_maps_every_nested_intervention() -> None:
    assert build_intervention_index(ASSETS) == {"m-1": "asset-a", "m-2": "asset-a", "m-3": "asset-b"}


def test_index_drops_interventions_claimed_by_two_assets() -> None:
    index = build_intervention_index([_asset("asset-a", "m-1", "m-x"), _asset("asset-b", "m-x")])
    assert index == {"m-1": "asset-a"}


def test_reconcile_attributes_owners_and_flags_orphans() -> None:
    records = [_record("m-1"), _record("m-3"), _record("orphan")]

    with pytest.warns(ReconciliationWarning):
        result = reconcile_interventions(records, ASSETS)

    assert result.unresolved == 1
    assert [r.asset_id for r in result.records] == ["asset-a", "asset-b", SENTINEL_ASSET_ID]
    assert all(r.asset_ref is not None for r in result.records)


def test_reconcile_keeps_known_owner_missing_from_index() -> None:
    records = [_record("m-new", product_uuid="asset-c")]

    with warnings.catch_warnings():
        warnings.simplefilter("error", ReconciliationWarning)
        result = reconcile_interventions(records, ASSETS)

    assert result.unresolved == 0
    assert result.records[0].asset_ref == KnownAsset(asset_id="asset-c")


def test_reconcile_prefers_index_over_payload_owner() -> None:
    result = reconcile_interventions([_record("m-3", product_uuid="asset-a")], ASSETS)
    assert result.records[0].asset_id == "asset-b"


def test_reconcile_leaves_ambiguous_record_unresolved_despite_payload_owner() -> None:
    assets = [_asset("asset-a", "m-x"), _asset("asset-b", "m-x")]

    with pytest.warns(ReconciliationWarning):
        result = reconcile_interventions([_record("m-x", product_uuid="asset-a")], assets)

    assert result.unresolved == 1
    assert not result.records[0].is_resolved
    assert result.records[0].asset_id == SENTINEL_ASSET_ID
    assert filter_by_asset(result.records, "asset-a") == []


def test_filter_by_asset_never_mixes_sentinel_and_concrete_ids() -> None:
    with pytest.warns(ReconciliationWarning):
        records = reconcile_interventions([_record("m-1"), _record("orphan"), _record("m-2")], ASSETS).records

    assert [r.uuid for r in filter_by_asset(records, "asset-a")] == ["m-1", "m-2"]
    assert [r.uuid for r in filter_by_asset(records, SENTINEL_ASSET_ID)] == ["orphan"]
    assert filter_by_asset(records, "asset-b") == []


def test_installed_with_install_and_no_decommission() -> None:
    records = [_record("1", "installation"), _record("2", "maintenance")]
    assert installation_status(records) is InstallStatus.INSTALLED


def test_not_installed_after_later_decommission() -> None:
    records = [
        _record("1", "installation", "2024-01-01T00:00:00Z"),
        _record("2", "dismissal", "2024-02-01T00:00:00Z"),
    ]
    assert installation_status(records) is InstallStatus.NOT_INSTALLED


def test_not_installed_without_interventions() -> None:
    assert installation_status([]) is InstallStatus.NOT_INSTALLED


def test_status_follows_timestamps_not_list_order() -> None:
    reinstalled = [
        _record("3", "installation", "2024-03-01T00:00:00Z"),
        _record("1", "installation", "2024-01-01T00:00:00Z"),
        _record("2", "dismissal", "2024-02-01T00:00:00Z"),
    ]
    assert installation_status(reinstalled) is InstallStatus.INSTALLED

    decommissioned = [
        _record("2", "dismissal", "2024-02-01T00:00:00Z"),
        _record("1", "installation", "2024-01-01T00:00:00Z"),
    ]
    assert installation_status(decommissioned) is InstallStatus.NOT_INSTALLED


def test_permitted_types_depend_on_status() -> None:
    assert permitted_intervention_types(InstallStatus.NOT_INSTALLED) == (InterventionType.INSTALL,)
    installed = permitted_intervention_types(InstallStatus.INSTALLED)
    assert InterventionType.INSTALL not in installed
    assert InterventionType.DECOMMISSION in installed


def test_group_by_type_and_with_location() -> None:
    records = [
        _record("1", "installation", gps_lat=45.0, gps_lng=9.0),
        _record("2", "verification"),
        _record("3", "verifica", gps_lat=45.1, gps_lng=9.1),
    ]
    assert [r.uuid for r in group_by_type(records, "verification")] == ["2", "3"]
    assert [r.uuid for r in with_location(records)] == ["1", "3"]


@pytest.mark.asyncio
async def test_reconciler_fetches_assets_before_interventions() -> None:
    order: list[str] = []

    async def fetch_assets() -> tuple[Asset, ...]:
        order.append("assets")
        return ASSETS

    async def fetch_interventions() -> tuple[InterventionRecord, ...]:
        order.append("interventions")
        return (_record("m-1"), _record("m-3"))

    reconciler = Reconciler(
        CollectionCache(fetch_assets, name="assets"),
        CollectionCache(fetch_interventions, name="interventions"),
    )

    records = await reconciler.interventions_for_asset("asset-b")

    assert order == ["assets", "interventions"]
    assert [r.uuid for r in records] == ["m-3"]
    assert records[0].asset_ref == KnownAsset(asset_id="asset-b")

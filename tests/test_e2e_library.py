from __future__ import annotations

# pylint: disable=redefined-outer-name

import copy
from dataclasses import dataclass, field
from typing import Any

import pytest

from pycertplus._constants import SENTINEL_ASSET_ID
from pycertplus.client import CertClient
from pycertplus.config import CertConfig
from pycertplus.exceptions import (
    AssetConflictError,
    AssetNotFoundError,
    CertApiError,
    CertError,
    CertTransportError,
    DigitLimitError,
    ReconciliationWarning,
    StaleDataWarning,
)
from pycertplus.models import AssetDraft, InterventionDraft, InterventionType
from pycertplus.scan import OutcomeKind, ScanOperation, ScanOrchestrator, ScanState


@dataclass
class FakeCertService:
    """In-memory stand-in for the inventory service, at the envelope-payload level."""

    products: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "uuid": "asset-1",
                "qr_code": "QRY59331623016",
                "signal_type": "permanent",
                "signal_category": "Pericolo",
                "maintenances": [
                    {
                        "uuid": "m-1",
                        "intervention_type": "installation",
                        "gps_lat": 45.464211,
                        "gps_lng": 9.19,
                        "created_at": "2024-01-10T08:00:00Z",
                    }
                ],
            },
            {"uuid": "asset-2", "qr_code": "QR-EMPTY", "maintenances": []},
        ]
    )
    orphans: list[dict[str, Any]] = field(
        default_factory=lambda: [{"uuid": "m-orphan", "intervention_type": "maintenance"}]
    )
    calls: dict[str, int] = field(default_factory=dict)
    requests: list[tuple[str, str, dict[str, Any] | None]] = field(default_factory=list)
    fail_next: dict[str, Exception] = field(default_factory=dict)
    broken_listing: bool = False

    def _record_call(self, key: str) -> None:
        self.calls[key] = self.calls.get(key, 0) + 1

    async def handle(self, method: str, endpoint: str, json_body: dict[str, Any] | None) -> Any:
        key = f"{method} {endpoint}"
        self._record_call(key)
        self.requests.append((method, endpoint, copy.deepcopy(json_body)))
        if key in self.fail_next:
            raise self.fail_next.pop(key)

        if key == "GET /product":
            if self.broken_listing:
                return {"items": []}
            return {"data": copy.deepcopy(self.products)}
        if key == "GET /maintenance":
            nested = [dict(m) for p in self.products for m in p["maintenances"]]
            return {"data": nested + copy.deepcopy(self.orphans)}
        if key == "POST /product/create":
            assert json_body is not None
            uuid = f"asset-{len(self.products) + 1}"
            self.products.append({**json_body, "uuid": uuid, "maintenances": []})
            return {"uuid": uuid, "signal_type": json_body["signal_type"], "asset_id": 42, "metadata_cid": "bafy"}
        if key == "POST /maintenance/create":
            assert json_body is not None
            owner = next(p for p in self.products if p["uuid"] == json_body["product_uuid"])
            uuid = f"m-{sum(len(p['maintenances']) for p in self.products) + 1}"
            record = {k: v for k, v in json_body.items() if k != "product_uuid"}
            owner["maintenances"].append({**record, "uuid": uuid, "created_at": "2024-06-01T09:30:00Z"})
            return {
                "uuid": uuid,
                "intervention_type": json_body["intervention_type"],
                "asset_id": 7,
                "metadata_cid": "bafy-m",
                "transaction_id": "0xfeed",
            }
        raise AssertionError(f"Unexpected request {key}")


@pytest.fixture
def config() -> CertConfig:
    return CertConfig(
        api_key="test-key",
        base_url="http://inventory.test",
        company_id="acme",
        user_id="operator-1",
    )


@pytest.fixture
def service(monkeypatch: pytest.MonkeyPatch) -> FakeCertService:
    fake = FakeCertService()

    async def fake_request(
        _self: Any,
        method: str,
        endpoint: str,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        return await fake.handle(method, endpoint, json_body)

    monkeypatch.setattr("pycertplus._transport.HttpTransport.request", fake_request)
    return fake


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_reads_are_cached_and_reconciled(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        assets = await client.get_assets()
        assert [a.uuid for a in assets] == ["asset-1", "asset-2"]
        await client.get_assets()
        assert service.calls["GET /product"] == 1

        asset = await client.find_asset_by_tag("https://host/public/product/QRY59331623016")
        assert asset is not None
        assert asset.uuid == "asset-1"
        assert asset.location == (45.464211, 9.19)

        with pytest.warns(ReconciliationWarning):
            records = await client.get_interventions()
        owners = {r.uuid: r.asset_id for r in records}
        assert owners == {"m-1": "asset-1", "m-orphan": SENTINEL_ASSET_ID}

        with pytest.warns(ReconciliationWarning):
            history = await client.get_interventions_by_asset("asset-1")
        assert [r.uuid for r in history] == ["m-1"]

        located = await client.get_assets_with_location()
        assert [a.uuid for a in located] == ["asset-1"]

        assert (await client.get_asset("asset-2")).qr_code == "QR-EMPTY"
        with pytest.raises(AssetNotFoundError):
            await client.get_asset("asset-404")

        status = client.cache_status()
        assert status["assets"].count == 2
        assert status["interventions"].valid is True
        client.clear_cache()
        assert client.cache_status()["assets"].cached is False


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_intervention_write_invalidates_cache(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        with pytest.warns(ReconciliationWarning):
            await client.get_interventions()
        assert service.calls["GET /maintenance"] == 1

        record = await client.create_intervention(
            "asset-1",
            InterventionDraft(intervention_type="verifica", gps_lat=45.4642111, gps_lng=9.1900004, reason="yearly"),
        )

        method, endpoint, body = service.requests[-1]
        assert (method, endpoint) == ("POST", "/maintenance/create")
        assert body is not None
        assert body["gps_lat"] == "45.464211"
        assert body["gps_lng"] == "9.190000"
        assert body["intervention_type"] == "verification"
        assert body["company_id"] == "acme"
        assert body["certificate_number"].startswith("CERT-")
        assert record.asset_id == "asset-1"
        assert record.intervention_type is InterventionType.VERIFY
        assert record.raw["transaction_id"] == "0xfeed"

        with pytest.warns(ReconciliationWarning):
            records = await client.get_interventions()
        assert service.calls["GET /maintenance"] == 2
        assert record.uuid in {r.uuid for r in records if r.asset_id == "asset-1"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_invalid_coordinates_never_reach_the_service(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        with pytest.raises(DigitLimitError):
            await client.create_intervention("asset-1", InterventionDraft(gps_lat=1234.5, gps_lng=9.0))
    assert "POST /maintenance/create" not in service.calls


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_create_asset_and_conflict(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        created = await client.create_asset(
            AssetDraft(qr_code="QR-NEW", signal_type="temporary - Obbligo", support_thickness=1.5)
        )
        assert created.uuid == "asset-3"
        assert created.signal_category == "Obbligo"
        assert created.ledger_asset_id == 42
        body = service.requests[-1][2]
        assert body is not None
        assert body["created_by"] == "operator-1"
        assert body["support_thickness"] == "1.5"

        assert (await client.find_asset_by_tag("/product/QR-NEW")) is not None

        with pytest.raises(AssetConflictError):
            await client.create_asset(AssetDraft(qr_code="QR-NEW"))
    assert service.calls["POST /product/create"] == 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_transport_failure_falls_back_to_snapshot(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        await client.get_assets()
        service.fail_next["GET /product"] = CertTransportError("HTTP 503", status_code=503, endpoint="/product")

        with pytest.warns(StaleDataWarning):
            assets = await client.get_assets(force_refresh=True)

        assert len(assets) == 2


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_unreadable_listing_without_snapshot_raises(config: CertConfig, service: FakeCertService) -> None:
    service.broken_listing = True
    async with CertClient(config) as client:
        with pytest.raises(CertApiError):
            await client.get_assets()


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_client_requires_context_manager(config: CertConfig, service: FakeCertService) -> None:
    client = CertClient(config)
    with pytest.raises(CertError):
        await client.get_assets()


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_scan_workflow_against_client(config: CertConfig, service: FakeCertService) -> None:
    async with CertClient(config) as client:
        orchestrator = ScanOrchestrator(client)
        orchestrator.select_operation(ScanOperation.ADD_INTERVENTION)

        with pytest.warns(ReconciliationWarning):
            opened = await orchestrator.scan("https://host/public/product/QRY59331623016")
        assert opened.kind is OutcomeKind.OPENED
        assert InterventionType.INSTALL not in orchestrator.session.permitted_types

        done = await orchestrator.submit_intervention(
            InterventionDraft(intervention_type="dismissione", gps_lat=45.5, gps_lng=9.2)
        )
        assert done.kind is OutcomeKind.COMPLETED
        assert orchestrator.state is ScanState.IDLE

        orchestrator.select_operation(ScanOperation.ADD_INTERVENTION)
        with pytest.warns(ReconciliationWarning):
            await orchestrator.scan("QRY59331623016")
        assert orchestrator.session.permitted_types == (InterventionType.INSTALL,)

        orchestrator.cancel()
        orchestrator.select_operation(ScanOperation.VIEW)
        missing = await orchestrator.scan("QR-UNKNOWN")
        assert missing.kind is OutcomeKind.NOT_FOUND
        assert service.calls["GET /product"] == 3

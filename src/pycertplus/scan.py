"""Scan-driven workflow state machine.

A field operator picks an operation (view, add an intervention, create
an asset), then scans a tag. :class:`ScanOrchestrator` resolves the tag
against the asset snapshot, branches on the operation, and tracks which
form ("modal") is open until the workflow completes or is cancelled.

State changes only happen through :meth:`ScanOrchestrator._transition`,
which enforces the table below::

    IDLE         -> RESOLVING
    RESOLVING    -> FOUND | NOT_FOUND | IDLE
    FOUND        -> VIEWING | INTERVIEWING | IDLE
    NOT_FOUND    -> CREATING | IDLE
    VIEWING      -> IDLE
    INTERVIEWING -> IDLE
    CREATING     -> IDLE

Expected failures (unknown tag, duplicate tag, invalid input, remote
errors) are reported through :class:`ScanOutcome` rather than raised.
Only calls that make no sense in the current state raise
:class:`~pycertplus.exceptions.InvalidTransitionError`.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import StrEnum
from typing import Any, Protocol

from pycertplus.exceptions import (
    AssetConflictError,
    AssetNotFoundError,
    CertError,
    CertValidationError,
    InvalidTransitionError,
    TransientFetchError,
)
from pycertplus.models._base import InstallStatus, InterventionType
from pycertplus.models.asset import Asset
from pycertplus.models.intervention import InterventionRecord
from pycertplus.models.requests import AssetDraft, InterventionDraft
from pycertplus.reconcile import installation_status, permitted_intervention_types
from pycertplus.tags import extract_tag

_logger = logging.getLogger(__name__)


class ScanState(StrEnum):
    IDLE = "idle"
    RESOLVING = "resolving"
    FOUND = "found"
    NOT_FOUND = "not_found"
    VIEWING = "viewing"
    INTERVIEWING = "interviewing"
    CREATING = "creating"


class ScanOperation(StrEnum):
    VIEW = "view"
    ADD_INTERVENTION = "add_intervention"
    CREATE = "create"


class ModalId(StrEnum):
    ASSET_VIEW = "asset_view"
    INTERVENTION_OPTIONS = "intervention_options"
    ASSET_FORM = "asset_form"


class OutcomeKind(StrEnum):
    IGNORED = "ignored"
    """The call was dropped (busy, nothing selected, or empty scan)."""
    OPENED = "opened"
    """The tag resolved and a form was opened."""
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"
    INVALID = "invalid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISCARDED = "discarded"
    """The orchestrator was disposed while the step was suspended."""


_TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.RESOLVING}),
    ScanState.RESOLVING: frozenset({ScanState.FOUND, ScanState.NOT_FOUND, ScanState.IDLE}),
    ScanState.FOUND: frozenset({ScanState.VIEWING, ScanState.INTERVIEWING, ScanState.IDLE}),
    ScanState.NOT_FOUND: frozenset({ScanState.CREATING, ScanState.IDLE}),
    ScanState.VIEWING: frozenset({ScanState.IDLE}),
    ScanState.INTERVIEWING: frozenset({ScanState.IDLE}),
    ScanState.CREATING: frozenset({ScanState.IDLE}),
}

_MODAL_STATES: dict[ModalId, ScanState] = {
    ModalId.ASSET_VIEW: ScanState.VIEWING,
    ModalId.INTERVENTION_OPTIONS: ScanState.INTERVIEWING,
    ModalId.ASSET_FORM: ScanState.CREATING,
}


@dataclasses.dataclass(frozen=True)
class ScanSession:
    """What is known about the scan in progress."""

    operation: ScanOperation | None = None
    raw: str = ""
    tag: str = ""
    asset: Asset | None = None
    history: tuple[InterventionRecord, ...] = ()
    install_status: InstallStatus | None = None
    permitted_types: tuple[InterventionType, ...] = ()
    modals: frozenset[ModalId] = frozenset()


@dataclasses.dataclass(frozen=True)
class ScanOutcome:
    kind: OutcomeKind
    state: ScanState
    session: ScanSession
    asset: Asset | None = None
    record: InterventionRecord | None = None
    error: CertError | None = None
    message: str = ""


class ScanBackend(Protocol):
    """Operations the orchestrator needs; :class:`pycertplus.client.CertClient` provides them."""

    async def find_asset_by_tag(self, raw: str, *, force_refresh: bool = False) -> Asset | None:
        ...

    async def get_interventions_by_asset(
        self,
        asset_id: str,
        *,
        force_refresh: bool = False,
    ) -> list[InterventionRecord]:
        ...

    async def create_intervention(self, asset_id: str, draft: InterventionDraft) -> InterventionRecord:
        ...

    async def create_asset(self, draft: AssetDraft) -> Asset:
        ...


class ScanOrchestrator:
    """Drive one operator's scan workflow against a :class:`ScanBackend`.

    Not thread-safe; meant for a single asyncio task at a time. A second
    :meth:`scan` while one is resolving is ignored.

    Every reset or newly selected operation starts a new session epoch.
    A step that resumes after its epoch has ended reports a
    ``CANCELLED`` outcome (or the created record, for writes) and leaves
    the current session untouched.
    """

    def __init__(self, backend: ScanBackend) -> None:
        self._backend = backend
        self._state = ScanState.IDLE
        self._session = ScanSession()
        self._epoch = 0
        self._submitting: int | None = None
        self._disposed = False

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def session(self) -> ScanSession:
        return self._session

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def _transition(self, target: ScanState, **changes: Any) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidTransitionError(f"Cannot move from {self._state} to {target}")
        _logger.debug("Scan state %s -> %s", self._state, target)
        self._state = target
        if changes:
            self._session = dataclasses.replace(self._session, **changes)

    def _reset(self) -> None:
        """Return to IDLE, keeping only the selected operation."""
        if self._state is not ScanState.IDLE:
            self._transition(ScanState.IDLE)
        self._session = ScanSession(operation=self._session.operation)
        self._epoch += 1

    def _outcome(self, kind: OutcomeKind, **kwargs: Any) -> ScanOutcome:
        return ScanOutcome(kind=kind, state=self._state, session=self._session, **kwargs)

    def _terminal(self, kind: OutcomeKind, *, error: CertError | None = None, message: str = "") -> ScanOutcome:
        asset = self._session.asset
        self._reset()
        return self._outcome(kind, asset=asset, error=error, message=message or (str(error) if error else ""))

    def _discarded(self) -> ScanOutcome:
        return ScanOutcome(kind=OutcomeKind.DISCARDED, state=self._state, session=self._session)

    def _stale(self, epoch: int) -> ScanOutcome | None:
        """Outcome for a step resuming after disposal or after its session ended."""
        if self._disposed:
            return self._discarded()
        if epoch != self._epoch:
            _logger.debug("Dropping result of abandoned scan session %d", epoch)
            return self._outcome(OutcomeKind.CANCELLED, message="Workflow was cancelled while the step was running")
        return None

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def select_operation(self, operation: ScanOperation | str) -> ScanSession:
        """Choose what the next scan does.

        Only allowed while idle. Selecting clears any leftover session
        data, so the same tag can be scanned again for another operation.
        """
        if self._disposed:
            raise InvalidTransitionError("Scan orchestrator has been disposed")
        if self._state is not ScanState.IDLE:
            raise InvalidTransitionError(f"Cannot change operation while {self._state}")
        self._session = ScanSession(operation=ScanOperation(operation))
        self._epoch += 1
        return self._session

    async def scan(self, raw: str) -> ScanOutcome:
        """Resolve a scanned payload and branch on the selected operation.

        Errors other than :class:`~pycertplus.exceptions.TransientFetchError`
        propagate, after the session has been returned to IDLE.
        """
        if self._disposed:
            return self._discarded()
        if self._state is not ScanState.IDLE or self._session.operation is None:
            return self._outcome(OutcomeKind.IGNORED, message=f"Scan ignored while {self._state}")
        tag = extract_tag(raw)
        if not tag:
            return self._outcome(OutcomeKind.IGNORED, message="Empty scan")

        # Entered before the first await: concurrent scans see RESOLVING and are ignored.
        self._transition(ScanState.RESOLVING, raw=raw, tag=tag)
        epoch = self._epoch
        try:
            return await self._resolve(raw, tag, epoch)
        except BaseException:
            if not self._disposed and epoch == self._epoch:
                _logger.debug("Scan of tag %s aborted in state %s", tag, self._state)
                self._reset()
            raise

    async def _resolve(self, raw: str, tag: str, epoch: int) -> ScanOutcome:
        try:
            asset = await self._backend.find_asset_by_tag(raw)
            stale = self._stale(epoch)
            if stale is not None:
                return stale
            if asset is None:
                _logger.debug("Tag %s not in snapshot, forcing one refresh", tag)
                asset = await self._backend.find_asset_by_tag(raw, force_refresh=True)
        except TransientFetchError as exc:
            stale = self._stale(epoch)
            if stale is not None:
                return stale
            _logger.debug("Resolving tag %s failed: %s", tag, exc)
            return self._terminal(OutcomeKind.FAILED, error=exc)
        stale = self._stale(epoch)
        if stale is not None:
            return stale

        if asset is None:
            self._transition(ScanState.NOT_FOUND)
            return self._on_not_found(tag)
        self._transition(ScanState.FOUND, asset=asset)
        return await self._on_found(asset, epoch)

    async def _on_found(self, asset: Asset, epoch: int) -> ScanOutcome:
        operation = self._session.operation
        if operation is ScanOperation.VIEW:
            self._transition(ScanState.VIEWING, modals=frozenset({ModalId.ASSET_VIEW}))
            return self._outcome(OutcomeKind.OPENED, asset=asset)

        if operation is ScanOperation.CREATE:
            error = AssetConflictError(
                f"Tag {self._session.tag!r} already belongs to asset {asset.uuid}",
                tag=self._session.tag,
                asset_uuid=asset.uuid,
            )
            return self._terminal(OutcomeKind.CONFLICT, error=error)

        try:
            history = await self._backend.get_interventions_by_asset(asset.uuid)
        except TransientFetchError as exc:
            stale = self._stale(epoch)
            if stale is not None:
                return stale
            return self._terminal(OutcomeKind.FAILED, error=exc)
        stale = self._stale(epoch)
        if stale is not None:
            return stale

        status = installation_status(history)
        self._transition(
            ScanState.INTERVIEWING,
            history=tuple(history),
            install_status=status,
            permitted_types=permitted_intervention_types(status),
            modals=frozenset({ModalId.INTERVENTION_OPTIONS}),
        )
        return self._outcome(OutcomeKind.OPENED, asset=asset)

    def _on_not_found(self, tag: str) -> ScanOutcome:
        if self._session.operation is ScanOperation.CREATE:
            self._transition(ScanState.CREATING, modals=frozenset({ModalId.ASSET_FORM}))
            return self._outcome(OutcomeKind.OPENED)
        error = AssetNotFoundError(f"No asset matches tag {tag!r}", tag=tag)
        return self._terminal(OutcomeKind.NOT_FOUND, error=error)

    async def submit_intervention(self, draft: InterventionDraft) -> ScanOutcome:
        """Record an intervention on the resolved asset.

        Invalid input and remote failures keep the form open; success
        returns to IDLE with the created record. A write that finishes
        after its form was closed still reports ``COMPLETED`` but leaves
        the current session alone.
        """
        if self._disposed:
            return self._discarded()
        self._require_state(ScanState.INTERVIEWING)
        if self._submitting == self._epoch:
            return self._outcome(OutcomeKind.IGNORED, message="A submission is already in progress")
        asset = self._session.asset
        if asset is None:
            raise InvalidTransitionError("No resolved asset for this submission")

        try:
            draft.validated_location()
            if draft.intervention_type not in self._session.permitted_types:
                raise CertValidationError(
                    f"{draft.intervention_type} is not allowed for an asset that is {self._session.install_status}",
                    field="intervention_type",
                )
        except CertValidationError as exc:
            return self._outcome(OutcomeKind.INVALID, asset=asset, error=exc, message=str(exc))

        epoch = self._epoch
        self._submitting = epoch
        try:
            record = await self._backend.create_intervention(asset.uuid, draft)
        except CertValidationError as exc:
            return self._keep_open(OutcomeKind.INVALID, asset, exc)
        except TransientFetchError as exc:
            return self._keep_open(OutcomeKind.FAILED, asset, exc)
        finally:
            if self._submitting == epoch:
                self._submitting = None
        return self._written(epoch, asset=asset, record=record)

    async def submit_asset(self, draft: AssetDraft) -> ScanOutcome:
        """Create an asset for the scanned tag.

        The scanned tag is used when the draft carries none.
        """
        if self._disposed:
            return self._discarded()
        self._require_state(ScanState.CREATING)
        if self._submitting == self._epoch:
            return self._outcome(OutcomeKind.IGNORED, message="A submission is already in progress")
        if not draft.qr_code:
            draft = draft.model_copy(update={"qr_code": self._session.tag})

        try:
            draft.validated_location()
        except CertValidationError as exc:
            return self._outcome(OutcomeKind.INVALID, error=exc, message=str(exc))

        epoch = self._epoch
        self._submitting = epoch
        try:
            asset = await self._backend.create_asset(draft)
        except AssetConflictError as exc:
            return self._keep_open(OutcomeKind.CONFLICT, None, exc)
        except CertValidationError as exc:
            return self._keep_open(OutcomeKind.INVALID, None, exc)
        except TransientFetchError as exc:
            return self._keep_open(OutcomeKind.FAILED, None, exc)
        finally:
            if self._submitting == epoch:
                self._submitting = None
        return self._written(epoch, asset=asset)

    def _written(self, epoch: int, *, asset: Asset, record: InterventionRecord | None = None) -> ScanOutcome:
        if self._disposed:
            return self._discarded()
        if epoch == self._epoch:
            self._reset()
        else:
            _logger.debug("Write for abandoned scan session %d completed", epoch)
        return self._outcome(OutcomeKind.COMPLETED, asset=asset, record=record)

    def _keep_open(self, kind: OutcomeKind, asset: Asset | None, error: CertError) -> ScanOutcome:
        if self._disposed:
            return self._discarded()
        _logger.debug("Submission from %s rejected: %s", self._state, error)
        return self._outcome(kind, asset=asset, error=error, message=str(error))

    def _require_state(self, expected: ScanState) -> None:
        if self._state is not expected:
            raise InvalidTransitionError(f"Expected {expected}, current state is {self._state}")

    def close_modal(self, modal: ModalId | str) -> ScanOutcome:
        """Close one form; closing the last one ends the workflow."""
        if self._disposed:
            return self._discarded()
        modal = ModalId(modal)
        if modal not in self._session.modals:
            return self._outcome(OutcomeKind.IGNORED, message=f"{modal} is not open")
        remaining = self._session.modals - {modal}
        if remaining:
            self._session = dataclasses.replace(self._session, modals=remaining)
            return self._outcome(OutcomeKind.IGNORED, message=f"{modal} closed")
        if self._state is not _MODAL_STATES[modal]:
            raise InvalidTransitionError(f"{modal} does not belong to state {self._state}")
        return self._terminal(OutcomeKind.CANCELLED, message=f"{modal} closed")

    def cancel(self) -> ScanOutcome:
        """Abandon the current workflow from any form state.

        Ignored while resolving and while a submission is in flight.
        """
        if self._disposed:
            return self._discarded()
        if self._state in (ScanState.IDLE, ScanState.RESOLVING):
            return self._outcome(OutcomeKind.IGNORED, message=f"Nothing to cancel while {self._state}")
        if self._submitting == self._epoch:
            return self._outcome(OutcomeKind.IGNORED, message="A submission is in progress")
        return self._terminal(OutcomeKind.CANCELLED)

    def dispose(self) -> None:
        """Detach from the backend; suspended steps resume as no-ops."""
        self._disposed = True
        _logger.debug("Scan orchestrator disposed in state %s", self._state)

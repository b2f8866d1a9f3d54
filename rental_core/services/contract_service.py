"""
Contract lifecycle service.

Every status change goes through `apply_transition`, which updates the
contract, appends the transition row and applies the room side effect in
the caller's session. The caller's unit of work decides when it commits.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..constants import EXPIRY_WINDOW_DAYS, TriggeredBy
from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract, ContractSignature, ContractStateTransition
from ..db.db_payment_models import Payment
from ..db.db_property_models import Room
from ..db.db_tenant_models import Tenant
from ..enums import BILLABLE_STATUSES, ROOM_HOLDING_STATUSES, ContractStatus
from ..exceptions import ConflictError, InvalidStateError, ValidationError, invalid_transition
from ..lifecycle import ROOM_STATUS_ON_CONTRACT_STATUS, is_valid_transition
from ..schemas.contract_schema import (
    ContractCreate,
    ContractDetail,
    ContractRead,
    ContractTransitionRead,
    ContractUpdate,
    ExpiringContract,
    RenewalTerms,
    SignatureRead,
)
from ..schemas.payment_schema import PaymentRead
from ..utils.crud_helpers import require_record
from ..utils.date_utils import days_until, to_date
from ..utils.logger import get_logger
from ..utils.validators import optional_text, require_non_negative, require_positive
from .base_service import SessionManagedService

CREATED_REASON = "Contract created"
RENEWED_REASON = "Contract renewed"
DOCUMENT_READY_REASON = "Document generated, ready for signatures"


def log_transition(
    session: Session,
    contract: Contract,
    from_state: ContractStatus,
    to_state: ContractStatus,
    reason: Optional[str],
    triggered_by: str,
    now: datetime,
) -> ContractStateTransition:
    row = ContractStateTransition(
        contract_id=contract.id,
        from_state=from_state,
        to_state=to_state,
        reason=reason,
        triggered_by=triggered_by,
        created_at=now,
    )
    session.add(row)
    return row


def apply_transition(
    session: Session,
    contract: Contract,
    target: ContractStatus,
    reason: Optional[str],
    triggered_by: str,
    now: datetime,
) -> ContractStateTransition:
    """
    Move a contract to `target` inside the given session.

    Updates the status, appends the transition row and sets the room status
    for targets listed in ROOM_STATUS_ON_CONTRACT_STATUS. Nothing is
    committed here.

    Raises:
        InvalidTransitionError: (current, target) is not an allowed edge
    """
    target = ContractStatus(target)
    current = ContractStatus(contract.status)
    if not is_valid_transition(current, target):
        raise invalid_transition("contract", current, target, contract_id=contract.id)

    contract.status = target
    row = log_transition(
        session,
        contract,
        current,
        target,
        reason or f"Status changed to {target.value}",
        triggered_by or TriggeredBy.SYSTEM.value,
        now,
    )

    room_status = ROOM_STATUS_ON_CONTRACT_STATUS.get(target)
    if room_status is not None:
        room = session.get(Room, contract.room_id)
        if room is not None:
            room.status = room_status

    session.flush()
    get_logger().info(
        "Contract status changed",
        extra={
            "contract_id": contract.id,
            "from_state": current.value,
            "to_state": target.value,
            "triggered_by": row.triggered_by,
        },
    )
    return row


def _check_terms(start_date: date, end_date: date, rent_amount: float, deposit: float) -> None:
    if end_date <= start_date:
        raise ValidationError(
            "End date must be after start date",
            field="end_date",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )
    require_positive(rent_amount, "rent_amount")
    require_non_negative(deposit, "deposit")


class ContractService(SessionManagedService):
    """Create, edit, renew and move lease contracts through their lifecycle."""

    @operation()
    @handle_service_errors()
    def create_contract(self, data: ContractCreate) -> ContractRead:
        """
        Create a DRAFT contract with its synthetic DRAFT -> DRAFT history row.

        Raises:
            NotFoundError: room or tenant does not exist
            ConflictError: the room already holds a live or pending contract
            ValidationError: bad date range or amounts
        """
        with self.transaction() as session:
            require_record(session, Room, data.room_id)
            require_record(session, Tenant, data.tenant_id)
            self._ensure_room_free(session, data.room_id)
            _check_terms(data.start_date, data.end_date, data.rent_amount, data.deposit)

            contract = Contract(
                room_id=data.room_id,
                tenant_id=data.tenant_id,
                start_date=data.start_date,
                end_date=data.end_date,
                rent_amount=data.rent_amount,
                deposit=data.deposit,
                status=ContractStatus.DRAFT,
                version=1,
                notes=optional_text(data.notes),
                created_at=self.now(),
            )
            session.add(contract)
            session.flush()
            log_transition(
                session,
                contract,
                ContractStatus.DRAFT,
                ContractStatus.DRAFT,
                CREATED_REASON,
                TriggeredBy.SYSTEM.value,
                self.now(),
            )
            session.flush()
            self.logger.info(
                "Created contract",
                extra={"contract_id": contract.id, "room_id": data.room_id},
            )
            return ContractRead.model_validate(contract)

    @operation()
    @handle_service_errors()
    def update_contract(self, contract_id: str, data: ContractUpdate) -> ContractRead:
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            if contract.status != ContractStatus.DRAFT:
                raise ValidationError(
                    "Only DRAFT contracts can be edited",
                    field="status",
                    contract_id=contract_id,
                    current_state=ContractStatus(contract.status).value,
                )

            start_date = data.start_date or contract.start_date
            end_date = data.end_date or contract.end_date
            rent_amount = data.rent_amount if data.rent_amount is not None else contract.rent_amount
            deposit = data.deposit if data.deposit is not None else contract.deposit
            _check_terms(start_date, end_date, rent_amount, deposit)

            contract.start_date = start_date
            contract.end_date = end_date
            contract.rent_amount = rent_amount
            contract.deposit = deposit
            if data.notes is not None:
                contract.notes = optional_text(data.notes)
            session.flush()
            return ContractRead.model_validate(contract)

    @operation()
    @handle_service_errors()
    def transition_status(
        self,
        contract_id: str,
        target_status: ContractStatus,
        reason: Optional[str] = None,
        triggered_by: str = TriggeredBy.SYSTEM.value,
    ) -> ContractRead:
        """
        Move a contract along one edge of the lifecycle.

        The status change, its history row and the room update commit together.

        Raises:
            NotFoundError: unknown contract
            InvalidTransitionError: the edge is not allowed; nothing is written
        """
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            apply_transition(session, contract, target_status, reason, triggered_by, self.now())
            return ContractRead.model_validate(contract)

    @operation()
    @handle_service_errors()
    def renew_contract(
        self,
        previous_contract_id: str,
        terms: RenewalTerms,
        triggered_by: str = TriggeredBy.SYSTEM.value,
    ) -> ContractRead:
        """
        Close out an ACTIVE or EXPIRING contract and open its successor as a DRAFT.

        The successor keeps room and tenant, bumps the version and points back
        at the previous contract.
        """
        with self.transaction() as session:
            previous = require_record(session, Contract, previous_contract_id)
            current = ContractStatus(previous.status)
            if current not in BILLABLE_STATUSES:
                raise InvalidStateError(
                    "Only ACTIVE or EXPIRING contracts can be renewed",
                    current_state=current.value,
                    contract_id=previous_contract_id,
                )
            _check_terms(terms.start_date, terms.end_date, terms.rent_amount, terms.deposit)

            now = self.now()
            # Renewal may start from ACTIVE, which has no table edge to RENEWED
            previous.status = ContractStatus.RENEWED
            log_transition(
                session, previous, current, ContractStatus.RENEWED, RENEWED_REASON, triggered_by, now
            )

            renewed = Contract(
                room_id=previous.room_id,
                tenant_id=previous.tenant_id,
                start_date=terms.start_date,
                end_date=terms.end_date,
                rent_amount=terms.rent_amount,
                deposit=terms.deposit,
                status=ContractStatus.DRAFT,
                version=previous.version + 1,
                previous_id=previous.id,
                notes=optional_text(terms.notes),
                created_at=now,
            )
            session.add(renewed)
            session.flush()
            log_transition(
                session,
                renewed,
                ContractStatus.DRAFT,
                ContractStatus.DRAFT,
                f"Renewed from contract v{previous.version}",
                triggered_by,
                now,
            )
            session.flush()
            self.logger.info(
                "Renewed contract",
                extra={
                    "previous_contract_id": previous.id,
                    "contract_id": renewed.id,
                    "version": renewed.version,
                },
            )
            return ContractRead.model_validate(renewed)

    @operation()
    @handle_service_errors()
    def delete_contract(self, contract_id: str) -> None:
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            if contract.status != ContractStatus.DRAFT:
                raise InvalidStateError(
                    "Only DRAFT contracts can be deleted",
                    current_state=ContractStatus(contract.status).value,
                    contract_id=contract_id,
                )
            session.query(ContractStateTransition).filter(
                ContractStateTransition.contract_id == contract_id
            ).delete(synchronize_session=False)
            session.query(ContractSignature).filter(
                ContractSignature.contract_id == contract_id
            ).delete(synchronize_session=False)
            session.delete(contract)
            self.logger.info("Deleted contract", extra={"contract_id": contract_id})

    @operation()
    @handle_service_errors()
    def list_contracts(
        self,
        status: Optional[ContractStatus] = None,
        room_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> List[ContractRead]:
        with self.transaction() as session:
            query = session.query(Contract)
            if status:
                query = query.filter(Contract.status == ContractStatus(status))
            if room_id:
                query = query.filter(Contract.room_id == room_id)
            if tenant_id:
                query = query.filter(Contract.tenant_id == tenant_id)
            contracts = query.order_by(Contract.created_at.desc()).all()
            return [ContractRead.model_validate(c) for c in contracts]

    @operation()
    @handle_service_errors()
    def get_contract(self, contract_id: str) -> ContractDetail:
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            transitions = (
                session.query(ContractStateTransition)
                .filter(ContractStateTransition.contract_id == contract_id)
                .order_by(ContractStateTransition.created_at.desc())
                .all()
            )
            payments = (
                session.query(Payment)
                .filter(Payment.contract_id == contract_id)
                .order_by(Payment.period_year.desc(), Payment.period_month.desc())
                .all()
            )
            renewal_ids = [
                row.id
                for row in session.query(Contract.id).filter(Contract.previous_id == contract_id)
            ]
            return ContractDetail(
                **ContractRead.model_validate(contract).model_dump(),
                room_number=contract.room.room_number,
                building_id=contract.room.building_id,
                building_name=contract.room.building.name,
                tenant_name=contract.tenant.name,
                tenant_phone=contract.tenant.phone,
                signatures=[SignatureRead.model_validate(s) for s in contract.signatures],
                transitions=[ContractTransitionRead.model_validate(t) for t in transitions],
                payments=[PaymentRead.model_validate(p) for p in payments],
                renewal_ids=renewal_ids,
            )

    @operation()
    @handle_service_errors()
    def find_expiring(self, days_ahead: int = EXPIRY_WINDOW_DAYS) -> List[ExpiringContract]:
        """ACTIVE or EXPIRING contracts ending within the window, soonest first."""
        now = self.now()
        today = to_date(now)
        with self.transaction() as session:
            contracts = (
                session.query(Contract)
                .filter(
                    Contract.status.in_(BILLABLE_STATUSES),
                    Contract.end_date >= today,
                    Contract.end_date <= today + timedelta(days=days_ahead),
                )
                .order_by(Contract.end_date)
                .all()
            )
            return [
                ExpiringContract(
                    contract_id=c.id,
                    room_number=c.room.room_number,
                    building_name=c.room.building.name,
                    tenant_name=c.tenant.name,
                    end_date=c.end_date,
                    days_remaining=days_until(c.end_date, now),
                )
                for c in contracts
            ]

    @operation()
    @handle_service_errors()
    def set_pdf_url(self, contract_id: str, pdf_url: str) -> ContractRead:
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            contract.pdf_url = pdf_url
            session.flush()
            return ContractRead.model_validate(contract)

    @operation()
    @handle_service_errors()
    def mark_document_generated(self, contract_id: str, pdf_url: str) -> ContractRead:
        """Store the rendered document and open a DRAFT contract for signatures."""
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            contract.pdf_url = pdf_url
            if contract.status == ContractStatus.DRAFT:
                apply_transition(
                    session,
                    contract,
                    ContractStatus.PENDING_SIGNATURE,
                    DOCUMENT_READY_REASON,
                    TriggeredBy.SYSTEM.value,
                    self.now(),
                )
            session.flush()
            return ContractRead.model_validate(contract)

    @operation()
    @handle_service_errors()
    def get_transitions(self, contract_id: str) -> List[ContractTransitionRead]:
        with self.transaction() as session:
            require_record(session, Contract, contract_id)
            rows = (
                session.query(ContractStateTransition)
                .filter(ContractStateTransition.contract_id == contract_id)
                .order_by(ContractStateTransition.created_at.desc())
                .all()
            )
            return [ContractTransitionRead.model_validate(row) for row in rows]

    @staticmethod
    def _ensure_room_free(session: Session, room_id: str) -> None:
        holding = (
            session.query(Contract)
            .filter(Contract.room_id == room_id, Contract.status.in_(ROOM_HOLDING_STATUSES))
            .first()
        )
        if holding is not None:
            raise ConflictError(
                "Room already has an active or pending contract",
                room_id=room_id,
                contract_id=holding.id,
                current_state=ContractStatus(holding.status).value,
            )

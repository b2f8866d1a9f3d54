"""
Signature gate for contracts awaiting signatures.

A contract needs one OWNER and one TENANT signature. The insert, the
both-signed check and the PENDING_SIGNATURE -> SIGNED transition share one
unit of work; a concurrent duplicate for the same role loses on the
(contract_id, signer_role) unique constraint and surfaces as a Conflict.
"""

from datetime import timedelta
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import TriggeredBy
from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract, ContractSignature
from ..enums import ContractStatus, SignerRole
from ..exceptions import InvalidStateError, duplicate
from ..schemas.contract_schema import SignatureCreate, SignatureRead, SignatureResult, SigningLinks
from ..utils.crud_helpers import require_record
from ..utils.hash_utils import calculate_data_hash, hashes_match
from ..utils.signing_token import build_signing_url, generate_signing_token
from ..utils.validators import optional_text, require_signature_payload, require_text
from .base_service import SessionManagedService
from .contract_service import apply_transition

SIGNABLE_STATUSES = (ContractStatus.PENDING_SIGNATURE, ContractStatus.SIGNED)
ALL_SIGNED_REASON = "All parties have signed"


def _signed_roles(session: Session, contract_id: str) -> set:
    rows = (
        session.query(ContractSignature.signer_role)
        .filter(ContractSignature.contract_id == contract_id)
        .all()
    )
    return {SignerRole(row.signer_role) for row in rows}


class SignatureService(SessionManagedService):
    """Record signatures and advance the contract once both parties have signed."""

    @operation()
    @handle_service_errors()
    def create_signature(self, data: SignatureCreate) -> SignatureResult:
        """
        Record one party's signature.

        Raises:
            NotFoundError: unknown contract
            InvalidStateError: contract is not PENDING_SIGNATURE or SIGNED
            ConflictError: this role has already signed
            ValidationError: payload is not an image data URL
        """
        role = SignerRole(data.signer_role)
        try:
            with self.transaction() as session:
                contract = require_record(session, Contract, data.contract_id)
                current = ContractStatus(contract.status)
                if current not in SIGNABLE_STATUSES:
                    raise InvalidStateError(
                        "Contract is not open for signatures",
                        current_state=current.value,
                        contract_id=contract.id,
                    )
                if role in _signed_roles(session, contract.id):
                    raise duplicate("ContractSignature", contract_id=contract.id, signer_role=role.value)

                signature_data = require_signature_payload(data.signature_data)
                signature = ContractSignature(
                    contract_id=contract.id,
                    signer_role=role,
                    signer_name=require_text(data.signer_name, "signer_name"),
                    signature_data=signature_data,
                    signature_hash=calculate_data_hash(signature_data),
                    ip_address=optional_text(data.ip_address),
                    signed_at=self.now(),
                )
                session.add(signature)
                session.flush()

                all_signed = _signed_roles(session, contract.id) >= set(SignerRole)
                if all_signed and current == ContractStatus.PENDING_SIGNATURE:
                    apply_transition(
                        session,
                        contract,
                        ContractStatus.SIGNED,
                        ALL_SIGNED_REASON,
                        TriggeredBy.SIGNATURE_SERVICE.value,
                        self.now(),
                    )

                self.logger.info(
                    "Recorded signature",
                    extra={
                        "contract_id": contract.id,
                        "signer_role": role.value,
                        "all_signed": all_signed,
                    },
                )
                return SignatureResult(
                    signature=SignatureRead.model_validate(signature), all_signed=all_signed
                )
        except IntegrityError as e:
            raise duplicate(
                "ContractSignature", cause=e, contract_id=data.contract_id, signer_role=role.value
            ) from e

    @operation()
    @handle_service_errors()
    def delete_signature(self, signature_id: str) -> None:
        with self.transaction() as session:
            signature = require_record(session, ContractSignature, signature_id)
            contract = session.get(Contract, signature.contract_id)
            if contract is not None and contract.status == ContractStatus.ACTIVE:
                raise InvalidStateError(
                    "Signatures of an active contract cannot be removed",
                    current_state=ContractStatus.ACTIVE.value,
                    contract_id=contract.id,
                    signature_id=signature_id,
                )
            session.delete(signature)

    @operation()
    @handle_service_errors()
    def verify_signature(self, signature_id: str) -> bool:
        """Recompute the payload digest and compare it with the stored one."""
        with self.transaction() as session:
            signature = session.get(ContractSignature, signature_id)
            if signature is None:
                return False
            return hashes_match(signature.signature_data, signature.signature_hash)

    @operation()
    @handle_service_errors()
    def list_signatures(self, contract_id: str) -> List[SignatureRead]:
        with self.transaction() as session:
            rows = (
                session.query(ContractSignature)
                .filter(ContractSignature.contract_id == contract_id)
                .order_by(ContractSignature.signed_at)
                .all()
            )
            return [SignatureRead.model_validate(row) for row in rows]

    @operation()
    @handle_service_errors()
    def has_all_signatures(self, contract_id: str) -> bool:
        with self.transaction() as session:
            return _signed_roles(session, contract_id) >= set(SignerRole)

    @operation()
    @handle_service_errors()
    def issue_signing_links(self, contract_id: str) -> SigningLinks:
        """Build one signing URL per role for a contract awaiting signatures."""
        with self.transaction() as session:
            contract = require_record(session, Contract, contract_id)
            if contract.status != ContractStatus.PENDING_SIGNATURE:
                raise InvalidStateError(
                    "Signing links are only issued for contracts pending signature",
                    current_state=ContractStatus(contract.status).value,
                    contract_id=contract_id,
                )

        now = self.now()
        security = self.config.security
        urls = {}
        for role in SignerRole:
            token = generate_signing_token(
                security.signing_secret,
                contract_id,
                role,
                now,
                security.signing_token_ttl_hours,
            )
            urls[role] = build_signing_url(self.config.app_url, contract_id, token)

        return SigningLinks(
            contract_id=contract_id,
            owner_url=urls[SignerRole.OWNER],
            tenant_url=urls[SignerRole.TENANT],
            expires_at=now + timedelta(hours=security.signing_token_ttl_hours),
        )

"""
Tenant (lessee) service with direct SQLAlchemy access.

Phone numbers and LINE user ids are unique; both are checked up front so
the caller gets a readable Conflict, and backed by storage constraints.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract
from ..db.db_tenant_models import Tenant
from ..enums import ROOM_HOLDING_STATUSES
from ..exceptions import ConflictError, duplicate
from ..schemas.tenant_schema import TenantCreate, TenantRead, TenantUpdate
from ..utils.crud_helpers import require_record
from ..utils.validators import normalize_phone, optional_text, require_text
from .base_service import SessionManagedService


def _tenant_read(tenant: Tenant, contract_count: int = 0) -> TenantRead:
    return TenantRead.model_validate(tenant).model_copy(update={"contract_count": contract_count})


class TenantService(SessionManagedService):
    """Manage tenants and the LINE accounts linked to them."""

    @operation()
    @handle_service_errors()
    def list_tenants(self) -> List[TenantRead]:
        with self.transaction() as session:
            rows = (
                session.query(Tenant, func.count(Contract.id))
                .outerjoin(Contract, Contract.tenant_id == Tenant.id)
                .group_by(Tenant.id)
                .order_by(Tenant.name)
                .all()
            )
            return [_tenant_read(tenant, count) for tenant, count in rows]

    @operation()
    @handle_service_errors()
    def get_tenant(self, tenant_id: str) -> TenantRead:
        with self.transaction() as session:
            tenant = require_record(session, Tenant, tenant_id)
            return _tenant_read(tenant, len(tenant.contracts))

    @operation()
    @handle_service_errors()
    def find_by_line_user_id(self, line_user_id: str) -> Optional[TenantRead]:
        with self.transaction() as session:
            tenant = session.query(Tenant).filter(Tenant.line_user_id == line_user_id).first()
            return _tenant_read(tenant) if tenant else None

    @operation()
    @handle_service_errors()
    def find_by_phone(self, phone: str) -> Optional[TenantRead]:
        with self.transaction() as session:
            tenant = session.query(Tenant).filter(Tenant.phone == phone.strip()).first()
            return _tenant_read(tenant) if tenant else None

    @operation()
    @handle_service_errors()
    def create_tenant(self, data: TenantCreate) -> TenantRead:
        """
        Create a new tenant.

        Raises:
            ValidationError: name missing or phone malformed
            ConflictError: phone or LINE user id already registered
        """
        name = require_text(data.name, "name")
        phone = normalize_phone(data.phone)
        line_user_id = optional_text(data.line_user_id)
        try:
            with self.transaction() as session:
                self._ensure_unique(session, phone=phone, line_user_id=line_user_id)
                tenant = Tenant(
                    name=name,
                    phone=phone,
                    email=optional_text(data.email),
                    id_card=optional_text(data.id_card),
                    line_user_id=line_user_id,
                    address=optional_text(data.address),
                )
                session.add(tenant)
                session.flush()
                self.logger.info("Created tenant", extra={"tenant_id": tenant.id})
                return _tenant_read(tenant)
        except IntegrityError as e:
            raise duplicate("Tenant", cause=e, phone=phone) from e

    @operation()
    @handle_service_errors()
    def update_tenant(self, tenant_id: str, data: TenantUpdate) -> TenantRead:
        try:
            with self.transaction() as session:
                tenant = require_record(session, Tenant, tenant_id)
                if data.name is not None:
                    tenant.name = require_text(data.name, "name")
                if data.phone is not None:
                    phone = normalize_phone(data.phone)
                    if phone != tenant.phone:
                        self._ensure_unique(session, phone=phone, exclude_id=tenant_id)
                        tenant.phone = phone
                if data.line_user_id is not None:
                    line_user_id = optional_text(data.line_user_id)
                    if line_user_id and line_user_id != tenant.line_user_id:
                        self._ensure_unique(session, line_user_id=line_user_id, exclude_id=tenant_id)
                    tenant.line_user_id = line_user_id
                for field in ("email", "id_card", "address"):
                    value = getattr(data, field)
                    if value is not None:
                        setattr(tenant, field, optional_text(value))
                session.flush()
                return _tenant_read(tenant, len(tenant.contracts))
        except IntegrityError as e:
            raise duplicate("Tenant", cause=e, tenant_id=tenant_id) from e

    @operation()
    @handle_service_errors()
    def link_line_user(self, tenant_id: str, line_user_id: str) -> TenantRead:
        """Attach a LINE account to the tenant so reminders can be pushed to them."""
        return self.update_tenant(tenant_id, TenantUpdate(line_user_id=line_user_id))

    @operation()
    @handle_service_errors()
    def delete_tenant(self, tenant_id: str) -> None:
        with self.transaction() as session:
            tenant = require_record(session, Tenant, tenant_id)
            blocking = (
                session.query(Contract)
                .filter(Contract.tenant_id == tenant_id, Contract.status.in_(ROOM_HOLDING_STATUSES))
                .count()
            )
            if blocking:
                raise ConflictError(
                    "Cannot delete tenant with active or pending contracts",
                    tenant_id=tenant_id,
                    contract_count=blocking,
                )
            session.delete(tenant)
            self.logger.info("Deleted tenant", extra={"tenant_id": tenant_id})

    @staticmethod
    def _ensure_unique(
        session,
        phone: Optional[str] = None,
        line_user_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> None:
        for column, value in ((Tenant.phone, phone), (Tenant.line_user_id, line_user_id)):
            if not value:
                continue
            query = session.query(Tenant.id).filter(column == value)
            if exclude_id:
                query = query.filter(Tenant.id != exclude_id)
            if query.first():
                raise duplicate("Tenant", **{column.key: value})

"""
LINE notifications for owners and tenants.

Reads go through the other services; sending is best-effort and never
raises, so the scheduled jobs keep going when LINE is unreachable.
"""

from typing import List, Optional

from ..constants import EXPIRY_WINDOW_DAYS
from ..context.operation_context import operation
from ..context.service_context import ServiceContext
from ..exceptions import NotFoundError
from ..integrations.line.client import LineClient, LineMessage, text_message
from ..schemas.contract_schema import ContractDetail
from ..utils.date_utils import format_thai_date
from ..utils.logger import get_logger
from .contract_service import ContractService
from .payment_service import PaymentService
from .tenant_service import TenantService


def _baht(value: float) -> str:
    return f"฿{value:,.0f}"


class NotificationService:
    """Pushes reminders about expiring contracts, overdue rent and renewals."""

    def __init__(self, context: ServiceContext, client: Optional[LineClient] = None):
        self.context = context
        self.client = client or LineClient(context.config.line)
        self.contracts = ContractService(context)
        self.payments = PaymentService(context)
        self.tenants = TenantService(context)
        self.logger = get_logger()

    def _push_to_owners(self, messages: List[LineMessage]) -> int:
        sent = 0
        for owner_id in self.context.config.line.owner_line_ids:
            if self.client.push_message(owner_id, messages):
                sent += 1
        return sent

    @operation()
    def notify_expiring_contracts(self, days_ahead: int = EXPIRY_WINDOW_DAYS) -> int:
        """Tell every owner which contracts end soon; returns how many owners were reached."""
        expiring = self.contracts.find_expiring(days_ahead)
        if not expiring:
            return 0

        lines = "\n".join(
            f"• {c.building_name} {c.room_number} - {c.tenant_name} ({c.days_remaining} วัน)"
            for c in expiring
        )
        message = text_message(
            f"⚠️ สัญญาใกล้หมดอายุ ({len(expiring)} สัญญา)\n\n{lines}\n\n"
            "💡 โปรดติดต่อผู้เช่าเพื่อต่อสัญญา"
        )
        sent = self._push_to_owners([message])
        self.logger.info(
            "Sent expiring-contract notice", extra={"contract_count": len(expiring), "sent": sent}
        )
        return sent

    @operation()
    def notify_overdue_payments(self) -> int:
        overdue = self.payments.list_overdue()
        if not overdue:
            return 0

        total = sum(p.outstanding for p in overdue)
        lines = "\n".join(
            f"• {p.building_name} {p.room_number} - {_baht(p.outstanding)} ({p.days_past_due} วัน)"
            for p in overdue
        )
        message = text_message(
            f"🔴 ค่าเช่าค้างชำระ ({len(overdue)} รายการ)\n\n"
            f"รวม: {_baht(total)}\n\n"
            f"{lines}\n\n"
            "💡 โปรดติดตามเก็บเงิน"
        )
        sent = self._push_to_owners([message])
        self.logger.info(
            "Sent overdue notice", extra={"payment_count": len(overdue), "sent": sent}
        )
        return sent

    @operation()
    def send_rent_due_reminder(self, contract_id: str) -> bool:
        """Remind the tenant of one contract that rent is due; False when they have no LINE link."""
        contract = self._find_contract(contract_id)
        if contract is None:
            return False
        tenant = self.tenants.get_tenant(contract.tenant_id)
        if not tenant.line_user_id:
            return False

        message = text_message(
            "🔔 แจ้งเตือนค่าเช่า\n\n"
            f"ห้อง {contract.building_name} {contract.room_number}\n"
            f"จำนวน {_baht(contract.rent_amount)}\n\n"
            "กรุณาชำระภายในวันที่ 5 ของเดือน\n"
            "ขอบคุณค่ะ 🙏"
        )
        return self.client.push_message(tenant.line_user_id, [message])

    @operation()
    def notify_contract_renewal(self, contract_id: str) -> bool:
        contract = self._find_contract(contract_id)
        if contract is None:
            return False

        room = f"ห้อง {contract.building_name} {contract.room_number}"
        period = f"{format_thai_date(contract.start_date)} - {format_thai_date(contract.end_date)}"
        self._push_to_owners(
            [
                text_message(
                    "✅ ต่อสัญญาสำเร็จ\n\n"
                    f"{room}\n"
                    f"ผู้เช่า: {contract.tenant_name}\n"
                    f"ค่าเช่า: {_baht(contract.rent_amount)}/เดือน\n"
                    f"ระยะเวลา: {period}"
                )
            ]
        )

        tenant = self.tenants.get_tenant(contract.tenant_id)
        if tenant.line_user_id:
            self.client.push_message(
                tenant.line_user_id,
                [
                    text_message(
                        "🎉 ต่อสัญญาเรียบร้อยแล้ว!\n\n"
                        f"{room}\n"
                        f"สัญญาใหม่: {period}\n\n"
                        "ขอบคุณที่ไว้วางใจค่ะ 🙏"
                    )
                ],
            )
        return True

    def _find_contract(self, contract_id: str) -> Optional[ContractDetail]:
        try:
            return self.contracts.get_contract(contract_id)
        except NotFoundError:
            return None

"""
AI summaries over the analytics and inflation services.

The OpenAI call is best-effort: a missing key, HTTP error or timeout yields
a deterministic Thai text built from the same data. No method here raises.
"""

from typing import Dict, List, Optional

import requests
from pydantic import BaseModel

from ..config import AIConfig
from ..constants import INCOME_TREND_MONTHS
from ..context.operation_context import operation
from ..context.service_context import ServiceContext
from ..services.analytics_service import AnalyticsService
from ..services.inflation_service import InflationService
from ..utils.date_utils import buddhist_year, thai_month
from ..utils.logger import get_logger
from .prompts import (
    ANOMALY_DETECTION_TEMPLATE,
    EXPIRY_REMINDER_TEMPLATE,
    MONTHLY_SUMMARY_TEMPLATE,
    RENT_ADJUSTMENT_TEMPLATE,
    SYSTEM_PROMPT,
    fill_template,
)

SUMMARY_FAILED = "❌ ไม่สามารถสร้างสรุปได้"
CONTRACT_NOT_FOUND = "❌ ไม่พบข้อมูลสัญญา"
ADVICE_FAILED = "❌ ไม่สามารถวิเคราะห์ได้"
CHECK_FAILED = "❌ ไม่สามารถตรวจสอบได้"
NOT_ENOUGH_DATA = "📊 ยังไม่มีข้อมูลเพียงพอสำหรับการวิเคราะห์"
NO_EXPIRING = "✅ ไม่มีสัญญาที่จะหมดในเดือนหน้า"

# Deviation from the trailing average still reported as normal, in percent
ANOMALY_THRESHOLD_PCT = 10


class AIResponse(BaseModel):
    success: bool
    content: str
    fallback: bool
    error: Optional[str] = None


def _money(value: float) -> str:
    return f"{value:,.0f}"


class OpenAIClient:
    """Minimal chat-completions client."""

    def __init__(self, config: AIConfig):
        self.config = config
        self.logger = get_logger()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.openai_api_key}",
            "Content-Type": "application/json",
        }

    def complete(self, system_prompt: str, user_prompt: str) -> AIResponse:
        if not self.config.openai_api_key:
            return AIResponse(
                success=False, content="", fallback=True, error="OpenAI API key not configured"
            )

        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        try:
            response = requests.post(
                self.config.api_url,
                headers=self._get_headers(),
                json=payload,
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.warning("OpenAI request failed", extra={"error_details": str(e)})
            return AIResponse(success=False, content="", fallback=True, error=f"OpenAI API error: {e}")

        choices = data.get("choices") or [{}]
        content = ((choices[0].get("message") or {}).get("content") or "").strip()
        return AIResponse(success=True, content=content, fallback=False)


def fallback_summary(
    total: float, collection_rate: int, occupancy_rate: int, overdue_count: int, expiring_count: int
) -> str:
    parts = [
        f"📊 รายได้เดือนนี้: ฿{_money(total)}",
        f"💰 เก็บเงินได้ {collection_rate}%",
        f"🏠 Occupancy {occupancy_rate}%",
    ]
    if overdue_count > 0:
        parts.append(f"⚠️ ค้างชำระ {overdue_count} ราย")
    if expiring_count > 0:
        parts.append(f"📅 สัญญาใกล้หมด {expiring_count} สัญญา")
    return "\n".join(parts)


def describe_deviation(deviation: float) -> str:
    if abs(deviation) < ANOMALY_THRESHOLD_PCT:
        status = "✅ รายได้ปกติ"
    elif deviation > 0:
        status = "📈 รายได้สูงกว่าปกติ"
    else:
        status = "📉 รายได้ต่ำกว่าปกติ"
    sign = "+" if deviation > 0 else ""
    return f"{status} ({sign}{deviation:.1f}% จากค่าเฉลี่ย)"


class AIService:
    """Thai summaries for the owner, with template fallbacks."""

    def __init__(self, context: ServiceContext, client: Optional[OpenAIClient] = None):
        self.context = context
        self.client = client or OpenAIClient(context.config.ai)
        self.analytics = AnalyticsService(context)
        self.inflation = InflationService(context)
        self.logger = get_logger()

    def _ask(self, user_prompt: str) -> Optional[AIResponse]:
        """The model's answer, or None when the caller should fall back."""
        response = self.client.complete(SYSTEM_PROMPT, user_prompt)
        if response.success and not response.fallback:
            return response
        return None

    def _failed(self, content: str, error: Exception, operation_name: str) -> AIResponse:
        self.logger.error(
            f"AI {operation_name} failed",
            extra={"error_type": type(error).__name__, "error_details": str(error)},
        )
        return AIResponse(success=False, content=content, fallback=True, error=str(error))

    @operation()
    def generate_monthly_summary(self, year: Optional[int] = None, month: Optional[int] = None) -> AIResponse:
        now = self.context.now()
        year = year or now.year
        month = month or now.month
        try:
            snapshot = self.analytics.get_snapshot(year, month)
            overdue_count = len(snapshot.collection.overdue)
            expiring_count = len(snapshot.contracts.expiring_soon)

            prompt = fill_template(
                MONTHLY_SUMMARY_TEMPLATE,
                {
                    "month": thai_month(month),
                    "year": buddhist_year(year),
                    "total_income": _money(snapshot.income.total),
                    "building_breakdown": ", ".join(
                        f"{b.name}: ฿{_money(b.amount)}" for b in snapshot.income.by_building
                    ),
                    "collection_rate": snapshot.collection.rate,
                    "overdue_amount": _money(sum(o.amount for o in snapshot.collection.overdue)),
                    "overdue_count": overdue_count,
                    "occupancy_rate": snapshot.occupancy.current,
                    "vacant_count": len(snapshot.occupancy.vacant),
                    "expiring_count": expiring_count,
                },
            )
            answer = self._ask(prompt)
            if answer:
                return answer
            return AIResponse(
                success=True,
                content=fallback_summary(
                    snapshot.income.total,
                    snapshot.collection.rate,
                    snapshot.occupancy.current,
                    overdue_count,
                    expiring_count,
                ),
                fallback=True,
            )
        except Exception as e:
            return self._failed(SUMMARY_FAILED, e, "summary")

    @operation()
    def generate_rent_advice(self, contract_id: str) -> AIResponse:
        try:
            entry = next(
                (a for a in self.inflation.get_all_rent_adjustments() if a.contract_id == contract_id),
                None,
            )
            if entry is None:
                return AIResponse(success=False, content=CONTRACT_NOT_FOUND, fallback=True)

            adjustment = entry.adjustment
            prompt = fill_template(
                RENT_ADJUSTMENT_TEMPLATE,
                {
                    "room": entry.room_number,
                    "building": entry.building_name,
                    "tenant_name": entry.tenant_name,
                    "tenant_years": adjustment.tenant_years,
                    "current_rent": _money(adjustment.current_rent),
                    "original_rent": _money(adjustment.original_rent),
                    "inflation_pct": f"{adjustment.inflation_pct:.1f}",
                    "rent_growth_pct": f"{adjustment.rent_growth_pct:.1f}",
                    "gap": f"{adjustment.gap:.1f}",
                    "suggested_rent": _money(adjustment.suggested_rent),
                },
            )
            answer = self._ask(prompt)
            if answer:
                return answer
            return AIResponse(success=True, content=adjustment.reasoning, fallback=True)
        except Exception as e:
            return self._failed(ADVICE_FAILED, e, "rent advice")

    @operation()
    def detect_anomalies(self) -> AIResponse:
        """Compare the current month's income with the trailing average."""
        try:
            trend = self.analytics.get_income_trend(INCOME_TREND_MONTHS)
            average = sum(t.total for t in trend) / len(trend) if trend else 0
            if average <= 0:
                return AIResponse(success=True, content=NOT_ENOUGH_DATA, fallback=True)

            current = trend[-1]
            deviation = (current.total - average) / average * 100
            prompt = fill_template(
                ANOMALY_DETECTION_TEMPLATE,
                {
                    "income_trend": "\n".join(
                        f"{thai_month(t.month)}: ฿{_money(t.total)}" for t in trend
                    ),
                    "current_month": thai_month(current.month),
                    "current_income": _money(current.total),
                    "average_income": _money(average),
                    "deviation": f"{deviation:.1f}",
                },
            )
            answer = self._ask(prompt)
            if answer:
                return answer
            return AIResponse(success=True, content=describe_deviation(deviation), fallback=True)
        except Exception as e:
            return self._failed(CHECK_FAILED, e, "anomaly check")

    @operation()
    def generate_expiry_reminder(self) -> AIResponse:
        now = self.context.now()
        try:
            snapshot = self.analytics.get_snapshot(now.year, now.month)
            expiring = snapshot.contracts.expiring_soon
            if not expiring:
                return AIResponse(success=True, content=NO_EXPIRING, fallback=False)

            lines: List[str] = [
                f"- ห้อง {c.room}: {c.tenant} (เหลือ {c.days_remaining} วัน)" for c in expiring
            ]
            listing = "\n".join(lines)
            answer = self._ask(fill_template(EXPIRY_REMINDER_TEMPLATE, {"expiring_contracts": listing}))
            if answer:
                return answer
            return AIResponse(
                success=True,
                content=f"⚠️ สัญญาใกล้หมด {len(expiring)} รายการ\n\n{listing}",
                fallback=True,
            )
        except Exception as e:
            return self._failed(CHECK_FAILED, e, "expiry reminder")

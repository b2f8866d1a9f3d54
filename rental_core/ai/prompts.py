"""
Thai prompt templates for the AI summaries.

Placeholders use {{name}} so literal braces in the Thai text never clash
with str.format.
"""

import re
from typing import Any, Dict

SYSTEM_PROMPT = """คุณเป็นผู้ช่วยวิเคราะห์ข้อมูลการเช่าอาคาร ให้ข้อมูลเป็นภาษาไทยที่เข้าใจง่าย
สั้นกระชับ เป็นมิตร และนำไปปฏิบัติได้จริง

กฎสำคัญ:
1. ตอบเฉพาะข้อมูลที่ได้รับ ห้ามคิดเองหรือสมมติตัวเลข
2. ถ้าข้อมูลไม่พอ ให้บอกว่าไม่มีข้อมูล
3. ใช้อีโมจิให้เหมาะสม
4. ตอบไม่เกิน 300 ตัวอักษร
5. ห้ามแนะนำการลงทุนหรือตัดสินใจแทน เป็นแค่ข้อมูลประกอบ"""

MONTHLY_SUMMARY_TEMPLATE = """สรุปรายได้เดือน {{month}} {{year}}

ข้อมูล:
- รายได้รวม: {{total_income}} บาท
- แยกตามตึก: {{building_breakdown}}
- อัตราเก็บเงิน: {{collection_rate}}%
- ค้างชำระ: {{overdue_amount}} บาท ({{overdue_count}} ราย)
- Occupancy: {{occupancy_rate}}%
- ห้องว่าง: {{vacant_count}} ห้อง
- สัญญาใกล้หมด: {{expiring_count}} สัญญา

ช่วยสรุปเป็นข้อความสั้นๆ เป็นมิตร พร้อมข้อเสนอแนะ (ถ้ามี)"""

RENT_ADJUSTMENT_TEMPLATE = """วิเคราะห์การปรับค่าเช่าสำหรับห้อง {{room}} ตึก {{building}}

ข้อมูล:
- ผู้เช่า: {{tenant_name}} (อยู่มา {{tenant_years}} ปี)
- ค่าเช่าปัจจุบัน: {{current_rent}} บาท
- ค่าเช่าเริ่มต้น: {{original_rent}} บาท
- เงินเฟ้อสะสม: {{inflation_pct}}%
- ค่าเช่าเพิ่มขึ้น: {{rent_growth_pct}}%
- ช่องว่าง (Growth - Inflation): {{gap}}%
- ค่าเช่าแนะนำ: {{suggested_rent}} บาท

ช่วยอธิบายสถานการณ์และแนะนำแบบเป็นมิตร"""

ANOMALY_DETECTION_TEMPLATE = """ตรวจสอบความผิดปกติของรายได้

ข้อมูลย้อนหลัง 6 เดือน:
{{income_trend}}

เดือนปัจจุบัน: {{current_month}}
รายได้เดือนนี้: {{current_income}} บาท
ค่าเฉลี่ย: {{average_income}} บาท
ส่วนเบี่ยงเบน: {{deviation}}%

มีอะไรผิดปกติไหม? อธิบายสั้นๆ"""

EXPIRY_REMINDER_TEMPLATE = """สัญญาใกล้หมดอายุ

รายการ:
{{expiring_contracts}}

ช่วยสรุปและแนะนำว่าควรดำเนินการอย่างไร"""

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def fill_template(template: str, data: Dict[str, Any]) -> str:
    """Replace every {{key}} found in data; unknown placeholders are left as they are."""

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        return str(data[key]) if key in data else match.group(0)

    return _PLACEHOLDER.sub(_replace, template)

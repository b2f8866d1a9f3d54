"""
JSON encoding for HTTP bodies, webhook payloads and queued log entries.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel


class RentalJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def dumps(obj: Any, **kwargs) -> str:
    """Serialize with model, date and enum support; Thai text stays readable."""
    kwargs.setdefault("ensure_ascii", False)
    return json.dumps(obj, cls=RentalJSONEncoder, **kwargs)


def loads(data: Union[str, bytes, bytearray], **kwargs) -> Any:
    """Parse a body; bytes are decoded as UTF-8 with any BOM dropped."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8-sig")
    return json.loads(data, **kwargs)

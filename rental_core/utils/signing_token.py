"""
JWT signing links for contract signatures.

A link carries the contract id and the signer role; the sign endpoint takes
the role from the verified token instead of trusting the request body.
"""

from datetime import datetime, timedelta
from typing import Optional

import jwt
from pydantic import BaseModel

from ..constants import SIGNING_TOKEN_ALGORITHM
from ..enums import SignerRole
from ..exceptions import BaseError, ErrorCode
from .logger import get_logger


class SigningTokenPayload(BaseModel):
    contract_id: str
    role: SignerRole
    exp: datetime


def generate_signing_token(
    secret: str,
    contract_id: str,
    role: SignerRole,
    now: datetime,
    expires_in_hours: int,
) -> str:
    payload = {
        "contract_id": contract_id,
        "role": SignerRole(role).value,
        "exp": now + timedelta(hours=expires_in_hours),
    }
    return jwt.encode(payload, secret, algorithm=SIGNING_TOKEN_ALGORITHM)


def verify_signing_token(
    secret: str, token: str, now: datetime
) -> Optional[SigningTokenPayload]:
    """
    Decode a signing token; None when it is expired, tampered with or malformed.

    Expiry is checked against the caller's clock rather than the wall clock.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[SIGNING_TOKEN_ALGORITHM],
            options={"verify_exp": False, "require": ["exp"]},
        )
        payload = SigningTokenPayload.model_validate(decoded)
    except jwt.PyJWTError as e:
        get_logger().warning("Rejected signing token", extra={"reason": str(e)})
        return None
    except ValueError as e:
        get_logger().warning("Signing token payload malformed", extra={"reason": str(e)})
        return None

    if payload.exp <= now:
        get_logger().warning("Rejected signing token", extra={"reason": "expired"})
        return None
    return payload


def require_signing_token(
    secret: str, token: Optional[str], contract_id: str, now: datetime
) -> SigningTokenPayload:
    """Verify a token and check it was issued for this contract; raise 401 otherwise."""
    payload = verify_signing_token(secret, token, now) if token else None
    if payload is None or payload.contract_id != contract_id:
        raise BaseError(
            "Invalid or expired signing link",
            error_code=ErrorCode.PERMISSION_DENIED,
            status_code=401,
            contract_id=contract_id,
        )
    return payload


def build_signing_url(app_url: str, contract_id: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/sign/{contract_id}?token={token}"

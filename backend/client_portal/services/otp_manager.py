"""
One-time code lifecycle for quotation decisions.

WHAT: Issues, validates and consumes the codes that gate accept/reject.

WHY: Lifecycle rules for a (quotation, user) pair:
1. At most one live code at a time; a new request supersedes the old one
2. A code is consumed at most once, even under concurrent confirmations
3. Only an HMAC of the code is stored; the plaintext is returned once to
   the caller and never logged

HOW: All methods run inside the caller's session and transaction and only
flush. Supersession and consumption are predicate UPDATEs in
QuotationOtpDAO, so the database settles races.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.core.auth import (
    generate_otp_code,
    hash_otp_code,
    is_well_formed_otp,
    verify_otp_code,
)
from client_portal.core.config import settings
from client_portal.core.exceptions import InvalidOtpError
from client_portal.dao.quotation_otp import QuotationOtpDAO
from client_portal.models import QuotationActionType, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedOtp:
    """
    Result of issuing a code.

    code is the only copy of the plaintext; hand it to the notifier and
    drop it.
    """

    otp_id: int
    code: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"IssuedOtp(otp_id={self.otp_id}, expires_at={self.expires_at})"


class OtpManager:
    """
    Issues and validates quotation OTPs.

    Attributes:
        otp_dao: DAO bound to the caller's session
        ttl: Code lifetime
    """

    def __init__(
        self,
        session: AsyncSession,
        ttl_minutes: Optional[int] = None,
    ):
        """
        Initialize OtpManager.

        Args:
            session: Session of the enclosing transaction
            ttl_minutes: Code lifetime (defaults to QUOTATION_OTP_TTL_MINUTES)
        """
        self.otp_dao = QuotationOtpDAO(session)
        self.ttl = timedelta(minutes=ttl_minutes or settings.QUOTATION_OTP_TTL_MINUTES)

    async def issue(
        self,
        quotation_id: int,
        user_id: int,
        action_type: QuotationActionType,
        ip_address: Optional[str] = None,
    ) -> IssuedOtp:
        """
        Issue a new code for a (quotation, user) pair.

        WHAT: Supersedes every live code of the pair, then inserts the new
        row. Both statements belong to the caller's transaction. The caller
        must hold the quotation row lock
        (`QuotationDAO.get_with_relations(..., for_update=True)`); otherwise
        two concurrent issues under READ COMMITTED can both supersede
        nothing and both insert.

        Args:
            quotation_id: Quotation ID
            user_id: Requesting client user
            action_type: Action the code will authorize
            ip_address: Requester IP, stored for audit

        Returns:
            IssuedOtp with the plaintext code and expiry
        """
        now = utcnow()
        code = generate_otp_code()

        superseded = await self.otp_dao.supersede_live(quotation_id, user_id, now)

        otp = await self.otp_dao.create(
            quotation_id=quotation_id,
            user_id=user_id,
            action_type=action_type,
            code_hash=hash_otp_code(code, quotation_id, user_id),
            expires_at=now + self.ttl,
            created_ip=ip_address,
            created_at=now,
        )

        logger.info(
            f"Issued quotation OTP {otp.id}",
            extra={
                "otp_id": otp.id,
                "quotation_id": quotation_id,
                "user_id": user_id,
                "action": action_type.value,
                "superseded": superseded,
            },
        )

        return IssuedOtp(otp_id=otp.id, code=code, expires_at=otp.expires_at)

    async def validate(self, quotation_id: int, user_id: int, code: str) -> QuotationActionType:
        """
        Validate and consume a code.

        WHAT: Finds the pair's live code, checks the hash, then consumes
        the row with a predicate UPDATE.

        WHY: Every failure raises the same InvalidOtpError so the caller
        learns nothing about which check failed.

        Args:
            quotation_id: Quotation ID
            user_id: Confirming client user
            code: Submitted plaintext code

        Returns:
            The action the code was issued for

        Raises:
            InvalidOtpError: Malformed, unknown, expired, superseded,
                consumed or mismatched code
        """
        if not is_well_formed_otp(code):
            raise InvalidOtpError()

        now = utcnow()
        otp = await self.otp_dao.get_live(quotation_id, user_id, now)

        if otp is None:
            logger.info(
                "No live quotation OTP",
                extra={"quotation_id": quotation_id, "user_id": user_id},
            )
            raise InvalidOtpError()

        if not verify_otp_code(code, quotation_id, user_id, otp.code_hash):
            logger.info(
                f"Quotation OTP {otp.id} mismatch",
                extra={"otp_id": otp.id, "quotation_id": quotation_id, "user_id": user_id},
            )
            raise InvalidOtpError()

        if not await self.otp_dao.consume(otp.id, now):
            # Lost a race against a concurrent confirmation or a new request
            logger.info(
                f"Quotation OTP {otp.id} no longer live at consume",
                extra={"otp_id": otp.id, "quotation_id": quotation_id, "user_id": user_id},
            )
            raise InvalidOtpError()

        logger.info(
            f"Consumed quotation OTP {otp.id}",
            extra={
                "otp_id": otp.id,
                "quotation_id": quotation_id,
                "user_id": user_id,
                "action": otp.action_type.value,
            },
        )
        return otp.action_type


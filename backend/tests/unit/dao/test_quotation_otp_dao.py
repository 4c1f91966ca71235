"""
Unit tests for QuotationOtpDAO.

WHAT: Tests supersession, live lookup and guarded consumption of quotation
OTP rows.

WHY: These predicate updates are what keep at most one live code per
(quotation, user) pair and make a code single-use.

HOW: Uses pytest with a file-backed async SQLite database.
"""

import pytest
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.core.auth import hash_otp_code
from client_portal.dao.quotation_otp import QuotationOtpDAO
from client_portal.models import QuotationActionType, QuotationOtp, utcnow


async def _create_otp(session: AsyncSession, quotation_id: int, user_id: int, **overrides) -> QuotationOtp:
    now = utcnow()
    values = dict(
        quotation_id=quotation_id,
        user_id=user_id,
        action_type=QuotationActionType.ACCEPT,
        code_hash=hash_otp_code("123456", quotation_id, user_id),
        expires_at=now + timedelta(minutes=10),
        created_at=now,
    )
    values.update(overrides)
    otp = await QuotationOtpDAO(session).create(**values)
    await session.commit()
    return otp


class TestQuotationOtpDAO:
    """Unit tests for QuotationOtpDAO."""

    @pytest.mark.asyncio
    async def test_create_defaults(self, db_session, sent_quotation, test_client_user):
        """New rows start live."""
        otp = await _create_otp(db_session, sent_quotation.id, test_client_user.id)

        assert otp.id is not None
        assert otp.consumed_at is None
        assert otp.superseded_at is None
        assert otp.is_live

    @pytest.mark.asyncio
    async def test_supersede_live_marks_only_live_rows(
        self, db_session, sent_quotation, test_client_user
    ):
        """
        Expired and consumed rows keep their own history.

        WHY: Only the live row is replaced; an expired row reads as expired.
        """
        now = utcnow()
        live = await _create_otp(db_session, sent_quotation.id, test_client_user.id)
        expired = await _create_otp(
            db_session,
            sent_quotation.id,
            test_client_user.id,
            expires_at=now - timedelta(minutes=1),
        )
        consumed = await _create_otp(
            db_session,
            sent_quotation.id,
            test_client_user.id,
            consumed_at=now - timedelta(minutes=2),
        )

        dao = QuotationOtpDAO(db_session)
        count = await dao.supersede_live(sent_quotation.id, test_client_user.id, utcnow())
        await db_session.commit()

        assert count == 1
        history = {otp.id: otp for otp in await dao.get_history(sent_quotation.id, test_client_user.id)}
        for otp in history.values():
            await db_session.refresh(otp)
        assert history[live.id].superseded_at is not None
        assert history[expired.id].superseded_at is None
        assert history[consumed.id].superseded_at is None

    @pytest.mark.asyncio
    async def test_supersede_scoped_to_pair(
        self, db_session, sent_quotation, test_client_user, test_org
    ):
        """Another user's code on the same quotation stays live."""
        from tests.factories import UserFactory

        colleague = await UserFactory.create(
            db_session, email="colleague@acme.example", organization=test_org
        )
        await _create_otp(db_session, sent_quotation.id, test_client_user.id)
        theirs = await _create_otp(db_session, sent_quotation.id, colleague.id)

        dao = QuotationOtpDAO(db_session)
        await dao.supersede_live(sent_quotation.id, test_client_user.id, utcnow())
        await db_session.commit()

        live = await dao.get_live(sent_quotation.id, colleague.id, utcnow())
        assert live is not None
        assert live.id == theirs.id

    @pytest.mark.asyncio
    async def test_get_live_ignores_expired(self, db_session, sent_quotation, test_client_user):
        await _create_otp(
            db_session,
            sent_quotation.id,
            test_client_user.id,
            expires_at=utcnow() - timedelta(seconds=1),
        )

        dao = QuotationOtpDAO(db_session)
        assert await dao.get_live(sent_quotation.id, test_client_user.id, utcnow()) is None

    @pytest.mark.asyncio
    async def test_consume_once(self, db_session, sent_quotation, test_client_user):
        """
        A row can be consumed exactly once.

        WHY: The second UPDATE matches zero rows, which is what rejects a
        replayed or concurrent confirmation.
        """
        otp = await _create_otp(db_session, sent_quotation.id, test_client_user.id)
        dao = QuotationOtpDAO(db_session)

        assert await dao.consume(otp.id, utcnow()) is True
        assert await dao.consume(otp.id, utcnow()) is False
        await db_session.commit()

        assert await dao.get_live(sent_quotation.id, test_client_user.id, utcnow()) is None

    @pytest.mark.asyncio
    async def test_consume_refuses_superseded(self, db_session, sent_quotation, test_client_user):
        otp = await _create_otp(
            db_session, sent_quotation.id, test_client_user.id, superseded_at=utcnow()
        )
        assert await QuotationOtpDAO(db_session).consume(otp.id, utcnow()) is False

    @pytest.mark.asyncio
    async def test_consume_refuses_expired(self, db_session, sent_quotation, test_client_user):
        otp = await _create_otp(
            db_session,
            sent_quotation.id,
            test_client_user.id,
            expires_at=utcnow() - timedelta(seconds=1),
        )
        assert await QuotationOtpDAO(db_session).consume(otp.id, utcnow()) is False

"""
Unit tests for OtpManager.

WHAT: Tests code issuance, supersession, validation and single use.

WHY: The OTP is the proof of intent for an irrevocable decision. Every
failure mode must be rejected with the same InvalidOtpError.

HOW: Codes are issued and validated in separate transactions, the way the
workflow uses them.
"""

import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy import update

from client_portal.core.auth import verify_otp_code
from client_portal.core.exceptions import InvalidOtpError
from client_portal.dao.quotation_otp import QuotationOtpDAO
from client_portal.db.session import transaction
from client_portal.models import QuotationActionType, QuotationOtp, utcnow
from client_portal.services.otp_manager import OtpManager


async def _issue(session_factory, quotation_id, user_id, action=QuotationActionType.ACCEPT, **kwargs):
    async with transaction(session_factory) as session:
        return await OtpManager(session, **kwargs).issue(quotation_id, user_id, action)


async def _validate(session_factory, quotation_id, user_id, code, **kwargs):
    async with transaction(session_factory) as session:
        return await OtpManager(session, **kwargs).validate(quotation_id, user_id, code)


class TestIssue:
    """OtpManager.issue()."""

    @pytest.mark.asyncio
    async def test_issue_stores_hash_only(
        self, session_factory, db_session, sent_quotation, test_client_user
    ):
        issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)

        rows = await QuotationOtpDAO(db_session).get_history(sent_quotation.id, test_client_user.id)
        assert len(rows) == 1
        assert rows[0].code_hash != issued.code
        assert verify_otp_code(issued.code, sent_quotation.id, test_client_user.id, rows[0].code_hash)
        assert rows[0].action_type == QuotationActionType.ACCEPT

    @pytest.mark.asyncio
    async def test_issue_sets_ttl(self, session_factory, sent_quotation, test_client_user):
        before = utcnow()
        issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)

        assert before + timedelta(minutes=9) < issued.expires_at <= utcnow() + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_issue_records_ip(self, session_factory, db_session, sent_quotation, test_client_user):
        async with transaction(session_factory) as session:
            await OtpManager(session).issue(
                sent_quotation.id,
                test_client_user.id,
                QuotationActionType.REJECT,
                ip_address="198.51.100.4",
            )

        rows = await QuotationOtpDAO(db_session).get_history(sent_quotation.id, test_client_user.id)
        assert rows[0].created_ip == "198.51.100.4"

    @pytest.mark.asyncio
    async def test_reissue_supersedes_previous(
        self, session_factory, db_session, sent_quotation, test_client_user
    ):
        """
        Only the newest code is live.

        WHY: A second request (possibly for the other action) must retire
        the first code.
        """
        with patch(
            "client_portal.services.otp_manager.generate_otp_code",
            side_effect=["111111", "222222"],
        ):
            first = await _issue(session_factory, sent_quotation.id, test_client_user.id)
            second = await _issue(
                session_factory, sent_quotation.id, test_client_user.id, QuotationActionType.REJECT
            )

        rows = await QuotationOtpDAO(db_session).get_history(sent_quotation.id, test_client_user.id)
        assert [row.superseded_at is not None for row in rows] == [True, False]
        assert rows[0].id == first.otp_id
        assert rows[1].id == second.otp_id

        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, first.code)

    @pytest.mark.asyncio
    async def test_plaintext_not_logged(self, session_factory, sent_quotation, test_client_user, caplog):
        caplog.set_level("DEBUG")
        with patch("client_portal.services.otp_manager.generate_otp_code", return_value="987650"):
            await _issue(session_factory, sent_quotation.id, test_client_user.id)

        assert caplog.records
        assert "987650" not in caplog.text

    def test_issued_repr_hides_code(self):
        from client_portal.services.otp_manager import IssuedOtp

        issued = IssuedOtp(otp_id=1, code="424242", expires_at=utcnow())
        assert "424242" not in repr(issued)


class TestValidate:
    """OtpManager.validate()."""

    @pytest.mark.asyncio
    async def test_valid_code_returns_action(self, session_factory, sent_quotation, test_client_user):
        issued = await _issue(
            session_factory, sent_quotation.id, test_client_user.id, QuotationActionType.REJECT
        )

        action = await _validate(session_factory, sent_quotation.id, test_client_user.id, issued.code)

        assert action == QuotationActionType.REJECT

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, session_factory, sent_quotation, test_client_user):
        issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)
        await _validate(session_factory, sent_quotation.id, test_client_user.id, issued.code)

        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, issued.code)

    @pytest.mark.asyncio
    async def test_wrong_code(self, session_factory, sent_quotation, test_client_user):
        with patch("client_portal.services.otp_manager.generate_otp_code", return_value="111111"):
            await _issue(session_factory, sent_quotation.id, test_client_user.id)

        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, "222222")

    @pytest.mark.asyncio
    async def test_malformed_code(self, session_factory, sent_quotation, test_client_user):
        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, "12ab56")

    @pytest.mark.asyncio
    async def test_no_code_issued(self, session_factory, sent_quotation, test_client_user):
        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, "123456")

    @pytest.mark.asyncio
    async def test_expired_code(self, session_factory, db_session, sent_quotation, test_client_user):
        issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)
        await db_session.execute(
            update(QuotationOtp)
            .where(QuotationOtp.id == issued.otp_id)
            .values(expires_at=utcnow() - timedelta(seconds=1))
        )
        await db_session.commit()

        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, test_client_user.id, issued.code)

    @pytest.mark.asyncio
    async def test_code_bound_to_user(self, session_factory, db_session, sent_quotation, test_client_user, test_org):
        """A code issued to one user does not work for a colleague."""
        from tests.factories import UserFactory

        colleague = await UserFactory.create(
            db_session, email="colleague@acme.example", organization=test_org
        )
        issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)

        with pytest.raises(InvalidOtpError):
            await _validate(session_factory, sent_quotation.id, colleague.id, issued.code)

    @pytest.mark.asyncio
    async def test_wrong_codes_leave_live_code_usable(
        self, session_factory, sent_quotation, test_client_user
    ):
        """
        Failed validations roll back without touching the row.

        A live code whose hash matches is accepted however many wrong
        codes were tried before it.
        """
        with patch("client_portal.services.otp_manager.generate_otp_code", return_value="482913"):
            issued = await _issue(session_factory, sent_quotation.id, test_client_user.id)

        for _ in range(6):
            with pytest.raises(InvalidOtpError):
                await _validate(session_factory, sent_quotation.id, test_client_user.id, "000000")

        action = await _validate(session_factory, sent_quotation.id, test_client_user.id, issued.code)
        assert action == QuotationActionType.ACCEPT

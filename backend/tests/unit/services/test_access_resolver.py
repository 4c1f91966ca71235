"""
Unit tests for AccessResolver.

WHAT: Tests resolution of user ids to access contexts and the
organization/lead access check.

WHY: Access resolution is the only authorization in the decision
workflow; a wrong answer here exposes another organization's quotations.
"""

import pytest

from client_portal.core.exceptions import ClientNotFoundError
from client_portal.models import UserRole
from client_portal.services.access_resolver import AccessContext, AccessResolver
from tests.factories import LeadFactory, QuotationFactory, UserFactory


class TestResolve:
    """AccessResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_active_client(self, db_session, test_client_user, test_org):
        context = await AccessResolver(db_session).resolve(test_client_user.id)

        assert context == AccessContext(
            user_id=test_client_user.id,
            organization_id=test_org.id,
            lead_id=None,
        )

    @pytest.mark.asyncio
    async def test_missing_user(self, db_session):
        with pytest.raises(ClientNotFoundError):
            await AccessResolver(db_session).resolve(4242)

    @pytest.mark.asyncio
    async def test_internal_user_is_not_a_client(self, db_session, test_admin):
        with pytest.raises(ClientNotFoundError):
            await AccessResolver(db_session).resolve(test_admin.id)

    @pytest.mark.asyncio
    async def test_inactive_client(self, db_session, test_org):
        user = await UserFactory.create(
            db_session, email="former@acme.example", organization=test_org, is_active=False
        )
        with pytest.raises(ClientNotFoundError) as exc_info:
            await AccessResolver(db_session).resolve(user.id)
        assert exc_info.value.error_code == "CLIENT_NOT_FOUND"


class TestCanAccess:
    """AccessResolver.can_access()."""

    @pytest.mark.asyncio
    async def test_same_organization(self, sent_quotation, test_org, session_factory):
        from client_portal.dao.quotation import QuotationDAO

        async with session_factory() as session:
            quotation = await QuotationDAO(session).get_with_relations(sent_quotation.id)

        assert AccessResolver.can_access(AccessContext(1, test_org.id), quotation)

    @pytest.mark.asyncio
    async def test_other_organization(self, sent_quotation, other_org, session_factory):
        from client_portal.dao.quotation import QuotationDAO

        async with session_factory() as session:
            quotation = await QuotationDAO(session).get_with_relations(sent_quotation.id)

        assert not AccessResolver.can_access(AccessContext(1, other_org.id), quotation)

    @pytest.mark.asyncio
    async def test_no_organization(self, sent_quotation, session_factory):
        from client_portal.dao.quotation import QuotationDAO

        async with session_factory() as session:
            quotation = await QuotationDAO(session).get_with_relations(sent_quotation.id)

        assert not AccessResolver.can_access(AccessContext(1, None), quotation)

    @pytest.mark.asyncio
    async def test_lead_scoped_context(self, db_session, session_factory, test_org, test_lead):
        """A lead-scoped client sees only that lead's quotations."""
        from client_portal.dao.quotation import QuotationDAO

        other_lead = await LeadFactory.create(db_session, org_id=test_org.id)
        mine = await QuotationFactory.create(db_session, lead_id=test_lead.id)
        theirs = await QuotationFactory.create(db_session, lead_id=other_lead.id)
        user = await UserFactory.create(
            db_session,
            email="scoped@acme.example",
            role=UserRole.CLIENT,
            organization=test_org,
            lead_id=test_lead.id,
        )

        async with session_factory() as session:
            resolver = AccessResolver(session)
            context = await resolver.resolve(user.id)
            dao = QuotationDAO(session)
            assert resolver.can_access(context, await dao.get_with_relations(mine.id))
            assert not resolver.can_access(context, await dao.get_with_relations(theirs.id))

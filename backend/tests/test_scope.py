# Overview: Pytest coverage for tenant/location scope resolution.

"""
Tenant-Scope Guard Tests

SECURITY TESTS: a caller only ever acts inside the tenant (and for
location users, the location) their session is bound to. Every denial
raises ForbiddenError before any work and leaves a SecurityEvent behind.
"""

import pytest

from retailpos.errors import ForbiddenError, NotFoundError, ValidationError
from retailpos.models import (
    Invoice, SecurityEvent, StockMovement,
    ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_LOCATION_USER,
)
from retailpos.services.scope_service import (
    RequestScope, require_location, require_role, resolve_scope,
)

from conftest import auth_headers, get_auth_token


def _denials(db_session, event_type="SCOPE_DENIED"):
    return db_session.query(SecurityEvent).filter_by(event_type=event_type, success=False).count()


class TestLocationUser:
    def test_defaults_to_own_location(self, db_session, clerk_a1, tenant_a, location_a1):
        scope = RequestScope(clerk_a1.id, ROLE_LOCATION_USER, tenant_a.id, location_a1.id)
        assert resolve_scope(scope) == scope
        assert resolve_scope(scope, tenant_id=tenant_a.id, location_id=location_a1.id) == scope

    def test_other_location_denied_and_logged(self, db_session, clerk_a1, tenant_a, location_a1, location_a2):
        scope = RequestScope(clerk_a1.id, ROLE_LOCATION_USER, tenant_a.id, location_a1.id)

        with pytest.raises(ForbiddenError):
            resolve_scope(scope, location_id=location_a2.id)

        event = db_session.query(SecurityEvent).filter_by(event_type="SCOPE_DENIED").one()
        assert event.success is False
        assert event.user_id == clerk_a1.id
        assert event.tenant_id == tenant_a.id
        assert event.location_id == location_a1.id
        assert str(location_a2.id) in event.reason

    def test_other_tenant_denied(self, db_session, clerk_a1, tenant_a, tenant_b, location_a1):
        scope = RequestScope(clerk_a1.id, ROLE_LOCATION_USER, tenant_a.id, location_a1.id)
        with pytest.raises(ForbiddenError):
            resolve_scope(scope, tenant_id=tenant_b.id)
        assert _denials(db_session) == 1

    def test_session_without_location_denied(self, db_session, clerk_a1, tenant_a):
        scope = RequestScope(clerk_a1.id, ROLE_LOCATION_USER, tenant_a.id, None)
        with pytest.raises(ForbiddenError):
            resolve_scope(scope)


class TestStoreAdmin:
    def test_any_location_of_own_tenant(self, db_session, store_admin_a, tenant_a, location_a1, location_a2):
        scope = RequestScope(store_admin_a.id, ROLE_STORE_ADMIN, tenant_a.id, location_a1.id)
        assert resolve_scope(scope, location_id=location_a2.id).location_id == location_a2.id

    def test_no_location_means_tenant_wide(self, db_session, store_admin_a, tenant_a, location_a1):
        scope = RequestScope(store_admin_a.id, ROLE_STORE_ADMIN, tenant_a.id, location_a1.id)
        resolved = resolve_scope(scope)
        assert resolved.tenant_id == tenant_a.id
        assert resolved.location_id is None
        with pytest.raises(ValidationError):
            require_location(resolved)

    def test_foreign_location_denied(self, db_session, store_admin_a, tenant_a, location_a1, location_b1):
        scope = RequestScope(store_admin_a.id, ROLE_STORE_ADMIN, tenant_a.id, location_a1.id)
        with pytest.raises(ForbiddenError):
            resolve_scope(scope, location_id=location_b1.id)
        assert _denials(db_session) == 1

    def test_unknown_location_not_found(self, db_session, store_admin_a, tenant_a):
        scope = RequestScope(store_admin_a.id, ROLE_STORE_ADMIN, tenant_a.id, None)
        with pytest.raises(NotFoundError):
            resolve_scope(scope, location_id=424242)


class TestSuperAdmin:
    def test_explicit_parameters_override_context(self, db_session, super_admin, tenant_a, tenant_b, location_a1, location_b1):
        scope = RequestScope(super_admin.id, ROLE_SUPER_ADMIN, tenant_a.id, location_a1.id)
        resolved = resolve_scope(scope, tenant_id=tenant_b.id, location_id=location_b1.id)
        assert (resolved.tenant_id, resolved.location_id) == (tenant_b.id, location_b1.id)

    def test_switching_tenant_drops_stale_location(self, db_session, super_admin, tenant_a, tenant_b, location_a1):
        scope = RequestScope(super_admin.id, ROLE_SUPER_ADMIN, tenant_a.id, location_a1.id)
        resolved = resolve_scope(scope, tenant_id=tenant_b.id)
        assert (resolved.tenant_id, resolved.location_id) == (tenant_b.id, None)

    def test_location_alone_adopts_its_tenant(self, db_session, super_admin, location_b1):
        scope = RequestScope(super_admin.id, ROLE_SUPER_ADMIN, None, None)
        resolved = resolve_scope(scope, location_id=location_b1.id)
        assert resolved.tenant_id == location_b1.tenant_id

    def test_mismatched_pair_rejected(self, db_session, super_admin, tenant_a, location_b1):
        scope = RequestScope(super_admin.id, ROLE_SUPER_ADMIN, None, None)
        with pytest.raises(ValidationError):
            resolve_scope(scope, tenant_id=tenant_a.id, location_id=location_b1.id)

    def test_unknown_tenant_not_found(self, db_session, super_admin):
        scope = RequestScope(super_admin.id, ROLE_SUPER_ADMIN, None, None)
        with pytest.raises(NotFoundError):
            resolve_scope(scope, tenant_id=999)


def test_require_role_logs_role_denied(db_session, clerk_a1, tenant_a, location_a1):
    scope = RequestScope(clerk_a1.id, ROLE_LOCATION_USER, tenant_a.id, location_a1.id)
    with pytest.raises(ForbiddenError):
        require_role(scope, ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
    assert _denials(db_session, "ROLE_DENIED") == 1


class TestScopeOverHttp:
    def test_clerk_cannot_sell_at_other_location(
        self, client, db_session, stocked, clerk_a1, location_a2,
    ):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/invoices/', headers=auth_headers(token), json={
            'location_id': location_a2.id,
            'items': [{'variant_id': stocked["42"].id, 'quantity': 1}],
        })

        assert response.status_code == 403
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(StockMovement).filter_by(location_id=location_a2.id).count() == 0

        event = db_session.query(SecurityEvent).filter_by(event_type="SCOPE_DENIED").one()
        assert event.resource == "/api/invoices/"
        assert event.action == "POST"

    def test_store_admin_cannot_read_other_tenant_invoices(
        self, client, db_session, services, stocked, tenant_a, location_a1, store_admin_b,
    ):
        invoice = services.invoices.create_invoice(
            tenant_a.id, location_a1.id, [{'variant_id': stocked["42"].id, 'quantity': 1}],
        )
        token = get_auth_token(client, store_admin_b.email)

        response = client.get(f'/api/invoices/{invoice["id"]}', headers=auth_headers(token))
        # Foreign ids behave as missing
        assert response.status_code == 404

        response = client.get(f'/api/invoices/location/{location_a1.id}', headers=auth_headers(token))
        assert response.status_code == 403

    def test_clerk_cannot_list_tenant_invoices(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.get('/api/invoices/tenant/all', headers=auth_headers(token))
        assert response.status_code == 403
        assert _denials(db_session, "ROLE_DENIED") == 1

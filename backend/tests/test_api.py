# Overview: Pytest coverage for the HTTP surface of auth, inventory, invoices and products.

"""
API tests

Status codes the clients depend on:
- 201 on create, 400 on bad input, 401 without a valid token,
  403 outside scope/role, 404 for missing or foreign ids,
  409 for insufficient stock, sold-variant deletes and duplicates.
"""

from retailpos.models import Invoice, Product, SecurityEvent, SessionToken, Tenant, User
from retailpos.services import auth_service

from conftest import PASSWORD, auth_headers, get_auth_token


class TestAuthRoutes:
    def test_signup_creates_tenant_location_and_admin(self, client, db_session):
        response = client.post('/api/auth/signup', json={
            'tenant_name': 'Corner Store',
            'location_name': 'Main',
            'email': 'New.Owner@Corner.test',
            'password': PASSWORD,
        })

        assert response.status_code == 201
        body = response.json
        assert body['token']
        assert body['user']['role'] == 'store_admin'
        assert body['user']['email'] == 'new.owner@corner.test'
        assert body['tenant_id'] is not None
        assert body['location_id'] is not None
        assert db_session.query(Tenant).filter_by(name='Corner Store').count() == 1

    def test_signup_weak_password_writes_nothing(self, client, db_session):
        response = client.post('/api/auth/signup', json={
            'tenant_name': 'Corner Store',
            'location_name': 'Main',
            'email': 'owner@corner.test',
            'password': 'short',
        })
        assert response.status_code == 400
        assert db_session.query(Tenant).count() == 0

    def test_signup_duplicate_email_conflicts(self, client, db_session, store_admin_a):
        response = client.post('/api/auth/signup', json={
            'tenant_name': 'Copycat',
            'location_name': 'Main',
            'email': store_admin_a.email,
            'password': PASSWORD,
        })
        assert response.status_code == 409
        assert db_session.query(Tenant).filter_by(name='Copycat').count() == 0

    def test_login_failure_is_audited(self, client, db_session, clerk_a1):
        response = client.post('/api/auth/login', json={'email': clerk_a1.email, 'password': 'wrong-pass1'})
        assert response.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type='LOGIN_FAILED').count() == 1

    def test_login_requires_both_fields(self, client, db_session):
        assert client.post('/api/auth/login', json={'email': 'x@y.test'}).status_code == 400

    def test_profile_and_logout(self, client, db_session, clerk_a1, location_a1):
        token = get_auth_token(client, clerk_a1.email)

        profile = client.get('/api/auth/profile', headers=auth_headers(token))
        assert profile.status_code == 200
        assert profile.json['context']['location_id'] == location_a1.id
        assert profile.json['user']['location']['name'] == 'Downtown'

        assert client.post('/api/auth/logout', headers=auth_headers(token)).status_code == 200
        assert client.get('/api/auth/profile', headers=auth_headers(token)).status_code == 401

    def test_missing_or_bogus_token(self, client, db_session):
        assert client.get('/api/auth/profile').status_code == 401
        assert client.get('/api/auth/profile', headers=auth_headers('nope')).status_code == 401

    def test_deactivated_user_token_stops_working(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        db_session.query(User).filter_by(id=clerk_a1.id).update({'is_active': False})
        db_session.commit()

        assert client.get('/api/auth/profile', headers=auth_headers(token)).status_code == 401

    def test_store_admin_registers_clerk_in_own_tenant(
        self, client, db_session, store_admin_a, tenant_a, location_a2,
    ):
        token = get_auth_token(client, store_admin_a.email)
        response = client.post('/api/auth/register', headers=auth_headers(token), json={
            'email': 'airport.clerk@acme.test',
            'password': PASSWORD,
            'role': 'location_user',
            'location_id': location_a2.id,
        })

        assert response.status_code == 201
        assert response.json['user']['tenant_id'] == tenant_a.id
        assert response.json['user']['location_id'] == location_a2.id
        assert db_session.query(SecurityEvent).filter_by(event_type='USER_CREATED').count() == 1

    def test_register_email_taken_between_check_and_insert_is_409(
        self, client, db_session, monkeypatch, store_admin_a, clerk_a1, location_a1,
    ):
        # Concurrent registration won the race: the pre-check saw nothing
        monkeypatch.setattr(auth_service, '_email_taken', lambda email: False)
        token = get_auth_token(client, store_admin_a.email)
        response = client.post('/api/auth/register', headers=auth_headers(token), json={
            'email': clerk_a1.email,
            'password': PASSWORD,
            'role': 'location_user',
            'location_id': location_a1.id,
        })

        assert response.status_code == 409
        assert db_session.query(User).filter_by(email=clerk_a1.email).count() == 1
        assert db_session.query(SecurityEvent).filter_by(event_type='USER_CREATED').count() == 0

    def test_register_rejects_super_admin_role(self, client, db_session, store_admin_a):
        token = get_auth_token(client, store_admin_a.email)
        response = client.post('/api/auth/register', headers=auth_headers(token), json={
            'email': 'sneaky@acme.test', 'password': PASSWORD, 'role': 'super_admin',
        })
        assert response.status_code == 400

    def test_clerk_cannot_register(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/auth/register', headers=auth_headers(token), json={
            'email': 'friend@acme.test', 'password': PASSWORD,
        })
        assert response.status_code == 403

    def test_super_admin_switches_context(self, client, db_session, super_admin, tenant_b, location_b1):
        token = get_auth_token(client, super_admin.email)

        response = client.post('/api/auth/switch-context', headers=auth_headers(token), json={
            'location_id': location_b1.id,
        })
        assert response.status_code == 200

        record = db_session.query(SessionToken).filter_by(user_id=super_admin.id).one()
        db_session.refresh(record)
        assert (record.tenant_id, record.location_id) == (tenant_b.id, location_b1.id)

        profile = client.get('/api/auth/profile', headers=auth_headers(token))
        assert profile.json['context'] == {'tenant_id': tenant_b.id, 'location_id': location_b1.id}

    def test_only_super_admin_switches_context(self, client, db_session, store_admin_a, tenant_b):
        token = get_auth_token(client, store_admin_a.email)
        response = client.post('/api/auth/switch-context', headers=auth_headers(token), json={
            'tenant_id': tenant_b.id,
        })
        assert response.status_code == 403


class TestInventoryRoutes:
    def test_clerk_stocks_in_at_own_location(self, client, db_session, clerk_a1, variant_42, location_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/inventory/stock-in', headers=auth_headers(token), json={
            'variant_id': variant_42.id,
            'quantity': 12,
            'cost_price': '40.00',
            'selling_price': '100.00',
            'supplier': 'Acme Dist',
        })

        assert response.status_code == 201
        inventory = response.json['inventory']
        assert inventory['location_id'] == location_a1.id
        assert inventory['quantity'] == 12
        assert inventory['selling_price'] == '100.00'

    def test_stock_in_validation(self, client, db_session, clerk_a1, variant_42):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/inventory/stock-in', headers=auth_headers(token), json={
            'variant_id': variant_42.id, 'quantity': -1, 'cost_price': '1', 'selling_price': '2',
        })
        assert response.status_code == 400

    def test_store_admin_must_name_a_location(self, client, db_session, store_admin_a, variant_42):
        token = get_auth_token(client, store_admin_a.email)
        response = client.post('/api/inventory/stock-in', headers=auth_headers(token), json={
            'variant_id': variant_42.id, 'quantity': 1, 'cost_price': '1', 'selling_price': '2',
        })
        assert response.status_code == 400

    def test_check_stock(self, client, db_session, stocked, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.get(
            f'/api/inventory/check-stock?variant_id={stocked["42"].id}',
            headers=auth_headers(token),
        )
        assert response.status_code == 200
        assert response.json['available'] is True
        assert response.json['quantity'] == 10
        assert response.json['discounted_price'] == '90.00'

    def test_movements_and_stock_status(self, client, db_session, stocked, store_admin_a, location_a1):
        token = get_auth_token(client, store_admin_a.email)

        movements = client.get(
            f'/api/inventory/movements?location_id={location_a1.id}&variant_id={stocked["42"].id}',
            headers=auth_headers(token),
        )
        assert movements.status_code == 200
        assert movements.json['count'] == 1

        status = client.get('/api/inventory/stock-status?brand=Acme', headers=auth_headers(token))
        assert status.status_code == 200
        assert {item['size'] for item in status.json['items']} == {'42', '43'}

    def test_location_and_tenant_listings(
        self, client, db_session, services, stocked, clerk_a1, store_admin_a, tenant_a, location_a2,
    ):
        services.ledger.stock_in(tenant_a.id, location_a2.id, stocked["42"].id, 2, "40.00", "100.00")

        clerk = get_auth_token(client, clerk_a1.email)
        own = client.get(f'/api/inventory/location/{clerk_a1.location_id}', headers=auth_headers(clerk))
        assert own.status_code == 200
        assert own.json['count'] == 3
        assert client.get(f'/api/inventory/location/{location_a2.id}', headers=auth_headers(clerk)).status_code == 403
        assert client.get('/api/inventory/tenant', headers=auth_headers(clerk)).status_code == 403

        admin = get_auth_token(client, store_admin_a.email)
        everything = client.get('/api/inventory/tenant', headers=auth_headers(admin))
        assert everything.status_code == 200
        assert everything.json['count'] == 4
        assert {item['location_name'] for item in everything.json['items']} == {'Downtown', 'Airport'}

    def test_location_stock_report(self, client, db_session, stocked, store_admin_a, location_a1):
        token = get_auth_token(client, store_admin_a.email)
        response = client.get(f'/api/inventory/location/{location_a1.id}/report', headers=auth_headers(token))

        assert response.status_code == 200
        report = response.json
        assert report['total_items'] == 3
        assert report['total_quantity'] == 35
        # 10 * 40 + 5 * 40 + 20 * 1.50
        assert report['total_value'] == '630.00'
        assert {item['size'] for item in report['low_stock_items']} == {'43'}


class TestInvoiceRoutes:
    def test_create_and_fetch(self, client, db_session, stocked, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/invoices/', headers=auth_headers(token), json={
            'items': [{'variant_id': stocked["42"].id, 'quantity': 1}],
            'tax_amount': '9.00',
            'customer_name': 'Walk-in',
        })

        assert response.status_code == 201
        invoice = response.json['invoice']
        assert invoice['total_amount'] == '99.00'
        assert invoice['created_by_user_id'] == clerk_a1.id

        fetched = client.get(f'/api/invoices/{invoice["id"]}', headers=auth_headers(token))
        assert fetched.status_code == 200
        assert fetched.json['invoice']['invoice_number'] == invoice['invoice_number']

    def test_insufficient_stock_is_409_with_details(self, client, db_session, stocked, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/invoices/', headers=auth_headers(token), json={
            'items': [{'variant_id': stocked["43"].id, 'quantity': 9}],
        })

        assert response.status_code == 409
        details = response.json['details']
        assert details['variant_id'] == stocked["43"].id
        assert details['requested_quantity'] == 9
        assert details['available_quantity'] == 5
        assert db_session.query(Invoice).count() == 0

    def test_empty_cart_is_400(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/invoices/', headers=auth_headers(token), json={'items': []})
        assert response.status_code == 400

    def test_unknown_invoice_is_404(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        assert client.get('/api/invoices/9999', headers=auth_headers(token)).status_code == 404

    def test_tenant_listing_for_store_admin(self, client, db_session, services, stocked, store_admin_a, tenant_a, location_a1):
        services.invoices.create_invoice(
            tenant_a.id, location_a1.id, [{'variant_id': stocked["socks"].id, 'quantity': 2}],
        )
        token = get_auth_token(client, store_admin_a.email)
        response = client.get('/api/invoices/tenant/all', headers=auth_headers(token))
        assert response.status_code == 200
        assert response.json['count'] == 1


class TestProductRoutes:
    def test_create_with_variants_and_search(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/products/', headers=auth_headers(token), json={
            'name': 'Trail Runner',
            'category': 'Footwear',
            'product_code': 'TR-9',
            'discount_percent': '15',
            'variants': [{'brand': 'Peak', 'size': '41'}, {'brand': 'Peak', 'size': '42'}],
        })

        assert response.status_code == 201
        product = response.json['product']
        assert [v['variant_name'] for v in product['variants']] == ['Peak / 41', 'Peak / 42']

        found = client.get('/api/products/search?q=peak', headers=auth_headers(token))
        assert found.status_code == 200
        assert found.json['count'] == 2

        by_code = client.get('/api/products/search/code?code=TR-9', headers=auth_headers(token))
        assert by_code.status_code == 200
        assert by_code.json['count'] == 2

    def test_discount_out_of_range_is_400(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/products/', headers=auth_headers(token), json={
            'name': 'Bad', 'discount_percent': '120',
        })
        assert response.status_code == 400

    def test_duplicate_code_is_409(self, client, db_session, sneaker, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/products/', headers=auth_headers(token), json={
            'name': 'Clone', 'product_code': 'SNK-001',
        })
        assert response.status_code == 409

    def test_second_product_with_same_code_is_409(self, client, db_session, clerk_a1, store_admin_b, tenant_a):
        token = get_auth_token(client, clerk_a1.email)
        payload = {'name': 'B', 'product_code': 'DUP-1'}

        assert client.post('/api/products/', headers=auth_headers(token), json=payload).status_code == 201
        response = client.post('/api/products/', headers=auth_headers(token), json=payload)
        assert response.status_code == 409
        assert db_session.query(Product).filter_by(tenant_id=tenant_a.id, product_code='DUP-1').count() == 1

        # Codes are unique per tenant only
        other = get_auth_token(client, store_admin_b.email)
        assert client.post('/api/products/', headers=auth_headers(other), json=payload).status_code == 201

    def test_duplicate_variant_names_write_nothing(self, client, db_session, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        response = client.post('/api/products/', headers=auth_headers(token), json={
            'name': 'Tee',
            'variants': [{'variant_name': 'M'}, {'variant_name': 'M'}],
        })
        assert response.status_code == 409
        assert db_session.query(Product).filter_by(name='Tee').count() == 0

    def test_other_tenant_product_is_404(self, client, db_session, sneaker, store_admin_b):
        token = get_auth_token(client, store_admin_b.email)
        assert client.get(f'/api/products/{sneaker.id}', headers=auth_headers(token)).status_code == 404

    def test_sold_variant_cannot_be_deleted(self, client, db_session, services, stocked, clerk_a1, tenant_a, location_a1):
        services.invoices.create_invoice(
            tenant_a.id, location_a1.id, [{'variant_id': stocked["42"].id, 'quantity': 1}],
        )
        token = get_auth_token(client, clerk_a1.email)

        response = client.delete(f'/api/products/variants/{stocked["42"].id}', headers=auth_headers(token))
        assert response.status_code == 409

        response = client.delete(f'/api/products/{stocked["42"].product_id}', headers=auth_headers(token))
        assert response.status_code == 409

    def test_unsold_variant_delete_removes_inventory(self, client, db_session, stocked, clerk_a1):
        token = get_auth_token(client, clerk_a1.email)
        variant_id = stocked["socks"].id

        response = client.delete(f'/api/products/variants/{variant_id}', headers=auth_headers(token))
        assert response.status_code == 200

        check = client.get(f'/api/inventory/check-stock?variant_id={variant_id}', headers=auth_headers(token))
        assert check.json['available'] is False
        assert check.json['quantity'] == 0

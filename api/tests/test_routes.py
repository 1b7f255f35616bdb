from decimal import Decimal

from cueledger.config import settings

REVENUE_ID = settings.platform_revenue_user_id

SUPER_ADMIN = {'X-Admin-Id': 'admin-1', 'X-Admin-Roles': 'super_admin'}
EMPLOYEE = {'X-Admin-Id': 'emp-1', 'X-Admin-Roles': 'employee'}


async def test_health(client):
    response = await client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


# ── Wallets ──────────────────────────────────────────────────────────────────

async def test_get_wallet(client, make_user):
    await make_user('u1', deposit='10', winnings='5', bonus='20')

    response = await client.get('/api/wallets/u1')
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data['balance']) == Decimal('35')
    assert Decimal(data['bonus_balance']) == Decimal('20')
    assert data['is_blocked'] is False


async def test_missing_wallet_hides_details(client, revenue_wallet):
    response = await client.get('/api/wallets/ghost')
    assert response.status_code == 404
    error = response.json()['error']
    assert error['code'] == 'WALLET_NOT_FOUND'
    assert error['details'] == {}
    assert 'ghost' not in error['message']


async def test_withdrawable(client, make_user):
    await make_user('u1', deposit='10', winnings='5', bonus='20')

    data = (await client.get('/api/wallets/u1/withdrawable')).json()
    assert Decimal(data['withdrawable_balance']) == Decimal('5')
    assert Decimal(data['total_balance']) == Decimal('35')
    assert data['can_withdraw'] == ['winnings_balance']


async def test_transactions(client, make_user):
    await make_user('u1', deposit='10', winnings='5')

    data = (await client.get('/api/wallets/u1/transactions', params={'limit': 1})).json()
    assert data['total'] == 2
    assert len(data['transactions']) == 1
    assert data['transactions'][0]['type'] == 'winnings'


# ── Credits ──────────────────────────────────────────────────────────────────

async def test_daily_claim_twice(client, make_user):
    await make_user('u1')

    first = await client.post('/api/credits/u1/daily')
    assert first.status_code == 200
    assert first.json()['granted'] is True
    assert first.json()['credits']['amount'] == 1

    second = await client.post('/api/credits/u1/daily')
    assert second.status_code == 409
    assert second.json()['error']['code'] == 'ALREADY_CLAIMED_TODAY'


async def test_purchase_insufficient_funds_details(client, make_user):
    await make_user('u1', deposit='1', bonus='100')

    response = await client.post('/api/credits/u1/purchase', json={'quantity': 4})
    assert response.status_code == 400
    error = response.json()['error']
    assert error['code'] == 'INSUFFICIENT_FUNDS'
    assert Decimal(error['details']['available']) == Decimal('1')
    assert Decimal(error['details']['required']) == Decimal('2')
    assert error['details']['excluded_buckets'] == ['bonus']


async def test_purchase_and_use(client, make_user, get_wallet):
    await make_user('u1', deposit='10')

    response = await client.post('/api/credits/u1/purchase', json={'quantity': 4})
    assert response.status_code == 200
    assert response.json()['amount'] == 4

    response = await client.post('/api/credits/u1/use', json={'is_free_credit': False})
    assert response.status_code == 200
    assert response.json()['amount'] == 3

    assert (await get_wallet('u1')).deposit_balance == Decimal('7.50')
    assert (await get_wallet(REVENUE_ID)).winnings_balance == Decimal('2.50')


async def test_use_without_credits(client, make_user):
    await make_user('u1', deposit='10')

    response = await client.post('/api/credits/u1/use')
    assert response.status_code == 400
    assert response.json()['error']['code'] == 'INSUFFICIENT_CREDITS'


# ── Withdrawals ──────────────────────────────────────────────────────────────

async def test_withdrawal_lifecycle(client, make_user, get_wallet):
    await make_user('u1', winnings='50')

    response = await client.post('/api/withdrawals', json={
        'user_id': 'u1', 'amount': '50', 'pix_key': 'alice@example.com', 'pix_key_type': 'email',
    })
    assert response.status_code == 201
    request_id = response.json()['id']
    assert response.json()['status'] == 'pending'

    listing = (await client.get('/api/withdrawals', params={'user_id': 'u1'})).json()
    assert listing['total'] == 1

    response = await client.delete(f'/api/withdrawals/{request_id}', params={'user_id': 'u1'})
    assert response.status_code == 200
    assert response.json()['status'] == 'rejected'
    assert (await get_wallet('u1')).winnings_balance == Decimal('50')

    response = await client.delete(f'/api/withdrawals/{request_id}', params={'user_id': 'u1'})
    assert response.status_code == 409
    assert response.json()['error']['code'] == 'INVALID_STATE_TRANSITION'


async def test_withdrawal_below_minimum(client, make_user):
    await make_user('u1', winnings='50')

    response = await client.post('/api/withdrawals', json={
        'user_id': 'u1', 'amount': '5', 'pix_key': 'key',
    })
    assert response.status_code == 422
    assert response.json()['error']['code'] == 'VALIDATION_ERROR'


# ── Admin ────────────────────────────────────────────────────────────────────

async def test_admin_requires_capability(client, make_user):
    await make_user('u1')

    response = await client.post(
        '/api/admin/wallets/u1/adjust',
        json={'amount': '10', 'balance_type': 'bonus', 'description': 'Promo'},
        headers=EMPLOYEE,
    )
    assert response.status_code == 403
    assert response.json()['error']['code'] == 'PERMISSION_DENIED'


async def test_admin_adjust_and_logs(client, make_user):
    await make_user('u1')

    response = await client.post(
        '/api/admin/wallets/u1/adjust',
        json={'amount': '10', 'balance_type': 'bonus', 'description': 'Promo'},
        headers=SUPER_ADMIN,
    )
    assert response.status_code == 200
    assert Decimal(response.json()['bonus_balance']) == Decimal('10')

    logs = (await client.get('/api/admin/logs', headers=EMPLOYEE)).json()
    assert logs['total'] == 1
    assert logs['logs'][0]['action'] == 'wallet_adjustment'


async def test_admin_withdrawal_approval(client, make_user):
    await make_user('u1', winnings='50')
    created = (await client.post('/api/withdrawals', json={
        'user_id': 'u1', 'amount': '20', 'pix_key': 'key',
    })).json()

    pending = (await client.get('/api/admin/withdrawals/pending', headers=EMPLOYEE)).json()
    assert pending['total'] == 1

    response = await client.post(
        f'/api/admin/withdrawals/{created["id"]}/approve',
        json={'notes': 'Paid via PIX'},
        headers=EMPLOYEE,
    )
    assert response.status_code == 200
    assert response.json()['status'] == 'approved'
    assert response.json()['processed_by'] == 'emp-1'


async def test_admin_settings(client, revenue_wallet):
    headers = {'X-Admin-Id': 'mgr-1', 'X-Admin-Roles': 'manager'}

    response = await client.put('/api/admin/settings/platform_fee_percent', json={'value': 12}, headers=headers)
    assert response.status_code == 200

    values = (await client.get('/api/admin/settings', headers=headers)).json()
    assert values['platform_fee_percent'] == 12

    response = await client.put('/api/admin/settings/platform_fee_percent', json={'value': 80}, headers=headers)
    assert response.status_code == 422


async def test_admin_block_wallet(client, make_user):
    await make_user('u1', deposit='20')
    headers = {'X-Admin-Id': 'mod-1', 'X-Admin-Roles': 'moderator'}

    response = await client.post('/api/admin/wallets/u1/block', json={'blocked': True}, headers=headers)
    assert response.status_code == 200
    assert response.json()['is_blocked'] is True

    response = await client.post('/api/credits/u1/purchase', json={'quantity': 4})
    assert response.status_code == 403
    assert response.json()['error']['code'] == 'WALLET_BLOCKED'


async def test_admin_reconciliation(client, make_user):
    await make_user('u1', deposit='20')
    headers = {'X-Admin-Id': 'mgr-1', 'X-Admin-Roles': 'manager'}

    response = await client.post('/api/admin/reconciliation', headers=headers)
    assert response.status_code == 200
    assert response.json()['discrepancies'] == 0

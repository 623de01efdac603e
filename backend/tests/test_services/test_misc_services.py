"""
Unit tests for tiers, numbering, dashboard and account services

Author: Ammex Dev Team
Date: 2025-03-23
"""
import random
import re
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ammex.core.auth import decode_access_token, hash_password
from ammex.core.exceptions import AmmexError, NotFoundError, ValidationFailed
from ammex.domain.catalog import Tier
from ammex.domain.customer import Customer
from ammex.domain.user import User
from ammex.services.account_service import AccountService
from ammex.services.dashboard_service import DashboardService, growth_percent
from ammex.services.numbering import document_number, generate_unique_number, sequence_code
from ammex.services.tier_service import DEFAULT_TIERS, TierService, select_tier

TIERS = [
    Tier(id=1, name='Bronze', discount_percent=Decimal('0'), min_spend=Decimal('0'), priority=1),
    Tier(id=2, name='Silver', discount_percent=Decimal('10'), min_spend=Decimal('10000'), priority=2),
    Tier(id=3, name='Gold', discount_percent=Decimal('20'), min_spend=Decimal('50000'), priority=3),
]


class TestSelectTier:

    @pytest.mark.parametrize("spend,expected", [
        (Decimal('0'), 'Bronze'),
        (Decimal('9999.99'), 'Bronze'),
        (Decimal('10000'), 'Silver'),
        (Decimal('75000'), 'Gold'),
    ])
    def test_highest_reached_tier(self, spend, expected):
        assert select_tier(TIERS, spend).name == expected

    def test_inactive_tiers_skipped(self):
        tiers = TIERS[:2] + [Tier(id=3, name='Gold', discount_percent=Decimal('20'),
                                  min_spend=Decimal('50000'), priority=3, is_active=False)]

        assert select_tier(tiers, Decimal('75000')).name == 'Silver'

    def test_nothing_eligible(self):
        assert select_tier(TIERS[1:], Decimal('10')) is None


class TestTierService:

    @pytest.fixture
    def repos(self):
        tier_repo = MagicMock()
        customer_repo = MagicMock()
        tier_repo.find_all.return_value = TIERS
        tier_repo.count.return_value = 3
        return tier_repo, customer_repo

    def test_defaults_seeded_when_empty(self, repos):
        tier_repo, customer_repo = repos
        tier_repo.count.return_value = 0

        TierService(tier_repo, customer_repo).ensure_defaults()

        tier_repo.replace_all.assert_called_once_with(DEFAULT_TIERS)

    def test_upgrade_when_spend_reaches_next_tier(self, repos):
        tier_repo, customer_repo = repos
        tier_repo.lifetime_spend.return_value = Decimal('12000')
        tier_repo.find_for_customer.return_value = TIERS[0]

        target = TierService(tier_repo, customer_repo).check_and_upgrade_tier(100)

        assert target.name == 'Silver'
        customer_repo.set_tier.assert_called_once_with(100, 2)

    def test_no_write_when_tier_unchanged(self, repos):
        tier_repo, customer_repo = repos
        tier_repo.lifetime_spend.return_value = Decimal('12000')
        tier_repo.find_for_customer.return_value = TIERS[1]

        TierService(tier_repo, customer_repo).check_and_upgrade_tier(100)

        customer_repo.set_tier.assert_not_called()

    def test_upgrade_errors_are_swallowed(self, repos):
        tier_repo, customer_repo = repos
        tier_repo.lifetime_spend.side_effect = RuntimeError("db down")

        assert TierService(tier_repo, customer_repo).check_and_upgrade_tier(100) is None

    def test_replace_rejects_duplicate_names(self, repos):
        tier_repo, customer_repo = repos
        tiers = [Tier(name='Gold'), Tier(name=' gold ')]

        with pytest.raises(ValidationFailed, match="Tier names must be unique"):
            TierService(tier_repo, customer_repo).replace_tiers(tiers)

    def test_replace_requires_tiers(self, repos):
        with pytest.raises(ValidationFailed):
            TierService(*repos).replace_tiers([])

    def test_customer_summary(self, repos):
        tier_repo, customer_repo = repos
        customer_repo.find_by_id.return_value = Customer(id=100, customer_code='CUST-0100', customer_name='Acme')
        tier_repo.lifetime_spend.return_value = Decimal('12000')
        tier_repo.find_for_customer.return_value = TIERS[1]

        summary = TierService(tier_repo, customer_repo).customer_summary(100)

        assert summary['lifetimeSpend'] == 12000.0
        assert summary['tier']['name'] == 'Silver'
        assert summary['nextTier']['name'] == 'Gold'
        assert summary['amountToNextTier'] == 38000.0

    def test_customer_summary_unknown_customer(self, repos):
        tier_repo, customer_repo = repos
        customer_repo.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            TierService(tier_repo, customer_repo).customer_summary(100)


class TestNumbering:

    def test_document_number_format(self):
        number = document_number('ORD', date(2025, 3, 1), rng=random.Random(7))

        assert re.match(r'^ORD-20250301-\d{4}$', number)

    def test_retries_on_collision(self):
        exists = MagicMock(side_effect=[True, False])

        number = generate_unique_number('INV', exists)

        assert number.startswith('INV-')
        assert exists.call_count == 2

    def test_gives_up_after_max_attempts(self):
        with pytest.raises(AmmexError) as exc_info:
            generate_unique_number('PAY', lambda number: True)

        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize("prefix,sequence,expected", [
        ('CUST', 5, 'CUST-0005'),
        ('SUPP', 123, 'SUPP-0123'),
        ('CUST', 12345, 'CUST-12345'),
    ])
    def test_sequence_code(self, prefix, sequence, expected):
        assert sequence_code(prefix, sequence) == expected


class TestDashboardService:

    @pytest.mark.parametrize("current,previous,expected", [
        (150, 100, 50.0),
        (50, 100, -50.0),
        (10, 0, 0.0),
        (None, None, 0.0),
        (Decimal('1'), Decimal('3'), -66.67),
    ])
    def test_growth_percent(self, current, previous, expected):
        assert growth_percent(current, previous) == expected

    def test_daily_metrics(self):
        repo = MagicMock()
        repo.sales_for_day.side_effect = [
            {'total_sales': Decimal('1500'), 'total_orders': 3, 'avg_order_value': Decimal('500'),
             'unique_customers': 2},
            {'total_sales': Decimal('1000'), 'total_orders': 4, 'avg_order_value': Decimal('250'),
             'unique_customers': 2},
        ]
        repo.pending_orders.return_value = 5
        repo.pending_payments.return_value = 1
        repo.inventory_metrics.return_value = {'total_items': 40}
        repo.customer_metrics.return_value = {'total_customers': 9}

        metrics = DashboardService(repo).daily_metrics(today=date(2025, 3, 2))

        assert metrics['date'] == '2025-03-02'
        assert metrics['sales']['today']['total_sales'] == 1500.0
        assert metrics['sales']['growth'] == {
            'totalSales': 50.0, 'totalOrders': -25.0, 'avgOrderValue': 100.0, 'uniqueCustomers': 0.0,
        }
        repo.sales_for_day.assert_any_call(date(2025, 3, 1))

    def test_inventory_alerts_filter_by_severity(self):
        repo = MagicMock()
        repo.inventory_alert_rows.return_value = [
            {'id': 1, 'item_name': 'Drill', 'quantity': 0, 'min_level': 10},
            {'id': 2, 'item_name': 'Goggles', 'quantity': 2, 'min_level': 10},
            {'id': 3, 'item_name': 'Gloves', 'quantity': 8, 'min_level': 10},
        ]

        critical = DashboardService(repo).inventory_alerts('CRITICAL')
        everything = DashboardService(repo).inventory_alerts()

        assert [a['id'] for a in critical] == [1]
        assert [a['severity'] for a in everything] == ['CRITICAL', 'HIGH', 'MEDIUM']
        assert everything[2]['reorder_amount'] == 2

    def test_invalid_severity(self):
        with pytest.raises(ValidationFailed):
            DashboardService(MagicMock()).inventory_alerts('urgent')

    def test_invalid_group_by(self):
        with pytest.raises(ValidationFailed, match="group_by"):
            DashboardService(MagicMock()).sales_analytics(None, None, group_by='year')

    def test_warehouse_role_metrics(self):
        repo = MagicMock()
        repo.inventory_metrics.return_value = {'total_items': 40}
        repo.inventory_alert_rows.return_value = []

        metrics = DashboardService(repo).role_metrics('warehouse_admin')

        assert metrics['role'] == 'Warehouse Supervisor'
        assert metrics['alerts'] == []
        repo.sales_for_day.assert_not_called()


class TestAccountService:

    @pytest.fixture
    def repos(self):
        return MagicMock(), MagicMock()

    def _stored_user(self, **overrides):
        data = dict(id=10, name='Cora', email='cora@acme.com', role='Client',
                    password_hash=hash_password('secret1'), customer_id=100)
        data.update(overrides)
        return User(**data)

    def test_login(self, repos):
        user_repo, customer_repo = repos
        user_repo.find_by_email.return_value = self._stored_user()

        token, user = AccountService(user_repo, customer_repo).login(' Cora@Acme.com ', 'secret1')

        user_repo.find_by_email.assert_called_once_with('Cora@Acme.com')
        user_repo.touch_last_login.assert_called_once_with(10)
        claims = decode_access_token(token)
        assert claims['id'] == 10
        assert claims['customerId'] == 100

    def test_login_wrong_password(self, repos):
        user_repo, customer_repo = repos
        user_repo.find_by_email.return_value = self._stored_user()

        with pytest.raises(AmmexError, match="Invalid credentials"):
            AccountService(user_repo, customer_repo).login('cora@acme.com', 'nope')

    def test_login_inactive(self, repos):
        user_repo, customer_repo = repos
        user_repo.find_by_email.return_value = self._stored_user(is_active=False)

        with pytest.raises(AmmexError, match="Account is inactive"):
            AccountService(user_repo, customer_repo).login('cora@acme.com', 'secret1')

    def test_login_requires_both_fields(self, repos):
        with pytest.raises(ValidationFailed):
            AccountService(*repos).login('', 'secret1')

    def test_register_client_creates_customer(self, repos):
        user_repo, customer_repo = repos
        user_repo.email_exists.return_value = False
        user_repo.create.return_value = User(id=11, name='Acme', email='buyer@acme.com', role='Client')
        user_repo.find_by_id.return_value = User(id=11, name='Acme', email='buyer@acme.com', role='Client',
                                                 customer_id=5, customer_code='CUST-0005')
        customer_repo.next_sequence.return_value = 5
        conn = MagicMock()

        with patch('ammex.services.account_service.transaction') as mock_tx:
            mock_tx.return_value.__enter__.return_value = conn
            user = AccountService(user_repo, customer_repo).register({
                'name': 'Acme', 'email': ' Buyer@Acme.com', 'password': 'secret1',
            })

        customer_data = customer_repo.create.call_args[0][0]
        assert customer_data['customer_code'] == 'CUST-0005'
        assert customer_data['email1'] == 'buyer@acme.com'
        assert customer_data['user_id'] == 11
        assert user.customer_code == 'CUST-0005'
        assert user_repo.create.call_args[0][0]['role'] == 'Client'

    def test_register_staff_has_no_customer(self, repos):
        user_repo, customer_repo = repos
        user_repo.email_exists.return_value = False
        user_repo.create.return_value = User(id=12, name='Sam', email='sam@ammex.com', role='Sales Marketing')

        with patch('ammex.services.account_service.transaction'):
            AccountService(user_repo, customer_repo).register({
                'name': 'Sam', 'email': 'sam@ammex.com', 'password': 'secret1', 'role': 'sales_marketing',
            })

        customer_repo.create.assert_not_called()

    def test_register_short_password(self, repos):
        with pytest.raises(ValidationFailed, match="at least 6 characters"):
            AccountService(*repos).register({'name': 'A', 'email': 'a@b.com', 'password': '123'})

    def test_register_duplicate_email(self, repos):
        user_repo, customer_repo = repos
        user_repo.email_exists.return_value = True

        with pytest.raises(ValidationFailed, match="User already exists"):
            AccountService(user_repo, customer_repo).register(
                {'name': 'A', 'email': 'a@b.com', 'password': 'secret1'})

    def test_register_unknown_role(self, repos):
        with pytest.raises(ValidationFailed, match="Invalid role"):
            AccountService(*repos).register(
                {'name': 'A', 'email': 'a@b.com', 'password': 'secret1', 'role': 'Janitor'})

    def test_cannot_archive_self(self, repos, admin_user):
        with pytest.raises(ValidationFailed, match="cannot archive your own account"):
            AccountService(*repos).set_active(admin_user.id, False, admin_user)

    def test_change_password_checks_current(self, repos):
        user_repo, customer_repo = repos
        stored = self._stored_user()
        user_repo.find_by_email.return_value = stored

        with pytest.raises(AmmexError, match="Current password is incorrect"):
            AccountService(user_repo, customer_repo).change_password(stored, 'wrong', 'newsecret')

        user_repo.update_password.assert_not_called()

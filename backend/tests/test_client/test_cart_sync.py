"""
Unit tests for the client-side cart cache and debounced sync

Author: Ammex Dev Team
Date: 2025-03-24
"""
import json
from unittest.mock import MagicMock

import pytest

from ammex.client.api_client import ApiError
from ammex.client.cart_sync import CartSync, merge_carts


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def client():
    client = MagicMock()
    client.sync_cart.return_value = {'success': True, 'data': {'items': []}, 'adjustments': []}
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cart(client, clock, tmp_path):
    # Long debounce: timers never fire during a test, flush() runs them
    sync = CartSync(client, 100, str(tmp_path), debounce=60, clock=clock)
    yield sync
    sync.close()


class TestMergeCarts:

    def test_union_with_larger_quantity_and_server_price(self):
        local = [
            {'itemId': 1, 'quantity': 5, 'price': 99.0, 'name': 'Drill'},
            {'itemId': 2, 'quantity': 1, 'price': 20.0, 'name': 'Goggles'},
        ]
        server = [
            {'itemId': 1, 'quantity': 2, 'unitPrice': 95.0, 'itemName': 'Cordless Drill'},
            {'itemId': 3, 'quantity': 4, 'unitPrice': 3.5, 'itemName': 'Gloves'},
        ]

        merged = {line['itemId']: line for line in merge_carts(local, server)}

        assert merged[1] == {'itemId': 1, 'quantity': 5, 'price': 95.0, 'name': 'Cordless Drill'}
        assert merged[2]['quantity'] == 1
        assert merged[3] == {'itemId': 3, 'quantity': 4, 'price': 3.5, 'name': 'Gloves'}

    def test_server_quantity_wins_when_larger(self):
        merged = merge_carts([{'itemId': 1, 'quantity': 1}], [{'itemId': 1, 'quantity': 3, 'price': 10}])

        assert merged[0]['quantity'] == 3
        assert merged[0]['price'] == 10


class TestLocalCache:

    def test_mutations_are_written_immediately(self, cart, tmp_path):
        cart.add(1, 2, price=100.0, name='Drill')
        cart.add(1, 1)
        cart.add(2)

        stored = json.loads((tmp_path / 'cart_100.json').read_text())
        assert [(line['itemId'], line['quantity']) for line in stored] == [(1, 3), (2, 1)]

    def test_update_to_zero_removes_line(self, cart):
        cart.add(1, 2)

        cart.update(1, 0)

        assert cart.items == []

    def test_update_unknown_line(self, cart):
        with pytest.raises(KeyError):
            cart.update(42, 1)

    def test_add_rejects_non_positive_quantity(self, cart):
        with pytest.raises(ValueError):
            cart.add(1, 0)

    def test_reload_from_disk(self, client, clock, cart, tmp_path):
        cart.add(7, 4)

        reloaded = CartSync(client, 100, str(tmp_path), debounce=60, clock=clock)

        assert reloaded.items == [{'itemId': 7, 'quantity': 4, 'price': None, 'name': None}]

    def test_corrupt_main_file_falls_back_to_backup(self, client, clock, cart, tmp_path):
        cart.add(1, 1)
        cart.add(2, 1)
        (tmp_path / 'cart_100.json').write_text('{not json')

        reloaded = CartSync(client, 100, str(tmp_path), debounce=60, clock=clock)

        assert [line['itemId'] for line in reloaded.items] == [1]

    def test_no_files_means_empty_cart(self, cart):
        assert cart.items == []


class TestSync:

    def test_rapid_edits_coalesce_into_one_push(self, cart, client):
        cart.add(1, 1)
        cart.add(1, 1)
        cart.add(2, 5)

        assert cart.has_pending_sync
        assert cart.flush() is True

        client.sync_cart.assert_called_once_with(100, [
            {'itemId': 1, 'quantity': 2},
            {'itemId': 2, 'quantity': 5},
        ])
        assert not cart.has_pending_sync

    def test_flush_without_pending_changes(self, cart, client):
        assert cart.flush() is False
        client.sync_cart.assert_not_called()

    def test_prevent_sync_window(self, cart, client, clock):
        cart.prevent_sync(5.0)
        cart.add(1, 1)

        assert cart.sync_prevented
        assert not cart.has_pending_sync

        clock.now += 5.1
        cart.add(1, 1)

        assert not cart.sync_prevented
        assert cart.has_pending_sync

    def test_push_adopts_server_cart(self, cart, client):
        client.sync_cart.return_value = {
            'success': True,
            'data': {'items': [{'itemId': 1, 'quantity': 3, 'unitPrice': 95.0, 'itemName': 'Drill'}]},
            'adjustments': [{'itemId': 1, 'action': 'clamped', 'requested': 10, 'quantity': 3}],
        }
        cart.add(1, 10)

        assert cart.push() is True
        assert cart.items == [{'itemId': 1, 'quantity': 3, 'price': 95.0, 'name': 'Drill'}]

    def test_failed_push_keeps_local_cache(self, cart, client):
        client.sync_cart.side_effect = ApiError('Network error: down')
        cart.add(1, 2)

        assert cart.push() is False
        assert cart.items[0]['quantity'] == 2

    def test_merge_on_login_pushes_immediately(self, cart, client):
        client.sync_cart.return_value = {'success': True, 'data': {'items': [
            {'itemId': 1, 'quantity': 1, 'unitPrice': 10.0, 'itemName': 'Drill'},
            {'itemId': 2, 'quantity': 1, 'unitPrice': 5.0, 'itemName': 'Gloves'},
        ]}}
        cart.add(1, 1)

        items = cart.merge_on_login([{'itemId': 2, 'quantity': 1, 'unitPrice': 5.0}])

        assert {line['itemId'] for line in items} == {1, 2}
        pushed = client.sync_cart.call_args[0][1]
        assert {line['itemId'] for line in pushed} == {1, 2}

    def test_edit_during_push_is_not_overwritten(self, cart, client):
        cart.add(1, 1)

        def respond(customer_id, payload):
            # Another edit lands while the request is in flight
            cart.add(2, 1)
            return {'success': True, 'data': {'items': [
                {'itemId': 1, 'quantity': 1, 'unitPrice': 10.0, 'itemName': 'Drill'},
            ]}}

        client.sync_cart.side_effect = respond

        assert cart.push() is True
        assert {line['itemId'] for line in cart.items} == {1, 2}
        assert cart.has_pending_sync

    def test_merge_on_login_cancels_pending_sync(self, cart, client):
        cart.add(1, 1)
        assert cart.has_pending_sync

        cart.merge_on_login([])

        assert not cart.has_pending_sync
        client.sync_cart.assert_called_once()

    def test_merge_on_login_respects_prevent_window(self, cart, client):
        cart.prevent_sync(5.0)

        items = cart.merge_on_login([{'itemId': 3, 'quantity': 2, 'unitPrice': 4.0}])

        assert [line['itemId'] for line in items] == [3]
        client.sync_cart.assert_not_called()

"""
Unit tests for NotificationPoller

Author: Ammex Dev Team
Date: 2025-03-24
"""
from unittest.mock import MagicMock

from ammex.client.api_client import ApiError
from ammex.client.notifications import NotificationPoller


def test_callback_fires_only_when_unread_count_changes():
    client = MagicMock()
    callback = MagicMock()
    client.notifications.side_effect = [
        {'success': True, 'data': [], 'unreadCount': 2},
        {'success': True, 'data': [], 'unreadCount': 2},
        {'success': True, 'data': [], 'unreadCount': 0},
    ]
    poller = NotificationPoller(client, callback)

    fired = [poller.poll_once() for _ in range(3)]

    assert fired == [True, False, True]
    assert callback.call_count == 2
    assert poller.last_unread == 0


def test_poll_errors_are_logged():
    client = MagicMock()
    client.notifications.side_effect = ApiError('Network error: down')
    callback = MagicMock()

    assert NotificationPoller(client, callback).poll_once() is False
    callback.assert_not_called()


def test_callback_errors_do_not_stop_polling():
    client = MagicMock()
    client.notifications.return_value = {'unreadCount': 1}
    poller = NotificationPoller(client, MagicMock(side_effect=RuntimeError('ui closed')))

    assert poller.poll_once() is True


def test_start_and_stop():
    client = MagicMock()
    client.notifications.return_value = {'unreadCount': 0}
    poller = NotificationPoller(client, MagicMock(), interval=60)

    poller.start()
    poller.stop(timeout=2)

    assert poller._thread is None

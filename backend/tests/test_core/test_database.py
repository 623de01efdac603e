"""
Unit tests for connection retry and the transaction context manager
"""
from unittest.mock import MagicMock, call, patch

import psycopg2
import pytest

from ammex.core.database import get_db_connection_with_retry, transaction


class TestConnectionRetry:

    @patch('ammex.core.database.time.sleep')
    @patch('ammex.core.database.psycopg2.connect')
    def test_retries_with_exponential_backoff(self, mock_connect, mock_sleep):
        conn = MagicMock()
        mock_connect.side_effect = [
            psycopg2.OperationalError("down"),
            psycopg2.OperationalError("down"),
            conn,
        ]

        result = get_db_connection_with_retry(max_retries=3, retry_delay=0.5)

        assert result is conn
        assert mock_sleep.call_args_list == [call(0.5), call(1.0)]
        conn.cursor.return_value.execute.assert_called_once_with("SELECT 1")

    @patch('ammex.core.database.time.sleep')
    @patch('ammex.core.database.psycopg2.connect')
    def test_raises_last_error_when_exhausted(self, mock_connect, mock_sleep):
        mock_connect.side_effect = psycopg2.OperationalError("down")

        with pytest.raises(psycopg2.OperationalError):
            get_db_connection_with_retry(max_retries=2, retry_delay=0.1)

        assert mock_connect.call_count == 2
        mock_sleep.assert_called_once_with(0.1)


class TestTransaction:

    @patch('ammex.core.database.get_db_connection_with_retry')
    def test_commits_and_closes(self, mock_get):
        conn = MagicMock()
        mock_get.return_value = conn

        with transaction() as tx:
            assert tx is conn

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    @patch('ammex.core.database.get_db_connection_with_retry')
    def test_rolls_back_and_reraises(self, mock_get):
        conn = MagicMock()
        mock_get.return_value = conn

        with pytest.raises(ValueError):
            with transaction():
                raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

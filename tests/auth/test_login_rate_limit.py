from unittest.mock import MagicMock, patch

import redis

from tipster.services.auth.login_rate_limit import check_login_rate_limit, reset_login_attempts


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_allows_until_ip_limit(mock_from_url):
    client = MagicMock()
    client.incr.side_effect = [1, 5, 6]
    mock_from_url.return_value = client

    assert check_login_rate_limit("10.0.0.1") is True
    client.expire.assert_called_once()
    assert client.expire.call_args.args[0] == "login_attempts:ip:10.0.0.1"
    assert check_login_rate_limit("10.0.0.1") is True
    assert check_login_rate_limit("10.0.0.1") is False


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_counts_ip_and_normalized_email(mock_from_url):
    client = MagicMock()
    client.incr.return_value = 1
    mock_from_url.return_value = client

    assert check_login_rate_limit("10.0.0.1", " Buyer@Example.com ") is True
    keys = [c.args[0] for c in client.incr.call_args_list]
    assert keys == ["login_attempts:ip:10.0.0.1", "login_attempts:email:buyer@example.com"]


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_email_limit_applies_across_ips(mock_from_url):
    # Fresh IP each time, but the account counter is already past its limit
    client = MagicMock()
    client.incr.side_effect = [1, 11]
    mock_from_url.return_value = client

    assert check_login_rate_limit("10.0.0.9", "buyer@example.com") is False


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_fails_open_when_redis_is_down(mock_from_url):
    mock_from_url.return_value.incr.side_effect = redis.ConnectionError("down")
    assert check_login_rate_limit("10.0.0.1", "buyer@example.com") is True


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_reset_deletes_both_counters(mock_from_url):
    reset_login_attempts("10.0.0.2", "Buyer@example.com")
    mock_from_url.return_value.delete.assert_called_once_with(
        "login_attempts:ip:10.0.0.2", "login_attempts:email:buyer@example.com"
    )


@patch("tipster.services.auth.login_rate_limit.redis.Redis.from_url")
def test_reset_swallows_redis_errors(mock_from_url):
    mock_from_url.return_value.delete.side_effect = redis.ConnectionError("down")
    reset_login_attempts("10.0.0.2")

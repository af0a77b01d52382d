from unittest.mock import patch

from matrimatch.utils.monitoring import init_sentry


@patch("matrimatch.utils.monitoring.sentry_sdk")
@patch("matrimatch.utils.monitoring.settings")
def test_init_sentry_without_dsn(mock_settings, mock_sentry):
    mock_settings.SENTRY_DSN = None

    assert init_sentry() is False
    mock_sentry.init.assert_not_called()


@patch("matrimatch.utils.monitoring.sentry_sdk")
@patch("matrimatch.utils.monitoring.settings")
def test_init_sentry_with_dsn(mock_settings, mock_sentry):
    mock_settings.SENTRY_DSN = "https://key@sentry.example.com/1"
    mock_settings.ENVIRONMENT = "production"

    assert init_sentry() is True

    kwargs = mock_sentry.init.call_args.kwargs
    assert kwargs["dsn"] == "https://key@sentry.example.com/1"
    assert kwargs["environment"] == "production"
    assert kwargs["traces_sample_rate"] == 0.1
    assert len(kwargs["integrations"]) == 2

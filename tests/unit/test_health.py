"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from vault_engine_operator.health import create_combined_wsgi_app, start_health_server


def make_environ(path):
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


class TestCombinedWsgiApp:
    """Test cases for create_combined_wsgi_app function."""

    def test_combined_app_healthz(self):
        """Test /healthz always answers ok."""
        app = create_combined_wsgi_app(lambda: False)
        start_response = MagicMock()

        body = b"".join(app(make_environ("/healthz"), start_response))

        assert b'"status":"ok"' in body
        assert "200" in start_response.call_args[0][0]

    def test_combined_app_readyz_ready(self):
        """Test /readyz answers 200 when ready."""
        app = create_combined_wsgi_app(lambda: True)
        start_response = MagicMock()

        body = b"".join(app(make_environ("/readyz"), start_response))

        assert b'"status":"ready"' in body
        assert "200" in start_response.call_args[0][0]

    def test_combined_app_readyz_not_ready(self):
        """Test /readyz answers 503 while the controllers are not running."""
        app = create_combined_wsgi_app(lambda: False)
        start_response = MagicMock()

        body = b"".join(app(make_environ("/readyz"), start_response))

        assert b'"status":"not ready"' in body
        assert "503" in start_response.call_args[0][0]

    def test_combined_app_readyz_without_callback(self):
        """Test /readyz defaults to ready."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        app(make_environ("/readyz"), start_response)

        assert "200" in start_response.call_args[0][0]

    def test_content_type_is_json(self):
        """Test that health responses are JSON."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        app(make_environ("/healthz"), start_response)

        headers = dict(start_response.call_args[0][1])
        assert headers["Content-Type"].startswith("application/json")

    @patch("vault_engine_operator.health.make_wsgi_app")
    def test_combined_app_delegates_to_metrics(self, mock_make_wsgi):
        """Test that other paths go to the prometheus app."""
        mock_metrics_app = MagicMock(return_value=[b"metrics"])
        mock_make_wsgi.return_value = mock_metrics_app
        app = create_combined_wsgi_app()
        environ = make_environ("/metrics")
        start_response = MagicMock()

        assert app(environ, start_response) == [b"metrics"]
        mock_metrics_app.assert_called_once_with(environ, start_response)


class TestStartHealthServer:
    """Test cases for start_health_server."""

    @patch("vault_engine_operator.health.make_server")
    @patch("vault_engine_operator.health.threading.Thread")
    def test_starts_daemon_server(self, mock_thread, mock_make_server):
        """Test that the server runs from a daemon thread."""
        server = start_health_server(9090, lambda: True)

        assert server is mock_make_server.return_value
        assert mock_make_server.call_args.args[:2] == ("", 9090)
        assert mock_make_server.call_args.kwargs["threaded"] is True
        assert mock_thread.call_args.kwargs["daemon"] is True
        assert mock_thread.call_args.kwargs["target"] == server.serve_forever
        mock_thread.return_value.start.assert_called_once()

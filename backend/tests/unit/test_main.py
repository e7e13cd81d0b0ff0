"""
Unit tests for main FastAPI application.

Tests the root endpoints, global exception handlers and lifespan.
"""

import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from fastapi import Request

from main import (
    app,
    root,
    health_check,
    global_exception_handler,
    value_error_handler,
    lifespan
)


class TestRootEndpoints:
    """Test root API endpoints."""

    def test_root_endpoint(self):
        client = TestClient(app)
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Practice Scheduling Backend API"
        assert data["status"] == "running"

    @pytest.mark.asyncio
    async def test_health_check_function_directly(self):
        result = await health_check()
        assert result == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_root_function_directly(self):
        result = await root()
        assert result["version"] == "1.0.0"


class TestExceptionHandlers:
    """Test global exception handlers."""

    @pytest.mark.asyncio
    async def test_global_exception_handler(self):
        """Test handling of unhandled exceptions."""
        mock_request = Mock(spec=Request)

        with patch('main.logger') as mock_logger:
            response = await global_exception_handler(mock_request, RuntimeError("Test error"))

            assert response.status_code == 500
            assert b"internal_error" in response.body
            mock_logger.exception.assert_called_once()
            assert "Unhandled exception: Test error" in mock_logger.exception.call_args[0][0]

    @pytest.mark.asyncio
    async def test_value_error_handler(self):
        """Test handling of ValueError exceptions."""
        mock_request = Mock(spec=Request)

        with patch('main.logger') as mock_logger:
            response = await value_error_handler(mock_request, ValueError("Invalid value"))

            assert response.status_code == 400
            assert b"Invalid value" in response.body
            assert b"validation_error" in response.body
            mock_logger.warning.assert_called_once_with("ValueError: Invalid value")


class TestApplicationSetup:
    """Test FastAPI application setup and configuration."""

    def test_app_creation(self):
        assert app.title == "Practice Scheduling Backend"
        assert app.version == "1.0.0"
        assert app.docs_url == "/docs"

    def test_scheduling_routes_registered(self):
        paths = {route.path for route in app.routes if hasattr(route, "path")}

        assert "/api/tenants/{tenant_id}/availability" in paths
        assert "/api/tenants/{tenant_id}/availability/slots" in paths
        assert "/api/tenants/{tenant_id}/bookings" in paths
        assert "/api/tenants/{tenant_id}/bookings/validate" in paths
        assert "/api/tenants/{tenant_id}/bookings/{booking_id}/cancel" in paths
        assert "/api/tenants/{tenant_id}/bookings/{booking_id}" in paths
        assert "/api/tenants/{tenant_id}/practitioners/{practitioner_id}/bookings" in paths


class TestLifespan:
    """Test application lifespan management."""

    @pytest.mark.asyncio
    async def test_lifespan_logs_startup_and_shutdown(self):
        with patch('main.logger') as mock_logger:
            async with lifespan(app):
                pass

            messages = [call[0][0] for call in mock_logger.info.call_args_list]
            assert any("Starting" in message for message in messages)
            assert any("Shutting down" in message for message in messages)

"""
Unit tests for the error taxonomy and the error envelope.
"""

import json

import pytest
from fastapi import HTTPException

from equiptrack.utils.errors import (
    ERROR_REGISTRY,
    AuthorizationError,
    CertificateUnavailableError,
    DependencyUnavailableError,
    IllegalTransitionError,
    InvalidRequestError,
    ItemNotAvailableError,
    NotFoundError,
    domain_error_handler,
    error_handler,
)


class TestDomainErrors:
    """Test cases for DomainError subclasses."""

    @pytest.mark.parametrize("error_cls, status, code, retryable", [
        (NotFoundError, 404, "EQT-404", False),
        (AuthorizationError, 403, "EQT-403", False),
        (IllegalTransitionError, 409, "EQT-409-TRANSITION", False),
        (ItemNotAvailableError, 409, "EQT-409-ITEM", False),
        (CertificateUnavailableError, 409, "EQT-409-CERTIFICATE", False),
        (InvalidRequestError, 422, "EQT-422", False),
        (DependencyUnavailableError, 503, "EQT-503", True),
    ])
    def test_status_code_and_error_code(self, error_cls, status, code, retryable):
        error = error_cls("boom")
        assert error.status_code == status
        assert error.error_code == code
        assert error.retryable is retryable

    def test_default_message_comes_from_registry(self):
        assert NotFoundError().message == ERROR_REGISTRY[404][1]

    def test_authorization_message_hides_reason(self):
        assert AuthorizationError("not the owner").message == AuthorizationError("no such record").message
        assert "owner" not in AuthorizationError("not the owner").message


class TestErrorHandlers:
    """Test cases for the JSON error envelope."""

    async def test_domain_error_envelope(self):
        response = await domain_error_handler(None, IllegalTransitionError("Cannot change status"))
        body = json.loads(response.body)

        assert response.status_code == 409
        assert body["error_code"] == "EQT-409-TRANSITION"
        assert body["message"] == "Cannot change status"
        assert body["retryable"] is False
        assert body["transaction_id"]

    async def test_http_exception_envelope(self):
        response = await error_handler(None, HTTPException(status_code=401, detail="Token expired"))
        body = json.loads(response.body)

        assert response.status_code == 401
        assert body["error_code"] == "EQT-401"
        assert body["message"] == "Token expired"

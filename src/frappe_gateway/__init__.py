"""Resilient async access layer for the Frappe REST API.

Created: 2026-02-14
"""

from frappe_gateway.auth import AuthMethod, CredentialManager, CredentialSession
from frappe_gateway.documents import DocumentOperations
from frappe_gateway.errors import (
    AuthenticationError,
    FrappeApiError,
    FrappeError,
    SchemaUnavailableError,
    UpstreamTransportError,
    ValidationError,
    VerificationFailedError,
)
from frappe_gateway.gateway import FrappeGateway, close_gateway, get_gateway
from frappe_gateway.schema import CanonicalSchema, FieldDescriptor, SchemaNormalizer
from frappe_gateway.verification import VerificationEngine, VerificationResult

__version__ = "0.6.0"

__all__ = [
    "AuthMethod",
    "AuthenticationError",
    "CanonicalSchema",
    "CredentialManager",
    "CredentialSession",
    "DocumentOperations",
    "FieldDescriptor",
    "FrappeApiError",
    "FrappeError",
    "FrappeGateway",
    "SchemaNormalizer",
    "SchemaUnavailableError",
    "UpstreamTransportError",
    "ValidationError",
    "VerificationEngine",
    "VerificationFailedError",
    "VerificationResult",
    "close_gateway",
    "get_gateway",
]

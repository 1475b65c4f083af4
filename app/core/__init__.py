"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the catalog, payments and notifications apps.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - VersionedMixin: Database-incremented row version

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - SecurityError: Signature verification failures
    - ConflictError: State conflicts (duplicates, etc.)
    - BusinessError: Business rule refusals

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    BusinessError,
    ConflictError,
    NotFoundError,
    SecurityError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
    "BaseApplicationError",
    "BusinessError",
    "ConflictError",
    "NotFoundError",
    "SecurityError",
    "ValidationError",
]

"""Managed external resources.

- ExternalResource: configuration and attributes of one resource
- LifecycleOrchestrator: create/read/update/delete/import via external programs
- LifecycleResult: resulting resource plus accumulated diagnostics
"""

from tfexternal.resource.lifecycle import LifecycleOrchestrator
from tfexternal.resource.marshal import MANAGED_FILES, apply_readback, resource_fields
from tfexternal.resource.models import (
    ExternalResource,
    LifecycleResult,
    load_resource_definition,
)

__all__ = [
    "ExternalResource",
    "LifecycleOrchestrator",
    "LifecycleResult",
    "MANAGED_FILES",
    "apply_readback",
    "load_resource_definition",
    "resource_fields",
]

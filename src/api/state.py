"""
Shared state for the OpenShelf API.

This module holds the CatalogService instance used across all blueprints.
The app factory installs it; blueprints read it through get_service().
"""

from catalog_service import CatalogService

# The catalog service instance
service: CatalogService | None = None


def set_service(new_service: CatalogService) -> None:
    global service
    service = new_service


def get_service() -> CatalogService:
    """Get the shared service, creating it from the environment on first use."""
    global service
    if service is None:
        service = CatalogService()
    return service

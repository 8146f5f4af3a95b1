from app.admin.businesses import (
    CreateBusinessArgs,
    UpdateBusinessArgs,
    create_business,
    list_businesses,
    serialize_business,
    update_business,
)
from app.admin.services import CreateServiceArgs, create_service, list_services, serialize_service

__all__ = [
    "CreateBusinessArgs",
    "UpdateBusinessArgs",
    "create_business",
    "list_businesses",
    "serialize_business",
    "update_business",
    "CreateServiceArgs",
    "create_service",
    "list_services",
    "serialize_service",
]

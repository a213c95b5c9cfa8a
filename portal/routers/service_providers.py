from portal.domain.entities import SERVICE_PROVIDERS
from portal.routers.common import build_crud_router

router = build_crud_router(SERVICE_PROVIDERS, "/service-providers")

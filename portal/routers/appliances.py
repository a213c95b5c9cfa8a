from portal.domain.entities import APPLIANCES
from portal.routers.common import build_crud_router

router = build_crud_router(APPLIANCES, "/appliances")

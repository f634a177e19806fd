"""ORDERFLOW — FastAPI dependencies (DB session, collaborators, effect runner)."""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.clients.inventory import InventoryClient
from orderflow.clients.masterdata import MasterdataClient
from orderflow.clients.simal import SimalClient
from orderflow.config import get_settings
from orderflow.core.redis import get_redis
from orderflow.db.session import get_db
from orderflow.domain.ports import Gateways
from orderflow.services.effect_runner import EffectRunner
from orderflow.services.system_config_service import SystemConfigService

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_gateways() -> Gateways:
    """HTTP-backed collaborators; tests override this with in-memory fakes."""
    settings = get_settings()
    timeout = settings.COLLABORATOR_TIMEOUT_SECONDS
    return Gateways(
        inventory=InventoryClient(settings.INVENTORY_SERVICE_URL, timeout),
        bom=MasterdataClient(
            settings.MASTERDATA_SERVICE_URL,
            timeout,
            cache=await get_redis(),
            cache_ttl=settings.MASTERDATA_CACHE_TTL_SECONDS,
        ),
        scheduler=SimalClient(settings.SIMAL_SERVICE_URL, timeout),
    )


async def get_lot_size_threshold(db: DbSession) -> int:
    """Read once per request and passed down explicitly."""
    return await SystemConfigService.get_lot_size_threshold(db)


async def get_effect_runner(db: DbSession, gateways: Gateways = Depends(get_gateways)) -> EffectRunner:
    return EffectRunner(db, gateways)


GatewaysDep = Annotated[Gateways, Depends(get_gateways)]
Threshold = Annotated[int, Depends(get_lot_size_threshold)]
Runner = Annotated[EffectRunner, Depends(get_effect_runner)]

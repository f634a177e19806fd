"""ORDERFLOW — System configuration store (lot-size threshold and friends)."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.config import get_settings
from orderflow.core.errors import NotFound, ValidationFailure
from orderflow.models.system_config import SystemConfiguration

logger = logging.getLogger(__name__)

KEY_LOT_SIZE_THRESHOLD = "LOT_SIZE_THRESHOLD"


class SystemConfigService:

    @staticmethod
    async def get(db: AsyncSession, key: str) -> SystemConfiguration:
        config = await db.get(SystemConfiguration, key)
        if config is None:
            raise NotFound("SystemConfiguration", key)
        return config

    @staticmethod
    async def list_all(db: AsyncSession) -> list[SystemConfiguration]:
        result = await db.execute(select(SystemConfiguration).order_by(SystemConfiguration.key))
        return list(result.scalars().all())

    @staticmethod
    async def ensure_defaults(db: AsyncSession) -> None:
        """Seed the lot-size threshold row when it is missing."""
        if await db.get(SystemConfiguration, KEY_LOT_SIZE_THRESHOLD) is None:
            db.add(
                SystemConfiguration(
                    key=KEY_LOT_SIZE_THRESHOLD,
                    value=str(get_settings().DEFAULT_LOT_SIZE_THRESHOLD),
                    value_type="INTEGER",
                    description="Total order quantity at or above which orders go straight to production planning",
                    editable=True,
                )
            )
            await db.flush()

    @staticmethod
    async def get_lot_size_threshold(db: AsyncSession) -> int:
        default = get_settings().DEFAULT_LOT_SIZE_THRESHOLD
        config = await db.get(SystemConfiguration, KEY_LOT_SIZE_THRESHOLD)
        if config is None:
            return default
        try:
            value = int(config.value)
        except ValueError:
            logger.warning("Stored lot size threshold %r is not an integer; using %s", config.value, default)
            return default
        return value if value >= 1 else default

    @staticmethod
    async def set_value(db: AsyncSession, key: str, value: str) -> SystemConfiguration:
        config = await SystemConfigService.get(db, key)
        errors = []
        if not config.editable:
            errors.append(f"Configuration {key} is not editable")
        if config.value_type == "INTEGER" or key == KEY_LOT_SIZE_THRESHOLD:
            try:
                parsed = int(value)
            except (TypeError, ValueError):
                errors.append(f"Configuration {key} must be an integer")
            else:
                if key == KEY_LOT_SIZE_THRESHOLD and parsed < 1:
                    errors.append("Lot size threshold must be at least 1")
        if errors:
            raise ValidationFailure(errors)
        config.value = str(value).strip()
        await db.flush()
        logger.info("Configuration %s set to %s", key, config.value)
        return config

import pytest

from orderflow.core.errors import NotFound, ValidationFailure
from orderflow.models.system_config import SystemConfiguration
from orderflow.services.system_config_service import KEY_LOT_SIZE_THRESHOLD, SystemConfigService


class TestLotSizeThreshold:
    async def test_default_when_missing(self, db):
        assert await SystemConfigService.get_lot_size_threshold(db) == 3

    async def test_ensure_defaults_is_idempotent(self, db):
        await SystemConfigService.ensure_defaults(db)
        await SystemConfigService.ensure_defaults(db)
        configs = await SystemConfigService.list_all(db)
        assert [(c.key, c.value, c.value_type) for c in configs] == [(KEY_LOT_SIZE_THRESHOLD, "3", "INTEGER")]

    async def test_update(self, db):
        await SystemConfigService.ensure_defaults(db)
        config = await SystemConfigService.set_value(db, KEY_LOT_SIZE_THRESHOLD, " 12 ")
        assert config.value == "12"
        assert await SystemConfigService.get_lot_size_threshold(db) == 12

    async def test_rejects_invalid_values(self, db):
        await SystemConfigService.ensure_defaults(db)
        with pytest.raises(ValidationFailure, match="must be an integer"):
            await SystemConfigService.set_value(db, KEY_LOT_SIZE_THRESHOLD, "many")
        with pytest.raises(ValidationFailure, match="at least 1"):
            await SystemConfigService.set_value(db, KEY_LOT_SIZE_THRESHOLD, "0")

    async def test_corrupt_stored_value_falls_back(self, db):
        db.add(SystemConfiguration(key=KEY_LOT_SIZE_THRESHOLD, value="x", value_type="INTEGER"))
        await db.flush()
        assert await SystemConfigService.get_lot_size_threshold(db) == 3


class TestOtherKeys:
    async def test_read_only_key(self, db):
        db.add(SystemConfiguration(key="PLANT_NAME", value="Lego Works", editable=False))
        await db.flush()
        with pytest.raises(ValidationFailure, match="not editable"):
            await SystemConfigService.set_value(db, "PLANT_NAME", "Other")

    async def test_unknown_key(self, db):
        with pytest.raises(NotFound):
            await SystemConfigService.get(db, "NOPE")

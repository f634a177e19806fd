"""ORDERFLOW — Factory workstations and item types."""
from enum import Enum, IntEnum


class ItemType(str, Enum):
    PRODUCT = "PRODUCT"
    MODULE = "MODULE"
    PART = "PART"


class Workstation(IntEnum):
    INJECTION_MOLDING = 1
    PARTS_PRE_PRODUCTION = 2
    PART_FINISHING = 3
    GEAR_ASSEMBLY = 4
    MOTOR_ASSEMBLY = 5
    FINAL_ASSEMBLY = 6
    PLANT_WAREHOUSE = 7
    MODULES_SUPERMARKET = 8
    PARTS_SUPPLY_WAREHOUSE = 9


class WorkstationType(str, Enum):
    """Which control tier a production line item is dispatched to."""

    MANUFACTURING = "MANUFACTURING"
    ASSEMBLY = "ASSEMBLY"


class WorkstationOrderKind(str, Enum):
    """The six specialised workstation order variants, one per station."""

    INJECTION_MOLDING = "INJECTION_MOLDING"
    PART_PRE_PRODUCTION = "PART_PRE_PRODUCTION"
    PART_FINISHING = "PART_FINISHING"
    GEAR_ASSEMBLY = "GEAR_ASSEMBLY"
    MOTOR_ASSEMBLY = "MOTOR_ASSEMBLY"
    FINAL_ASSEMBLY = "FINAL_ASSEMBLY"


MANUFACTURING_STATIONS = frozenset({Workstation.INJECTION_MOLDING, Workstation.PARTS_PRE_PRODUCTION, Workstation.PART_FINISHING})
ASSEMBLY_STATIONS = frozenset({Workstation.GEAR_ASSEMBLY, Workstation.MOTOR_ASSEMBLY})

_KIND_BY_STATION = {
    Workstation.INJECTION_MOLDING: WorkstationOrderKind.INJECTION_MOLDING,
    Workstation.PARTS_PRE_PRODUCTION: WorkstationOrderKind.PART_PRE_PRODUCTION,
    Workstation.PART_FINISHING: WorkstationOrderKind.PART_FINISHING,
    Workstation.GEAR_ASSEMBLY: WorkstationOrderKind.GEAR_ASSEMBLY,
    Workstation.MOTOR_ASSEMBLY: WorkstationOrderKind.MOTOR_ASSEMBLY,
    Workstation.FINAL_ASSEMBLY: WorkstationOrderKind.FINAL_ASSEMBLY,
}


def item_type_for_workstation(workstation_id: int) -> ItemType:
    """Stock kind held at a workstation: parts at WS-9, modules at WS-8, products elsewhere."""
    if workstation_id == Workstation.PARTS_SUPPLY_WAREHOUSE:
        return ItemType.PART
    if workstation_id == Workstation.MODULES_SUPERMARKET:
        return ItemType.MODULE
    return ItemType.PRODUCT


def workstation_type_for(workstation_id: int | None) -> WorkstationType | None:
    """Control tier for a production workstation; None when the station cannot produce."""
    if workstation_id in MANUFACTURING_STATIONS:
        return WorkstationType.MANUFACTURING
    if workstation_id in ASSEMBLY_STATIONS:
        return WorkstationType.ASSEMBLY
    return None


def order_kind_for(workstation_id: int) -> WorkstationOrderKind:
    try:
        return _KIND_BY_STATION[Workstation(workstation_id)]
    except (KeyError, ValueError):
        raise ValueError(f"Workstation {workstation_id} does not run workstation orders") from None

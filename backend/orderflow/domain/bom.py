"""ORDERFLOW — Bill-of-materials aggregation."""
from collections.abc import Iterable, Mapping


def merge_requirements(*requirements: Mapping[int, int]) -> dict[int, int]:
    """Sum component quantities across several explosion results."""
    merged: dict[int, int] = {}
    for requirement in requirements:
        for component_id, qty in requirement.items():
            merged[component_id] = merged.get(component_id, 0) + qty
    return merged


def scale_bom(entries: Iterable[tuple[int, int]], quantity: int) -> dict[int, int]:
    """Turn per-unit BOM entries into requirements for ``quantity`` units.

    Duplicate component ids inside one BOM are summed.
    """
    return merge_requirements(*({component_id: per_unit * quantity} for component_id, per_unit in entries))

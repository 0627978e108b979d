"""Embroidery material cost estimate for a patch of a given size.

Area-based materials are costed as the share of a stock roll the patch uses,
times the roll cost and a waste factor. Thread and bobbin are costed from an
estimated stitch count. Every component is rounded to cents.
"""

from dataclasses import dataclass
from typing import Protocol

STITCHES_PER_SQUARE_INCH = 1000


@dataclass(frozen=True)
class Material:
    name: str
    cost: float
    width: float
    length: float
    waste_factor: float


FABRIC = Material("Fabric", 34, 30, 36, 1.5)
PATCH_ATTACH = Material("Patch Attach", 100, 9, 360, 1.5)
THREAD = Material("Thread", 4, 0, 5000, 1.2)
BOBBIN = Material("Bobbin", 50, 0, 35000, 1.2)
CUT_AWAY_STABILIZER = Material("Cut-Away Stabilizer", 180, 18, 3600, 1.5)
WASH_AWAY_STABILIZER = Material("Wash-Away Stabilizer", 60, 15, 900, 1.5)


@dataclass(frozen=True)
class MaterialCostBreakdown:
    fabric_cost: float
    patch_attach_cost: float
    thread_cost: float
    bobbin_cost: float
    cut_away_stabilizer_cost: float
    wash_away_stabilizer_cost: float
    total_cost: float


class MaterialCostFunction(Protocol):
    def __call__(self, width: float, height: float) -> float: ...


def _round2(value: float) -> float:
    return round(value, 2)


def _area_cost(material: Material, width: float, height: float) -> float:
    return _round2(width * height / (material.width * material.length) * material.cost * material.waste_factor)


def estimate_stitch_count(width: float, height: float) -> int:
    return round(width * height * STITCHES_PER_SQUARE_INCH)


def material_cost_breakdown(width: float, height: float, stitch_count: int | None = None) -> MaterialCostBreakdown:
    if width <= 0 or height <= 0:
        raise ValueError("Patch width and height must be positive")
    stitches = estimate_stitch_count(width, height) if stitch_count is None else stitch_count

    fabric = _area_cost(FABRIC, width, height)
    patch_attach = _area_cost(PATCH_ATTACH, width, height)
    thread = _round2(stitches / 1_000_000 * THREAD.cost * THREAD.waste_factor)
    bobbin = _round2(stitches / BOBBIN.length * (BOBBIN.cost / 144) * BOBBIN.waste_factor)
    cut_away = _area_cost(CUT_AWAY_STABILIZER, width, height)
    wash_away = _area_cost(WASH_AWAY_STABILIZER, width, height)

    return MaterialCostBreakdown(
        fabric_cost=fabric,
        patch_attach_cost=patch_attach,
        thread_cost=thread,
        bobbin_cost=bobbin,
        cut_away_stabilizer_cost=cut_away,
        wash_away_stabilizer_cost=wash_away,
        total_cost=_round2(fabric + patch_attach + thread + bobbin + cut_away + wash_away),
    )


def embroidery_material_cost(width: float, height: float) -> float:
    """Default material-cost function used by the price engine."""
    return material_cost_breakdown(width, height).total_cost

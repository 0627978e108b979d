"""Customization records: designs, style selections and flat add-ons.

A customization is an explicit optional-field record. Every field has a
documented default, so a partially-filled customization from an older client
still validates:

* ``designs``: empty list; the multi-design shape.
* ``design``: ``None``; the legacy single-design shape. When ``designs`` is
  empty, ``selected_styles`` at the top level applies to this single design.
* ``selected_styles``: no selections, no threads, no upgrades.
* ``placement``: ``"front"``; ``size`` / ``color`` / ``notes``: empty.
* ``design_position``: origin; ``design_scale``: 1.0;
  ``design_rotation``: 0 degrees.
"""

from pydantic import Field

from checkout.model.base import CamelModel


class AddOn(CamelModel):
    """A flat surcharge, independent of quantity and area."""

    id: str | int
    name: str = ""
    price: float = Field(default=0.0, ge=0)


class Dimensions(CamelModel):
    width: float | None = None
    height: float | None = None

    @property
    def is_measurable(self) -> bool:
        return (self.width or 0) > 0 and (self.height or 0) > 0


class SelectedStyles(CamelModel):
    coverage: AddOn | None = None
    material: AddOn | None = None
    border: AddOn | None = None
    backing: AddOn | None = None
    cutting: AddOn | None = None
    threads: list[AddOn] = Field(default_factory=list)
    upgrades: list[AddOn] = Field(default_factory=list)

    def add_ons(self) -> list[AddOn]:
        """All selected add-ons, single slots first, then threads and upgrades."""
        singles = [self.coverage, self.material, self.border, self.backing, self.cutting]
        return [a for a in singles if a is not None] + list(self.threads) + list(self.upgrades)


class Design(CamelModel):
    name: str = ""
    size: int | None = None
    preview: str | None = None
    preview_truncated: bool = False
    dimensions: Dimensions | None = None
    selected_styles: SelectedStyles | None = None


class Position(CamelModel):
    x: float = 0.0
    y: float = 0.0


class Customization(CamelModel):
    designs: list[Design] = Field(default_factory=list)
    design: Design | None = None
    selected_styles: SelectedStyles = Field(default_factory=SelectedStyles)
    placement: str = "front"
    size: str = ""
    color: str = ""
    notes: str = ""
    design_position: Position = Field(default_factory=Position)
    design_scale: float = 1.0
    design_rotation: float = 0.0

    @property
    def uses_legacy_shape(self) -> bool:
        return not self.designs

    def priced_designs(self) -> list[tuple[Design | None, SelectedStyles]]:
        """Pairs of (design, styles) to price.

        The legacy shape is presented as a single pair so it is summed exactly
        like a one-design customization.
        """
        if self.uses_legacy_shape:
            return [(self.design, self.selected_styles)]
        return [(d, d.selected_styles or SelectedStyles()) for d in self.designs]

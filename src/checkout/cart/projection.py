"""Guest-tier projection of cart line items.

The guest tier lives in bounded client storage, so line items are projected
before they are written: server product snapshots are dropped (they are
re-expanded on sync) and design previews above the per-field byte limit are
discarded and flagged. Item identity, product, quantity and every priced
selection are kept verbatim.
"""

from pydantic import Field

from checkout.model.base import CamelModel
from checkout.model.cart import CartLineItem
from checkout.model.customization import Customization, Design
from checkout.storage.port import encoded_size


class GuestCart(CamelModel):
    items: list[CartLineItem] = Field(default_factory=list)


def _project_design(design: Design | None, preview_limit: int) -> Design | None:
    if design is None or design.preview is None:
        return design
    if encoded_size(design.preview) <= preview_limit:
        return design
    return design.model_copy(update={"preview": None, "preview_truncated": True})


def project_customization(customization: Customization, preview_limit: int) -> Customization:
    return customization.model_copy(
        update={
            "designs": [_project_design(d, preview_limit) for d in customization.designs],
            "design": _project_design(customization.design, preview_limit),
        }
    )


def project_line_item(item: CartLineItem, preview_limit: int) -> CartLineItem:
    update = {"server_snapshot": None}
    if item.customization is not None:
        update["customization"] = project_customization(item.customization, preview_limit)
    return item.model_copy(update=update)


def project_guest_cart(items: list[CartLineItem], preview_limit: int) -> GuestCart:
    return GuestCart(items=[project_line_item(item, preview_limit) for item in items])

"""Configuration keys: the identity used to merge equivalent selections."""
import json
from typing import Iterable, Optional


def configuration_key(
    catalog_item_id: str,
    add_on_ids: Iterable[str] = (),
    instructions: Optional[str] = None,
) -> str:
    """
    Derive the merge identity of a selection.

    Add-on ids are de-duplicated and sorted, so picking the same add-ons in a
    different order gives the same key. Missing instructions are the same as
    empty instructions; otherwise instructions are compared verbatim.

    The parts are JSON-encoded rather than joined with a separator so that ids
    or instructions containing the separator cannot collide.

    Args:
        catalog_item_id: Catalog/menu item being ordered
        add_on_ids: Ids of the selected add-ons
        instructions: Free-text special instructions

    Returns:
        Key string such as '["pad-thai", ["egg", "shrimp"], "no peanuts"]'
    """
    return json.dumps(
        [catalog_item_id, sorted(set(add_on_ids)), instructions or ""],
        ensure_ascii=False,
    )


def key_for(item) -> str:
    """Configuration key of a candidate or stored line item."""
    return configuration_key(
        item.catalog_item_id,
        (add_on.id for add_on in item.add_ons),
        item.special_instructions,
    )

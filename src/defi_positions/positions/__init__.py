"""Position valuation pipeline: numeric helpers, templates and the position service."""

from defi_positions.positions.display import (
    build_dollar_display_item,
    build_metadata_item,
    build_number_display_item,
    build_percentage_display_item,
    get_token_img,
)
from defi_positions.positions.numbers import from_raw, multiply, safe_divide

__all__ = [
    "build_dollar_display_item",
    "build_metadata_item",
    "build_number_display_item",
    "build_percentage_display_item",
    "from_raw",
    "get_token_img",
    "multiply",
    "safe_divide",
]

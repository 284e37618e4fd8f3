"""Builders for display items and token images."""

from decimal import Decimal
from functools import lru_cache

from defi_positions.core.models import DisplayItem, DisplayItemType, MetadataItem
from defi_positions.data import get_settings_section

DEFAULT_TOKEN_IMAGE_URL = "https://storage.googleapis.com/zapper-fi-assets/tokens/{network}/{address}.png"


@lru_cache(maxsize=1)
def _token_image_url() -> str:
    return get_settings_section().get("token_image_url", DEFAULT_TOKEN_IMAGE_URL)


def build_dollar_display_item(value: Decimal) -> DisplayItem:
    return DisplayItem(type=DisplayItemType.DOLLAR, value=Decimal(value))


def build_percentage_display_item(value: Decimal) -> DisplayItem:
    return DisplayItem(type=DisplayItemType.PERCENTAGE, value=Decimal(value))


def build_number_display_item(value: Decimal) -> DisplayItem:
    return DisplayItem(type=DisplayItemType.NUMBER, value=Decimal(value))


def build_metadata_item(label: str, value: Decimal, item_type: DisplayItemType = DisplayItemType.DOLLAR) -> MetadataItem:
    """Summary metric for balance products and responses."""
    return MetadataItem(label=label, value=Decimal(value), type=item_type)


def get_token_img(address: str, network: str) -> str:
    """
    URL of a token's image.

    Parameters
    ----------
    address : str
        Token address
    network : str
        Network name

    Returns
    -------
    str
        Image URL built from the configured template

    """
    return _token_image_url().format(network=str(network), address=address.lower())

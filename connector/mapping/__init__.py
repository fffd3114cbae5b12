from connector.mapping.currencies import ISO_TO_PROCESSOR, PROCESSOR_TO_ISO, convert_with_mapping
from connector.mapping.line_items import map_cart_items, normalize_shipping

__all__ = ["ISO_TO_PROCESSOR", "PROCESSOR_TO_ISO", "convert_with_mapping", "map_cart_items", "normalize_shipping"]

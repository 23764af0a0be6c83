"""Scannable-Code Payload — pipe-delimited product identity carried in a QR code.

Invariants:
    - Payload is exactly "manufacturerId|productId|serialNumber"
    - In a url the payload is the url-encoded value of the `data` query parameter
    - decode rejects anything that does not split into three non-empty parts
"""

from dataclasses import dataclass
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

from uemp.core.errors import InvalidArgumentError, InvalidFormatError

SEPARATOR = "|"
QUERY_PARAM = "data"


@dataclass(frozen=True)
class ProductIdentity:
    manufacturer_id: str
    product_id: str
    serial_number: str


def encode_qr_payload(manufacturer_id: str, product_id: str, serial_number: str) -> str:
    parts = {
        "manufacturerId": manufacturer_id,
        "productId": product_id,
        "serialNumber": serial_number,
    }
    for name, value in parts.items():
        if not value:
            raise InvalidArgumentError(f"Missing {name}.", field=name)
        if SEPARATOR in value:
            raise InvalidArgumentError(
                f"{name} must not contain '{SEPARATOR}'.", field=name,
            )
    return SEPARATOR.join(parts.values())


def build_qr_url(
    base_url: str, manufacturer_id: str, product_id: str, serial_number: str,
) -> str:
    payload = encode_qr_payload(manufacturer_id, product_id, serial_number)
    return f"{base_url}?{urlencode({QUERY_PARAM: payload}, quote_via=quote)}"


def decode_qr_payload(text: str) -> ProductIdentity:
    """Accepts the bare payload (raw or percent-encoded) or a url carrying it."""
    if not text or not text.strip():
        raise InvalidFormatError("Empty QR payload.")
    text = text.strip()
    if "?" in text:
        values = parse_qs(urlsplit(text).query).get(QUERY_PARAM)
        if not values:
            raise InvalidFormatError(f"QR url has no '{QUERY_PARAM}' parameter.")
        payload = values[0]
    else:
        payload = unquote(text)
    parts = payload.split(SEPARATOR)
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise InvalidFormatError("Invalid QR Code format.")
    manufacturer_id, product_id, serial_number = (p.strip() for p in parts)
    return ProductIdentity(manufacturer_id, product_id, serial_number)

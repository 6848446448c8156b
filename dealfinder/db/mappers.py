from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from ..models.property import UNKNOWN_REALTOR, Property
from ..utils.coerce import to_datetime, to_float, to_str
from ..utils.logging import get_logger

LOGGER = get_logger("db.mappers")


def _room_count(value: Any) -> Optional[Union[float, str]]:
    # board dropdown columns arrive as single-element lists, e.g. ["3"]
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    number = to_float(value)
    if number is not None:
        return number
    return to_str(value) or None


def _realtor_name(r: Dict[str, Any]) -> str:
    linked = (r.get("realtors") or {}).get("linkedItems") or []
    if linked and isinstance(linked[0], dict) and linked[0].get("name"):
        return to_str(linked[0]["name"])
    realtor = r.get("realtor")
    if isinstance(realtor, dict):
        realtor = realtor.get("name")
    return to_str(realtor) or UNKNOWN_REALTOR


def _price_history(entries: Any) -> List[Dict[str, Any]]:
    points = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        date = to_datetime(entry.get("date"))
        price = to_float(entry.get("price"))
        if date is None or price is None:
            continue
        points.append({"date": date, "price": price})
    return sorted(points, key=lambda point: point["date"])


def _drop_percent(r: Dict[str, Any], price: Optional[float], initial: Optional[float]) -> Optional[float]:
    given = to_float(r.get("dropAsAPercentageOfTheInitialPrice"))
    if given is not None:
        return given
    if price and initial and price > 0 and initial > 0:
        return (price - initial) / initial * 100
    return None


def map_property_row(r: Dict[str, Any]) -> Dict[str, Any]:
    address = r.get("address") or {}
    if not isinstance(address, dict):
        address = {"address": address}
    price = to_float(r.get("price"))
    initial = to_float(r.get("column1stPrice"))
    return {
        "id": to_str(r.get("id")),
        "name": to_str(r.get("name")),
        "price": price,
        "initial_price": initial,
        "bedrooms": _room_count(r.get("bedrooms")),
        "bathrooms": _room_count(r.get("bathrooms")),
        "property_type": to_str(r.get("propertyType")),
        "listing_status": to_str(r.get("listingStatus")),
        "ward": to_str(r.get("wards")),
        "city": to_str(r.get("city") or address.get("city")),
        "address": {
            "address": to_str(address.get("address")),
            "city": to_str(address.get("city")),
            "lat": to_float(address.get("lat")),
            "lng": to_float(address.get("lng")),
        },
        "days_on_market": to_float(r.get("daysOnMarket")),
        "price_history": _price_history(r.get("priceHistory")),
        "drop_frequency_count": to_float(r.get("dropFrequencyCount")),
        "drop_percent": _drop_percent(r, price, initial),
        "keyword_used": to_str(r.get("keywordUsed")),
        "first_listed_at": to_datetime(r.get("column1stListingDate")),
        "removed_at": to_datetime(r.get("dateRemoved")),
        "relisted_at": to_datetime(r.get("relistedDate")),
        "realtor": _realtor_name(r),
    }


def load_properties(rows: Iterable[Dict[str, Any]]) -> List[Property]:
    properties: List[Property] = []
    for row in rows:
        mapped = map_property_row(row)
        if not mapped["id"]:
            LOGGER.warning("snapshot_row_skipped reason=missing_id name=%s", mapped["name"])
            continue
        try:
            properties.append(Property(**mapped))
        except ValidationError as exc:
            LOGGER.warning("snapshot_row_skipped id=%s errors=%d", mapped["id"], exc.error_count())
    return properties

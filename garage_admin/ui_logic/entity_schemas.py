"""
Validation rule tables for the seven admin entity forms.

Schemas are built by functions rather than module constants where a bound
depends on the date (vehicle model year, manufacturer founding year).
"""

from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional
import copy
import re

from .field_paths import get_path, has_path, set_path
from .validation_manager import FieldRules, is_empty, parse_number

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 500
PRICE_MIN = 0
PRICE_MAX = 999999.99
PERCENTAGE_MIN = 0
PERCENTAGE_MAX = 100
TIME_MAX_MINUTES = 99999

IMAGE_MAX_SIZE = 5 * 1024 * 1024
IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

SKU_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
LICENSE_PLATE_PATTERN = re.compile(r"^[A-Z0-9-]{3,10}$", re.IGNORECASE)
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{11,17}$", re.IGNORECASE)
WEBSITE_PATTERN = re.compile(r"^https?://.+")
FUEL_VALUE_PATTERN = re.compile(r"^[a-z_-]+$")
PHONE_PATTERN = re.compile(r"^[+\d\s().-]{7,20}$")


def _image(label: str = "Image") -> FieldRules:
    return FieldRules(type="file", label=label, max_size=IMAGE_MAX_SIZE, allowed_types=IMAGE_TYPES)


def _requires_sibling(sibling: str, message: str) -> Callable[[Any, Mapping[str, Any]], Optional[str]]:
    def check(value: Any, all_values: Mapping[str, Any]) -> Optional[str]:
        if is_empty(get_path(all_values, sibling)):
            return message
        return None
    return check


def part_schema() -> Dict[str, FieldRules]:
    return {
        "name": FieldRules(required=True, label="Part name", max_length=NAME_MAX_LENGTH),
        "sku": FieldRules(
            label="SKU",
            min_length=2,
            max_length=50,
            pattern=SKU_PATTERN,
            pattern_message="SKU can only contain letters, numbers, dashes, and underscores",
        ),
        "description": FieldRules(label="Description", max_length=DESCRIPTION_MAX_LENGTH),
        "price": FieldRules(required=True, type="number", label="Price", min=PRICE_MIN, max=PRICE_MAX),
        "image": _image(),
    }


def service_schema() -> Dict[str, FieldRules]:
    return {
        "name": FieldRules(
            required=True, label="Service name",
            min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
        ),
        "description": FieldRules(
            required=True, label="Description",
            min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH,
        ),
        "price": FieldRules(required=True, type="number", label="Price", min=PRICE_MIN, max=PRICE_MAX),
        "estimated_time": FieldRules(
            required=True, type="number", label="Estimated time",
            min=0, max=TIME_MAX_MINUTES, integer=True,
        ),
        "discount": FieldRules(type="number", label="Discount", min=PERCENTAGE_MIN, max=PERCENTAGE_MAX),
        "parts_needed": FieldRules(label="Parts"),
        "image": _image(),
    }


def service_package_schema() -> Dict[str, FieldRules]:
    return {
        "name": FieldRules(
            required=True, label="Package name",
            min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
        ),
        "description": FieldRules(
            required=True, label="Description",
            min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH,
        ),
        "price": FieldRules(required=True, type="number", label="Package price", min=PRICE_MIN, max=PRICE_MAX),
        "duration": FieldRules(required=True, type="number", label="Duration", min=1, max=365, integer=True),
        "services": FieldRules(required=True, label="Services"),
        "garages": FieldRules(label="Garages"),
        "fuel_types": FieldRules(label="Fuel types"),
        "manufacturers": FieldRules(label="Manufacturers"),
        "image": _image(),
    }


def garage_schema() -> Dict[str, FieldRules]:
    return {
        "name": FieldRules(
            required=True, label="Garage name",
            min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
        ),
        "address": FieldRules(required=True, label="Address", max_length=200),
        "geo.lat": FieldRules(
            type="number", label="Latitude", min=-90, max=90,
            validate=_requires_sibling("geo.lng", "Longitude is required when latitude is set"),
        ),
        "geo.lng": FieldRules(
            type="number", label="Longitude", min=-180, max=180,
            validate=_requires_sibling("geo.lat", "Latitude is required when longitude is set"),
        ),
        "contact.phone": FieldRules(
            label="Phone", pattern=PHONE_PATTERN,
            pattern_message="Please enter a valid phone number",
        ),
        "contact.email": FieldRules(type="email", label="Email"),
        "services": FieldRules(label="Services"),
        "image": _image(),
    }


def vehicle_schema(today: Optional[date] = None) -> Dict[str, FieldRules]:
    today = today or date.today()
    return {
        "manufacturer": FieldRules(required=True, label="Manufacturer"),
        "model": FieldRules(required=True, label="Model", max_length=NAME_MAX_LENGTH),
        "year": FieldRules(
            required=True, type="number", label="Year",
            min=1900, max=today.year + 1, integer=True,
        ),
        "license_plate": FieldRules(
            label="License plate", pattern=LICENSE_PLATE_PATTERN,
            pattern_message="License plate must be 3-10 characters (letters, numbers, and hyphens only)",
        ),
        "vin": FieldRules(
            label="VIN", pattern=VIN_PATTERN,
            pattern_message="VIN must be 11-17 characters (no I, O, or Q)",
        ),
        "color": FieldRules(required=True, label="Color"),
        "mileage": FieldRules(required=True, type="number", label="Mileage", min=0),
        "fuel_type": FieldRules(required=True, label="Fuel type"),
        "transmission": FieldRules(required=True, label="Transmission"),
        "image": _image(),
    }


def manufacturer_schema(today: Optional[date] = None) -> Dict[str, FieldRules]:
    today = today or date.today()
    return {
        "name": FieldRules(required=True, label="Name", max_length=NAME_MAX_LENGTH),
        "country": FieldRules(required=True, label="Country"),
        "founded": FieldRules(type="number", label="Founded year", min=1800, max=today.year, integer=True),
        "website": FieldRules(
            label="Website", pattern=WEBSITE_PATTERN,
            pattern_message="Website must be a valid URL starting with http:// or https://",
        ),
        "logo": _image("Logo"),
    }


def fuel_type_schema() -> Dict[str, FieldRules]:
    return {
        "title": FieldRules(required=True, label="Title", max_length=NAME_MAX_LENGTH),
        "value": FieldRules(
            required=True, label="Value", pattern=FUEL_VALUE_PATTERN,
            pattern_message="Value must contain only lowercase letters, hyphens, and underscores",
        ),
    }


SCHEMA_FACTORIES: Dict[str, Callable[[], Dict[str, FieldRules]]] = {
    "parts": part_schema,
    "services": service_schema,
    "service_packages": service_package_schema,
    "garages": garage_schema,
    "vehicles": vehicle_schema,
    "manufacturers": manufacturer_schema,
    "fuel_types": fuel_type_schema,
}


def get_schema(entity_key: str) -> Dict[str, FieldRules]:
    """Return a fresh rule table for one entity form."""
    try:
        factory = SCHEMA_FACTORIES[entity_key]
    except KeyError:
        raise KeyError(f"No form schema for entity '{entity_key}'")
    return factory()


def build_submit_payload(schema: Mapping[str, FieldRules], values: Mapping[str, Any]) -> Dict[str, Any]:
    """Prepare validated form values for the REST layer.

    - strings are trimmed
    - number fields become floats (ints for `integer` rules); blanks become None
    - everything else, files included, passes through unchanged
    """
    payload: Dict[str, Any] = copy.deepcopy(dict(values))
    for name, rules in schema.items():
        if not has_path(payload, name):
            continue
        value = get_path(payload, name)
        if rules.type == "number":
            number = parse_number(value)
            if number is None:
                converted = None
            elif rules.integer:
                converted = int(number)
            else:
                converted = number
            payload = set_path(payload, name, converted)
        elif isinstance(value, str):
            payload = set_path(payload, name, value.strip())
    return payload

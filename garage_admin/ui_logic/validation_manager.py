"""
Framework-agnostic form validation for the admin edit screens.

This module holds the schema-driven validation engine used by every entity
form. A schema maps field names (dotted for nested values, e.g. `geo.lat`) to
a `FieldRules` rule set. Rules are evaluated in a fixed order and the first
failing rule's message becomes the field's error:

1. required (an empty, optional field is valid and skips everything else)
2. email
3. number (finite, then min, then max, then whole-number)
4. min_length / max_length
5. pattern
6. file size / MIME type
7. custom `validate(value, all_values)`

Errors are never raised. They are stored per field and surfaced only for
fields the user has touched (blurred, or every field after a submit attempt).
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union
import copy
import inspect
import logging
import math
import re

from .field_paths import get_path, set_path
from .observable import Observable

logger = logging.getLogger(__name__)

FIELD_TYPES = ("text", "email", "number", "file")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELD = "This field is required"
INVALID_EMAIL = "Please enter a valid email address"
INVALID_NUMBER = "Please enter a valid number"
INVALID_FILE_TYPE = "Please select a valid file type"
INVALID_VALUE = "This value could not be stored"
SAVE_ERROR = "Failed to save. Please try again."

CustomValidator = Callable[[Any, Mapping[str, Any]], Optional[str]]
SubmitHandler = Callable[[Dict[str, Any]], Union[Awaitable[Any], Any]]

_MISSING = object()


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)


def _format_size(size: int) -> str:
    if size >= 1024 * 1024 and size % (1024 * 1024) == 0:
        return f"{size // (1024 * 1024)}MB"
    if size >= 1024 and size % 1024 == 0:
        return f"{size // 1024}KB"
    return f"{size} bytes"


@dataclass(frozen=True)
class UploadedFile:
    """A file picked in a form, before upload."""
    name: str
    size: int
    content_type: str


@dataclass(frozen=True)
class FieldRules:
    """Validation rule set of one form field."""
    required: bool = False
    type: str = "text"
    label: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    integer: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Union[str, re.Pattern]] = None
    pattern_message: Optional[str] = None
    max_size: Optional[int] = None
    allowed_types: Optional[Tuple[str, ...]] = None
    validate: Optional[CustomValidator] = None

    def __post_init__(self):
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unknown field type '{self.type}', expected one of {FIELD_TYPES}")
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))
        if self.allowed_types is not None:
            object.__setattr__(self, "allowed_types", tuple(self.allowed_types))

    @classmethod
    def from_value(cls, rules: Union["FieldRules", Mapping[str, Any]]) -> "FieldRules":
        """Accept a `FieldRules` or a plain mapping (camelCase keys allowed)."""
        if isinstance(rules, FieldRules):
            return rules
        if not isinstance(rules, Mapping):
            raise TypeError(f"Rule set must be a mapping, got {type(rules).__name__}")
        aliases = {
            "minLength": "min_length",
            "maxLength": "max_length",
            "maxSize": "max_size",
            "allowedTypes": "allowed_types",
            "patternMessage": "pattern_message",
        }
        normalized = {aliases.get(k, k): v for k, v in rules.items()}
        unknown = set(normalized) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown rule keys: {', '.join(sorted(unknown))}")
        return cls(**normalized)


class ValidationError:
    """A failed rule for one field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'field': self.field,
            'message': self.message,
        }


class ValidationResult:
    """Represents the result of validating a whole form."""

    def __init__(self, is_valid: bool = True, errors: Optional[List[ValidationError]] = None):
        self.is_valid = is_valid
        self.errors = errors or []

    def add_error(self, error: ValidationError) -> None:
        """Add an error to the result."""
        self.errors.append(error)
        self.is_valid = False

    def get_errors_by_field(self, field: str) -> List[ValidationError]:
        """Get errors filtered by field."""
        return [error for error in self.errors if error.field == field]

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'is_valid': self.is_valid,
            'errors': [error.to_dict() for error in self.errors],
            'error_count': len(self.errors),
        }


@dataclass
class FieldState:
    """What a bound input needs to render one field."""
    value: Any = None
    error: Optional[str] = None
    touched: bool = False


@dataclass
class FormState:
    """Snapshot of a whole form."""
    fields: Dict[str, FieldState] = field(default_factory=dict)
    is_submitting: bool = False
    is_valid: bool = False
    submit_error: Optional[str] = None


def is_empty(value: Any) -> bool:
    """None, blank strings and empty collections count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> Optional[float]:
    """Parse a finite float from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _is_file(value: Any) -> bool:
    return hasattr(value, "size") and hasattr(value, "content_type")


def validate_value(
    rules: FieldRules,
    value: Any,
    all_values: Optional[Mapping[str, Any]] = None,
    name: str = "Field",
) -> Optional[str]:
    """Run one rule set against a value and return the first error, if any."""
    label = rules.label or name
    all_values = all_values or {}

    if is_empty(value):
        return REQUIRED_FIELD if rules.required else None

    if rules.type == "email" and not EMAIL_PATTERN.search(str(value)):
        return INVALID_EMAIL

    if rules.type == "number":
        number = parse_number(value)
        if number is None:
            return INVALID_NUMBER
        if rules.min is not None and number < rules.min:
            return f"{label} must be at least {_format_number(rules.min)}"
        if rules.max is not None and number > rules.max:
            return f"{label} cannot exceed {_format_number(rules.max)}"
        if rules.integer and not number.is_integer():
            return f"{label} must be a whole number"

    if rules.min_length is not None or rules.max_length is not None:
        if isinstance(value, str):
            length = len(value.strip())
        elif isinstance(value, (list, tuple, set, frozenset)):
            length = len(value)
        else:
            length = len(str(value))
        if rules.min_length is not None and length < rules.min_length:
            return f"{label} must be at least {rules.min_length} characters"
        if rules.max_length is not None and length > rules.max_length:
            return f"{label} cannot exceed {rules.max_length} characters"

    if rules.pattern is not None and isinstance(value, (str, int, float)):
        if not rules.pattern.search(str(value)):
            return rules.pattern_message or f"{label} has an invalid format"

    if rules.type == "file" and _is_file(value):
        if rules.max_size is not None and value.size > rules.max_size:
            return f"File size cannot exceed {_format_size(rules.max_size)}"
        if rules.allowed_types is not None and value.content_type not in rules.allowed_types:
            return INVALID_FILE_TYPE

    if rules.validate is not None:
        try:
            custom_error = rules.validate(value, all_values)
        except Exception as e:
            logger.error(f"Custom validator for '{name}' failed: {e}")
            return f"{label} could not be validated"
        if custom_error:
            return str(custom_error)

    return None


class ValidationManager(Observable):
    """
    Schema-driven state and validation for one entity form.

    Owns the values mapping, per-field errors, touched flags and the
    submission lifecycle. Nothing here raises on bad input; failures are
    stored in `errors` and `submit_error`.

    Events:
    - "state_changed" (manager) after any visible change
    - "submitted" (values) after on_submit completed
    - "submit_failed" (message) after on_submit raised
    """

    def __init__(
        self,
        schema: Mapping[str, Union[FieldRules, Mapping[str, Any]]],
        initial_values: Optional[Mapping[str, Any]] = None,
    ):
        """Initialize the form.

        Args:
            schema: Field name (dotted for nested values) -> rule set
            initial_values: Values the form starts with and resets to
        """
        super().__init__()
        self.schema: Dict[str, FieldRules] = {
            name: FieldRules.from_value(rules) for name, rules in schema.items()
        }
        self._initial_values: Dict[str, Any] = copy.deepcopy(dict(initial_values or {}))
        self.values: Dict[str, Any] = copy.deepcopy(self._initial_values)
        self.errors: Dict[str, Optional[str]] = {}
        self.touched: Set[str] = set()
        self.is_submitting = False
        self.submit_error: Optional[str] = None

    # --- Reading ---
    def get_value(self, name: str, default: Any = None) -> Any:
        try:
            return get_path(self.values, name, default)
        except ValueError:
            logger.warning(f"Invalid field path {name!r}")
            return default

    @property
    def is_valid(self) -> bool:
        """True iff every field in the schema passes against current values."""
        return all(self.validate_field(name) is None for name in self.schema)

    @property
    def is_dirty(self) -> bool:
        return self.values != self._initial_values

    @property
    def visible_errors(self) -> Dict[str, str]:
        """Errors of touched fields only, as the UI should show them."""
        return {
            name: error for name, error in self.errors.items()
            if error and name in self.touched
        }

    def get_field_state(self, name: str) -> FieldState:
        touched = name in self.touched
        return FieldState(
            value=self.get_value(name),
            error=self.errors.get(name) if touched else None,
            touched=touched,
        )

    def get_form_state(self) -> FormState:
        names = list(self.schema) + [n for n in sorted(self.touched) if n not in self.schema]
        return FormState(
            fields={name: self.get_field_state(name) for name in names},
            is_submitting=self.is_submitting,
            is_valid=self.is_valid,
            submit_error=self.submit_error,
        )

    def get_field_props(self, name: str) -> Dict[str, Any]:
        """Props for binding one input: name, value, error, on_change, on_blur."""
        value = self.get_value(name)
        return {
            'name': name,
            'value': "" if value is None else value,
            'error': self.errors.get(name) if name in self.touched else None,
            'on_change': lambda new_value: self.set_value(name, new_value),
            'on_blur': lambda: self.blur(name),
        }

    # --- Validation ---
    def validate_field(self, name: str, value: Any = _MISSING) -> Optional[str]:
        """Return the current error of one field (without storing it)."""
        rules = self.schema.get(name)
        if rules is None:
            return None
        if value is _MISSING:
            value = self.get_value(name)
        return validate_value(rules, value, self.values, name)

    def validate(self) -> ValidationResult:
        """Recompute and store every field's error; touches nothing."""
        result = ValidationResult()
        for name in self.schema:
            error = self.validate_field(name)
            self.errors[name] = error
            if error:
                result.add_error(ValidationError(name, error))
        return result

    def validate_all(self) -> bool:
        """Recompute every field's error and report whether the form is clean."""
        return self.validate().is_valid

    # --- Editing ---
    def set_value(self, name: str, value: Any) -> None:
        """Write one (possibly nested) value and re-check touched fields.

        A path that cannot be written (e.g. `geo.lat` while `geo` holds a
        string) leaves the values untouched and becomes that field's error.
        """
        self.set_values({name: value})

    def set_values(self, new_values: Mapping[str, Any]) -> None:
        """Merge several values at once (dotted keys allowed)."""
        failed: Dict[str, str] = {}
        for name, value in new_values.items():
            try:
                self.values = set_path(self.values, name, value)
            except (TypeError, ValueError) as e:
                logger.error(f"Could not set form value '{name}': {e}")
                failed[name] = INVALID_VALUE
        self._revalidate_touched()
        for name, error in failed.items():
            self.touched.add(name)
            self.errors[name] = error
        self._notify_listeners("state_changed", self)

    def blur(self, name: str) -> None:
        """Mark a field touched and validate it."""
        self.touched.add(name)
        self.errors[name] = self.validate_field(name)
        self._notify_listeners("state_changed", self)

    def set_field_error(self, name: str, error: Optional[str]) -> None:
        """Show an externally produced error (e.g. from the server) on a field."""
        self.touched.add(name)
        self.errors[name] = error
        self._notify_listeners("state_changed", self)

    def clear_errors(self) -> None:
        self.errors = {}
        self.submit_error = None
        self._notify_listeners("state_changed", self)

    def reset(self) -> None:
        """Restore initial values and forget errors, touched flags and submit state."""
        self.values = copy.deepcopy(self._initial_values)
        self.errors = {}
        self.touched = set()
        self.is_submitting = False
        self.submit_error = None
        self._notify_listeners("state_changed", self)

    # --- Submission ---
    async def submit(self, on_submit: Optional[SubmitHandler]) -> bool:
        """Validate everything and hand the values to `on_submit`.

        Every schema field becomes touched. An invalid form is not submitted.
        An exception from `on_submit` is logged and turned into
        `submit_error`; it does not propagate.

        Returns:
            True if on_submit completed, False otherwise
        """
        if on_submit is None:
            logger.warning("Submit ignored: no submit handler given")
            return False
        if self.is_submitting:
            logger.warning("Submit ignored: a submission is already in progress")
            return False

        self.submit_error = None
        self.touched.update(self.schema.keys())
        if not self.validate_all():
            logger.info(f"Submit blocked by {len(self.visible_errors)} invalid field(s)")
            self._notify_listeners("state_changed", self)
            return False

        self.is_submitting = True
        self._notify_listeners("state_changed", self)
        submitted = copy.deepcopy(self.values)
        try:
            result = on_submit(submitted)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.submit_error = str(e) or SAVE_ERROR
            logger.error(f"Form submission error: {e}")
            self._notify_listeners("submit_failed", self.submit_error)
            return False
        finally:
            self.is_submitting = False
            self._notify_listeners("state_changed", self)

        self._notify_listeners("submitted", submitted)
        return True

    def _revalidate_touched(self) -> None:
        # custom rules may read sibling values, so every touched field is re-checked
        for name in self.touched:
            self.errors[name] = self.validate_field(name)

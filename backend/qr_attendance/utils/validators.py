"""Validation utilities for request payloads."""
from typing import Dict, List, Any


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_name(name: str, max_length: int = 100, label: str = 'Name') -> Dict[str, Any]:
        """Validate a display name."""
        errors = []

        if not isinstance(name, str) or not name.strip():
            errors.append(f"{label} is required")
        elif len(name.strip()) > max_length:
            errors.append(f"{label} is too long")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_identifier(value: str, max_length: int = 50, label: str = 'ID') -> Dict[str, Any]:
        """Validate an externally assigned identifier."""
        errors = []

        if not isinstance(value, str) or not value.strip():
            errors.append(f"{label} is required")
        elif len(value.strip()) > max_length:
            errors.append(f"{label} is too long")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        missing = []
        data = data or {}

        for field in required_fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)

        return {
            "is_valid": len(missing) == 0,
            "errors": [f"{field} is required" for field in missing],
            "missing": missing
        }

    @staticmethod
    def validate_allowed_fields(data: Dict, allowed_fields: List[str]) -> Dict[str, Any]:
        """Reject keys outside an explicit set of mutable fields."""
        unknown = sorted(set(data or {}) - set(allowed_fields))
        errors = [f"Field cannot be updated: {field}" for field in unknown]

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

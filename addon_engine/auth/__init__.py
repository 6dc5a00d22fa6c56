from .signature import validate_signature

__all__ = ["validate_signature"]

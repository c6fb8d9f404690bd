"""Statement validation."""
from overql.validate.validator import StatementValidator

__all__ = ["StatementValidator"]

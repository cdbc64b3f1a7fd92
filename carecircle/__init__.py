"""CareCircle: care-circle coordination over a ledger with a queryable mirror."""

__version__ = "1.0.0"

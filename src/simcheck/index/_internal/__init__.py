"""Internal index implementation. Not part of the public API."""

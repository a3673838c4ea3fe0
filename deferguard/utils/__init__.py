"""Internal helpers for deferguard: structured logging and guard identifiers."""

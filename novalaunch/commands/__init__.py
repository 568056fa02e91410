"""Command registration for the novalaunch CLI."""

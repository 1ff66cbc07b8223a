"""rsearch schemas."""

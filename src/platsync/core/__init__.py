"""Core domain logic for platsync."""

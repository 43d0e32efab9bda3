"""Event bus for decoupled communication between components."""

"""Services package - Access gates, role resolution and lifecycle logic."""

"""User-facing delivery: notifications and the local HTTP surface."""

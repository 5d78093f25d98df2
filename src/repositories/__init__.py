"""Storage access for rating snapshots."""

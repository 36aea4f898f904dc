"""Notification channels for approval and pipeline-state events."""

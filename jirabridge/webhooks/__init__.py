"""Inbound Jira webhooks: verification, normalization and subscriber fan-out."""

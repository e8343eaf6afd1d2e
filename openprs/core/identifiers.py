"""Utilities for generating identifiers used across the service."""

from __future__ import annotations

import uuid


def new_sync_id() -> str:
    return f"sy_{uuid.uuid4().hex}"


def new_decision_id() -> str:
    return f"dc_{uuid.uuid4().hex}"


def new_request_id() -> str:
    return f"rq_{uuid.uuid4().hex}"

"""Python clients for the OpenPRs board and decision API."""

from .client import BoardQuery, DecisionRequest, OpenPRsClient
from .async_client import AsyncOpenPRsClient

__all__ = ["OpenPRsClient", "AsyncOpenPRsClient", "BoardQuery", "DecisionRequest"]

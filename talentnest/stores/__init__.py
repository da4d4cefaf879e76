from __future__ import annotations

from typing import Callable

from talentnest.config import get_data_file
from talentnest.log import get_logger

from .base import ApplicationStore, JobStore, TalentStore
from .jsonfile import JsonFileStore
from .memory import MemoryStore

log = get_logger(__name__)

__all__ = [
    "ApplicationStore", "JobStore", "TalentStore",
    "JsonFileStore", "MemoryStore", "get_store",
]


def get_store(env_getter: Callable[[str], str]) -> JsonFileStore | MemoryStore:
    """Pick the backing store from the environment.

    ``TALENTNEST_STORE=memory`` gives an empty in-process store; anything
    else uses the JSON document file at ``TALENTNEST_DATA_FILE``.
    """
    if env_getter("TALENTNEST_STORE").lower() == "memory":
        log.info("Using in-memory store")
        return MemoryStore()

    path = get_data_file()
    log.info("Using JSON document store at %s", path)
    return JsonFileStore(path)

from fastapi import Depends

from quizdrill.core.auth import AllowListGate, get_gate
from quizdrill.core.cache import get_append_lock, get_dedup_cache
from quizdrill.core.config import Settings, get_settings
from quizdrill.services.event_log import EventLogger
from quizdrill.services.ordering import QuestionOrderingService
from quizdrill.services.progress import ProgressReader
from quizdrill.services.sheets import SheetStore, get_store


def get_ordering_service(store: SheetStore = Depends(get_store), gate: AllowListGate = Depends(get_gate),
                         settings: Settings = Depends(get_settings)) -> QuestionOrderingService:
    return QuestionOrderingService(store=store, gate=gate, settings=settings)


def get_event_logger(store: SheetStore = Depends(get_store), gate: AllowListGate = Depends(get_gate),
                     settings: Settings = Depends(get_settings), cache=Depends(get_dedup_cache),
                     lock=Depends(get_append_lock)) -> EventLogger:
    return EventLogger(store, gate, cache, lock, settings)


def get_progress_reader(store: SheetStore = Depends(get_store), gate: AllowListGate = Depends(get_gate),
                        settings: Settings = Depends(get_settings)) -> ProgressReader:
    return ProgressReader(store, gate, settings)

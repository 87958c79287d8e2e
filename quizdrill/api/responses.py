from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, constr, field_validator

from quizdrill.api.deps import get_event_logger
from quizdrill.services.event_log import AnswerEvent, EventLogger

router = APIRouter()


class ResponseSubmit(BaseModel):
    user_id: str = ""
    qid: constr(min_length=1)
    chosen: constr(pattern=r"^[A-D]?$") = ""
    correct: bool = False
    elapsed_ms: Optional[int] = None
    device: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("user_id", "qid", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("chosen", mode="before")
    @classmethod
    def upper_choice(cls, v):
        return "" if v is None else str(v).strip().upper()


class LogResult(BaseModel):
    ok: bool
    deduped: Optional[bool] = None
    via: Optional[Literal["cache", "store"]] = None


@router.post("/responses", response_model=LogResult, response_model_exclude_none=True)
def log_response(payload: ResponseSubmit, logger_svc: EventLogger = Depends(get_event_logger)):
    return logger_svc.log_response(AnswerEvent(**payload.model_dump()))

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from quizdrill.api.deps import get_progress_reader
from quizdrill.services.progress import ProgressReader

router = APIRouter()


class TodaySummary(BaseModel):
    done: int
    corrects: int
    date: str


class PixelOverlay(BaseModel):
    ok: bool
    cols: int
    rows: int
    levels: List[int]


@router.get("/summary", response_model=TodaySummary)
def get_today_summary(user_id: str = "", reader: ProgressReader = Depends(get_progress_reader)):
    return reader.today_summary(user_id)


@router.get("/overlay", response_model=PixelOverlay)
def get_pixel_overlay_today(user_id: str = "", reader: ProgressReader = Depends(get_progress_reader)):
    return reader.pixel_overlay_today(user_id)

from dataclasses import asdict
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from quizdrill.api.deps import get_ordering_service
from quizdrill.services.ordering import QuestionOrderingService

router = APIRouter()


class QuestionOut(BaseModel):
    qid: str
    grade: str
    domain: str
    skill: str
    stem: str
    choices: List[str]
    correct: str
    reasons: Dict[str, str]
    assets: str
    difficulty: int
    tags: str
    group: str = ""
    step: Optional[int] = None


@router.get("/domains", response_model=List[str])
def get_domains(svc: QuestionOrderingService = Depends(get_ordering_service)):
    return svc.get_domains()


@router.get("/questions", response_model=List[QuestionOut])
def get_questions(domain: str = "", user_id: str = "", order: str = "random", limit: Optional[str] = None,
                  svc: QuestionOrderingService = Depends(get_ordering_service)):
    questions = svc.get_questions(domain=domain, user_id=user_id, order=order, limit=limit)
    return [QuestionOut(**asdict(q)) for q in questions]

"""
Guest question endpoints and answer endpoints.

Two routers: ``router`` is mounted at /questions, ``answers_router`` at /answers.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity, get_identity
from app.core.database import get_session
from app.services import questions as question_service
from weddingshare_shared.schemas.common import Envelope
from weddingshare_shared.schemas.planning import (
    AnswerCreateRequest,
    AnswerEnvelope,
    AnswerResponse,
    AnswerUpdateRequest,
    QuestionCreateRequest,
    QuestionEnvelope,
    QuestionListEnvelope,
    QuestionResponse,
    QuestionUpdateRequest,
)

router = APIRouter()
answers_router = APIRouter()


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

@router.get("", response_model=QuestionListEnvelope)
async def list_questions(
    wedding_id: uuid.UUID = Query(...),
    include_answers: bool = Query(default=False),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    questions = await question_service.list_questions(wedding_id, identity, session, include_answers)
    return QuestionListEnvelope(questions=questions)


@router.post("", response_model=QuestionEnvelope, status_code=201)
async def create_question(
    body: QuestionCreateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    question = await question_service.create_question(body, identity, session)
    return QuestionEnvelope(
        message="Question created successfully", question=QuestionResponse.model_validate(question)
    )


@router.put("/{question_id}", response_model=QuestionEnvelope)
async def update_question(
    question_id: uuid.UUID,
    body: QuestionUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    question = await question_service.update_question(question_id, body, identity, session)
    return QuestionEnvelope(
        message="Question updated successfully", question=QuestionResponse.model_validate(question)
    )


@router.delete("/{question_id}", response_model=Envelope)
async def delete_question(
    question_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    await question_service.delete_question(question_id, identity, session)
    return Envelope(message="Question deleted successfully")


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

@answers_router.post("", response_model=AnswerEnvelope, status_code=201)
async def create_answer(
    body: AnswerCreateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    answer = await question_service.create_answer(body, identity, session)
    return AnswerEnvelope(message="Answer submitted successfully", answer=AnswerResponse.model_validate(answer))


@answers_router.put("/{answer_id}", response_model=AnswerEnvelope)
async def update_answer(
    answer_id: uuid.UUID,
    body: AnswerUpdateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    answer = await question_service.update_answer(answer_id, body, identity, session)
    return AnswerEnvelope(message="Answer updated successfully", answer=AnswerResponse.model_validate(answer))


@answers_router.delete("/{answer_id}", response_model=Envelope)
async def delete_answer(
    answer_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    await question_service.delete_answer(answer_id, identity, session)
    return Envelope(message="Answer deleted successfully")

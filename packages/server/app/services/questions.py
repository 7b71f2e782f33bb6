"""
Guest questions and their answers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Identity, WeddingScope, load_admin_ids, wedding_scopes
from app.core.errors import Forbidden, NotFound, ValidationError
from app.models.planning import Answer, Question
from app.services import weddings as wedding_service
from weddingshare_shared.schemas.planning import (
    AnswerCreateRequest,
    AnswerResponse,
    AnswerUpdateRequest,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionType,
    QuestionUpdateRequest,
)

log = structlog.get_logger()


def _options_for(question_type: QuestionType, options: Optional[list[str]]) -> Optional[list[str]]:
    # Only multiple-choice questions carry options.
    if question_type == QuestionType.MULTIPLE_CHOICE:
        return list(options or [])
    return None


async def _manager_or_author(identity: Identity, wedding_id: uuid.UUID, author_id: uuid.UUID, session: AsyncSession) -> None:
    wedding = await wedding_service.get_wedding(wedding_id, session)
    scopes = wedding_scopes(identity, wedding, await load_admin_ids(wedding.id, session))
    if WeddingScope.MANAGER not in scopes and author_id != identity.id:
        raise Forbidden("Access denied")


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

async def list_questions(
    wedding_id: uuid.UUID,
    identity: Identity,
    session: AsyncSession,
    include_answers: bool = False,
) -> list[QuestionResponse]:
    await wedding_service.authorize_wedding_access(identity, wedding_id, WeddingScope.PARTICIPANT, session)
    result = await session.execute(
        select(Question).where(Question.wedding_id == wedding_id).order_by(Question.created_at)
    )
    questions = list(result.scalars().all())

    answers: dict[uuid.UUID, list[AnswerResponse]] = {q.id: [] for q in questions}
    if include_answers and questions:
        result = await session.execute(
            select(Answer)
            .where(Answer.question_id.in_(list(answers)))
            .order_by(Answer.created_at)
        )
        for answer in result.scalars().all():
            answers[answer.question_id].append(AnswerResponse.model_validate(answer))

    responses = []
    for question in questions:
        response = QuestionResponse.model_validate(question)
        if include_answers:
            response.answers = answers[question.id]
        responses.append(response)
    return responses


async def create_question(req: QuestionCreateRequest, identity: Identity, session: AsyncSession) -> Question:
    await wedding_service.authorize_wedding_access(identity, req.wedding_id, WeddingScope.MANAGER, session)
    question = Question(
        wedding_id=req.wedding_id,
        question_text=req.question_text,
        question_type=req.question_type.value,
        is_required=req.is_required,
        options=_options_for(req.question_type, req.options),
        is_public=req.is_public,
        created_by=identity.id,
    )
    session.add(question)
    await session.flush()
    log.info("question.created", question_id=str(question.id), wedding_id=str(question.wedding_id))
    return question


async def _get_question(question_id: uuid.UUID, session: AsyncSession) -> Question:
    result = await session.execute(select(Question).where(Question.id == question_id))
    question = result.scalar_one_or_none()
    if not question:
        raise NotFound("Question not found")
    return question


async def update_question(
    question_id: uuid.UUID, req: QuestionUpdateRequest, identity: Identity, session: AsyncSession
) -> Question:
    question = await _get_question(question_id, session)
    await _manager_or_author(identity, question.wedding_id, question.created_by, session)

    if req.question_text is not None:
        question.question_text = req.question_text
    if req.is_required is not None:
        question.is_required = req.is_required
    if req.is_public is not None:
        question.is_public = req.is_public
    if req.question_type is not None:
        question.question_type = req.question_type.value
    if req.question_type is not None or req.options is not None:
        options = req.options if req.options is not None else question.options
        question.options = _options_for(QuestionType(question.question_type), options)

    question.updated_at = datetime.now(timezone.utc)
    session.add(question)
    await session.flush()
    log.info("question.updated", question_id=str(question.id))
    return question


async def delete_question(question_id: uuid.UUID, identity: Identity, session: AsyncSession) -> None:
    question = await _get_question(question_id, session)
    await _manager_or_author(identity, question.wedding_id, question.created_by, session)
    await session.execute(delete(Answer).where(Answer.question_id == question.id))
    await session.delete(question)
    await session.flush()
    log.info("question.deleted", question_id=str(question_id), by=str(identity.id))


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

async def create_answer(req: AnswerCreateRequest, identity: Identity, session: AsyncSession) -> Answer:
    question = await _get_question(req.question_id, session)
    await wedding_service.authorize_wedding_access(
        identity, question.wedding_id, WeddingScope.PARTICIPANT, session
    )

    existing = await session.execute(
        select(Answer.id).where(Answer.question_id == question.id, Answer.answered_by == identity.id)
    )
    if existing.first() is not None:
        raise ValidationError("You have already answered this question")

    answer = Answer(question_id=question.id, answer_text=req.answer_text, answered_by=identity.id)
    session.add(answer)
    await session.flush()
    log.info("answer.created", answer_id=str(answer.id), question_id=str(question.id))
    return answer


async def _editable_answer(answer_id: uuid.UUID, identity: Identity, session: AsyncSession) -> Answer:
    result = await session.execute(select(Answer).where(Answer.id == answer_id))
    answer = result.scalar_one_or_none()
    if not answer:
        raise NotFound("Answer not found")
    question = await _get_question(answer.question_id, session)
    await _manager_or_author(identity, question.wedding_id, answer.answered_by, session)
    return answer


async def update_answer(
    answer_id: uuid.UUID, req: AnswerUpdateRequest, identity: Identity, session: AsyncSession
) -> Answer:
    answer = await _editable_answer(answer_id, identity, session)
    answer.answer_text = req.answer_text
    answer.updated_at = datetime.now(timezone.utc)
    session.add(answer)
    await session.flush()
    return answer


async def delete_answer(answer_id: uuid.UUID, identity: Identity, session: AsyncSession) -> None:
    answer = await _editable_answer(answer_id, identity, session)
    await session.delete(answer)
    await session.flush()
    log.info("answer.deleted", answer_id=str(answer_id), by=str(identity.id))

"""Follow-up actions on a resource link: summary and quiz."""

import logging

from .config import Settings
from .errors import AssistantError
from .llm.base import ChatBackend
from .llm.models import Quiz, QuizQuestion
from .prompts import quiz_prompt, summarize_prompt
from .streaming import AssembledMessage, ResponseStreamAssembler, UpdateCallback

logger = logging.getLogger(__name__)


async def summarize(
    assembler: ResponseStreamAssembler,
    settings: Settings,
    url: str,
    on_update: UpdateCallback | None = None,
    sources_label: str = "Source(s) :",
) -> AssembledMessage:
    """Stream a three-point summary of the page at url.

    Runs as its own stream with its own assembly, so it may overlap the
    main answer without sharing state.
    """
    prompt = summarize_prompt(settings, url)
    return await assembler.assemble(prompt, on_update=on_update, sources_label=sources_label)


async def create_quiz(backend: ChatBackend, url: str) -> Quiz:
    """Generate a multiple-choice quiz about the page at url.

    Raises:
        AssistantError: Classified backend failure
    """
    try:
        quiz = await backend.generate_structured(quiz_prompt(url), Quiz)
    except Exception as exc:
        error = AssistantError.from_exception(exc)
        logger.error("Quiz generation failed (%s): %s", error.kind.value, exc)
        if error is exc:
            raise
        raise error from exc
    # Questions whose answer index points outside the options cannot be graded
    usable = [q for q in quiz.quiz if q.correct_answer_index < len(q.options)]
    return Quiz(quiz=usable)


class QuizAttempt:
    """Records one answer per question, as a quiz form locks after a click."""

    def __init__(self, quiz: Quiz):
        self.quiz = quiz
        self._answers: dict[int, int] = {}

    def answer(self, question_index: int, option_index: int) -> bool:
        """Answer a question; later answers to the same question are ignored.

        Returns:
            Whether the first recorded answer is correct
        """
        question: QuizQuestion = self.quiz.quiz[question_index]
        self._answers.setdefault(question_index, option_index)
        return question.is_correct(self._answers[question_index])

    def answered(self, question_index: int) -> bool:
        return question_index in self._answers

    @property
    def score(self) -> int:
        return sum(
            1 for index, choice in self._answers.items() if self.quiz.quiz[index].is_correct(choice)
        )

"""Opaque public identifiers: a per-entity prefix followed by a ULID."""

from ulid import ULID

JOB_PREFIX = "job_"
WORD_PREFIX = "word_"
STORY_PREFIX = "story_"
QUIZ_PREFIX = "quiz_"
ASSIGNMENT_PREFIX = "asg_"
SUBMISSION_PREFIX = "sub_"
NOTIFICATION_PREFIX = "ntf_"


def new_public_id(prefix: str) -> str:
    return f"{prefix}{ULID()}"


def quiz_question_ids(count: int) -> list[str]:
    """Ids for one generated quiz: ``quiz_<ulid>-q1`` .. ``-q<count>``."""
    quiz_id = new_public_id(QUIZ_PREFIX)
    return [f"{quiz_id}-q{index}" for index in range(1, count + 1)]

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AssignmentCreateRequest(BaseModel):
    teacherId: str = ""
    title: str = ""
    dueDate: str = ""
    level: str = ""
    storyId: str | None = None
    requiredWords: list[str] | None = None
    excludedWords: list[str] | None = None


class AssignmentGenerateRequest(BaseModel):
    teacherId: str = ""
    title: str = ""
    assignmentType: str
    level: str = ""
    dueDate: str = ""
    storyId: str | None = None
    wordsToRemove: list[str] | None = None
    numberOfWords: int | None = Field(default=None, ge=1)
    customWords: list[str] | None = None


class BlankPositionItem(BaseModel):
    position: int
    word: str
    originalWord: str
    index: int


class AssignmentView(BaseModel):
    id: str
    teacherId: str
    title: str
    assignmentType: str
    dueDate: str
    level: str
    status: str
    storyId: str | None = None
    storyContent: str | None = None
    requiredWords: list[str] = Field(default_factory=list)
    excludedWords: list[str] = Field(default_factory=list)
    matchingWords: list[str] = Field(default_factory=list)
    blankPositions: list[BlankPositionItem] = Field(default_factory=list)
    recipientCount: int = 0
    distributedAt: str | None = None
    createdAt: str


class AssignmentListResponse(BaseModel):
    teacherId: str
    assignments: list[AssignmentView]


class DistributeRequest(BaseModel):
    teacherId: str
    studentIds: list[str] | None = None
    classId: str | None = None
    sendToAll: bool = False


class DistributeResponse(BaseModel):
    success: bool
    assignmentId: str
    recipientCount: int
    notificationIds: list[str]


class SubmissionRequest(BaseModel):
    studentId: str = ""
    answers: Any = None
    timeSpentSeconds: int | None = Field(default=None, ge=0)


class SubmissionResponse(BaseModel):
    id: str
    assignmentId: str
    studentId: str
    score: int
    maxScore: int
    percentage: int
    feedback: str
    submittedAt: str
    passed: bool


class AnalyticsResponse(BaseModel):
    assignmentId: str
    totalSubmissions: int
    completionRate: int
    averageScore: int
    passRate: int
    averageTimeMinutes: int
    strugglingStudentIds: list[str]
    topPerformerIds: list[str]
    mostChallengingWords: list[str]
    excellentCount: int
    goodCount: int
    needsImprovementCount: int

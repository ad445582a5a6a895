from __future__ import annotations

from pydantic import BaseModel, Field

from wordnest.api.v1.schemas.story import StoryView, WordView


class TeacherCreateRequest(BaseModel):
    teacherId: str
    name: str
    email: str
    school: str | None = None


class TeacherView(BaseModel):
    id: str
    name: str
    email: str
    school: str | None = None
    createdAt: str


class ClassMemberRequest(BaseModel):
    studentId: str


class ClassMembersResponse(BaseModel):
    teacherId: str
    classId: str
    studentIds: list[str]


class WordMasteryRequest(BaseModel):
    mastery: str


class ProgressResponse(BaseModel):
    date: str
    knownWords: int
    learningWords: int
    unknownWords: int
    newWordsToday: int


class BadgeView(BaseModel):
    id: str
    type: str
    title: str
    description: str
    icon: str
    progress: int
    target: int
    isUnlocked: bool
    achievedAt: str | None = None


class BadgeCheckResponse(BaseModel):
    newBadges: list[BadgeView]
    allBadges: list[BadgeView]


class StudentProfileView(BaseModel):
    id: str
    name: str
    email: str
    level: str
    streak: int
    vocabularyCount: int
    lastActiveDate: str | None = None
    createdAt: str
    updatedAt: str
    words: list[WordView] = Field(default_factory=list)
    stories: list[StoryView] = Field(default_factory=list)
    badges: list[BadgeView] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    profile: StudentProfileView
    recommendations: list[StoryView]


class NotificationView(BaseModel):
    id: str
    senderId: str
    senderName: str
    title: str
    message: str
    assignmentId: str | None = None
    isRead: bool
    createdAt: str


class NotificationListResponse(BaseModel):
    studentId: str
    notifications: list[NotificationView]

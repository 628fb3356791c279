from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class DocumentKind(str, Enum):
    RESUME = "resume"
    PROFILE = "profile"


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


Priority = Literal["high", "medium", "low"]


class Suggestion(BaseModel):
    category: str
    priority: Priority
    title: str
    description: str
    impact: int
    example: str | None = None


# Resume facts


class KeywordFacts(BaseModel):
    found: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    score: int = Field(default=0, ge=0, le=100)


class FormattingFacts(BaseModel):
    has_proper_sections: bool = False
    has_contact_info: bool = False
    has_skills_section: bool = False
    has_experience_section: bool = False
    score: int = Field(default=0, ge=0, le=100)


class ContentFacts(BaseModel):
    has_quantifiable_achievements: bool = False
    has_relevant_experience: bool = False
    has_education_section: bool = False
    word_count: int = 0
    score: int = Field(default=0, ge=0, le=100)


class TechnicalFacts(BaseModel):
    programming_languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=list)
    score: int = Field(default=0, ge=0, le=100)


class ResumeFacts(BaseModel):
    keywords: KeywordFacts = Field(default_factory=KeywordFacts)
    formatting: FormattingFacts = Field(default_factory=FormattingFacts)
    content: ContentFacts = Field(default_factory=ContentFacts)
    technical: TechnicalFacts = Field(default_factory=TechnicalFacts)

    def sub_scores(self) -> dict[str, int]:
        return {
            "keywords": self.keywords.score,
            "formatting": self.formatting.score,
            "content": self.content.score,
            "technical": self.technical.score,
        }


# Profile input and facts


class ExperienceEntry(BaseModel):
    title: str = ""
    company: str = ""
    duration: str = ""
    description: str = ""


class EducationEntry(BaseModel):
    school: str = ""
    degree: str = ""
    field: str = ""


class ProfileFields(BaseModel):
    headline: str = ""
    summary: str = ""
    experience: list[ExperienceEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    connections: int = Field(default=0, ge=0)
    profile_views: int = Field(default=0, ge=0)
    has_recent_activity: bool = False
    has_recommendations: bool = False


class HeadlineFacts(BaseModel):
    has_keywords: bool = False
    is_compelling: bool = False
    length: int = 0
    score: int = Field(default=0, ge=0, le=100)


class SummaryFacts(BaseModel):
    has_call_to_action: bool = False
    has_keywords: bool = False
    has_achievements: bool = False
    length: int = 0
    score: int = Field(default=0, ge=0, le=100)


class ExperienceFacts(BaseModel):
    has_quantifiable_results: bool = False
    has_relevant_keywords: bool = False
    is_well_structured: bool = False
    count: int = 0
    score: int = Field(default=0, ge=0, le=100)


class SkillsFacts(BaseModel):
    has_relevant_skills: bool = False
    has_technical_skills: bool = False
    count: int = 0
    score: int = Field(default=0, ge=0, le=100)


class EngagementFacts(BaseModel):
    has_recent_activity: bool = False
    has_recommendations: bool = False
    connection_count: int = 0
    score: int = Field(default=0, ge=0, le=100)


class ProfileFacts(BaseModel):
    headline: HeadlineFacts = Field(default_factory=HeadlineFacts)
    summary: SummaryFacts = Field(default_factory=SummaryFacts)
    experience: ExperienceFacts = Field(default_factory=ExperienceFacts)
    skills: SkillsFacts = Field(default_factory=SkillsFacts)
    engagement: EngagementFacts = Field(default_factory=EngagementFacts)

    def sub_scores(self) -> dict[str, int]:
        return {
            "headline": self.headline.score,
            "summary": self.summary.score,
            "experience": self.experience.score,
            "skills": self.skills.score,
            "engagement": self.engagement.score,
        }


# Derived artifacts


class OptimizedResume(BaseModel):
    text: str
    generated_at: datetime


class OptimizedProfile(BaseModel):
    headline: str
    summary: str
    skills_to_add: list[str] = Field(default_factory=list)
    generated_at: datetime


class ComparisonRecord(BaseModel):
    before_score: int
    after_score: int
    improvements: list[str] = Field(default_factory=list)


# Stored analyses


class DocumentAnalysis(BaseModel):
    id: str
    user_id: str
    kind: DocumentKind
    status: AnalysisStatus = AnalysisStatus.PENDING
    composite_score: int = Field(default=0, ge=0, le=100)
    suggestions: list[Suggestion] = Field(default_factory=list)
    comparison: ComparisonRecord | None = None
    processing_ms: int = 0
    created_at: datetime


class ResumeAnalysis(DocumentAnalysis):
    kind: Literal[DocumentKind.RESUME] = DocumentKind.RESUME
    source_text: str
    file_name: str
    file_type: Literal["pdf", "docx", "txt"]
    facts: ResumeFacts | None = None
    optimized: OptimizedResume | None = None


class ProfileAnalysis(DocumentAnalysis):
    kind: Literal[DocumentKind.PROFILE] = DocumentKind.PROFILE
    profile_url: str
    profile: ProfileFields = Field(default_factory=ProfileFields)
    facts: ProfileFacts | None = None
    optimized: OptimizedProfile | None = None

"""Blog writer request and response payloads."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Tone = Literal["professional", "casual", "friendly", "authoritative", "conversational", "technical"]
Length = Literal["short", "medium", "long", "extended"]
Style = Literal["how-to", "listicle", "news", "opinion", "tutorial", "review", "comparison"]


class BlogWriterRequest(BaseModel):
    topic: str = Field(min_length=1)
    keywords: List[str] = Field(default_factory=list)
    tone: Tone = "professional"
    length: Length = "medium"
    target_audience: Optional[str] = None
    include_outline: bool = False
    language: str = "en"
    style: Optional[Style] = None
    additional_instructions: Optional[str] = None
    seo_optimization: bool = True
    keyword_density: Optional[float] = None
    readability_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None


class BlogWriterMetadata(BaseModel):
    model_used: str = "unknown"
    processing_time: float = 0.0
    tokens_used: int = 0
    cost: Optional[float] = None


class BlogWriterResponse(BaseModel):
    title: str = ""
    content: str = ""
    outline: Optional[List[str]] = None
    keywords_used: List[str] = Field(default_factory=list)
    word_count: int = 0
    estimated_reading_time: int = 0
    seo_score: Optional[float] = None
    readability_score: Optional[float] = None
    metadata: BlogWriterMetadata = Field(default_factory=BlogWriterMetadata)

    @classmethod
    def from_upstream(cls, body: Any, request: BlogWriterRequest) -> "BlogWriterResponse":
        """Normalize whatever the provider returned into the public shape.

        Missing, null or mistyped fields fall back to values derived from the
        request or the content.
        """
        data: Dict[str, Any] = body if isinstance(body, dict) else {}
        content = data.get("content")
        if not isinstance(content, str):
            content = ""
        word_count = _number(data.get("word_count"), int) or len(content.split())
        meta = data.get("metadata")
        if not isinstance(meta, dict):
            meta = {}
        title = data.get("title")
        if not isinstance(title, str) or not title:
            title = request.topic
        return cls(
            title=title,
            content=content,
            outline=_strings(data.get("outline")),
            keywords_used=_strings(data.get("keywords_used")) or request.keywords,
            word_count=word_count,
            estimated_reading_time=(
                _number(data.get("estimated_reading_time"), int) or -(-word_count // 200)
            ),
            seo_score=_number(data.get("seo_score"), float),
            readability_score=_number(data.get("readability_score"), float),
            metadata=BlogWriterMetadata(
                model_used=str(meta.get("model_used") or "unknown"),
                processing_time=_number(meta.get("processing_time"), float) or 0.0,
                tokens_used=_number(meta.get("tokens_used"), int) or 0,
                cost=_number(meta.get("cost"), float),
            ),
        )


def _number(value: Any, kind: type) -> Optional[Any]:
    """``value`` as ``kind`` when it is numeric, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return kind(value)


def _strings(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


class BlogWriterOptions(BaseModel):
    tones: List[str]
    lengths: List[str]
    languages: List[str]
    styles: List[str]
    features: List[str]


class ContentAnalysisRequest(BaseModel):
    content: str = Field(min_length=1)
    analysis_type: Literal["comprehensive", "seo", "readability", "keywords"] = "comprehensive"


class KeywordAnalysisRequest(BaseModel):
    keywords: Optional[List[str]] = None
    content: Optional[str] = None
    analysis_type: Literal["research", "density", "suggestions"] = "research"

"""
AI Settings Models for Configuration Management
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class LLMSettings(BaseModel):
    """Text-understanding model configuration"""
    model_name: str = Field(default="llama3.1:8b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Generation temperature")
    max_tokens: Optional[int] = Field(default=2000, ge=1, description="Maximum tokens to generate")
    timeout: float = Field(default=120, gt=0, le=600, description="Per-call timeout in seconds")

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class ProcessingSettings(BaseModel):
    """Chunking and extraction configuration"""
    max_chunk_size: int = Field(default=150000, ge=1, description="Maximum characters per extraction call")
    min_text_length: int = Field(default=50, ge=0, description="Shorter documents are rejected")
    retry_attempts: int = Field(default=1, ge=1, le=10, description="HTTP attempts per model call")
    retry_delay: float = Field(default=1.0, ge=0.0, le=60.0, description="Backoff factor between attempts")


class ScoringThresholds(BaseModel):
    """Matching score thresholds"""
    match_threshold: float = Field(default=50, ge=0, le=100, description="Minimum score for a match to be kept")


class AISettings(BaseModel):
    """Complete settings for the analysis and matching pipeline"""
    llm_settings: LLMSettings = Field(default_factory=LLMSettings)
    processing_settings: ProcessingSettings = Field(default_factory=ProcessingSettings)
    scoring_thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)

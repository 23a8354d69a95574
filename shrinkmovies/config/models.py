from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_EXTENSIONS = [".mpg", ".mpeg", ".avi", ".mp4", ".3gp", ".mov"]

class EncodingProfile(BaseModel):
    """Size/quality oriented ffmpeg settings (H.264, audio copied, fast-start)."""
    video_codec: str = "libx264"
    crf: int = Field(default=28, ge=0, le=51)
    preset: str = "slow"
    faststart: bool = True
    audio_codec: str = "copy"

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        allowed = {
            "ultrafast", "superfast", "veryfast", "faster", "fast",
            "medium", "slow", "slower", "veryslow", "placebo",
        }
        if v not in allowed:
            raise ValueError(f"Unsupported preset: {v}. Use one of {sorted(allowed)}")
        return v

class GeneralConfig(BaseModel):
    threads: int = Field(default=4, ge=1, le=32)
    keep_ratio: float = Field(default=0.93, gt=0.0, le=1.0)
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    transcode_timeout_s: Optional[float] = Field(default=None, gt=0)
    log_path: Optional[str] = None
    debug: bool = False

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("extensions must not be empty")
        return [(ext if ext.startswith(".") else f".{ext}").lower() for ext in v]

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    encoding: EncodingProfile = Field(default_factory=EncodingProfile)

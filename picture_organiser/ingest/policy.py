from __future__ import annotations

from pydantic import BaseModel, Field

from picture_organiser.core.env import env_int

MIB = 1024 * 1024


class OptimizationPolicy(BaseModel):
    """Size limits and quality schedule applied when re-encoding uploads."""

    initial_quality: int = Field(80, ge=1, le=100)
    quality_step: int = Field(20, ge=0)
    max_attempts: int = Field(3, ge=1)
    size_budget: int = Field(6 * MIB, gt=0)
    max_dimension: int = Field(1600, gt=0)
    max_upload_bytes: int = Field(15 * MIB, gt=0)

    @classmethod
    def from_env(cls) -> OptimizationPolicy:
        defaults = cls()
        return cls(
            initial_quality=env_int("IMAGE_INITIAL_QUALITY", defaults.initial_quality),
            quality_step=env_int("IMAGE_QUALITY_STEP", defaults.quality_step),
            max_attempts=env_int("IMAGE_MAX_ATTEMPTS", defaults.max_attempts),
            size_budget=env_int("MAX_IMAGE_SIZE", defaults.size_budget),
            max_dimension=env_int("IMAGE_MAX_DIMENSION", defaults.max_dimension),
            max_upload_bytes=env_int("MAX_UPLOAD_SIZE", defaults.max_upload_bytes),
        )

    def next_quality(self, quality: int) -> int:
        return max(quality - self.quality_step, 1)
